"""
Domain errors raised by the service layer.

Routers translate these into HTTP responses; nothing below the router
imports FastAPI.
"""

from __future__ import annotations


class PinNotFoundError(LookupError):
    def __init__(self, pin_id: int) -> None:
        self.pin_id = pin_id
        super().__init__(f"Pin not found with id: {pin_id}")


class PinValidationError(ValueError):
    pass


# Raised when a concurrent writer created the same tag first. Safe to retry.
class TagConflictError(RuntimeError):
    def __init__(self, names: list[str]) -> None:
        self.names = list(names)
        super().__init__(f"Tag(s) created concurrently: {', '.join(self.names)}")
