"""
Pin service dependency for FastAPI routes.
"""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from .service import PinService


def get_pin_service(request: Request) -> PinService:
    service = getattr(request.app.state, "pin_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Storage is not initialized.",
        )
    return service
