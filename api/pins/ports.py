"""
Storage contracts used by the pin service.

Each backend (Postgres in `repository.py`, in-memory in `memory.py`)
provides the three stores below, bundled per transaction in a `Stores`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncContextManager, Iterable, Protocol

from .models import Pin, Tag


class PinStore(ABC):
    @abstractmethod
    async def save(self, pin: Pin) -> Pin:
        """
        Insert the pin when it has no id, otherwise update it.

        The store sets `created_at` on insert and refreshes `updated_at` on
        every save. Returns the stored pin.
        """

    @abstractmethod
    async def find_by_id(self, pin_id: int) -> Pin | None:
        pass

    @abstractmethod
    async def find_all(self) -> list[Pin]:
        """
        All pins in insertion order.
        """

    @abstractmethod
    async def exists_by_id(self, pin_id: int) -> bool:
        pass

    @abstractmethod
    async def delete_by_id(self, pin_id: int) -> None:
        """
        Remove the pin and its tag links. Tags are left in place.
        """


class TagStore(ABC):
    @abstractmethod
    async def find_by_name_case_insensitive(self, name: str) -> Tag | None:
        pass

    @abstractmethod
    async def find_by_names_case_insensitive(self, names: list[str]) -> list[Tag]:
        pass

    @abstractmethod
    async def save_all(self, tags: list[Tag]) -> list[Tag]:
        """
        Insert new tags in one batch and return them with ids assigned.

        Raises TagConflictError when a name already exists.
        """

    @abstractmethod
    async def find_all_names_sorted(self) -> list[str]:
        pass


class PinTagStore(ABC):
    @abstractmethod
    async def tags_for_pins(self, pin_ids: list[int]) -> dict[int, list[Tag]]:
        """
        Map each requested pin id to its attached tags (empty list if none).
        """

    @abstractmethod
    async def pin_ids_for_tag(self, tag_id: int) -> list[int]:
        pass

    @abstractmethod
    async def attach(self, pin_id: int, tag_ids: Iterable[int]) -> None:
        """
        Link tags to a pin. Already-linked tags are ignored.
        """

    @abstractmethod
    async def detach(self, pin_id: int, tag_ids: Iterable[int]) -> None:
        pass


@dataclass
class Stores:
    pins: PinStore
    tags: TagStore
    links: PinTagStore


class UnitOfWorkFactory(Protocol):
    def __call__(self, *, readonly: bool = False) -> AsyncContextManager[Stores]:
        ...
