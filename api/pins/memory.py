"""
In-memory storage backend.

Used for local development (`STORAGE_BACKEND=memory`) and by the test suite.
It keeps the same contracts as the Postgres stores, including the
case-insensitive unique tag name and all-or-nothing transactions:
- writers are serialized and work on a copy of the tables
- the copy replaces the live tables only when the block exits cleanly
"""

from __future__ import annotations

import asyncio
import copy
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, Iterable

from core.errors import TagConflictError

from .models import Pin, PinTag, Tag
from .ports import PinStore, PinTagStore, Stores, TagStore


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _Tables:
    pins: dict[int, Pin] = field(default_factory=dict)
    tags: dict[int, Tag] = field(default_factory=dict)
    links: set[PinTag] = field(default_factory=set)
    next_pin_id: int = 1
    next_tag_id: int = 1


class InMemoryPinStore(PinStore):
    def __init__(self, tables: _Tables, clock: Callable[[], datetime]) -> None:
        self._t = tables
        self._clock = clock

    async def save(self, pin: Pin) -> Pin:
        now = self._clock()
        if pin.id is None:
            stored = replace(pin, id=self._t.next_pin_id, created_at=now, updated_at=now)
            self._t.next_pin_id += 1
        else:
            existing = self._t.pins.get(pin.id)
            if existing is None:
                raise RuntimeError(f"Failed to update pin {pin.id}: row is gone.")
            stored = replace(pin, created_at=existing.created_at, updated_at=now)
        self._t.pins[stored.id] = stored
        return replace(stored)

    async def find_by_id(self, pin_id: int) -> Pin | None:
        pin = self._t.pins.get(pin_id)
        return replace(pin) if pin is not None else None

    async def find_all(self) -> list[Pin]:
        return [replace(pin) for pin in self._t.pins.values()]

    async def exists_by_id(self, pin_id: int) -> bool:
        return pin_id in self._t.pins

    async def delete_by_id(self, pin_id: int) -> None:
        self._t.pins.pop(pin_id, None)
        self._t.links = {link for link in self._t.links if link.pin_id != pin_id}


class InMemoryTagStore(TagStore):
    def __init__(self, tables: _Tables, clock: Callable[[], datetime]) -> None:
        self._t = tables
        self._clock = clock

    async def find_by_name_case_insensitive(self, name: str) -> Tag | None:
        wanted = (name or "").lower()
        for tag in self._t.tags.values():
            if tag.name.lower() == wanted:
                return replace(tag)
        return None

    async def find_by_names_case_insensitive(self, names: list[str]) -> list[Tag]:
        wanted = {name.lower() for name in names}
        return [replace(tag) for tag in self._t.tags.values() if tag.name.lower() in wanted]

    async def save_all(self, tags: list[Tag]) -> list[Tag]:
        taken = {tag.name.lower() for tag in self._t.tags.values()}
        batch = [tag.name.lower() for tag in tags]
        clashes = sorted({name for name in batch if name in taken})
        if clashes or len(set(batch)) != len(batch):
            raise TagConflictError(clashes or batch)

        now = self._clock()
        saved: list[Tag] = []
        for tag in tags:
            stored = replace(tag, id=self._t.next_tag_id, created_at=now, updated_at=now)
            self._t.next_tag_id += 1
            self._t.tags[stored.id] = stored
            saved.append(replace(stored))
        return saved

    async def find_all_names_sorted(self) -> list[str]:
        return sorted({tag.name for tag in self._t.tags.values()})


class InMemoryPinTagStore(PinTagStore):
    def __init__(self, tables: _Tables) -> None:
        self._t = tables

    async def tags_for_pins(self, pin_ids: list[int]) -> dict[int, list[Tag]]:
        result: dict[int, list[Tag]] = {pin_id: [] for pin_id in pin_ids}
        for link in sorted(self._t.links, key=lambda link: (link.pin_id, link.tag_id)):
            if link.pin_id in result:
                result[link.pin_id].append(replace(self._t.tags[link.tag_id]))
        return result

    async def pin_ids_for_tag(self, tag_id: int) -> list[int]:
        return sorted(link.pin_id for link in self._t.links if link.tag_id == tag_id)

    async def attach(self, pin_id: int, tag_ids: Iterable[int]) -> None:
        for tag_id in tag_ids:
            if pin_id not in self._t.pins or tag_id not in self._t.tags:
                raise RuntimeError(f"Cannot link pin {pin_id} to tag {tag_id}: missing row.")
            self._t.links.add(PinTag(pin_id=pin_id, tag_id=tag_id))

    async def detach(self, pin_id: int, tag_ids: Iterable[int]) -> None:
        for tag_id in tag_ids:
            self._t.links.discard(PinTag(pin_id=pin_id, tag_id=tag_id))


class InMemoryStorage:
    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._tables = _Tables()
        self._clock = clock or _utc_now
        self._write_lock = asyncio.Lock()

    def _stores(self, tables: _Tables) -> Stores:
        return Stores(
            pins=InMemoryPinStore(tables, self._clock),
            tags=InMemoryTagStore(tables, self._clock),
            links=InMemoryPinTagStore(tables),
        )

    @asynccontextmanager
    async def unit_of_work(self, *, readonly: bool = False) -> AsyncIterator[Stores]:
        if readonly:
            # Readers see whatever was last committed.
            yield self._stores(self._tables)
            return

        async with self._write_lock:
            working = copy.deepcopy(self._tables)
            yield self._stores(working)
            self._tables = working
