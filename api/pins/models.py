"""
Pin and tag entities.

Entities use identity equality. Compare them with `same_pin` / `same_tag`,
which encode the two different identity rules:
- a pin is identified by its store-assigned id (unsaved pins match nothing)
- a tag is identified by its canonical name, with or without an id
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable

MAX_TITLE_CHARS = 255
MAX_TAG_NAME_CHARS = 100


@dataclass(eq=False)
class Pin:
    title: str
    latitude: float
    longitude: float
    notes: str | None = None
    user_id: int | None = None
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(eq=False)
class Tag:
    name: str
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class PinTag:
    pin_id: int
    tag_id: int


def same_pin(a: Pin | None, b: Pin | None) -> bool:
    if a is None or b is None:
        return False
    if a is b:
        return True
    return a.id is not None and a.id == b.id


def same_tag(a: Tag | None, b: Tag | None) -> bool:
    if a is None or b is None:
        return False
    return a.name == b.name


def normalize_tag_name(raw: str | None) -> str:
    return (raw or "").lower().strip()


def normalize_tag_names(raw_names: Iterable[str | None] | None) -> list[str]:
    """
    Lower-case and trim, drop blanks, keep the first occurrence of each name.
    """
    names: list[str] = []
    seen: set[str] = set()
    for raw in raw_names or ():
        name = normalize_tag_name(raw)
        if not name or name in seen:
            continue
        seen.add(name)
        names.append(name)
    return names


def sort_tags(tags: Iterable[Tag]) -> list[Tag]:
    return sorted(tags, key=lambda tag: tag.name.lower())


def pin_from_row(row: dict[str, Any]) -> Pin:
    return Pin(
        id=int(row["id"]),
        title=str(row["title"]),
        notes=row.get("notes"),
        latitude=float(row["latitude"]),
        longitude=float(row["longitude"]),
        user_id=int(row["user_id"]) if row.get("user_id") is not None else None,
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def tag_from_row(row: dict[str, Any]) -> Tag:
    return Tag(
        id=int(row["id"]),
        name=str(row["name"]),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )
