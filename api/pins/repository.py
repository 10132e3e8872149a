"""
Pin and tag persistence (raw SQL).

Schema comes from the dbmate migration in `db/migrations/`:
- pins(id bigserial, title, notes, latitude, longitude, user_id, created_at, updated_at)
- tags(id bigserial, name, created_at, updated_at), unique on lower(name)
- pin_tags(pin_id, tag_id), primary key (pin_id, tag_id), cascades on delete

Every store is bound to the connection of one transaction; see `unit_of_work`.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable

import asyncpg

from core import db
from core.errors import TagConflictError

from .models import Pin, Tag, pin_from_row, tag_from_row
from .ports import PinStore, PinTagStore, Stores, TagStore

PIN_COLUMNS = "id, title, notes, latitude, longitude, user_id, created_at, updated_at"
TAG_COLUMNS = "id, name, created_at, updated_at"


class PostgresPinStore(PinStore):
    def __init__(self, conn: asyncpg.Connection) -> None:
        self._conn = conn

    async def save(self, pin: Pin) -> Pin:
        if pin.id is None:
            row = await db.fetch_one(
                self._conn,
                f"""
                INSERT INTO pins (title, notes, latitude, longitude, user_id)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING {PIN_COLUMNS}
                """,
                pin.title,
                pin.notes,
                pin.latitude,
                pin.longitude,
                pin.user_id,
            )
            if row is None:
                raise RuntimeError("Failed to insert pin.")
            return pin_from_row(row)

        row = await db.fetch_one(
            self._conn,
            f"""
            UPDATE pins
            SET title = $2,
                notes = $3,
                latitude = $4,
                longitude = $5,
                user_id = $6,
                updated_at = now()
            WHERE id = $1
            RETURNING {PIN_COLUMNS}
            """,
            pin.id,
            pin.title,
            pin.notes,
            pin.latitude,
            pin.longitude,
            pin.user_id,
        )
        if row is None:
            raise RuntimeError(f"Failed to update pin {pin.id}: row is gone.")
        return pin_from_row(row)

    async def find_by_id(self, pin_id: int) -> Pin | None:
        row = await db.fetch_one(
            self._conn,
            f"""
            SELECT {PIN_COLUMNS}
            FROM pins
            WHERE id = $1
            """,
            pin_id,
        )
        return pin_from_row(row) if row is not None else None

    async def find_all(self) -> list[Pin]:
        rows = await db.fetch_all(
            self._conn,
            f"""
            SELECT {PIN_COLUMNS}
            FROM pins
            ORDER BY id
            """,
        )
        return [pin_from_row(row) for row in rows]

    async def exists_by_id(self, pin_id: int) -> bool:
        row = await db.fetch_one(
            self._conn,
            """
            SELECT 1 AS ok
            FROM pins
            WHERE id = $1
            LIMIT 1
            """,
            pin_id,
        )
        return row is not None

    async def delete_by_id(self, pin_id: int) -> None:
        # pin_tags rows go with it (ON DELETE CASCADE).
        await db.execute(self._conn, "DELETE FROM pins WHERE id = $1", pin_id)


class PostgresTagStore(TagStore):
    def __init__(self, conn: asyncpg.Connection) -> None:
        self._conn = conn

    async def find_by_name_case_insensitive(self, name: str) -> Tag | None:
        row = await db.fetch_one(
            self._conn,
            f"""
            SELECT {TAG_COLUMNS}
            FROM tags
            WHERE lower(name) = lower($1)
            """,
            name,
        )
        return tag_from_row(row) if row is not None else None

    async def find_by_names_case_insensitive(self, names: list[str]) -> list[Tag]:
        if not names:
            return []
        rows = await db.fetch_all(
            self._conn,
            f"""
            SELECT {TAG_COLUMNS}
            FROM tags
            WHERE lower(name) = ANY(
              SELECT lower(n) FROM unnest($1::text[]) AS n
            )
            ORDER BY id
            """,
            names,
        )
        return [tag_from_row(row) for row in rows]

    async def save_all(self, tags: list[Tag]) -> list[Tag]:
        if not tags:
            return []
        names = [tag.name for tag in tags]
        try:
            rows = await db.fetch_all(
                self._conn,
                f"""
                INSERT INTO tags (name)
                SELECT n FROM unnest($1::text[]) WITH ORDINALITY AS t(n, ord)
                ORDER BY ord
                RETURNING {TAG_COLUMNS}
                """,
                names,
            )
        except asyncpg.UniqueViolationError as exc:
            raise TagConflictError(names) from exc
        return [tag_from_row(row) for row in rows]

    async def find_all_names_sorted(self) -> list[str]:
        rows = await db.fetch_all(
            self._conn,
            """
            SELECT DISTINCT name
            FROM tags
            ORDER BY name
            """,
        )
        return [str(row["name"]) for row in rows]


class PostgresPinTagStore(PinTagStore):
    def __init__(self, conn: asyncpg.Connection) -> None:
        self._conn = conn

    async def tags_for_pins(self, pin_ids: list[int]) -> dict[int, list[Tag]]:
        result: dict[int, list[Tag]] = {pin_id: [] for pin_id in pin_ids}
        if not pin_ids:
            return result
        rows = await db.fetch_all(
            self._conn,
            """
            SELECT pt.pin_id, t.id, t.name, t.created_at, t.updated_at
            FROM pin_tags pt
            JOIN tags t ON t.id = pt.tag_id
            WHERE pt.pin_id = ANY($1::bigint[])
            ORDER BY pt.pin_id, t.id
            """,
            pin_ids,
        )
        for row in rows:
            result[int(row["pin_id"])].append(tag_from_row(row))
        return result

    async def pin_ids_for_tag(self, tag_id: int) -> list[int]:
        rows = await db.fetch_all(
            self._conn,
            """
            SELECT pin_id
            FROM pin_tags
            WHERE tag_id = $1
            ORDER BY pin_id
            """,
            tag_id,
        )
        return [int(row["pin_id"]) for row in rows]

    async def attach(self, pin_id: int, tag_ids: Iterable[int]) -> None:
        ids = list(tag_ids)
        if not ids:
            return
        await db.execute(
            self._conn,
            """
            INSERT INTO pin_tags (pin_id, tag_id)
            SELECT $1, unnest($2::bigint[])
            ON CONFLICT (pin_id, tag_id) DO NOTHING
            """,
            pin_id,
            ids,
        )

    async def detach(self, pin_id: int, tag_ids: Iterable[int]) -> None:
        ids = list(tag_ids)
        if not ids:
            return
        await db.execute(
            self._conn,
            """
            DELETE FROM pin_tags
            WHERE pin_id = $1
              AND tag_id = ANY($2::bigint[])
            """,
            pin_id,
            ids,
        )


@asynccontextmanager
async def unit_of_work(*, readonly: bool = False) -> AsyncIterator[Stores]:
    """
    One pooled connection + one transaction for a whole service operation.
    """
    async with db.transaction(readonly=readonly) as conn:
        yield Stores(
            pins=PostgresPinStore(conn),
            tags=PostgresTagStore(conn),
            links=PostgresPinTagStore(conn),
        )
