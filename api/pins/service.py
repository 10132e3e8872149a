"""
Pin business logic.

Every public method runs inside one unit of work (one transaction across the
pin, tag and link stores). The unit of work commits when the method returns
and rolls back when it raises, so an operation never half-applies.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable

from core import geo
from core.errors import PinNotFoundError, PinValidationError

from . import schemas
from .models import MAX_TITLE_CHARS, Pin, Tag, sort_tags
from .ports import Stores, UnitOfWorkFactory
from .tags import resolve_tags

logger = logging.getLogger(__name__)


def _validate_title(title: str | None) -> str:
    if title is None or not title.strip():
        raise PinValidationError("Title is required.")
    if len(title) > MAX_TITLE_CHARS:
        raise PinValidationError(f"Title must be at most {MAX_TITLE_CHARS} characters.")
    return title


def _validate_coordinates(latitude: float, longitude: float) -> None:
    if not math.isfinite(latitude) or not -90.0 <= latitude <= 90.0:
        raise PinValidationError("Latitude must be between -90 and 90.")
    if not math.isfinite(longitude) or not -180.0 <= longitude <= 180.0:
        raise PinValidationError("Longitude must be between -180 and 180.")


def _validate_radius(radius_m: float) -> None:
    if not math.isfinite(radius_m) or radius_m < 0:
        raise PinValidationError("Radius must be a non-negative number of meters.")


def to_pin_view(pin: Pin, tags: Iterable[Tag]) -> schemas.PinView:
    return schemas.PinView(
        id=int(pin.id),
        title=pin.title,
        notes=pin.notes,
        latitude=pin.latitude,
        longitude=pin.longitude,
        user_id=pin.user_id,
        created_at=pin.created_at,
        updated_at=pin.updated_at,
        tags=[schemas.TagView(id=int(tag.id), name=tag.name) for tag in sort_tags(tags)],
    )


async def _project_all(stores: Stores, pins: list[Pin]) -> list[schemas.PinView]:
    tags_by_pin = await stores.links.tags_for_pins([int(pin.id) for pin in pins])
    return [to_pin_view(pin, tags_by_pin.get(int(pin.id), [])) for pin in pins]


async def _project_one(stores: Stores, pin: Pin) -> schemas.PinView:
    views = await _project_all(stores, [pin])
    return views[0]


class PinService:
    def __init__(self, unit_of_work: UnitOfWorkFactory) -> None:
        self._unit_of_work = unit_of_work

    async def create_pin(
        self,
        title: str,
        notes: str | None,
        latitude: float,
        longitude: float,
        tag_names: Iterable[str | None] | None = None,
    ) -> schemas.PinView:
        title = _validate_title(title)
        _validate_coordinates(latitude, longitude)

        async with self._unit_of_work() as stores:
            tags = await resolve_tags(stores.tags, tag_names)
            pin = await stores.pins.save(
                Pin(title=title, notes=notes, latitude=latitude, longitude=longitude)
            )
            await stores.links.attach(int(pin.id), [int(tag.id) for tag in tags])
            view = await _project_one(stores, pin)

        logger.info("pin_created pin_id=%s tags=%s", view.id, len(view.tags))
        return view

    async def get_pin(self, pin_id: int) -> schemas.PinView | None:
        async with self._unit_of_work(readonly=True) as stores:
            pin = await stores.pins.find_by_id(pin_id)
            if pin is None:
                return None
            return await _project_one(stores, pin)

    async def list_pins(self) -> list[schemas.PinView]:
        async with self._unit_of_work(readonly=True) as stores:
            pins = await stores.pins.find_all()
            return await _project_all(stores, pins)

    async def update_pin(
        self,
        pin_id: int,
        title: str,
        notes: str | None = None,
        tag_names: Iterable[str | None] | None = None,
    ) -> schemas.PinView:
        title = _validate_title(title)

        async with self._unit_of_work() as stores:
            pin = await stores.pins.find_by_id(pin_id)
            if pin is None:
                raise PinNotFoundError(pin_id)

            pin.title = title
            pin.notes = notes

            target = await resolve_tags(stores.tags, tag_names)
            target_ids = {int(tag.id) for tag in target}
            current = await stores.links.tags_for_pins([pin_id])
            current_ids = {int(tag.id) for tag in current.get(pin_id, [])}

            await stores.links.detach(pin_id, sorted(current_ids - target_ids))
            await stores.links.attach(pin_id, sorted(target_ids - current_ids))

            pin = await stores.pins.save(pin)
            view = await _project_one(stores, pin)

        logger.info(
            "pin_updated pin_id=%s detached=%s attached=%s",
            pin_id,
            len(current_ids - target_ids),
            len(target_ids - current_ids),
        )
        return view

    async def delete_pin(self, pin_id: int) -> None:
        async with self._unit_of_work() as stores:
            if not await stores.pins.exists_by_id(pin_id):
                raise PinNotFoundError(pin_id)
            await stores.pins.delete_by_id(pin_id)

        logger.info("pin_deleted pin_id=%s", pin_id)

    async def find_nearby(
        self,
        latitude: float,
        longitude: float,
        radius_m: float,
    ) -> list[schemas.PinView]:
        """
        Pins within `radius_m` meters (inclusive) of the center point.

        This is a full scan: every pin is loaded and checked with the
        haversine distance. Results keep the scan (insertion) order.
        """
        _validate_coordinates(latitude, longitude)
        _validate_radius(radius_m)

        async with self._unit_of_work(readonly=True) as stores:
            pins = await stores.pins.find_all()
            nearby = [
                pin
                for pin in pins
                if geo.within_radius(latitude, longitude, pin.latitude, pin.longitude, radius_m)
            ]
            return await _project_all(stores, nearby)

    async def list_tag_names(self) -> list[str]:
        async with self._unit_of_work(readonly=True) as stores:
            return await stores.tags.find_all_names_sorted()
