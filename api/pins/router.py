"""
Pin API endpoints.
"""

from __future__ import annotations

import os

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from core.errors import PinNotFoundError, PinValidationError, TagConflictError

from . import schemas
from .dependencies import get_pin_service
from .service import PinService

router = APIRouter(prefix="/api/pins")


def nearby_default_radius_m() -> float:
    raw = os.environ.get("NEARBY_DEFAULT_RADIUS_M", "").strip()
    if not raw:
        return 2000.0
    try:
        return float(raw)
    except ValueError:
        return 2000.0


def _to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, PinNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, TagConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"{exc}. Retry the request.")
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post("", status_code=status.HTTP_201_CREATED, response_model=schemas.PinView)
async def create_pin(
    request: schemas.CreatePinRequest,
    service: PinService = Depends(get_pin_service),
) -> schemas.PinView:
    try:
        return await service.create_pin(
            request.title,
            request.notes,
            request.latitude,
            request.longitude,
            request.tags,
        )
    except (PinValidationError, TagConflictError) as exc:
        raise _to_http_error(exc) from exc


@router.get("", response_model=list[schemas.PinView])
async def list_pins(service: PinService = Depends(get_pin_service)) -> list[schemas.PinView]:
    return await service.list_pins()


# Declared before "/{pin_id}" so "nearby" is not parsed as an id.
@router.get("/nearby", response_model=list[schemas.PinView])
async def find_nearby_pins(
    lat: float = Query(..., ge=-90.0, le=90.0),
    lng: float = Query(..., ge=-180.0, le=180.0),
    radius: float | None = Query(default=None, ge=0.0),
    service: PinService = Depends(get_pin_service),
) -> list[schemas.PinView]:
    radius_m = radius if radius is not None else nearby_default_radius_m()
    try:
        return await service.find_nearby(lat, lng, radius_m)
    except PinValidationError as exc:
        raise _to_http_error(exc) from exc


@router.get("/{pin_id}", response_model=schemas.PinView)
async def get_pin(
    pin_id: int,
    service: PinService = Depends(get_pin_service),
) -> schemas.PinView:
    pin = await service.get_pin(pin_id)
    if pin is None:
        raise _to_http_error(PinNotFoundError(pin_id))
    return pin


@router.put("/{pin_id}", response_model=schemas.PinView)
async def update_pin(
    pin_id: int,
    request: schemas.UpdatePinRequest,
    service: PinService = Depends(get_pin_service),
) -> schemas.PinView:
    try:
        return await service.update_pin(pin_id, request.title, request.notes, request.tags)
    except (PinNotFoundError, PinValidationError, TagConflictError) as exc:
        raise _to_http_error(exc) from exc


@router.delete("/{pin_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_pin(
    pin_id: int,
    service: PinService = Depends(get_pin_service),
) -> Response:
    try:
        await service.delete_pin(pin_id)
    except PinNotFoundError as exc:
        raise _to_http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
