"""
Tag API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from pins.dependencies import get_pin_service
from pins.service import PinService

router = APIRouter(prefix="/api/tags")


@router.get("", response_model=list[str])
async def list_tag_names(service: PinService = Depends(get_pin_service)) -> list[str]:
    """
    Every known tag name (lower-case), sorted; used to populate tag pickers.
    """
    return await service.list_tag_names()
