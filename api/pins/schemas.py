"""
Pin API schemas (request/response models).

JSON field names are camelCase (`userId`, `createdAt`, ...); Python code uses
snake_case and either form is accepted on input.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import MAX_TITLE_CHARS


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreatePinRequest(_CamelModel):
    title: str = Field(..., min_length=1, max_length=MAX_TITLE_CHARS)
    notes: str | None = None
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    tags: list[str | None] | None = Field(default_factory=list)


class UpdatePinRequest(_CamelModel):
    # Full replace: omitted notes/tags clear the stored values.
    title: str = Field(..., min_length=1, max_length=MAX_TITLE_CHARS)
    notes: str | None = None
    tags: list[str | None] | None = Field(default_factory=list)


class TagView(_CamelModel):
    id: int
    name: str


class PinView(_CamelModel):
    id: int
    title: str
    notes: str | None = None
    latitude: float
    longitude: float
    user_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    tags: list[TagView] = Field(default_factory=list)
