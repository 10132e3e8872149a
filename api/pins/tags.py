"""
Tag resolution: raw user-supplied tag strings -> persisted Tag entities.

Flow:
1) normalize (lower-case, trim), drop blanks and duplicates
2) batch-lookup existing tags (case-insensitive)
3) batch-create the names that were not found
"""

from __future__ import annotations

import logging
from typing import Iterable

from core.errors import PinValidationError

from .models import MAX_TAG_NAME_CHARS, Tag, normalize_tag_names
from .ports import TagStore

logger = logging.getLogger(__name__)


async def resolve_tags(tag_store: TagStore, raw_names: Iterable[str | None] | None) -> list[Tag]:
    """
    Return one Tag per distinct normalized name, creating missing tags.

    Existing rows are reused as-is and never modified. An empty input touches
    no store at all.
    """
    names = normalize_tag_names(raw_names)
    if not names:
        return []

    too_long = [name for name in names if len(name) > MAX_TAG_NAME_CHARS]
    if too_long:
        raise PinValidationError(
            f"Tag names must be at most {MAX_TAG_NAME_CHARS} characters: {too_long[0][:20]}..."
        )

    existing = await tag_store.find_by_names_case_insensitive(names)
    by_name: dict[str, Tag] = {tag.name.lower(): tag for tag in existing}

    missing = [Tag(name=name) for name in names if name not in by_name]
    if missing:
        created = await tag_store.save_all(missing)
        logger.debug("tags_created names=%s", [tag.name for tag in created])
        for tag in created:
            by_name[tag.name.lower()] = tag

    return [by_name[name] for name in names]
