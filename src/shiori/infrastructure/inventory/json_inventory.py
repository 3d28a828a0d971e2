"""
JSON inventory source for inventory exports on disk.

Implements InventorySource over a read-only JSON document of the form
{"items": [...], "profile": {...}}; a bare list of items is accepted too.
"""

import json
import logging
from pathlib import Path
from typing import Any

from shiori.domain.errors import InvalidInputError, ShioriError
from shiori.domain.models import LearnableItem, LearnerProfile, parse_timestamp
from shiori.domain.ports import InventorySource

logger = logging.getLogger(__name__)

_PROFILE_FIELDS = ("current_streak", "longest_streak", "last_active_date", "daily_new_item_limit")


class InventoryNotFoundError(ShioriError, FileNotFoundError):
    """Raised when an inventory export does not exist."""


def parse_profile(data: dict[str, Any] | None) -> LearnerProfile:
    """Build LearnerProfile counters from a profile record; unknown keys go to `extra`."""
    if not data:
        return LearnerProfile()
    if not isinstance(data, dict):
        raise InvalidInputError(f"Malformed learner profile: {data!r}")

    last_active = data.get("last_active_date")
    limit = data.get("daily_new_item_limit")
    try:
        return LearnerProfile(
            current_streak=int(data.get("current_streak", 0)),
            longest_streak=int(data.get("longest_streak", 0)),
            last_active_date=parse_timestamp(last_active) if last_active else None,
            daily_new_item_limit=int(limit) if limit is not None else None,
            extra={k: v for k, v in data.items() if k not in _PROFILE_FIELDS},
        )
    except (TypeError, ValueError) as e:
        if isinstance(e, InvalidInputError):
            raise
        raise InvalidInputError(f"Malformed learner profile: {e}") from e


class JsonInventorySource(InventorySource):
    """
    Reads the learner inventory from a JSON export.

    The file is parsed on first access and then held in memory.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()
        self._document: dict[str, Any] | None = None

    def _load(self) -> dict[str, Any]:
        if self._document is not None:
            return self._document

        if not self.path.exists():
            raise InventoryNotFoundError(f"Inventory file not found: {self.path}")
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise InvalidInputError(f"Could not parse inventory {self.path}: {e}") from e

        if isinstance(raw, list):
            raw = {"items": raw}
        if not isinstance(raw, dict):
            raise InvalidInputError(
                f"Inventory must be a list of items or an object with 'items', "
                f"got {type(raw).__name__}"
            )
        self._document = raw
        return raw

    async def get_items(self) -> list[LearnableItem]:
        records = self._load().get("items") or []
        items = [LearnableItem.from_dict(r) for r in records]
        logger.debug(f"Read {len(items)} items from {self.path.name}")
        return items

    async def get_learner_profile(self) -> LearnerProfile:
        return parse_profile(self._load().get("profile"))
