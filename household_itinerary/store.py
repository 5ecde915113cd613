# File: store.py
"""In-process state container for itinerary data.

Holds the items, streaks and progress buckets in one dict keyed by item id,
and converts the whole structure to/from an opaque JSON-serializable
snapshot. Where the snapshot lives (file, document store) is the caller's
concern.
"""

from __future__ import annotations

import copy
import json
from typing import TYPE_CHECKING, Any, cast

from . import const
from .engines.rule_engine import RuleEngine
from .exceptions import SnapshotError

if TYPE_CHECKING:
    from .type_defs import (
        ItemId,
        ItemProgressData,
        ItineraryItemData,
        ItinerarySnapshot,
        StreakData,
    )

# Flat optional fields used by items saved before due rules were tagged
_LEGACY_SCHEDULE_KEY = "schedule"
_LEGACY_TIMESCALE_KEY = "timescale"
_LEGACY_DUE_DATE_KEYS = ("due_date", "dueDate")


class ItineraryStore:
    """Handles in-memory storage for itinerary data.

    Thin container around a single dict with buckets for items, streaks and
    progress. Managers mutate the buckets directly; the store only knows how
    to reset, snapshot and restore them.
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        """Initialize the store.

        Args:
            data: Existing structure to adopt (already migrated), or None for
                an empty store.
        """
        self._data: dict[str, Any] = (
            data if data is not None else ItineraryStore.get_default_structure()
        )

    @staticmethod
    def get_default_structure() -> dict[str, Any]:
        """Return canonical empty data structure.

        This is the SINGLE SOURCE OF TRUTH for the snapshot schema.
        """
        return {
            const.DATA_META: {
                const.DATA_META_SCHEMA_VERSION: const.SCHEMA_VERSION,
                const.DATA_META_LAST_REGENERATED_AT: None,
            },
            const.DATA_ITEMS: {},
            const.DATA_STREAKS: {},
            const.DATA_PROGRESS: {},
        }

    # =========================================================================
    # Bucket access
    # =========================================================================

    @property
    def data(self) -> dict[str, Any]:
        """Retrieve the in-memory data."""
        return self._data

    @property
    def items(self) -> dict[ItemId, ItineraryItemData]:
        """Items keyed by id, in insertion order."""
        return self._data[const.DATA_ITEMS]

    @property
    def streaks(self) -> dict[ItemId, StreakData]:
        """Streak records keyed by item id."""
        return self._data[const.DATA_STREAKS]

    @property
    def progress(self) -> dict[ItemId, ItemProgressData]:
        """Progress records keyed by item id."""
        return self._data[const.DATA_PROGRESS]

    @property
    def meta(self) -> dict[str, Any]:
        """Snapshot metadata."""
        return self._data[const.DATA_META]

    def remove_item_state(self, item_id: ItemId) -> None:
        """Delete an item together with its streak and progress records."""
        self.items.pop(item_id, None)
        self.streaks.pop(item_id, None)
        self.progress.pop(item_id, None)

    def clear(self) -> None:
        """Drop all items, streaks and progress (meta is kept)."""
        const.LOGGER.debug(
            "ItineraryStore: Clearing %s items, %s streaks, %s progress records",
            len(self.items),
            len(self.streaks),
            len(self.progress),
        )
        self.items.clear()
        self.streaks.clear()
        self.progress.clear()

    # =========================================================================
    # Snapshot
    # =========================================================================

    def snapshot(self) -> ItinerarySnapshot:
        """Return a deep copy of the full state, safe to serialize."""
        return cast("ItinerarySnapshot", copy.deepcopy(self._data))

    def dumps(self) -> str:
        """Serialize the full state as JSON."""
        return json.dumps(self._data, sort_keys=True)

    @classmethod
    def from_snapshot(cls, snapshot: dict[str, Any]) -> ItineraryStore:
        """Restore a store from a snapshot.

        Missing buckets are filled in and items saved with flat schedule /
        timescale / due-date fields are migrated to tagged due rules.

        Raises:
            SnapshotError: The snapshot is not a dict, a bucket is not a dict,
                or it was written by a newer schema version.
        """
        if not isinstance(snapshot, dict):
            raise SnapshotError(
                f"Snapshot must be a dict, got {type(snapshot).__name__}"
            )

        data = copy.deepcopy(snapshot)
        meta = data.setdefault(const.DATA_META, {})
        if not isinstance(meta, dict):
            raise SnapshotError(f"Snapshot bucket '{const.DATA_META}' must be a dict")
        version = meta.get(const.DATA_META_SCHEMA_VERSION, const.SCHEMA_VERSION)
        if not isinstance(version, int) or version > const.SCHEMA_VERSION:
            raise SnapshotError(
                f"Unsupported snapshot schema version {version!r} "
                f"(supported: <= {const.SCHEMA_VERSION})"
            )
        meta[const.DATA_META_SCHEMA_VERSION] = const.SCHEMA_VERSION
        meta.setdefault(const.DATA_META_LAST_REGENERATED_AT, None)

        for bucket in (const.DATA_ITEMS, const.DATA_STREAKS, const.DATA_PROGRESS):
            value = data.setdefault(bucket, {})
            if not isinstance(value, dict):
                raise SnapshotError(f"Snapshot bucket '{bucket}' must be a dict")

        migrated = 0
        for item_id, item in data[const.DATA_ITEMS].items():
            if not isinstance(item, dict):
                raise SnapshotError(f"Snapshot item '{item_id}' must be a dict")
            if ItineraryStore._migrate_item(item):
                migrated += 1

        const.LOGGER.info(
            "ItineraryStore: Restored %s items (%s migrated from flat due fields)",
            len(data[const.DATA_ITEMS]),
            migrated,
        )
        return cls(data)

    @classmethod
    def loads(cls, payload: str) -> ItineraryStore:
        """Restore a store from a JSON string produced by dumps().

        Raises:
            SnapshotError: The payload is not valid JSON or not a valid snapshot.
        """
        try:
            snapshot = json.loads(payload)
        except json.JSONDecodeError as err:
            raise SnapshotError(f"Snapshot is not valid JSON: {err}") from err
        return cls.from_snapshot(snapshot)

    @staticmethod
    def _migrate_item(item: dict[str, Any]) -> bool:
        """Convert flat optional due fields to a tagged due rule in place.

        Returns:
            True if the item was changed.

        Raises:
            SnapshotError: A flat schedule is present but is not a dict.
        """
        if const.DATA_ITEM_DUE_RULE in item:
            return False

        schedule = item.pop(_LEGACY_SCHEDULE_KEY, None)
        if schedule and not isinstance(schedule, dict):
            raise SnapshotError(
                f"Snapshot item '{item.get(const.DATA_ITEM_ID)}' has a "
                f"{type(schedule).__name__} schedule, expected a dict"
            )
        timescale = item.pop(_LEGACY_TIMESCALE_KEY, None)
        due_date = None
        for key in _LEGACY_DUE_DATE_KEYS:
            due_date = item.pop(key, None) or due_date

        item[const.DATA_ITEM_DUE_RULE] = RuleEngine.build_rule_from_fields(
            schedule=schedule, timescale=timescale, due_date=due_date
        )
        item.setdefault(const.DATA_ITEM_REPEAT_UNTIL, None)
        return True
