"""Attention Engine - Flags items that are behind or have broken streaks.

An item needs attention when either:
- broken streak: last_completed_at is more than `stale_days` calendar days ago
- behind pace: completed/total < `progress_ratio` AND last_updated_at is more
  than `stale_days` calendar days ago

Both are heuristics; false positives near period boundaries are accepted.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils.dt_utils import dt_days_between

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from ..type_defs import (
        AttentionView,
        ItemId,
        ItemProgressData,
        ItineraryItemData,
        StreakData,
    )


class AttentionEngine:
    """Pure attention heuristics."""

    @staticmethod
    def has_broken_streak(
        streak: StreakData | Mapping[str, Any] | None,
        today: date,
        stale_days: int = const.DEFAULT_ATTENTION_STALE_DAYS,
    ) -> bool:
        """Return True when the last completion is older than `stale_days` days."""
        if not streak:
            return False
        days = dt_days_between(streak.get(const.DATA_STREAK_LAST_COMPLETED_AT), today)
        return days is not None and days > stale_days

    @staticmethod
    def is_behind_pace(
        progress: ItemProgressData | Mapping[str, Any] | None,
        today: date,
        stale_days: int = const.DEFAULT_ATTENTION_STALE_DAYS,
        progress_ratio: float = const.DEFAULT_ATTENTION_PROGRESS_RATIO,
    ) -> bool:
        """Return True for low completion ratio with no recent activity."""
        if not progress:
            return False
        total = progress.get(const.DATA_PROGRESS_TOTAL) or 0
        if total <= 0:
            return False
        ratio = (progress.get(const.DATA_PROGRESS_COMPLETED) or 0) / total
        if ratio >= progress_ratio:
            return False
        days = dt_days_between(progress.get(const.DATA_PROGRESS_LAST_UPDATED_AT), today)
        return days is not None and days > stale_days

    @staticmethod
    def scan(
        items: Iterable[ItineraryItemData],
        streaks: Mapping[ItemId, StreakData],
        progress: Mapping[ItemId, ItemProgressData],
        today: date,
        stale_days: int = const.DEFAULT_ATTENTION_STALE_DAYS,
        progress_ratio: float = const.DEFAULT_ATTENTION_PROGRESS_RATIO,
    ) -> list[AttentionView]:
        """Return flagged items with their reasons, in store order."""
        flagged: list[AttentionView] = []
        for item in items:
            item_id = item[const.DATA_ITEM_ID]
            reasons: list[str] = []
            if AttentionEngine.has_broken_streak(streaks.get(item_id), today, stale_days):
                reasons.append(const.ATTENTION_REASON_BROKEN_STREAK)
            if AttentionEngine.is_behind_pace(
                progress.get(item_id), today, stale_days, progress_ratio
            ):
                reasons.append(const.ATTENTION_REASON_BEHIND_PACE)
            if reasons:
                flagged.append({"item": item, "reasons": reasons})
        return flagged
