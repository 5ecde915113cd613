"""Tracking Engine - Streak and progress arithmetic for completion events.

Completion (completed=True):
- streak: count + 1, last_completed_at = now
- progress: completed + 1, last_updated_at = now

Un-completion (completed=False):
- streak: max(0, count - 1), last_completed_at unchanged so streak-break
  detection still sees the last real completion
- progress: max(0, completed - 1), last_updated_at = now

No period rollover happens here. reset_period_progress() exists for callers
that decide to zero counters at a period boundary; nothing calls it
implicitly.

Design Principles:
    - Stateless: Operates on passed records and returns new ones
    - Records from older snapshots may lack keys; reads use .get() defaults
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils.dt_utils import dt_to_local_date

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ..type_defs import ISODatetime, ItemProgressData, StreakData


class TrackingEngine:
    """Pure streak/progress transitions."""

    # ────────────────────────────────────────────────────────────────
    # Defaults
    # ────────────────────────────────────────────────────────────────

    @staticmethod
    def default_streak() -> StreakData:
        """Zero-valued streak returned for unknown items."""
        return {"count": 0, "last_completed_at": None}

    @staticmethod
    def default_progress() -> ItemProgressData:
        """Zero-valued progress returned for unknown items."""
        return {"completed": 0, "total": 1, "last_updated_at": None}

    # ────────────────────────────────────────────────────────────────
    # Completion Events
    # ────────────────────────────────────────────────────────────────

    @staticmethod
    def apply_streak_completion(
        streak: StreakData | Mapping[str, Any] | None,
        completed: bool,
        now_iso: ISODatetime,
    ) -> StreakData:
        """Return the streak record after a completion toggle."""
        count = int((streak or {}).get(const.DATA_STREAK_COUNT, 0) or 0)
        last_completed = (streak or {}).get(const.DATA_STREAK_LAST_COMPLETED_AT)

        if completed:
            return {"count": count + 1, "last_completed_at": now_iso}

        new_count = max(0, count - 1)
        if last_completed is None:
            # count must stay 0 without a completion timestamp
            new_count = 0
        return {"count": new_count, "last_completed_at": last_completed}

    @staticmethod
    def apply_progress_completion(
        progress: ItemProgressData | Mapping[str, Any] | None,
        completed: bool,
        now_iso: ISODatetime,
    ) -> ItemProgressData:
        """Return the progress record after a completion toggle."""
        current = int((progress or {}).get(const.DATA_PROGRESS_COMPLETED, 0) or 0)
        total = max(1, int((progress or {}).get(const.DATA_PROGRESS_TOTAL, 1) or 1))

        new_completed = current + 1 if completed else max(0, current - 1)
        return {"completed": new_completed, "total": total, "last_updated_at": now_iso}

    # ────────────────────────────────────────────────────────────────
    # Period Keys / Rollover
    # ────────────────────────────────────────────────────────────────

    @staticmethod
    def get_period_key(reference: date | datetime, timescale: str | None) -> str:
        """Generate the period identifier a day belongs to for a timescale.

        Example:
            >>> TrackingEngine.get_period_key(date(2026, 1, 19), "weekly")
            '2026-W04'
            >>> TrackingEngine.get_period_key(date(2026, 5, 2), "quarterly")
            '2026-Q2'
        """
        ref = reference.date() if isinstance(reference, datetime) else reference

        if timescale == const.TIMESCALE_WEEKLY:
            iso_year, iso_week, _ = ref.isocalendar()
            return f"{iso_year}-W{iso_week:02d}"
        if timescale == const.TIMESCALE_MONTHLY:
            return ref.strftime("%Y-%m")
        if timescale == const.TIMESCALE_QUARTERLY:
            quarter = (ref.month - 1) // const.MONTHS_PER_QUARTER + 1
            return f"{ref.year}-Q{quarter}"
        if timescale == const.TIMESCALE_YEARLY:
            return ref.strftime("%Y")
        return ref.isoformat()

    @staticmethod
    def is_progress_stale(
        progress: ItemProgressData | Mapping[str, Any] | None,
        timescale: str | None,
        reference: date,
    ) -> bool:
        """Return True when progress was last updated in an earlier period."""
        if not progress:
            return False
        last_day = dt_to_local_date(progress.get(const.DATA_PROGRESS_LAST_UPDATED_AT))
        if last_day is None or last_day >= reference:
            return False
        return TrackingEngine.get_period_key(
            last_day, timescale
        ) != TrackingEngine.get_period_key(reference, timescale)

    @staticmethod
    def reset_period_progress(
        progress: ItemProgressData | Mapping[str, Any],
        now_iso: ISODatetime,
    ) -> ItemProgressData:
        """Return the progress record with its counter zeroed for a new period."""
        return {
            "completed": 0,
            "total": max(1, int(progress.get(const.DATA_PROGRESS_TOTAL, 1) or 1)),
            "last_updated_at": now_iso,
        }
