"""Unit tests for tracking_engine.py - streak/progress transitions and periods."""

from datetime import date

import pytest

from household_itinerary import const
from household_itinerary.engines.tracking_engine import TrackingEngine

EARLIER = "2026-01-17T08:00:00+00:00"
NOW = "2026-01-19T12:00:00+00:00"


# =============================================================================
# Streaks
# =============================================================================


class TestStreakCompletion:
    """Test streak increments and decrements."""

    def test_first_completion(self) -> None:
        """Missing record starts from zero."""
        assert TrackingEngine.apply_streak_completion(None, True, NOW) == {
            "count": 1,
            "last_completed_at": NOW,
        }

    def test_uncomplete_keeps_timestamp(self) -> None:
        """Un-completion decrements but leaves last_completed_at alone."""
        streak = {"count": 3, "last_completed_at": EARLIER}
        assert TrackingEngine.apply_streak_completion(streak, False, NOW) == {
            "count": 2,
            "last_completed_at": EARLIER,
        }

    def test_uncomplete_floors_at_zero(self) -> None:
        """Count never goes negative."""
        streak = {"count": 0, "last_completed_at": EARLIER}
        result = TrackingEngine.apply_streak_completion(streak, False, NOW)
        assert result == {"count": 0, "last_completed_at": EARLIER}

    def test_uncomplete_without_timestamp_is_zero(self) -> None:
        """A stray count with no completion timestamp is forced to zero."""
        streak = {"count": 2, "last_completed_at": None}
        result = TrackingEngine.apply_streak_completion(streak, False, NOW)
        assert result == {"count": 0, "last_completed_at": None}


# =============================================================================
# Progress
# =============================================================================


class TestProgressCompletion:
    """Test progress counter arithmetic."""

    def test_complete_increments(self) -> None:
        """completed + 1, total kept, timestamp moved."""
        progress = {"completed": 2, "total": 5, "last_updated_at": EARLIER}
        assert TrackingEngine.apply_progress_completion(progress, True, NOW) == {
            "completed": 3,
            "total": 5,
            "last_updated_at": NOW,
        }

    def test_uncomplete_floors_and_stamps(self) -> None:
        """Floor at zero; the timestamp moves on un-completion too."""
        progress = {"completed": 0, "total": 5, "last_updated_at": EARLIER}
        assert TrackingEngine.apply_progress_completion(progress, False, NOW) == {
            "completed": 0,
            "total": 5,
            "last_updated_at": NOW,
        }

    def test_symmetry(self) -> None:
        """Complete then un-complete restores both counters."""
        streak = {"count": 4, "last_completed_at": EARLIER}
        progress = {"completed": 1, "total": 7, "last_updated_at": EARLIER}

        streak_after = TrackingEngine.apply_streak_completion(
            TrackingEngine.apply_streak_completion(streak, True, NOW), False, NOW
        )
        progress_after = TrackingEngine.apply_progress_completion(
            TrackingEngine.apply_progress_completion(progress, True, NOW), False, NOW
        )

        assert streak_after["count"] == 4
        assert progress_after["completed"] == 1
        assert progress_after["total"] == 7


# =============================================================================
# Periods
# =============================================================================


class TestPeriodKeys:
    """Test period identifiers."""

    @pytest.mark.parametrize(
        ("day", "timescale", "expected"),
        [
            (date(2026, 1, 19), const.TIMESCALE_WEEKLY, "2026-W04"),
            (date(2027, 1, 1), const.TIMESCALE_WEEKLY, "2026-W53"),
            (date(2026, 1, 19), const.TIMESCALE_MONTHLY, "2026-01"),
            (date(2026, 5, 2), const.TIMESCALE_QUARTERLY, "2026-Q2"),
            (date(2026, 12, 31), const.TIMESCALE_QUARTERLY, "2026-Q4"),
            (date(2026, 1, 19), const.TIMESCALE_YEARLY, "2026"),
            (date(2026, 1, 19), const.TIMESCALE_DAILY, "2026-01-19"),
            (date(2026, 1, 19), None, "2026-01-19"),
        ],
    )
    def test_period_key(self, day: date, timescale: str | None, expected: str) -> None:
        """Keys per timescale, ISO weeks for weekly."""
        assert TrackingEngine.get_period_key(day, timescale) == expected


class TestPeriodReset:
    """Test stale detection and reset."""

    def test_previous_week_is_stale(self) -> None:
        """Friday W03 progress is stale on Monday W04."""
        progress = {"completed": 3, "total": 7, "last_updated_at": "2026-01-16T10:00:00+00:00"}
        assert TrackingEngine.is_progress_stale(progress, "weekly", date(2026, 1, 19)) is True

    def test_same_week_is_fresh(self) -> None:
        """Monday progress is still current on Wednesday."""
        progress = {"completed": 3, "total": 7, "last_updated_at": NOW}
        assert TrackingEngine.is_progress_stale(progress, "weekly", date(2026, 1, 21)) is False

    def test_month_boundary(self) -> None:
        """Jan 31 progress is stale on Feb 1 for a monthly item."""
        progress = {"completed": 1, "total": 30, "last_updated_at": "2026-01-31T10:00:00+00:00"}
        assert TrackingEngine.is_progress_stale(progress, "monthly", date(2026, 2, 1)) is True

    def test_missing_data_is_not_stale(self) -> None:
        """No record or no timestamp → nothing to reset."""
        assert TrackingEngine.is_progress_stale(None, "daily", date(2026, 1, 19)) is False
        progress = TrackingEngine.default_progress()
        assert TrackingEngine.is_progress_stale(progress, "daily", date(2026, 1, 19)) is False

    def test_reset_keeps_total(self) -> None:
        """Reset zeroes completed and keeps the target."""
        progress = {"completed": 5, "total": 7, "last_updated_at": EARLIER}
        assert TrackingEngine.reset_period_progress(progress, NOW) == {
            "completed": 0,
            "total": 7,
            "last_updated_at": NOW,
        }
