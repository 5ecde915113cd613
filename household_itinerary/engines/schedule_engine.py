"""Schedule Engine - Next-occurrence calculation for itinerary cadences.

Hybrid approach, working on calendar days (no time of day):
- `dateutil.rrule` for fixed-length patterns (DAILY, WEEKLY, quarter starts)
- `dateutil.relativedelta` for month/year clamping (Jan 31 + 1 month = Feb 28)

Month and year steps are always computed from the anchor (anchor + n months),
never chained from the previous result, so a 31st anchor returns to the 31st
after passing through a shorter month.

IMPORTANT: This module must NOT import from managers or the coordinator.
Only import from const.py, utils and standard/third-party libraries.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import ClassVar

from dateutil.relativedelta import relativedelta
from dateutil.rrule import DAILY, MONTHLY, WEEKLY, rrule

from .. import const
from ..utils.dt_utils import dt_to_local_date


class RecurrenceEngine:
    """Cadence calculator for one anchor date and timescale.

    Handles all timescales:
    - DAILY: every day from the anchor
    - WEEKLY: the anchor's weekday
    - MONTHLY: the anchor's day-of-month, clamped to short months
    - QUARTERLY: first day of each quarter (Jan/Apr/Jul/Oct 1)
    - YEARLY: the anchor's month/day, Feb 29 clamped to Feb 28

    Occurrences never precede the anchor.
    """

    # Timescales computed with relativedelta (variable-length units)
    CLAMPING_TIMESCALES: ClassVar[dict[str, relativedelta]] = {
        const.TIMESCALE_MONTHLY: relativedelta(months=1),
        const.TIMESCALE_YEARLY: relativedelta(years=1),
    }

    def __init__(self, anchor: date | datetime | str, timescale: str) -> None:
        """Initialize the engine.

        Args:
            anchor: First day of the series (date, datetime or ISO string).
                Datetimes are reduced to their local calendar day.
            timescale: One of const.TIMESCALES.

        Note:
            An unparseable anchor or unknown timescale yields an engine whose
            queries return None / [] instead of raising.
        """
        self._anchor: date | None = dt_to_local_date(anchor)
        self._timescale = timescale
        if self._anchor is None:
            const.LOGGER.debug("RecurrenceEngine: Unparseable anchor %r", anchor)
        if timescale not in const.TIMESCALES:
            const.LOGGER.debug("RecurrenceEngine: Unknown timescale %r", timescale)

    @property
    def anchor(self) -> date | None:
        """Return the series anchor day."""
        return self._anchor

    def get_next_occurrence(
        self, reference: date | datetime | None = None, require_future: bool = False
    ) -> date | None:
        """Calculate the next occurrence at/after a reference day.

        Args:
            reference: Reference day. Defaults to the anchor.
            require_future: If True, result must be strictly after `reference`.

        Returns:
            Next occurrence day, or None if the engine is not configured.
        """
        anchor = self._anchor
        if anchor is None or self._timescale not in const.TIMESCALES:
            return None

        reference_day = dt_to_local_date(reference) if reference else anchor
        if reference_day is None:
            return None
        if require_future:
            reference_day = reference_day + timedelta(days=1)

        # Series starts at the anchor
        start = max(reference_day, anchor)

        if self._timescale in self.CLAMPING_TIMESCALES:
            return self._calculate_with_relativedelta(anchor, start)
        if self._timescale == const.TIMESCALE_QUARTERLY:
            return self._calculate_quarter_start(start)
        return self._calculate_with_rrule(anchor, start)

    def get_occurrences(
        self,
        start: date | datetime,
        end: date | datetime,
        limit: int = const.MAX_DATE_CALCULATION_ITERATIONS,
    ) -> list[date]:
        """Generate occurrence days within an inclusive range.

        Args:
            start: Range start.
            end: Range end (inclusive).
            limit: Maximum occurrences to return (safety limit).
        """
        end_day = dt_to_local_date(end)
        if end_day is None:
            return []

        occurrences: list[date] = []
        current = self.get_next_occurrence(start)
        while current and current <= end_day and len(occurrences) < limit:
            occurrences.append(current)
            current = self.get_next_occurrence(current, require_future=True)

        return occurrences

    # =========================================================================
    # Private: rrule-based calculation (DAILY, WEEKLY)
    # =========================================================================

    def _calculate_with_rrule(self, anchor: date, start: date) -> date | None:
        """Next DAILY/WEEKLY occurrence at/after `start`."""
        rrule_freq = WEEKLY if self._timescale == const.TIMESCALE_WEEKLY else DAILY
        rule = rrule(rrule_freq, dtstart=datetime.combine(anchor, time.min))
        next_occurrence = rule.after(datetime.combine(start, time.min), inc=True)
        return next_occurrence.date() if next_occurrence else None

    def _calculate_quarter_start(self, start: date) -> date | None:
        """First day of a quarter at/after `start`."""
        rule = rrule(
            MONTHLY,
            bymonth=const.QUARTER_START_MONTHS,
            bymonthday=1,
            dtstart=datetime.combine(start.replace(day=1), time.min),
        )
        next_occurrence = rule.after(datetime.combine(start, time.min), inc=True)
        return next_occurrence.date() if next_occurrence else None

    # =========================================================================
    # Private: relativedelta-based calculation (clamping timescales)
    # =========================================================================

    def _calculate_with_relativedelta(self, anchor: date, start: date) -> date | None:
        """Next MONTHLY/YEARLY occurrence at/after `start`, clamped from the anchor.

        Jumps straight to the candidate period instead of iterating, then
        steps at most once more when the clamped candidate falls before start.
        """
        if self._timescale == const.TIMESCALE_MONTHLY:
            steps = (start.year - anchor.year) * 12 + (start.month - anchor.month)
            unit = "months"
        else:
            steps = start.year - anchor.year
            unit = "years"

        steps = max(0, steps)
        candidate = anchor + relativedelta(**{unit: steps})
        if candidate < start:
            candidate = anchor + relativedelta(**{unit: steps + 1})
        return candidate


# =============================================================================
# Module-level convenience functions
# =============================================================================


def calculate_next_occurrence(
    anchor: date | datetime | str,
    timescale: str,
    reference: date | datetime | None = None,
    require_future: bool = False,
) -> date | None:
    """Calculate the next due day for a cadence.

    Convenience wrapper around RecurrenceEngine.

    Args:
        anchor: First day of the series.
        timescale: One of const.TIMESCALES.
        reference: Day to search from (default: the anchor).
        require_future: If True, result must be strictly after `reference`.

    Returns:
        Next occurrence day, or None for an unknown timescale/anchor.

    Examples:
        calculate_next_occurrence(date(2026, 1, 31), "monthly", date(2026, 2, 1))
        → date(2026, 2, 28)

        calculate_next_occurrence(date(2026, 1, 5), "quarterly", date(2026, 2, 10))
        → date(2026, 4, 1)
    """
    return RecurrenceEngine(anchor, timescale).get_next_occurrence(
        reference, require_future=require_future
    )
