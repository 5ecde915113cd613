"""Resolver Engine - Decides which items are due on a calendar day.

Three due paths, one per rule kind:
- weekly_schedule: due when the day's weekday (0=Sun) is in the rule's days
- timescale (legacy): cadence relative to the item's created_at day
    daily → always; weekly → created_at weekday; monthly → created_at
    day-of-month (no clamping); quarterly → Jan/Apr/Jul/Oct 1; yearly → Jan 1
- fixed_date: due on that day only

The legacy path is separate from schedule_engine's calculator, which clamps
and anchors yearly on the creation day. Existing items depend on the legacy
due dates.

ARCHITECTURE: Pure functions of (items, progress, day). Nothing is sampled
from the clock, so every query is deterministic and restartable.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils.dt_utils import (
    day_index,
    dt_parse_date,
    dt_same_local_day,
    dt_to_local_date,
)
from .rule_engine import RuleEngine

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from ..type_defs import (
        ItemId,
        ItemProgressData,
        ItineraryItemData,
        UpcomingItemView,
    )


class ResolverEngine:
    """Pure due-date resolution for itinerary items."""

    # =========================================================================
    # Due checks
    # =========================================================================

    @staticmethod
    def is_legacy_due(timescale: str, anchor: date | None, day: date) -> bool:
        """Check a bare-timescale cadence against a day.

        Args:
            timescale: One of const.TIMESCALES
            anchor: The item's creation day (weekly/monthly anchor)
            day: Day being resolved
        """
        if timescale == const.TIMESCALE_DAILY:
            return True
        if timescale == const.TIMESCALE_WEEKLY:
            return anchor is not None and day.weekday() == anchor.weekday()
        if timescale == const.TIMESCALE_MONTHLY:
            return anchor is not None and day.day == anchor.day
        if timescale == const.TIMESCALE_QUARTERLY:
            return day.day == 1 and day.month in const.QUARTER_START_MONTHS
        if timescale == const.TIMESCALE_YEARLY:
            return day.month == 1 and day.day == 1
        return False

    @staticmethod
    def is_past_repeat_until(item: ItineraryItemData | Mapping[str, Any], day: date) -> bool:
        """Return True when a recurring item's repeat-until day is before `day`.

        An unparseable repeat_until is ignored (no end).
        """
        raw = item.get(const.DATA_ITEM_REPEAT_UNTIL)
        if not raw:
            return False
        repeat_until = dt_parse_date(raw)
        if repeat_until is None:
            const.LOGGER.debug(
                "ResolverEngine: Ignoring unparseable repeat_until %r on '%s'",
                raw,
                item.get(const.DATA_ITEM_ID),
            )
            return False
        return day > repeat_until

    @staticmethod
    def is_due_on(item: ItineraryItemData | Mapping[str, Any], day: date) -> bool:
        """Resolve whether an item is due on a day (ignoring completion).

        Items with a missing or invalid rule are never due.
        """
        rule = item.get(const.DATA_ITEM_DUE_RULE)
        if not RuleEngine.is_valid_rule(rule):
            if rule:
                const.LOGGER.debug(
                    "ResolverEngine: Invalid due rule on '%s' treated as never due: %s",
                    item.get(const.DATA_ITEM_ID),
                    rule,
                )
            return False

        kind = rule[const.DATA_RULE_KIND]

        if kind == const.RULE_KIND_FIXED_DATE:
            return dt_parse_date(rule[const.DATA_RULE_DATE]) == day

        if ResolverEngine.is_past_repeat_until(item, day):
            return False

        if kind == const.RULE_KIND_WEEKLY_SCHEDULE:
            return day_index(day) in rule[const.DATA_RULE_DAYS]

        anchor = dt_to_local_date(item.get(const.DATA_ITEM_CREATED_AT))
        return ResolverEngine.is_legacy_due(rule[const.DATA_RULE_TIMESCALE], anchor, day)

    @staticmethod
    def is_suppressed(
        item: ItineraryItemData | Mapping[str, Any],
        progress: ItemProgressData | Mapping[str, Any] | None,
        day: date,
    ) -> bool:
        """Return True for items already completed on `day`.

        Both conditions must hold: status is completed AND the progress
        record was last touched on the same calendar day.
        """
        if item.get(const.DATA_ITEM_STATUS) != const.ITEM_STATUS_COMPLETED:
            return False
        if not progress:
            return False
        return dt_same_local_day(progress.get(const.DATA_PROGRESS_LAST_UPDATED_AT), day)

    # =========================================================================
    # Ordering
    # =========================================================================

    @staticmethod
    def get_sort_time(
        item: ItineraryItemData | Mapping[str, Any],
        sentinel: str = const.DEFAULT_TIME_SENTINEL,
    ) -> str:
        """Return the "HH:MM" an item sorts by; untimed items use the sentinel."""
        return RuleEngine.get_rule_time(item.get(const.DATA_ITEM_DUE_RULE)) or sentinel

    @staticmethod
    def sort_by_time(
        items: Iterable[ItineraryItemData],
        sentinel: str = const.DEFAULT_TIME_SENTINEL,
    ) -> list[ItineraryItemData]:
        """Stable sort by scheduled time ascending."""
        return sorted(items, key=lambda item: ResolverEngine.get_sort_time(item, sentinel))

    # =========================================================================
    # Queries
    # =========================================================================

    @staticmethod
    def get_items_for_day(
        items: Iterable[ItineraryItemData],
        day: date,
        sentinel: str = const.DEFAULT_TIME_SENTINEL,
    ) -> list[ItineraryItemData]:
        """Return every item due on `day`, completed or not, ordered by time."""
        return ResolverEngine.sort_by_time(
            (item for item in items if ResolverEngine.is_due_on(item, day)), sentinel
        )

    @staticmethod
    def get_today_items(
        items: Iterable[ItineraryItemData],
        progress: Mapping[ItemId, ItemProgressData],
        day: date,
        sentinel: str = const.DEFAULT_TIME_SENTINEL,
    ) -> list[ItineraryItemData]:
        """Return items due on `day` that were not already completed that day."""
        return [
            item
            for item in ResolverEngine.get_items_for_day(items, day, sentinel)
            if not ResolverEngine.is_suppressed(
                item, progress.get(item[const.DATA_ITEM_ID]), day
            )
        ]

    @staticmethod
    def get_first_due_day(
        item: ItineraryItemData | Mapping[str, Any], start: date, end: date
    ) -> date | None:
        """Return the first day in [start, end] the item is due, or None."""
        current = start
        iteration = 0
        while current <= end and iteration < const.MAX_DATE_CALCULATION_ITERATIONS:
            if ResolverEngine.is_due_on(item, current):
                return current
            current = current + timedelta(days=1)
            iteration += 1

        if iteration >= const.MAX_DATE_CALCULATION_ITERATIONS:
            const.LOGGER.warning(
                "ResolverEngine: Max iterations reached scanning '%s' from %s to %s",
                item.get(const.DATA_ITEM_ID),
                start,
                end,
            )
        return None

    @staticmethod
    def get_upcoming_items(
        items: Iterable[ItineraryItemData],
        start: date,
        end: date,
        sentinel: str = const.DEFAULT_TIME_SENTINEL,
    ) -> list[UpcomingItemView]:
        """Return items falling due within [start, end].

        Completed non-recurring items are left out; recurring items are
        listed by their first due day in the range. Ordered by due day, then
        scheduled time.
        """
        upcoming: list[UpcomingItemView] = []
        for item in items:
            rule = item.get(const.DATA_ITEM_DUE_RULE)
            if (
                not RuleEngine.is_recurring(rule)
                and item.get(const.DATA_ITEM_STATUS) == const.ITEM_STATUS_COMPLETED
            ):
                continue
            first_due = ResolverEngine.get_first_due_day(item, start, end)
            if first_due is not None:
                upcoming.append({"item": item, "due_date": first_due.isoformat()})

        upcoming.sort(
            key=lambda view: (
                view["due_date"],
                ResolverEngine.get_sort_time(view["item"], sentinel),
            )
        )
        return upcoming
