"""Rule Engine - Validation and construction of due rules.

A due rule is the single source an item uses to decide when it is due:

- weekly_schedule: explicit weekday set (0=Sun ... 6=Sat) plus optional "HH:MM"
- timescale: legacy bare cadence anchored on the item's created_at
- fixed_date: one concrete calendar day

ARCHITECTURE: Pure logic, static methods only, no store access.
Invalid input is never rejected here: builders drop what they cannot parse and
is_valid_rule() reports whether the result is usable. Resolvers treat an
invalid rule as "never due".
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils.dt_utils import (
    dt_parse_date,
    dt_to_local_date,
    is_valid_time_string,
    parse_day_value,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..type_defs import (
        DueRule,
        FixedDateRule,
        ScheduleInput,
        SourceStepData,
        TimescaleRule,
        WeeklyScheduleRule,
    )


def step_value(step: Mapping[str, Any], key: str, default: Any = None) -> Any:
    """Read a source-step field, falling back to its camel-case spelling."""
    if key in step:
        return step[key]
    alias = const.STEP_FIELD_ALIASES.get(key)
    if alias and alias in step:
        return step[alias]
    return default


class RuleEngine:
    """Pure helpers for building and validating due rules."""

    # =========================================================================
    # Validation
    # =========================================================================

    @staticmethod
    def is_valid_timescale(value: object) -> bool:
        """Return True for one of the five supported timescales."""
        return isinstance(value, str) and value in const.TIMESCALES

    @staticmethod
    def is_valid_rule(rule: Mapping[str, Any] | None) -> bool:
        """Check a due rule against the validation contract.

        - weekly_schedule: non-empty unique days within 0-6, time None or
          "HH:MM", repeat a supported timescale
        - timescale: supported timescale
        - fixed_date: parseable ISO date
        """
        if not rule or not isinstance(rule, Mapping):
            return False

        kind = rule.get(const.DATA_RULE_KIND)

        if kind == const.RULE_KIND_WEEKLY_SCHEDULE:
            days = rule.get(const.DATA_RULE_DAYS)
            if not isinstance(days, list) or not days:
                return False
            if any(
                isinstance(day, bool)
                or not isinstance(day, int)
                or not const.DAY_INDEX_MIN <= day <= const.DAY_INDEX_MAX
                for day in days
            ):
                return False
            if len(set(days)) != len(days):
                return False
            time_value = rule.get(const.DATA_RULE_TIME)
            if time_value is not None and not is_valid_time_string(time_value):
                return False
            return RuleEngine.is_valid_timescale(rule.get(const.DATA_RULE_REPEAT))

        if kind == const.RULE_KIND_TIMESCALE:
            return RuleEngine.is_valid_timescale(rule.get(const.DATA_RULE_TIMESCALE))

        if kind == const.RULE_KIND_FIXED_DATE:
            return dt_parse_date(rule.get(const.DATA_RULE_DATE)) is not None

        return False

    @staticmethod
    def is_recurring(rule: Mapping[str, Any] | None) -> bool:
        """Return True for weekly_schedule and timescale rules."""
        if not isinstance(rule, Mapping):
            return False
        return rule.get(const.DATA_RULE_KIND) in (
            const.RULE_KIND_WEEKLY_SCHEDULE,
            const.RULE_KIND_TIMESCALE,
        )

    @staticmethod
    def get_rule_timescale(rule: Mapping[str, Any] | None) -> str | None:
        """Return the cadence a recurring rule repeats on, or None."""
        if not isinstance(rule, Mapping):
            return None
        kind = rule.get(const.DATA_RULE_KIND)
        if kind == const.RULE_KIND_WEEKLY_SCHEDULE:
            timescale = rule.get(const.DATA_RULE_REPEAT)
        elif kind == const.RULE_KIND_TIMESCALE:
            timescale = rule.get(const.DATA_RULE_TIMESCALE)
        else:
            return None
        return timescale if RuleEngine.is_valid_timescale(timescale) else None

    @staticmethod
    def get_rule_time(rule: Mapping[str, Any] | None) -> str | None:
        """Return the "HH:MM" time of a weekly_schedule rule, if any."""
        if (
            not isinstance(rule, Mapping)
            or rule.get(const.DATA_RULE_KIND) != const.RULE_KIND_WEEKLY_SCHEDULE
        ):
            return None
        time_value = rule.get(const.DATA_RULE_TIME)
        return time_value if is_valid_time_string(time_value) else None

    # =========================================================================
    # Builders
    # =========================================================================

    @staticmethod
    def normalize_days(values: Iterable[int | str] | None) -> list[int]:
        """Normalize weekday indices/names to a sorted unique list of 0-6.

        Unrecognized or out-of-range entries are dropped. A bare index or
        name is treated as a one-day list.
        """
        if not values:
            return []
        if not isinstance(values, (list, tuple, set, frozenset)):
            values = [values]  # type: ignore[list-item]
        days: set[int] = set()
        for value in values:
            day = parse_day_value(value)
            if day is None:
                const.LOGGER.debug("RuleEngine: Dropping invalid weekday %r", value)
                continue
            days.add(day)
        return sorted(days)

    @staticmethod
    def build_weekly_rule(
        days: Iterable[int | str] | None,
        time_value: str | None = None,
        repeat: str = const.TIMESCALE_WEEKLY,
    ) -> WeeklyScheduleRule:
        """Build a weekly_schedule rule.

        An unparseable time is kept as given so the rule validates as invalid
        (never due) instead of silently becoming an untimed schedule.
        """
        return {
            "kind": "weekly_schedule",
            "days": RuleEngine.normalize_days(days),
            "time": time_value or None,
            "repeat": repeat,
        }

    @staticmethod
    def build_timescale_rule(timescale: str) -> TimescaleRule:
        """Build a legacy timescale rule."""
        return {"kind": "timescale", "timescale": timescale}

    @staticmethod
    def build_fixed_date_rule(due: str | date | datetime) -> FixedDateRule:
        """Build a fixed_date rule from a date, datetime or date string."""
        if isinstance(due, str):
            parsed = dt_parse_date(due) or dt_to_local_date(due)
            return {"kind": "fixed_date", "date": parsed.isoformat() if parsed else due}
        local_day = dt_to_local_date(due)
        if local_day is None:
            const.LOGGER.debug("RuleEngine: Unparseable due date %r", due)
            return {"kind": "fixed_date", "date": str(due)}
        return {"kind": "fixed_date", "date": local_day.isoformat()}

    @staticmethod
    def earliest_scheduled_time(
        scheduled_times: Mapping[Any, Any] | None, days: Iterable[int]
    ) -> str | None:
        """Pick the earliest valid "HH:MM" across the selected days.

        scheduled_times maps a weekday (index or name) to a list of times.
        Only entries for selected days count. "HH:MM" strings compare
        chronologically as text.
        """
        if not scheduled_times or not isinstance(scheduled_times, Mapping):
            return None
        selected = set(days)
        candidates: list[str] = []
        for day_key, times in scheduled_times.items():
            if parse_day_value(day_key) not in selected:
                continue
            if isinstance(times, str):
                times = [times]
            elif not isinstance(times, (list, tuple)):
                const.LOGGER.debug(
                    "RuleEngine: Ignoring scheduled times %r for day %r", times, day_key
                )
                continue
            candidates.extend(t for t in times if is_valid_time_string(t))
        return min(candidates) if candidates else None

    @staticmethod
    def build_rule_from_step(step: SourceStepData | Mapping[str, Any]) -> DueRule:
        """Derive the due rule for a tracked habit step.

        Steps with selected days get a weekly_schedule repeating on the step's
        timescale; all others get a legacy timescale rule. A missing timescale
        falls back to const.DEFAULT_TIMESCALE.
        """
        timescale = step_value(step, const.DATA_STEP_TIMESCALE) or const.DEFAULT_TIMESCALE
        selected_days = step_value(step, const.DATA_STEP_SELECTED_DAYS)

        if selected_days:
            days = RuleEngine.normalize_days(selected_days)
            time_value = RuleEngine.earliest_scheduled_time(
                step_value(step, const.DATA_STEP_SCHEDULED_TIMES), days
            )
            return RuleEngine.build_weekly_rule(days, time_value, timescale)

        return RuleEngine.build_timescale_rule(timescale)

    @staticmethod
    def build_rule_from_schedule(schedule: ScheduleInput | Mapping[str, Any]) -> DueRule:
        """Build a weekly_schedule rule from an update_item_schedule() payload.

        A payload that is not a mapping yields a day-less rule, which never
        validates.
        """
        if not isinstance(schedule, Mapping):
            const.LOGGER.debug("RuleEngine: Ignoring non-mapping schedule %r", schedule)
            return RuleEngine.build_weekly_rule(None)
        return RuleEngine.build_weekly_rule(
            schedule.get("days"),
            schedule.get("time"),
            schedule.get("repeat") or const.TIMESCALE_WEEKLY,
        )

    @staticmethod
    def build_rule_from_fields(
        schedule: Mapping[str, Any] | None = None,
        timescale: str | None = None,
        due_date: str | date | datetime | None = None,
    ) -> DueRule | None:
        """Collapse the flat optional-field shape into one tagged rule.

        Precedence is schedule, then timescale, then due_date. Supplying more
        than one source breaks the one-source invariant and is logged.
        """
        supplied = [
            name
            for name, value in (
                ("schedule", schedule),
                ("timescale", timescale),
                ("due_date", due_date),
            )
            if value
        ]
        if len(supplied) > 1:
            const.LOGGER.warning(
                "RuleEngine: Multiple due sources supplied (%s); using %s",
                ", ".join(supplied),
                supplied[0],
            )

        if schedule:
            return RuleEngine.build_rule_from_schedule(schedule)
        if timescale:
            return RuleEngine.build_timescale_rule(timescale)
        if due_date:
            return RuleEngine.build_fixed_date_rule(due_date)
        return None
