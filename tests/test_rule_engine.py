"""Unit tests for rule_engine.py - due rule validation and builders."""

from datetime import date, datetime
import logging
from typing import Any
from zoneinfo import ZoneInfo

import pytest

from household_itinerary import const
from household_itinerary.engines.rule_engine import RuleEngine, step_value

# =============================================================================
# Validation
# =============================================================================


def weekly(days: Any, time_value: Any = None, repeat: Any = "weekly") -> dict[str, Any]:
    """Build a raw weekly_schedule rule without normalization."""
    return {"kind": "weekly_schedule", "days": days, "time": time_value, "repeat": repeat}


class TestIsValidRule:
    """Test the validation contract."""

    @pytest.mark.parametrize(
        "rule",
        [
            weekly([1, 3, 5], "07:30"),
            weekly([0], None, "daily"),
            {"kind": "timescale", "timescale": "quarterly"},
            {"kind": "fixed_date", "date": "2026-02-28"},
        ],
    )
    def test_valid_rules(self, rule: dict[str, Any]) -> None:
        """Well-formed rules of each kind validate."""
        assert RuleEngine.is_valid_rule(rule) is True

    @pytest.mark.parametrize(
        "rule",
        [
            None,
            {},
            {"kind": "hourly"},
            weekly([]),
            weekly([1, 1]),
            weekly([7]),
            weekly([-1]),
            weekly([True]),
            weekly("135"),
            weekly([1], "25:00"),
            weekly([1], "7:30"),
            weekly([1], None, "fortnightly"),
            {"kind": "timescale", "timescale": "hourly"},
            {"kind": "fixed_date", "date": "2026-02-30"},
            {"kind": "fixed_date"},
            "weekly",
            ["weekly_schedule", [1]],
            weekly([[1]]),
            weekly([[1], [1]]),
            weekly([{"day": 1}]),
        ],
    )
    def test_invalid_rules(self, rule: dict[str, Any] | None) -> None:
        """Out-of-range days, bad times and unknown timescales are invalid."""
        assert RuleEngine.is_valid_rule(rule) is False

    def test_is_recurring(self) -> None:
        """Weekly and timescale rules recur; fixed dates do not."""
        assert RuleEngine.is_recurring(weekly([1])) is True
        assert RuleEngine.is_recurring({"kind": "timescale", "timescale": "daily"}) is True
        assert RuleEngine.is_recurring({"kind": "fixed_date", "date": "2026-01-01"}) is False
        assert RuleEngine.is_recurring(None) is False

    def test_rule_timescale_and_time(self) -> None:
        """Accessors read the cadence and time of the right variants only."""
        rule = weekly([1], "08:00", "monthly")
        assert RuleEngine.get_rule_timescale(rule) == "monthly"
        assert RuleEngine.get_rule_time(rule) == "08:00"
        timescale_rule = {"kind": "timescale", "timescale": "yearly"}
        assert RuleEngine.get_rule_timescale(timescale_rule) == "yearly"
        assert RuleEngine.get_rule_time(timescale_rule) is None
        assert RuleEngine.get_rule_timescale({"kind": "fixed_date", "date": "2026-01-01"}) is None

    @pytest.mark.parametrize("rule", ["weekly", ["timescale", "daily"], 7])
    def test_accessors_tolerate_non_mapping_rules(self, rule: Any) -> None:
        """Accessors report nothing for rules that are not mappings."""
        assert RuleEngine.is_recurring(rule) is False
        assert RuleEngine.get_rule_timescale(rule) is None
        assert RuleEngine.get_rule_time(rule) is None

    def test_unknown_cadence_is_not_reported(self) -> None:
        """A recurring rule with an unsupported cadence has no timescale."""
        assert RuleEngine.get_rule_timescale(weekly([1], None, ["weekly"])) is None
        assert RuleEngine.get_rule_timescale({"kind": "timescale", "timescale": "hourly"}) is None


# =============================================================================
# Builders
# =============================================================================


class TestNormalizeDays:
    """Test weekday normalization."""

    def test_names_indices_and_junk(self) -> None:
        """Names and indices are merged; out-of-range entries are dropped."""
        assert RuleEngine.normalize_days(["Mon", "wednesday", 5, "9", 8, 1]) == [1, 3, 5]

    def test_empty(self) -> None:
        """None and empty lists give no days."""
        assert RuleEngine.normalize_days(None) == []
        assert RuleEngine.normalize_days([]) == []

    def test_bare_value_is_one_day(self) -> None:
        """A single index or name is treated as a one-day list."""
        assert RuleEngine.normalize_days("Fri") == [5]
        assert RuleEngine.normalize_days(3) == [3]  # type: ignore[arg-type]
        assert RuleEngine.normalize_days({"day": 1}) == []  # type: ignore[arg-type]


class TestBuildRuleFromStep:
    """Test rule derivation for tracked habit steps."""

    def test_selected_days_build_weekly_schedule(self) -> None:
        """Earliest time across selected days wins; unselected days are ignored."""
        step = {
            "text": "Run",
            "timescale": "weekly",
            "selected_days": [5, 1, 3],
            "scheduled_times": {"1": ["09:00", "07:30"], "3": ["06:00"], "2": ["05:00"]},
        }
        assert RuleEngine.build_rule_from_step(step) == {
            "kind": "weekly_schedule",
            "days": [1, 3, 5],
            "time": "06:00",
            "repeat": "weekly",
        }

    def test_camel_case_step(self) -> None:
        """Web-application spellings are accepted."""
        step = {
            "text": "Stretch",
            "timescale": "daily",
            "selectedDays": ["Mon"],
            "scheduledTimes": {"Mon": ["08:15", "bogus"]},
        }
        assert RuleEngine.build_rule_from_step(step) == {
            "kind": "weekly_schedule",
            "days": [1],
            "time": "08:15",
            "repeat": "daily",
        }

    def test_no_days_builds_timescale_rule(self) -> None:
        """Steps without selected days keep the legacy cadence."""
        step = {"text": "Budget review", "timescale": "monthly"}
        assert RuleEngine.build_rule_from_step(step) == {
            "kind": "timescale",
            "timescale": "monthly",
        }

    def test_missing_timescale_defaults_to_daily(self) -> None:
        """A step without a timescale is daily."""
        assert RuleEngine.build_rule_from_step({"text": "Water plants"}) == {
            "kind": "timescale",
            "timescale": const.DEFAULT_TIMESCALE,
        }

    @pytest.mark.parametrize(
        "scheduled_times",
        [{"1": 930}, {"1": None}, {"1": {"at": "07:00"}}, ["07:00"], "07:00"],
    )
    def test_malformed_scheduled_times_leave_rule_untimed(self, scheduled_times: Any) -> None:
        """Scheduled times that are not lists or strings are skipped."""
        step = {
            "text": "Walk",
            "timescale": "weekly",
            "selected_days": [1],
            "scheduled_times": scheduled_times,
        }
        rule = RuleEngine.build_rule_from_step(step)
        assert rule["time"] is None
        assert RuleEngine.is_valid_rule(rule) is True

    def test_malformed_entry_does_not_hide_other_days(self) -> None:
        """A bad entry for one day leaves valid times on other days usable."""
        assert RuleEngine.earliest_scheduled_time({"1": 930, "3": ("06:45",)}, [1, 3]) == "06:45"


class TestBuildRuleFromFields:
    """Test collapsing flat optional fields into one rule."""

    def test_schedule_wins_and_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        """More than one source is logged; schedule takes precedence."""
        with caplog.at_level(logging.WARNING):
            rule = RuleEngine.build_rule_from_fields(
                schedule={"days": ["Tue"], "time": "18:00"}, timescale="daily"
            )
        assert rule == {
            "kind": "weekly_schedule",
            "days": [2],
            "time": "18:00",
            "repeat": "weekly",
        }
        assert "Multiple due sources" in caplog.text

    def test_timescale_only(self) -> None:
        """A bare timescale builds a legacy rule."""
        assert RuleEngine.build_rule_from_fields(timescale="weekly") == {
            "kind": "timescale",
            "timescale": "weekly",
        }

    def test_due_date_variants(self) -> None:
        """Dates, datetimes and loose date strings become fixed_date rules."""
        assert RuleEngine.build_rule_from_fields(due_date=date(2026, 4, 7)) == {
            "kind": "fixed_date",
            "date": "2026-04-07",
        }
        assert RuleEngine.build_rule_from_fields(
            due_date=datetime(2026, 4, 7, 9, 0, tzinfo=ZoneInfo("UTC"))
        ) == {"kind": "fixed_date", "date": "2026-04-07"}
        assert RuleEngine.build_fixed_date_rule("Apr 7 2026") == {
            "kind": "fixed_date",
            "date": "2026-04-07",
        }

    def test_nothing_supplied(self) -> None:
        """No source → no rule."""
        assert RuleEngine.build_rule_from_fields() is None

    def test_schedule_with_bad_time_is_invalid(self) -> None:
        """An unparseable time is kept so the rule reports invalid."""
        rule = RuleEngine.build_rule_from_schedule({"days": [1], "time": "noon"})
        assert rule["time"] == "noon"
        assert RuleEngine.is_valid_rule(rule) is False

    def test_non_mapping_schedule_is_invalid(self) -> None:
        """A schedule payload that is not a mapping builds a day-less rule."""
        rule = RuleEngine.build_rule_from_schedule("mon")  # type: ignore[arg-type]
        assert rule["days"] == []
        assert RuleEngine.is_valid_rule(rule) is False

    def test_unparseable_due_date_is_invalid(self) -> None:
        """A due date that is not a date or a string never validates."""
        rule = RuleEngine.build_fixed_date_rule(["soon"])  # type: ignore[arg-type]
        assert RuleEngine.is_valid_rule(rule) is False


class TestStepValue:
    """Test the snake/camel field reader."""

    def test_snake_case_preferred(self) -> None:
        """The snake_case key wins when both are present."""
        step = {"is_tracked": False, "isTracked": True}
        assert step_value(step, const.DATA_STEP_IS_TRACKED) is False

    def test_alias_and_default(self) -> None:
        """Aliases are read and missing keys fall back to the default."""
        assert step_value({"stepType": "Habit"}, const.DATA_STEP_TYPE) == "Habit"
        assert step_value({}, const.DATA_STEP_TEXT, "x") == "x"
