# File: const.py
"""Constants for the household itinerary engine.

This file centralizes data keys, defaults, timescales, item kinds and the
package logger so engines, managers and tests share one vocabulary.
"""

import logging

# ------------------------------------------------------------------------------------------------
# General / Package Information
# ------------------------------------------------------------------------------------------------
# Logger
LOGGER = logging.getLogger(__package__)

# Storage and Versioning
SCHEMA_VERSION = 1

# ------------------------------------------------------------------------------------------------
# Storage Buckets
# ------------------------------------------------------------------------------------------------
DATA_META = "meta"
DATA_META_SCHEMA_VERSION = "schema_version"
DATA_META_LAST_REGENERATED_AT = "last_regenerated_at"
DATA_ITEMS = "items"
DATA_STREAKS = "streaks"
DATA_PROGRESS = "progress"

# ------------------------------------------------------------------------------------------------
# Itinerary Item Fields
# ------------------------------------------------------------------------------------------------
DATA_ITEM_ID = "id"
DATA_ITEM_KIND = "kind"
DATA_ITEM_REFERENCE_ID = "reference_id"
DATA_ITEM_GOAL_ID = "goal_id"
DATA_ITEM_STEP_TEXT = "step_text"
DATA_ITEM_STATUS = "status"
DATA_ITEM_NOTES = "notes"
DATA_ITEM_DUE_RULE = "due_rule"
DATA_ITEM_REPEAT_UNTIL = "repeat_until"
DATA_ITEM_CREATED_AT = "created_at"
DATA_ITEM_UPDATED_AT = "updated_at"

# Fields a caller may not change through update_item()
ITEM_IMMUTABLE_FIELDS = frozenset(
    {DATA_ITEM_ID, DATA_ITEM_GOAL_ID, DATA_ITEM_STEP_TEXT, DATA_ITEM_CREATED_AT}
)

# Due rule fields
DATA_RULE_KIND = "kind"
DATA_RULE_DAYS = "days"
DATA_RULE_TIME = "time"
DATA_RULE_REPEAT = "repeat"
DATA_RULE_TIMESCALE = "timescale"
DATA_RULE_DATE = "date"

# Streak fields
DATA_STREAK_COUNT = "count"
DATA_STREAK_LAST_COMPLETED_AT = "last_completed_at"

# Progress fields
DATA_PROGRESS_COMPLETED = "completed"
DATA_PROGRESS_TOTAL = "total"
DATA_PROGRESS_LAST_UPDATED_AT = "last_updated_at"

# ------------------------------------------------------------------------------------------------
# Goal / Step Fields (external, read-only)
# ------------------------------------------------------------------------------------------------
DATA_GOAL_ID = "id"
DATA_GOAL_STEPS = "steps"
DATA_GOAL_START_DATE = "start_date"

DATA_STEP_TEXT = "text"
DATA_STEP_TYPE = "step_type"
DATA_STEP_IS_TRACKED = "is_tracked"
DATA_STEP_TIMESCALE = "timescale"
DATA_STEP_FREQUENCY = "frequency"
DATA_STEP_SELECTED_DAYS = "selected_days"
DATA_STEP_SCHEDULED_TIMES = "scheduled_times"
DATA_STEP_REPEAT_END_DATE = "repeat_end_date"
DATA_STEP_NEXT_OCCURRENCE = "next_occurrence"

# Camel-case spellings used by the goal documents of the web application
STEP_FIELD_ALIASES = {
    DATA_STEP_TYPE: "stepType",
    DATA_STEP_IS_TRACKED: "isTracked",
    DATA_STEP_SELECTED_DAYS: "selectedDays",
    DATA_STEP_SCHEDULED_TIMES: "scheduledTimes",
    DATA_STEP_REPEAT_END_DATE: "repeatEndDate",
    DATA_STEP_NEXT_OCCURRENCE: "nextOccurrence",
}

STEP_TYPE_HABIT = "Habit"
STEP_TYPE_TANGIBLE = "Tangible"

# ------------------------------------------------------------------------------------------------
# Item Kinds / Statuses
# ------------------------------------------------------------------------------------------------
ITEM_KIND_HABIT = "habit"
ITEM_KIND_ONE_TIME_TASK = "one-time-task"
ITEM_KIND_EVENT = "event"
ITEM_KINDS = (ITEM_KIND_HABIT, ITEM_KIND_ONE_TIME_TASK, ITEM_KIND_EVENT)

ITEM_STATUS_PENDING = "pending"
ITEM_STATUS_COMPLETED = "completed"

# ------------------------------------------------------------------------------------------------
# Due Rules
# ------------------------------------------------------------------------------------------------
RULE_KIND_WEEKLY_SCHEDULE = "weekly_schedule"
RULE_KIND_TIMESCALE = "timescale"
RULE_KIND_FIXED_DATE = "fixed_date"

# ------------------------------------------------------------------------------------------------
# Timescales
# ------------------------------------------------------------------------------------------------
TIMESCALE_DAILY = "daily"
TIMESCALE_WEEKLY = "weekly"
TIMESCALE_MONTHLY = "monthly"
TIMESCALE_QUARTERLY = "quarterly"
TIMESCALE_YEARLY = "yearly"

TIMESCALES = (
    TIMESCALE_DAILY,
    TIMESCALE_WEEKLY,
    TIMESCALE_MONTHLY,
    TIMESCALE_QUARTERLY,
    TIMESCALE_YEARLY,
)

DEFAULT_TIMESCALE = TIMESCALE_DAILY

# Occurrences expected before the next progress review, per timescale.
# These are compatibility values, not calendar-day counts.
DEFAULT_TARGET_BY_TIMESCALE = {
    TIMESCALE_DAILY: 1,
    TIMESCALE_WEEKLY: 7,
    TIMESCALE_MONTHLY: 30,
    TIMESCALE_QUARTERLY: 90,
    TIMESCALE_YEARLY: 365,
}

# Unit words accepted in "<N> times per <unit>" step text
FREQUENCY_UNIT_TO_TIMESCALE = {
    "day": TIMESCALE_DAILY,
    "week": TIMESCALE_WEEKLY,
    "month": TIMESCALE_MONTHLY,
    "quarter": TIMESCALE_QUARTERLY,
    "year": TIMESCALE_YEARLY,
}

MONTHS_PER_QUARTER = 3
QUARTER_START_MONTHS = (1, 4, 7, 10)

# ------------------------------------------------------------------------------------------------
# Weekdays (0 = Sunday, matching the web application's day pickers)
# ------------------------------------------------------------------------------------------------
DAY_INDEX_MIN = 0
DAY_INDEX_MAX = 6

# ------------------------------------------------------------------------------------------------
# Resolver / Attention Defaults
# ------------------------------------------------------------------------------------------------
DEFAULT_TIME_SENTINEL = "23:59"
DEFAULT_ATTENTION_STALE_DAYS = 1
DEFAULT_ATTENTION_PROGRESS_RATIO = 0.5

# Safety limit for range iteration (upcoming items, occurrence lists)
MAX_DATE_CALCULATION_ITERATIONS = 1000

# ------------------------------------------------------------------------------------------------
# Options (ItineraryOptions keys)
# ------------------------------------------------------------------------------------------------
CONF_ATTENTION_STALE_DAYS = "attention_stale_days"
CONF_ATTENTION_PROGRESS_RATIO = "attention_progress_ratio"
CONF_TIME_SENTINEL = "time_sentinel"

# ------------------------------------------------------------------------------------------------
# Attention Reasons
# ------------------------------------------------------------------------------------------------
ATTENTION_REASON_BROKEN_STREAK = "broken_streak"
ATTENTION_REASON_BEHIND_PACE = "behind_pace"
