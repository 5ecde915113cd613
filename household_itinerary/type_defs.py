"""Type definitions for itinerary data structures.

Persisted records (items, streaks, progress) are plain dicts so the whole
store serializes as JSON. TypedDict documents their fixed keys for static
analysis only; runtime code still uses .get() with defaults where data may
come from an older snapshot or an external goal document.

IMPORTANT: This file must NOT import from managers or the coordinator.
Only import from typing (type machinery) and the standard library.
"""

from typing import Any, Literal, NamedTuple, NotRequired, TypedDict

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

ItemId = str  # "<goal_id>-<step_text>" for generated items, uuid hex otherwise
GoalId = str
ISODatetime = str  # ISO 8601 datetime string "2026-01-18T12:30:00+00:00"
ISODate = str  # ISO 8601 date string (no time) "2026-01-18"
Timescale = Literal["daily", "weekly", "monthly", "quarterly", "yearly"]
ItemKind = Literal["habit", "one-time-task", "event"]
ItemStatus = Literal["pending", "completed"]


# =============================================================================
# Identity
# =============================================================================


class ItemKey(NamedTuple):
    """Composite identity of a generated item: owning goal plus literal step text.

    Editing a step's text produces a different key, so progress and streak
    history do not follow the edit.
    """

    goal_id: GoalId
    step_text: str

    @property
    def item_id(self) -> ItemId:
        """Return the string id stored on the item."""
        return f"{self.goal_id}-{self.step_text}"


# =============================================================================
# Due Rules (tagged variant, discriminated by "kind")
# =============================================================================


class WeeklyScheduleRule(TypedDict):
    """Explicit weekday + time schedule."""

    kind: Literal["weekly_schedule"]
    days: list[int]  # 0=Sun ... 6=Sat, unique, sorted
    time: str | None  # "HH:MM" 24-hour, None when no time was picked
    repeat: str  # Timescale the schedule repeats on


class TimescaleRule(TypedDict):
    """Legacy bare-timescale cadence anchored on the item's created_at."""

    kind: Literal["timescale"]
    timescale: str


class FixedDateRule(TypedDict):
    """Single concrete due date for non-recurring items."""

    kind: Literal["fixed_date"]
    date: ISODate


DueRule = WeeklyScheduleRule | TimescaleRule | FixedDateRule


class ScheduleInput(TypedDict, total=False):
    """Schedule payload accepted by update_item_schedule()."""

    days: list[int | str]
    time: str | None
    repeat: str


# =============================================================================
# Itinerary State
# =============================================================================


class ItineraryItemData(TypedDict):
    """One trackable occurrence-series anchor."""

    id: ItemId
    kind: str  # ITEM_KIND_* constant
    reference_id: GoalId | None
    goal_id: NotRequired[GoalId | None]  # Set only on generated items
    step_text: NotRequired[str | None]  # Set only on generated items
    status: str  # ITEM_STATUS_* constant
    notes: str
    due_rule: DueRule | None
    repeat_until: NotRequired[ISODate | None]
    created_at: ISODatetime
    updated_at: ISODatetime


class StreakData(TypedDict):
    """Consecutive-completion counter for one item."""

    count: int
    last_completed_at: ISODatetime | None


class ItemProgressData(TypedDict):
    """Completed-vs-target counter for one item."""

    completed: int
    total: int
    last_updated_at: ISODatetime | None  # None only on zero-valued defaults


class ItineraryMeta(TypedDict):
    """Snapshot metadata."""

    schema_version: int
    last_regenerated_at: ISODatetime | None


class ItinerarySnapshot(TypedDict):
    """Full serialized store state."""

    meta: ItineraryMeta
    items: dict[ItemId, ItineraryItemData]
    streaks: dict[ItemId, StreakData]
    progress: dict[ItemId, ItemProgressData]


# =============================================================================
# Goal Collaborator (external, read-only)
# =============================================================================


class SourceStepData(TypedDict, total=False):
    """A goal sub-step as supplied by the goal collaborator.

    Camel-case spellings (stepType, isTracked, ...) are accepted at runtime
    through const.STEP_FIELD_ALIASES.
    """

    text: str
    step_type: str  # STEP_TYPE_HABIT | STEP_TYPE_TANGIBLE
    is_tracked: bool
    timescale: str
    frequency: int
    selected_days: list[int | str]
    scheduled_times: dict[str, list[str]]
    repeat_end_date: str
    next_occurrence: str


class GoalData(TypedDict, total=False):
    """A goal as supplied by the goal collaborator."""

    id: GoalId
    steps: list[SourceStepData]
    start_date: str


# =============================================================================
# Query Views / Options
# =============================================================================


class ActiveHabitView(TypedDict):
    """Habit item enriched with progress and streak for display."""

    item: ItineraryItemData
    progress: ItemProgressData
    streak: StreakData


class UpcomingItemView(TypedDict):
    """Item with the first day it falls due inside the requested range."""

    item: ItineraryItemData
    due_date: ISODate


class AttentionView(TypedDict):
    """Item flagged by the attention scanner and why."""

    item: ItineraryItemData
    reasons: list[str]  # ATTENTION_REASON_* constants


class ItineraryOptions(TypedDict, total=False):
    """Per-manager overrides for const.DEFAULT_* values."""

    attention_stale_days: int
    attention_progress_ratio: float
    time_sentinel: str


# Dynamic extra fields callers may pass to add_item()/update_item()
ItemUpdates = dict[str, Any]
