"""Itinerary Manager - Stateful item operations over an ItineraryStore.

This manager is the single writer of itinerary state:
- Item CRUD (add, update, remove, reschedule)
- Generation of habit items from goal steps
- Completion events (status, streak and progress together)
- Read-only queries for today, a given day, upcoming and attention views

ARCHITECTURE:
- ItineraryManager = "The Job" (STATEFUL, owns the store)
- OccurrenceEngine / ResolverEngine / TrackingEngine / AttentionEngine =
  pure logic (STATELESS)
- ItineraryCoordinator = async regeneration lifecycle around this manager

Every method here is synchronous. "now" comes from the injected clock and
query days are explicit arguments (defaulting to the clock's local day).
Read methods never raise; writes on an unknown id raise ItemNotFoundError.
"""

from __future__ import annotations

import copy
import uuid
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Any

from .. import const
from ..engines.attention_engine import AttentionEngine
from ..engines.occurrence_engine import GenerationPlan, OccurrenceEngine
from ..engines.resolver_engine import ResolverEngine
from ..engines.rule_engine import RuleEngine
from ..engines.tracking_engine import TrackingEngine
from ..exceptions import ImmutableFieldError, ItemNotFoundError
from ..utils.dt_utils import as_local, dt_iso, dt_now_local, dt_to_local_date

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from ..store import ItineraryStore
    from ..type_defs import (
        ActiveHabitView,
        AttentionView,
        DueRule,
        GoalData,
        ItemId,
        ItemProgressData,
        ItemUpdates,
        ItineraryItemData,
        ItineraryOptions,
        ScheduleInput,
        SourceStepData,
        StreakData,
        UpcomingItemView,
    )


__all__ = ["ItineraryManager"]

# Window used by get_upcoming_items() when no end day is given
DEFAULT_UPCOMING_DAYS = 7


class ItineraryManager:
    """Manager for itinerary item state.

    Responsibilities:
    - Apply generation plans built by OccurrenceEngine
    - Keep items, streaks and progress in step (created and deleted together)
    - Answer resolver and attention queries against the current store

    NOT responsible for:
    - Fetching goals or serializing concurrent rebuilds (ItineraryCoordinator)
    - Where snapshots are persisted (caller)
    """

    # =========================================================================
    # §0 LIFECYCLE & INITIALIZATION
    # =========================================================================

    def __init__(
        self,
        store: ItineraryStore,
        now_fn: Callable[[], datetime] = dt_now_local,
        options: ItineraryOptions | None = None,
    ) -> None:
        """Initialize ItineraryManager with dependencies.

        Args:
            store: State container this manager mutates
            now_fn: Clock returning an aware datetime
            options: Overrides for attention thresholds and the time sentinel
        """
        self._store = store
        self._now_fn = now_fn
        self._options: ItineraryOptions = dict(options or {})  # type: ignore[assignment]

    @property
    def store(self) -> ItineraryStore:
        """The underlying state container."""
        return self._store

    @property
    def stale_days(self) -> int:
        """Calendar days after which a streak or progress record is stale."""
        return int(
            self._options.get(
                const.CONF_ATTENTION_STALE_DAYS, const.DEFAULT_ATTENTION_STALE_DAYS
            )
        )

    @property
    def progress_ratio(self) -> float:
        """Completion ratio below which an item is behind pace."""
        return float(
            self._options.get(
                const.CONF_ATTENTION_PROGRESS_RATIO,
                const.DEFAULT_ATTENTION_PROGRESS_RATIO,
            )
        )

    @property
    def time_sentinel(self) -> str:
        """Sort time used for items without a scheduled time."""
        return self._options.get(const.CONF_TIME_SENTINEL, const.DEFAULT_TIME_SENTINEL)

    def _now_iso(self) -> str:
        return dt_iso(self._now_fn())

    def _resolve_day(self, day: date | datetime | None) -> date:
        """Return the local calendar day for a query argument (clock if None)."""
        if day is None:
            day = self._now_fn()
        if isinstance(day, datetime):
            return as_local(day).date()
        return day

    def _require_item(self, item_id: ItemId, operation: str) -> ItineraryItemData:
        item = self._store.items.get(item_id)
        if item is None:
            raise ItemNotFoundError(item_id, operation)
        return item

    # =========================================================================
    # §1 ITEM CRUD
    # =========================================================================

    def add_item(
        self,
        kind: str,
        notes: str = "",
        *,
        reference_id: str | None = None,
        due_rule: DueRule | None = None,
        schedule: Mapping[str, Any] | None = None,
        timescale: str | None = None,
        due_date: str | date | datetime | None = None,
        repeat_until: str | date | None = None,
        target: int | None = None,
    ) -> ItineraryItemData:
        """Create a manual item and seed its streak and progress.

        The due rule is either given directly or collapsed from the flat
        schedule / timescale / due_date fields (first one supplied wins).

        Args:
            kind: One of const.ITEM_KINDS
            notes: Display text
            reference_id: Owning goal id, if any
            due_rule: Tagged rule; takes precedence over the flat fields
            schedule: {"days", "time", "repeat"} weekly schedule payload
            timescale: Legacy bare cadence
            due_date: Fixed due day
            repeat_until: Last day a recurring item may be due
            target: Progress total; defaults to the rule's timescale default
                (1 for non-recurring items)

        Returns:
            A copy of the created item.
        """
        if kind not in const.ITEM_KINDS:
            const.LOGGER.warning(
                "ItineraryManager: Unknown item kind %r for new item", kind
            )

        rule = due_rule or RuleEngine.build_rule_from_fields(
            schedule=schedule, timescale=timescale, due_date=due_date
        )
        until = dt_to_local_date(repeat_until)
        now_iso = self._now_iso()
        item_id = uuid.uuid4().hex

        item: ItineraryItemData = {
            "id": item_id,
            "kind": kind,
            "reference_id": reference_id,
            "status": const.ITEM_STATUS_PENDING,
            "notes": notes,
            "due_rule": rule,
            "repeat_until": until.isoformat() if until else None,
            "created_at": now_iso,
            "updated_at": now_iso,
        }

        if target is None:
            target = const.DEFAULT_TARGET_BY_TIMESCALE.get(
                RuleEngine.get_rule_timescale(rule) or "", 1
            )

        self._store.items[item_id] = item
        self._store.streaks[item_id] = TrackingEngine.default_streak()
        self._store.progress[item_id] = {
            "completed": 0,
            "total": max(1, int(target)),
            "last_updated_at": now_iso,
        }

        const.LOGGER.debug(
            "ItineraryManager: Added %s item '%s' with rule %s", kind, item_id, rule
        )
        return copy.deepcopy(item)

    def update_item(self, item_id: ItemId, updates: ItemUpdates) -> ItineraryItemData:
        """Merge field updates into an item.

        Raises:
            ItemNotFoundError: No item with that id
            ImmutableFieldError: updates touch id, goal_id, step_text or created_at
        """
        item = self._require_item(item_id, "update_item")

        rejected = sorted(const.ITEM_IMMUTABLE_FIELDS.intersection(updates))
        if rejected:
            raise ImmutableFieldError(item_id, rejected)

        item.update(updates)  # type: ignore[typeddict-item]
        item["updated_at"] = self._now_iso()

        const.LOGGER.debug(
            "ItineraryManager: Updated item '%s' fields %s", item_id, sorted(updates)
        )
        return copy.deepcopy(item)

    def update_item_schedule(
        self, item_id: ItemId, schedule: ScheduleInput | Mapping[str, Any]
    ) -> ItineraryItemData:
        """Replace an item's due rule with a weekly schedule.

        Raises:
            ItemNotFoundError: No item with that id
        """
        item = self._require_item(item_id, "update_item_schedule")
        rule = RuleEngine.build_rule_from_schedule(schedule)
        if not RuleEngine.is_valid_rule(rule):
            const.LOGGER.warning(
                "ItineraryManager: Schedule for '%s' is invalid and will never be due: %s",
                item_id,
                rule,
            )
        item["due_rule"] = rule
        item["updated_at"] = self._now_iso()
        return copy.deepcopy(item)

    def remove_item(self, item_id: ItemId) -> None:
        """Remove an item with its streak and progress.

        Raises:
            ItemNotFoundError: No item with that id
        """
        self._require_item(item_id, "remove_item")
        self._store.remove_item_state(item_id)
        const.LOGGER.debug("ItineraryManager: Removed item '%s'", item_id)

    def remove_goal_items(self, goal_id: str) -> list[ItemId]:
        """Remove every item owned by a goal (cascade on goal deletion).

        Returns:
            Ids of the removed items.
        """
        removed = OccurrenceEngine.get_goal_item_ids(goal_id, self._store.items)
        for item_id in removed:
            self._store.remove_item_state(item_id)
        if removed:
            const.LOGGER.debug(
                "ItineraryManager: Removed %s items for goal %s", len(removed), goal_id
            )
        return removed

    def clear_all_items(self) -> None:
        """Drop every item, streak and progress record."""
        self._store.clear()

    # =========================================================================
    # §2 COMPLETION EVENTS
    # =========================================================================

    def complete_item(self, item_id: ItemId, completed: bool = True) -> ItineraryItemData:
        """Mark an item completed or pending and update streak and progress.

        Raises:
            ItemNotFoundError: No item with that id
        """
        item = self._require_item(item_id, "complete_item")
        now_iso = self._now_iso()

        item["status"] = (
            const.ITEM_STATUS_COMPLETED if completed else const.ITEM_STATUS_PENDING
        )
        item["updated_at"] = now_iso
        self._store.streaks[item_id] = TrackingEngine.apply_streak_completion(
            self._store.streaks.get(item_id), completed, now_iso
        )
        self._store.progress[item_id] = TrackingEngine.apply_progress_completion(
            self._store.progress.get(item_id), completed, now_iso
        )

        const.LOGGER.debug(
            "ItineraryManager: Item '%s' %s (streak=%s, progress=%s/%s)",
            item_id,
            "completed" if completed else "uncompleted",
            self._store.streaks[item_id]["count"],
            self._store.progress[item_id]["completed"],
            self._store.progress[item_id]["total"],
        )
        return copy.deepcopy(item)

    def reset_period_progress(
        self, reference: date | datetime | None = None
    ) -> list[ItemId]:
        """Zero progress counters last updated in an earlier period.

        The period is the item's rule timescale (daily for non-recurring
        items). Nothing calls this implicitly.

        Returns:
            Ids whose progress was reset.
        """
        day = self._resolve_day(reference)
        now_iso = self._now_iso()
        reset_ids: list[ItemId] = []

        for item_id, item in self._store.items.items():
            progress = self._store.progress.get(item_id)
            timescale = (
                RuleEngine.get_rule_timescale(item.get(const.DATA_ITEM_DUE_RULE))
                or const.TIMESCALE_DAILY
            )
            if progress is None or not TrackingEngine.is_progress_stale(
                progress, timescale, day
            ):
                continue
            self._store.progress[item_id] = TrackingEngine.reset_period_progress(
                progress, now_iso
            )
            reset_ids.append(item_id)

        if reset_ids:
            const.LOGGER.info(
                "ItineraryManager: Reset period progress for %s items", len(reset_ids)
            )
        return reset_ids

    # =========================================================================
    # §3 GENERATION
    # =========================================================================

    def generate_from_goal(self, goal: GoalData | Mapping[str, Any]) -> list[ItemId]:
        """Rebuild the items for one goal from its tracked habit steps.

        Returns:
            Ids of the items created.
        """
        goal_id = goal.get(const.DATA_GOAL_ID)
        if not goal_id:
            const.LOGGER.warning("ItineraryManager: Skipping goal without an id")
            return []
        return self.update_from_criteria(goal_id, goal.get(const.DATA_GOAL_STEPS) or [])

    def update_from_criteria(
        self, goal_id: str, steps: Iterable[SourceStepData | Mapping[str, Any]]
    ) -> list[ItemId]:
        """Rebuild a goal's items from a bare goal id and its steps.

        Returns:
            Ids of the items created.
        """
        plan = OccurrenceEngine.plan_generation(
            goal_id,
            steps,
            self._store.items,
            self._store.streaks,
            self._store.progress,
            self._now_iso(),
        )
        self._apply_plan(plan)
        return [planned.item["id"] for planned in plan.create]

    def regenerate_from_goals(
        self, goals: Iterable[GoalData | Mapping[str, Any]]
    ) -> int:
        """Clear everything and generate once per goal, in goal order.

        Returns:
            Number of items in the store afterwards.
        """
        self.clear_all_items()
        for goal in goals:
            self.generate_from_goal(goal)
        self._store.meta[const.DATA_META_LAST_REGENERATED_AT] = self._now_iso()
        return len(self._store.items)

    def _apply_plan(self, plan: GenerationPlan) -> None:
        """Apply a generation plan as one synchronous transition."""
        for item_id in plan.remove_ids:
            self._store.remove_item_state(item_id)

        for planned in plan.create:
            item_id = planned.item["id"]
            self._store.items[item_id] = planned.item
            self._store.streaks[item_id] = planned.streak
            self._store.progress[item_id] = planned.progress

        const.LOGGER.debug(
            "ItineraryManager: Goal %s regenerated (removed=%s, created=%s, skipped=%s)",
            plan.goal_id,
            len(plan.remove_ids),
            len(plan.create),
            len(plan.skipped_ids),
        )

    # =========================================================================
    # §4 QUERIES (never raise)
    # =========================================================================

    def get_item(self, item_id: ItemId) -> ItineraryItemData | None:
        """Return a copy of an item, or None."""
        item = self._store.items.get(item_id)
        return copy.deepcopy(item) if item is not None else None

    def get_items(self) -> list[ItineraryItemData]:
        """Return copies of all items in store order."""
        return copy.deepcopy(list(self._store.items.values()))

    def get_today_items(self, day: date | datetime | None = None) -> list[ItineraryItemData]:
        """Items due on `day` not already completed that day, ordered by time."""
        return copy.deepcopy(
            ResolverEngine.get_today_items(
                self._store.items.values(),
                self._store.progress,
                self._resolve_day(day),
                self.time_sentinel,
            )
        )

    def get_items_for_day(
        self, day: date | datetime | None = None
    ) -> list[ItineraryItemData]:
        """Every item due on `day`, completed or not, ordered by time."""
        return copy.deepcopy(
            ResolverEngine.get_items_for_day(
                self._store.items.values(), self._resolve_day(day), self.time_sentinel
            )
        )

    def get_upcoming_items(
        self,
        start: date | datetime | None = None,
        end: date | datetime | None = None,
    ) -> list[UpcomingItemView]:
        """Items falling due within [start, end] with their first due day.

        Defaults to a week starting today.
        """
        start_day = self._resolve_day(start)
        end_day = (
            self._resolve_day(end)
            if end is not None
            else start_day + timedelta(days=DEFAULT_UPCOMING_DAYS - 1)
        )
        if end_day < start_day:
            return []
        return copy.deepcopy(
            ResolverEngine.get_upcoming_items(
                self._store.items.values(), start_day, end_day, self.time_sentinel
            )
        )

    def get_active_habits(self) -> list[ActiveHabitView]:
        """Pending habit items with their progress and streak, in store order."""
        return [
            {
                "item": copy.deepcopy(item),
                "progress": self.get_progress(item_id),
                "streak": self.get_streak(item_id),
            }
            for item_id, item in self._store.items.items()
            if item.get(const.DATA_ITEM_KIND) == const.ITEM_KIND_HABIT
            and item.get(const.DATA_ITEM_STATUS) == const.ITEM_STATUS_PENDING
        ]

    def get_attention_report(
        self, today: date | datetime | None = None
    ) -> list[AttentionView]:
        """Items needing attention with the reasons they were flagged."""
        return copy.deepcopy(
            AttentionEngine.scan(
                self._store.items.values(),
                self._store.streaks,
                self._store.progress,
                self._resolve_day(today),
                self.stale_days,
                self.progress_ratio,
            )
        )

    def get_needs_attention(
        self, today: date | datetime | None = None
    ) -> list[ItineraryItemData]:
        """Items with a broken streak or behind pace, in store order."""
        return [view["item"] for view in self.get_attention_report(today)]

    def get_streak(self, item_id: ItemId) -> StreakData:
        """Return a copy of an item's streak, or a zero-valued default."""
        streak = self._store.streaks.get(item_id)
        if streak is None:
            return TrackingEngine.default_streak()
        return {
            "count": streak.get(const.DATA_STREAK_COUNT, 0),
            "last_completed_at": streak.get(const.DATA_STREAK_LAST_COMPLETED_AT),
        }

    def get_progress(self, item_id: ItemId) -> ItemProgressData:
        """Return a copy of an item's progress, or a zero-valued default."""
        progress = self._store.progress.get(item_id)
        if progress is None:
            return TrackingEngine.default_progress()
        return {
            "completed": progress.get(const.DATA_PROGRESS_COMPLETED, 0),
            "total": progress.get(const.DATA_PROGRESS_TOTAL, 1),
            "last_updated_at": progress.get(const.DATA_PROGRESS_LAST_UPDATED_AT),
        }
