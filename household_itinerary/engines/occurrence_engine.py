"""Occurrence Engine - Plans the canonical item set for one goal.

Turns a goal's tracked habit steps into itinerary items while carrying
streak/progress state forward for every item whose id survives.

ARCHITECTURE: Pure planning, no store mutation. plan_generation() returns a
GenerationPlan describing what to remove and what to create; the
ItineraryManager applies it in one synchronous step.

Identity is ItemKey(goal_id, literal step text). Editing a step's text
creates a new item and starts its counters from zero.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .. import const
from ..type_defs import ItemKey
from ..utils.dt_utils import dt_to_local_date
from .frequency_engine import FrequencyEngine
from .rule_engine import RuleEngine, step_value

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from ..type_defs import (
        ISODatetime,
        ItemId,
        ItemProgressData,
        ItineraryItemData,
        SourceStepData,
        StreakData,
    )


# =============================================================================
# PLAN DATA STRUCTURES
# =============================================================================


@dataclass
class PlannedItem:
    """One item to create, with the state it starts with.

    Attributes:
        item: The item record
        progress: Progress record (carried or fresh)
        streak: Streak record (carried or fresh)
        carried: True if progress/streak came from a replaced item
    """

    item: ItineraryItemData
    progress: ItemProgressData
    streak: StreakData
    carried: bool = False


@dataclass
class GenerationPlan:
    """Result of planning one goal's regeneration.

    Attributes:
        goal_id: Goal the plan belongs to
        remove_ids: Prior item ids owned by the goal (removed before creation)
        create: Items to create, in step order
        skipped_ids: Ids not created because an item with that id already exists
    """

    goal_id: str
    remove_ids: list[ItemId] = field(default_factory=list)
    create: list[PlannedItem] = field(default_factory=list)
    skipped_ids: list[ItemId] = field(default_factory=list)


class OccurrenceEngine:
    """Pure generation planning for goal steps."""

    @staticmethod
    def is_tracked_habit(step: SourceStepData | Mapping[str, Any]) -> bool:
        """Return True for steps the engine materializes."""
        return bool(step_value(step, const.DATA_STEP_IS_TRACKED, False)) and (
            step_value(step, const.DATA_STEP_TYPE) == const.STEP_TYPE_HABIT
        )

    @staticmethod
    def get_item_key(goal_id: str, step: SourceStepData | Mapping[str, Any]) -> ItemKey:
        """Build the composite identity of a step's item."""
        return ItemKey(goal_id, step_value(step, const.DATA_STEP_TEXT) or "")

    @staticmethod
    def get_goal_item_ids(
        goal_id: str, items: Mapping[ItemId, ItineraryItemData]
    ) -> list[ItemId]:
        """Return ids of items owned by a goal, in store order."""
        return [
            item_id
            for item_id, item in items.items()
            if item.get(const.DATA_ITEM_REFERENCE_ID) == goal_id
        ]

    @staticmethod
    def build_item(
        key: ItemKey,
        step: SourceStepData | Mapping[str, Any],
        now_iso: ISODatetime,
        prior: ItineraryItemData | None = None,
    ) -> ItineraryItemData:
        """Build the item record for a tracked habit step.

        created_at and status are carried from `prior` so the legacy cadence
        anchor and same-day completion survive regeneration. updated_at only
        moves when the rebuilt item differs from `prior`.
        """
        repeat_end = dt_to_local_date(step_value(step, const.DATA_STEP_REPEAT_END_DATE))

        item: ItineraryItemData = {
            "id": key.item_id,
            "kind": const.ITEM_KIND_HABIT,
            "reference_id": key.goal_id,
            "goal_id": key.goal_id,
            "step_text": key.step_text,
            "status": prior.get(const.DATA_ITEM_STATUS, const.ITEM_STATUS_PENDING)
            if prior
            else const.ITEM_STATUS_PENDING,
            "notes": key.step_text,
            "due_rule": RuleEngine.build_rule_from_step(step),
            "repeat_until": repeat_end.isoformat() if repeat_end else None,
            "created_at": prior.get(const.DATA_ITEM_CREATED_AT, now_iso)
            if prior
            else now_iso,
            "updated_at": now_iso,
        }

        if prior:
            unchanged = all(
                item.get(field_name) == prior.get(field_name)
                for field_name in item
                if field_name != const.DATA_ITEM_UPDATED_AT
            )
            if unchanged:
                item["updated_at"] = prior.get(const.DATA_ITEM_UPDATED_AT, now_iso)

        return item

    @staticmethod
    def plan_generation(
        goal_id: str,
        steps: Iterable[SourceStepData | Mapping[str, Any]],
        items: Mapping[ItemId, ItineraryItemData],
        streaks: Mapping[ItemId, StreakData],
        progress: Mapping[ItemId, ItemProgressData],
        now_iso: ISODatetime,
    ) -> GenerationPlan:
        """Plan the canonical item set for a goal.

        1. Infer each tracked step's target (text pattern, else timescale default)
        2. Derive ids from ItemKey(goal_id, step text)
        3. Snapshot streak/progress/items for the goal's current ids
        4. Mark all of the goal's current items for removal
        5. Create one item per tracked step, skipping ids that still exist
           elsewhere (other goals) or were already planned (duplicate text)

        Args:
            goal_id: Owning goal
            steps: The goal's steps (untracked and non-habit steps are ignored)
            items: Current items in the store
            streaks: Current streak records
            progress: Current progress records
            now_iso: Timestamp for fresh records

        Returns:
            GenerationPlan for the manager to apply.
        """
        plan = GenerationPlan(goal_id=goal_id)
        plan.remove_ids = OccurrenceEngine.get_goal_item_ids(goal_id, items)

        prior_items = {item_id: items[item_id] for item_id in plan.remove_ids}
        prior_streaks = {
            item_id: streaks[item_id] for item_id in plan.remove_ids if item_id in streaks
        }
        prior_progress = {
            item_id: progress[item_id]
            for item_id in plan.remove_ids
            if item_id in progress
        }

        removed = set(plan.remove_ids)
        planned: set[ItemId] = set()

        for step in steps:
            if not OccurrenceEngine.is_tracked_habit(step):
                continue

            key = OccurrenceEngine.get_item_key(goal_id, step)
            if not key.step_text:
                const.LOGGER.warning(
                    "OccurrenceEngine: Skipping tracked step without text in goal %s",
                    goal_id,
                )
                continue

            item_id = key.item_id
            existing = items.get(item_id)
            if item_id in planned or (existing is not None and item_id not in removed):
                plan.skipped_ids.append(item_id)
                existing_key = (
                    ItemKey(
                        existing.get(const.DATA_ITEM_GOAL_ID) or "",
                        existing.get(const.DATA_ITEM_STEP_TEXT) or "",
                    )
                    if existing is not None and item_id not in removed
                    else key
                )
                if existing_key != key:
                    const.LOGGER.warning(
                        "OccurrenceEngine: Item id '%s' collides with %s; not creating",
                        item_id,
                        existing_key,
                    )
                else:
                    const.LOGGER.debug(
                        "OccurrenceEngine: Item '%s' already exists; skipping duplicate",
                        item_id,
                    )
                continue

            target, source = FrequencyEngine.infer_target(step)
            item = OccurrenceEngine.build_item(key, step, now_iso, prior_items.get(item_id))

            carried_progress = prior_progress.get(item_id)
            carried_streak = prior_streaks.get(item_id)

            if carried_progress is not None:
                new_progress: ItemProgressData = {
                    "completed": carried_progress.get(const.DATA_PROGRESS_COMPLETED, 0),
                    "total": target,
                    "last_updated_at": carried_progress.get(
                        const.DATA_PROGRESS_LAST_UPDATED_AT, now_iso
                    ),
                }
            else:
                new_progress = {"completed": 0, "total": target, "last_updated_at": now_iso}

            if carried_streak is not None:
                new_streak: StreakData = {
                    "count": carried_streak.get(const.DATA_STREAK_COUNT, 0),
                    "last_completed_at": carried_streak.get(
                        const.DATA_STREAK_LAST_COMPLETED_AT
                    ),
                }
            else:
                new_streak = {"count": 0, "last_completed_at": None}

            const.LOGGER.debug(
                "OccurrenceEngine: Planned item '%s' (target=%s from %s, carried=%s)",
                item_id,
                target,
                source,
                carried_progress is not None or carried_streak is not None,
            )
            plan.create.append(
                PlannedItem(
                    item=item,
                    progress=new_progress,
                    streak=new_streak,
                    carried=carried_progress is not None or carried_streak is not None,
                )
            )
            planned.add(item_id)

        return plan
