# File: coordinator.py
"""Coordinator for itinerary regeneration.

Owns the async lifecycle around an ItineraryManager:
- Full rebuild from the goal provider (single-flight)
- Completion events issued while a rebuild is pending are queued and
  replayed once it finishes

The goal provider await is the only suspension point. Clearing and
generating happen synchronously after it returns, so no other callback can
observe a half-built store.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from . import const

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from .managers.itinerary_manager import ItineraryManager
    from .type_defs import GoalData, ItemId

    GoalProvider = Callable[[], Awaitable[Sequence[GoalData]]]


class ItineraryCoordinator:
    """Serializes full rebuilds and the completions that race them."""

    def __init__(self, manager: ItineraryManager, goal_provider: GoalProvider) -> None:
        """Initialize the coordinator.

        Args:
            manager: Manager whose store is rebuilt
            goal_provider: Async callable returning all goals, in generation order
        """
        self.manager = manager
        self._goal_provider = goal_provider
        self._rebuild_task: asyncio.Task[int] | None = None
        self._pending_completions: list[tuple[ItemId, bool]] = []

    @property
    def is_rebuilding(self) -> bool:
        """True while a rebuild is pending."""
        return self._rebuild_task is not None and not self._rebuild_task.done()

    # -------------------------------------------------------------------------------------
    # Regeneration
    # -------------------------------------------------------------------------------------

    async def async_regenerate_all_items(self) -> int:
        """Rebuild every item from the goal provider.

        A call made while a rebuild is pending joins it instead of starting a
        second one. Cancelling a caller does not cancel the shared rebuild.

        Returns:
            Number of items after the rebuild.
        """
        task = self._rebuild_task
        if task is not None and not task.done():
            const.LOGGER.debug("ItineraryCoordinator: Joining in-flight rebuild")
        else:
            task = asyncio.get_running_loop().create_task(self._async_rebuild())
            self._rebuild_task = task
        return await asyncio.shield(task)

    async def _async_rebuild(self) -> int:
        try:
            goals = await self._goal_provider()
            count = self.manager.regenerate_from_goals(goals)
            const.LOGGER.info(
                "ItineraryCoordinator: Regenerated %s items from %s goals",
                count,
                len(goals),
            )
            return count
        finally:
            # Runs on provider failure too, so queued completions are never lost
            self._rebuild_task = None
            self._replay_pending_completions()

    async def async_clear_all_items(self, should_regenerate: bool = False) -> int:
        """Clear all items, streaks and progress, optionally rebuilding.

        Returns:
            Number of items afterwards.
        """
        if self.is_rebuilding:
            # Let the pending rebuild land first so the clear is not undone by it
            await self.async_regenerate_all_items()
        self.manager.clear_all_items()
        const.LOGGER.info("ItineraryCoordinator: Cleared all items")
        if should_regenerate:
            return await self.async_regenerate_all_items()
        return 0

    # -------------------------------------------------------------------------------------
    # Completions
    # -------------------------------------------------------------------------------------

    def complete_item(self, item_id: ItemId, completed: bool = True) -> bool:
        """Apply a completion now, or queue it while a rebuild is pending.

        Returns:
            True if applied immediately, False if queued.

        Raises:
            ItemNotFoundError: Applied immediately to an unknown id
        """
        if self.is_rebuilding:
            self._pending_completions.append((item_id, completed))
            const.LOGGER.debug(
                "ItineraryCoordinator: Queued completion of '%s' (%s) during rebuild",
                item_id,
                completed,
            )
            return False
        self.manager.complete_item(item_id, completed)
        return True

    def _replay_pending_completions(self) -> None:
        """Apply queued completions in order, dropping ones for missing items."""
        pending, self._pending_completions = self._pending_completions, []
        for item_id, completed in pending:
            if self.manager.get_item(item_id) is None:
                const.LOGGER.debug(
                    "ItineraryCoordinator: Dropping queued completion of '%s'; "
                    "item no longer exists",
                    item_id,
                )
                continue
            self.manager.complete_item(item_id, completed)
        if pending:
            const.LOGGER.debug(
                "ItineraryCoordinator: Replayed %s queued completions", len(pending)
            )
