"""Tests for ItineraryCoordinator - single-flight rebuilds and completion queueing."""

import asyncio
import logging
from typing import Any

import pytest

from household_itinerary import const
from household_itinerary.coordinator import ItineraryCoordinator
from household_itinerary.exceptions import ItemNotFoundError
from household_itinerary.managers.itinerary_manager import ItineraryManager
from tests.conftest import MONDAY_NOON, habit_step


class GoalProvider:
    """Async goal source that counts calls and can be held open."""

    def __init__(self, goals: list[dict[str, Any]]) -> None:
        self.goals = goals
        self.calls = 0
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.release.set()
        self.error: Exception | None = None

    def hold(self) -> None:
        """Block the next fetch until release is set."""
        self.started.clear()
        self.release.clear()

    async def __call__(self) -> list[dict[str, Any]]:
        self.calls += 1
        self.started.set()
        await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.goals


@pytest.fixture
def provider() -> GoalProvider:
    """Provider with two goals."""
    return GoalProvider(
        [
            {"id": "g1", "steps": [habit_step("Walk the dog"), habit_step("Read")]},
            {"id": "g2", "steps": [habit_step("Run 3 times per week", "weekly")]},
        ]
    )


@pytest.fixture
def coordinator(manager: ItineraryManager, provider: GoalProvider) -> ItineraryCoordinator:
    """Coordinator over the fixture manager."""
    return ItineraryCoordinator(manager, provider)


# =============================================================================
# Regeneration
# =============================================================================


class TestRegenerate:
    """Test full rebuilds."""

    async def test_rebuild_in_goal_order(
        self, coordinator: ItineraryCoordinator, manager: ItineraryManager
    ) -> None:
        """All goals are generated, in order, and the rebuild is stamped."""
        assert await coordinator.async_regenerate_all_items() == 3
        assert [item["id"] for item in manager.get_items()] == [
            "g1-Walk the dog",
            "g1-Read",
            "g2-Run 3 times per week",
        ]
        assert manager.store.meta[const.DATA_META_LAST_REGENERATED_AT] == MONDAY_NOON.isoformat()

    async def test_rebuild_clears_previous_state(
        self, coordinator: ItineraryCoordinator, manager: ItineraryManager
    ) -> None:
        """A full rebuild starts counters from zero."""
        await coordinator.async_regenerate_all_items()
        manager.complete_item("g1-Read")

        await coordinator.async_regenerate_all_items()

        assert manager.get_streak("g1-Read")["count"] == 0
        assert manager.get_progress("g1-Read")["completed"] == 0

    async def test_single_flight(
        self, coordinator: ItineraryCoordinator, provider: GoalProvider
    ) -> None:
        """Overlapping calls share one provider fetch."""
        provider.hold()
        first = asyncio.create_task(coordinator.async_regenerate_all_items())
        second = asyncio.create_task(coordinator.async_regenerate_all_items())
        await provider.started.wait()
        assert coordinator.is_rebuilding is True

        provider.release.set()
        results = await asyncio.gather(first, second)

        assert results == [3, 3]
        assert provider.calls == 1
        assert coordinator.is_rebuilding is False

    async def test_sequential_calls_fetch_again(
        self, coordinator: ItineraryCoordinator, provider: GoalProvider
    ) -> None:
        """A call after a finished rebuild starts a new one."""
        await coordinator.async_regenerate_all_items()
        await coordinator.async_regenerate_all_items()
        assert provider.calls == 2

    async def test_provider_failure_leaves_store(
        self,
        coordinator: ItineraryCoordinator,
        manager: ItineraryManager,
        provider: GoalProvider,
    ) -> None:
        """A failed fetch propagates and does not clear existing items."""
        await coordinator.async_regenerate_all_items()
        provider.error = RuntimeError("backend down")

        with pytest.raises(RuntimeError, match="backend down"):
            await coordinator.async_regenerate_all_items()

        assert len(manager.get_items()) == 3
        assert coordinator.is_rebuilding is False


# =============================================================================
# Completion queueing
# =============================================================================


class TestCompletionQueue:
    """Test completions racing a rebuild."""

    async def test_immediate_when_idle(
        self, coordinator: ItineraryCoordinator, manager: ItineraryManager
    ) -> None:
        """No rebuild pending → applied right away."""
        await coordinator.async_regenerate_all_items()
        assert coordinator.complete_item("g1-Read") is True
        assert manager.get_streak("g1-Read")["count"] == 1

    async def test_idle_unknown_id_raises(self, coordinator: ItineraryCoordinator) -> None:
        """Immediate completions of unknown ids raise."""
        with pytest.raises(ItemNotFoundError):
            coordinator.complete_item("missing")

    async def test_queued_and_replayed(
        self,
        coordinator: ItineraryCoordinator,
        manager: ItineraryManager,
        provider: GoalProvider,
    ) -> None:
        """A completion issued mid-rebuild lands after the rebuild."""
        await coordinator.async_regenerate_all_items()
        provider.hold()
        rebuild = asyncio.create_task(coordinator.async_regenerate_all_items())
        await provider.started.wait()

        assert coordinator.complete_item("g1-Read") is False
        assert manager.get_streak("g1-Read")["count"] == 0

        provider.release.set()
        await rebuild

        assert manager.get_streak("g1-Read")["count"] == 1
        assert manager.get_progress("g1-Read")["completed"] == 1
        assert manager.get_item("g1-Read")["status"] == const.ITEM_STATUS_COMPLETED

    async def test_queued_for_vanished_item_dropped(
        self,
        coordinator: ItineraryCoordinator,
        manager: ItineraryManager,
        provider: GoalProvider,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Queued completions for items the rebuild removed are dropped."""
        await coordinator.async_regenerate_all_items()
        provider.hold()
        rebuild = asyncio.create_task(coordinator.async_regenerate_all_items())
        await provider.started.wait()

        coordinator.complete_item("g1-Read")
        coordinator.complete_item("g1-Walk the dog")
        provider.goals = [{"id": "g1", "steps": [habit_step("Walk the dog")]}]

        with caplog.at_level(logging.DEBUG, logger="household_itinerary"):
            provider.release.set()
            await rebuild

        assert manager.get_item("g1-Read") is None
        assert manager.get_streak("g1-Walk the dog")["count"] == 1
        assert "Dropping queued completion of 'g1-Read'" in caplog.text

    async def test_queue_replayed_after_failure(
        self,
        coordinator: ItineraryCoordinator,
        manager: ItineraryManager,
        provider: GoalProvider,
    ) -> None:
        """A failed rebuild still applies queued completions to the old items."""
        await coordinator.async_regenerate_all_items()
        provider.hold()
        provider.error = RuntimeError("backend down")
        rebuild = asyncio.create_task(coordinator.async_regenerate_all_items())
        await provider.started.wait()

        coordinator.complete_item("g1-Read")
        provider.release.set()
        with pytest.raises(RuntimeError):
            await rebuild

        assert manager.get_streak("g1-Read")["count"] == 1


# =============================================================================
# Clear
# =============================================================================


class TestClear:
    """Test async_clear_all_items."""

    async def test_clear_only(
        self, coordinator: ItineraryCoordinator, manager: ItineraryManager
    ) -> None:
        """Without regeneration the store stays empty."""
        await coordinator.async_regenerate_all_items()
        assert await coordinator.async_clear_all_items() == 0
        assert manager.get_items() == []

    async def test_clear_and_regenerate(
        self,
        coordinator: ItineraryCoordinator,
        manager: ItineraryManager,
        provider: GoalProvider,
    ) -> None:
        """should_regenerate rebuilds from the provider."""
        await coordinator.async_regenerate_all_items()
        manager.complete_item("g1-Read")

        assert await coordinator.async_clear_all_items(should_regenerate=True) == 3
        assert manager.get_progress("g1-Read")["completed"] == 0
        assert provider.calls == 2
