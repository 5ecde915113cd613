"""Shared fixtures for itinerary tests."""

from collections.abc import Iterator
from datetime import datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

import pytest

from household_itinerary.managers.itinerary_manager import ItineraryManager
from household_itinerary.store import ItineraryStore
from household_itinerary.utils import dt_utils

UTC = ZoneInfo("UTC")

# Monday 2026-01-19, noon UTC
MONDAY_NOON = datetime(2026, 1, 19, 12, 0, 0, tzinfo=UTC)


class FakeClock:
    """Settable clock injected into managers as now_fn."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> datetime:
        """Move the clock forward by a timedelta(**kwargs)."""
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def utc_default_timezone() -> Iterator[None]:
    """Run every test with UTC as the household timezone."""
    dt_utils.set_default_timezone(UTC)
    yield
    dt_utils.set_default_timezone(UTC)


@pytest.fixture
def clock() -> FakeClock:
    """Clock fixed at Monday 2026-01-19 12:00 UTC."""
    return FakeClock(MONDAY_NOON)


@pytest.fixture
def store() -> ItineraryStore:
    """Empty itinerary store."""
    return ItineraryStore()


@pytest.fixture
def manager(store: ItineraryStore, clock: FakeClock) -> ItineraryManager:
    """Manager over the empty store with the fixed clock."""
    return ItineraryManager(store, now_fn=clock)


def habit_step(text: str, timescale: str | None = "daily", **extra: Any) -> dict[str, Any]:
    """Build a tracked Habit step as the goal collaborator supplies it."""
    step: dict[str, Any] = {"text": text, "step_type": "Habit", "is_tracked": True}
    if timescale is not None:
        step["timescale"] = timescale
    step.update(extra)
    return step
