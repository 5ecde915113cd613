# File: __init__.py
"""Household Itinerary: recurrence and occurrence engine for household goals.

Turns goal steps into dated itinerary items, resolves which items are due on
a day, and tracks completion streaks and progress.

Typical wiring:

    store = ItineraryStore()
    manager = ItineraryManager(store)
    coordinator = ItineraryCoordinator(manager, goal_provider)
    await coordinator.async_regenerate_all_items()
    manager.get_today_items()
"""

from .coordinator import ItineraryCoordinator
from .engines.schedule_engine import calculate_next_occurrence
from .exceptions import (
    ImmutableFieldError,
    ItemNotFoundError,
    ItineraryError,
    SnapshotError,
)
from .managers.itinerary_manager import ItineraryManager
from .store import ItineraryStore
from .type_defs import ItemKey

__all__ = [
    "ImmutableFieldError",
    "ItemKey",
    "ItemNotFoundError",
    "ItineraryCoordinator",
    "ItineraryError",
    "ItineraryManager",
    "ItineraryStore",
    "SnapshotError",
    "calculate_next_occurrence",
]
