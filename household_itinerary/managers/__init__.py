"""Managers for the itinerary engine.

Managers own state mutation and delegate pure logic to the engines:
- ItineraryManager: item CRUD, generation from goals, completions and queries
"""

from .itinerary_manager import ItineraryManager

__all__ = ["ItineraryManager"]
