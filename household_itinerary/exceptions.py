"""Exceptions raised by the itinerary engine.

Read paths never raise; these surface only from explicit write calls with an
unknown id and from restoring a malformed snapshot.
"""

from __future__ import annotations


class ItineraryError(Exception):
    """Base class for itinerary engine errors."""


class ItemNotFoundError(ItineraryError):
    """Raised when a write targets an item id that is not in the store.

    Attributes:
        item_id: The missing item id
        operation: Name of the operation that was attempted
    """

    def __init__(self, item_id: str, operation: str) -> None:
        """Initialize ItemNotFoundError.

        Args:
            item_id: The missing item id
            operation: Name of the operation that was attempted
        """
        self.item_id = item_id
        self.operation = operation
        super().__init__(f"{operation}: itinerary item '{item_id}' not found")


class ImmutableFieldError(ItineraryError):
    """Raised when update_item() tries to change an identity field.

    Attributes:
        item_id: The item being updated
        fields: Sorted names of the rejected fields
    """

    def __init__(self, item_id: str, fields: list[str]) -> None:
        """Initialize ImmutableFieldError."""
        self.item_id = item_id
        self.fields = fields
        super().__init__(
            f"update_item: fields {', '.join(fields)} of '{item_id}' cannot be changed"
        )


class SnapshotError(ItineraryError):
    """Raised when a snapshot cannot be restored."""
