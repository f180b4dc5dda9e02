"""
Domain Exceptions

Raised by services before any write happens; mapped to HTTP responses by the
exception handlers registered in ``stuff_tracker.main``.
"""

from typing import Any
from uuid import UUID


class StuffTrackerError(Exception):
    """Base class for all domain errors."""

    error_code: str = "error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(StuffTrackerError):
    """Referenced location or item does not exist or is not owned by the caller."""

    error_code = "not_found"

    def __init__(self, entity: str, entity_id: UUID | str | None = None, message: str | None = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(message or f"{entity.capitalize()} not found")


class ValidationFailedError(StuffTrackerError, ValueError):
    """Input rejected before any store mutation (empty name, name too long, quantity < 1)."""

    error_code = "validation_error"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        details = {"fields": {field: message}} if field else None
        super().__init__(message, details)


class CycleRejectedError(StuffTrackerError):
    """A move would make a location its own ancestor."""

    error_code = "cycle_rejected"


class LocationHasContentsError(StuffTrackerError):
    """A non-forced delete was requested on a location with children or items."""

    error_code = "conflict"

    def __init__(self, child_count: int, item_count: int, total_descendant_items: int):
        self.child_count = child_count
        self.item_count = item_count
        self.total_descendant_items = total_descendant_items
        super().__init__(
            "Location has contents. Use force=true to delete.",
            {
                "child_count": child_count,
                "item_count": item_count,
                "total_descendant_items": total_descendant_items,
            },
        )
