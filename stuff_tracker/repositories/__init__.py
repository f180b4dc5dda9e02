"""Data access repositories."""

from stuff_tracker.repositories.item import ItemRepository
from stuff_tracker.repositories.location import LocationRepository

__all__ = [
    "ItemRepository",
    "LocationRepository",
]
