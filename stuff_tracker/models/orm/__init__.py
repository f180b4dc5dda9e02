"""SQLAlchemy ORM Models for Stuff Tracker.

Pure database models using SQLAlchemy 2.0 declarative style.
These models define the database schema.
"""

from stuff_tracker.models.orm.base import Base
from stuff_tracker.models.orm.item import Item
from stuff_tracker.models.orm.location import StorageLocation

__all__ = [
    # Base
    "Base",
    # Locations
    "StorageLocation",
    # Items
    "Item",
]
