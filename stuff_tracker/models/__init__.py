"""Stuff Tracker Models.

ORM models (database tables):
    from stuff_tracker.models import StorageLocation, Item
    from stuff_tracker.models.orm import StorageLocation, Item

Pydantic contracts (API request/response):
    from stuff_tracker.models import LocationCreate, LocationPublic
    from stuff_tracker.models.contracts import LocationCreate, LocationPublic
"""

# ORM models (database tables)
# Pydantic contracts (API request/response)
from stuff_tracker.models.contracts import (
    ErrorResponse,
    HealthResponse,
    ItemCreate,
    ItemPublic,
    LocationCreate,
    LocationPublic,
    SearchResults,
)
from stuff_tracker.models.orm import (
    Base,
    Item,
    StorageLocation,
)

# Combine all exports
__all__ = [
    # Base
    "Base",
    # ORM models
    "StorageLocation",
    "Item",
    # Contracts
    "LocationCreate",
    "LocationPublic",
    "ItemCreate",
    "ItemPublic",
    "SearchResults",
    "ErrorResponse",
    "HealthResponse",
]
