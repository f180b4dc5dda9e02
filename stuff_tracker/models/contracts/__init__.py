"""Pydantic contracts (API request/response schemas)."""

from stuff_tracker.models.contracts.common import (
    ErrorResponse,
    HealthResponse,
)
from stuff_tracker.models.contracts.item import (
    ItemCreate,
    ItemDetail,
    ItemMove,
    ItemPublic,
    ItemUpdate,
)
from stuff_tracker.models.contracts.location import (
    LocationCreate,
    LocationDetail,
    LocationItemSummary,
    LocationListItem,
    LocationMove,
    LocationPublic,
    LocationTreeNode,
    LocationUpdate,
    PathRebuildResponse,
)
from stuff_tracker.models.contracts.search import (
    SearchResultItem,
    SearchResults,
)

__all__ = [
    # Common
    "ErrorResponse",
    "HealthResponse",
    # Locations
    "LocationCreate",
    "LocationUpdate",
    "LocationMove",
    "LocationPublic",
    "LocationListItem",
    "LocationItemSummary",
    "LocationDetail",
    "LocationTreeNode",
    "PathRebuildResponse",
    # Items
    "ItemCreate",
    "ItemUpdate",
    "ItemMove",
    "ItemPublic",
    "ItemDetail",
    # Search
    "SearchResultItem",
    "SearchResults",
]
