"""API routers."""

from stuff_tracker.routers.health import router as health_router
from stuff_tracker.routers.items import router as items_router
from stuff_tracker.routers.locations import router as locations_router
from stuff_tracker.routers.search import router as search_router

__all__ = [
    "health_router",
    "items_router",
    "locations_router",
    "search_router",
]
