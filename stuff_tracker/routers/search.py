"""
Search Router

Provides item search by name, optionally scoped to a location subtree.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Query

from stuff_tracker.core.auth import CurrentUser
from stuff_tracker.core.database import DbSession
from stuff_tracker.models.contracts.search import SearchResultItem, SearchResults
from stuff_tracker.services.item_service import ItemService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/search", tags=["search"])


@router.get("/items", response_model=SearchResults)
async def search_items(
    current_user: CurrentUser,
    db: DbSession,
    q: str | None = Query(None, description="Case-insensitive item name substring"),
    location_id: UUID | None = Query(None, description="Restrict to this location and its descendants"),
    limit: int | None = Query(None, description="Maximum results to return"),
    offset: int = Query(0, description="Number of results to skip"),
) -> SearchResults:
    """
    Search the current user's items.

    Range checks on ``q``, ``limit`` and ``offset`` happen in ItemService.

    Returns:
        Page of matching items with their location breadcrumbs
    """
    service = ItemService(db)
    page = await service.search(
        current_user.user_id,
        query=q,
        location_id=location_id,
        limit=limit,
        offset=offset,
    )

    return SearchResults(
        items=[
            SearchResultItem(
                id=hit.item.id,
                name=hit.item.name,
                description=hit.item.description,
                quantity=hit.item.quantity,
                location_id=hit.item.location_id,
                location_path=hit.location_path,
            )
            for hit in page.items
        ],
        total=page.total,
        has_more=page.has_more,
    )
