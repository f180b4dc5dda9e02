"""
Locations Router

Provides endpoints for the owner's storage location tree: CRUD, moves,
the flat tree listing and path repair.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from stuff_tracker.core.auth import CurrentUser
from stuff_tracker.core.database import DbSession
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
from stuff_tracker.models.orm.location import StorageLocation
from stuff_tracker.repositories.location import LocationSummary
from stuff_tracker.services.location_service import LocationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/locations", tags=["locations"])


def _breadcrumb_ids(location: StorageLocation) -> list[UUID]:
    """Get the ancestor id chain, falling back to the location's own id for legacy rows."""
    if not location.path_ids:
        logger.warning(
            "Location has no cached path ids, returning its own id as breadcrumb",
            extra={"location_id": str(location.id)},
        )
        return [location.id]
    return [UUID(value) for value in location.path_ids]


def _to_public(location: StorageLocation) -> LocationPublic:
    """Convert StorageLocation ORM model to public response."""
    return LocationPublic(
        id=location.id,
        name=location.name,
        parent_id=location.parent_id,
        breadcrumbs=list(location.path_names or [location.name]),
        breadcrumb_ids=_breadcrumb_ids(location),
        depth=location.depth,
        created_at=location.created_at,
        updated_at=location.updated_at,
    )


def _to_list_item(summary: LocationSummary) -> LocationListItem:
    return LocationListItem(
        id=summary.location.id,
        name=summary.location.name,
        child_count=summary.child_count,
        item_count=summary.item_count,
    )


@router.get("", response_model=list[LocationListItem])
async def list_locations(
    current_user: CurrentUser,
    db: DbSession,
) -> list[LocationListItem]:
    """
    List top-level locations with their direct child and item counts.

    Returns:
        Top-level locations ordered by name
    """
    service = LocationService(db)
    summaries = await service.list_top_level(current_user.user_id)
    return [_to_list_item(summary) for summary in summaries]


@router.get("/tree", response_model=list[LocationTreeNode])
async def get_location_tree(
    current_user: CurrentUser,
    db: DbSession,
) -> list[LocationTreeNode]:
    """
    Get the whole location forest as a flat list ordered by depth then name.
    """
    service = LocationService(db)
    locations = await service.get_tree(current_user.user_id)
    return [
        LocationTreeNode(id=loc.id, parent_id=loc.parent_id, name=loc.name, depth=loc.depth)
        for loc in locations
    ]


@router.post("", response_model=LocationPublic, status_code=status.HTTP_201_CREATED)
async def create_location(
    location_data: LocationCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> LocationPublic:
    """
    Create a new location, top-level or under ``parent_id``.

    Args:
        location_data: Location creation data
        current_user: Current authenticated user
        db: Database session

    Returns:
        Created location with its breadcrumbs
    """
    service = LocationService(db)
    location = await service.create(
        current_user.user_id,
        location_data.name,
        parent_id=location_data.parent_id,
    )
    return _to_public(location)


@router.post("/rebuild-paths", response_model=PathRebuildResponse)
async def rebuild_location_paths(
    current_user: CurrentUser,
    db: DbSession,
) -> PathRebuildResponse:
    """
    Recompute every cached location path of the current user from parent pointers.
    """
    service = LocationService(db)
    rebuilt = await service.rebuild_paths(current_user.user_id)
    return PathRebuildResponse(rebuilt_count=rebuilt)


@router.get("/{location_id}", response_model=LocationDetail)
async def get_location(
    location_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> LocationDetail:
    """
    Get a location with its breadcrumbs, direct children and direct items.

    Raises:
        NotFoundError: If location not found
    """
    service = LocationService(db)
    location, children, items = await service.get_detail(location_id, current_user.user_id)

    public = _to_public(location)
    return LocationDetail(
        **public.model_dump(),
        children=[_to_list_item(child) for child in children],
        items=[LocationItemSummary(id=item.id, name=item.name, quantity=item.quantity) for item in items],
    )


@router.put("/{location_id}", response_model=LocationPublic)
async def update_location(
    location_id: UUID,
    location_data: LocationUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> LocationPublic:
    """
    Rename a location. Descendant breadcrumbs follow the new name.

    Raises:
        NotFoundError: If location not found
    """
    service = LocationService(db)
    location = await service.rename(location_id, location_data.name, current_user.user_id)
    return _to_public(location)


@router.post("/{location_id}/move", response_model=LocationPublic)
async def move_location(
    location_id: UUID,
    move_data: LocationMove,
    current_user: CurrentUser,
    db: DbSession,
) -> LocationPublic:
    """
    Move a location under a new parent, or to the top level with a null ``parent_id``.

    Raises:
        NotFoundError: If the location or the new parent is not found
        CycleRejectedError: If the new parent lies inside the moved subtree
    """
    service = LocationService(db)
    location = await service.move(location_id, move_data.parent_id, current_user.user_id)
    return _to_public(location)


@router.delete("/{location_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_location(
    location_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    force: bool = Query(False, description="Delete the whole subtree and every item in it"),
) -> Response:
    """
    Delete a location.

    Raises:
        NotFoundError: If location not found
        LocationHasContentsError: If the location has contents and force is not set
    """
    service = LocationService(db)
    await service.delete(location_id, current_user.user_id, force=force)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
