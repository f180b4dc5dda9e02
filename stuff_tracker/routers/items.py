"""
Items Router

Provides CRUD and move endpoints for items placed in storage locations.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Response, status

from stuff_tracker.core.auth import CurrentUser
from stuff_tracker.core.database import DbSession
from stuff_tracker.models.contracts.item import ItemCreate, ItemDetail, ItemMove, ItemPublic, ItemUpdate
from stuff_tracker.models.orm.item import Item
from stuff_tracker.services.item_service import ItemService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/items", tags=["items"])


def _to_public(item: Item) -> ItemPublic:
    """Convert Item ORM model to public response."""
    return ItemPublic.model_validate(item)


@router.post("", response_model=ItemPublic, status_code=status.HTTP_201_CREATED)
async def create_item(
    item_data: ItemCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> ItemPublic:
    """
    Place a new item in a location.

    Raises:
        NotFoundError: If the location is not found
    """
    service = ItemService(db)
    item = await service.create(
        current_user.user_id,
        item_data.name,
        item_data.location_id,
        description=item_data.description,
        quantity=item_data.quantity,
    )
    return _to_public(item)


@router.get("/{item_id}", response_model=ItemDetail)
async def get_item(
    item_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> ItemDetail:
    """
    Get an item with the current breadcrumbs of its location.

    Raises:
        NotFoundError: If item not found
    """
    service = ItemService(db)
    item, location_path, location_name = await service.get_detail(item_id, current_user.user_id)
    return ItemDetail(
        **_to_public(item).model_dump(),
        location_path=location_path,
        location_name=location_name,
    )


@router.put("/{item_id}", response_model=ItemPublic)
async def update_item(
    item_id: UUID,
    item_data: ItemUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> ItemPublic:
    """
    Update an item's name, description or quantity.

    Raises:
        NotFoundError: If item not found
    """
    service = ItemService(db)
    item = await service.update(
        item_id,
        current_user.user_id,
        name=item_data.name,
        description=item_data.description,
        quantity=item_data.quantity,
    )
    return _to_public(item)


@router.post("/{item_id}/move", response_model=ItemPublic)
async def move_item(
    item_id: UUID,
    move_data: ItemMove,
    current_user: CurrentUser,
    db: DbSession,
) -> ItemPublic:
    """
    Move an item to another location.

    Raises:
        NotFoundError: If the item or the target location is not found
    """
    service = ItemService(db)
    item = await service.move(item_id, move_data.location_id, current_user.user_id)
    return _to_public(item)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(
    item_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> Response:
    """
    Delete an item.

    Raises:
        NotFoundError: If item not found
    """
    service = ItemService(db)
    await service.delete(item_id, current_user.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
