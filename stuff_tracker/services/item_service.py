"""
Item Service

Item placement, updates and owner-scoped search. Location-scoped search
covers the whole subtree of the given location.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from stuff_tracker.config import get_settings
from stuff_tracker.core.exceptions import NotFoundError, ValidationFailedError
from stuff_tracker.models.orm.item import Item
from stuff_tracker.repositories.item import ItemRepository
from stuff_tracker.repositories.location import LocationRepository
from stuff_tracker.services.location_service import validate_name
from stuff_tracker.services.subtree_scope import DescendantStrategy, SubtreeScopeResolver

logger = logging.getLogger(__name__)


@dataclass
class SearchHit:
    item: Item
    location_path: list[str]


@dataclass
class SearchPage:
    items: list[SearchHit]
    total: int
    has_more: bool


class ItemService:
    """Service for item operations."""

    def __init__(self, db: AsyncSession, strategy: DescendantStrategy | None = None):
        self.db = db
        self.settings = get_settings()
        self.items = ItemRepository(db)
        self.locations = LocationRepository(db)
        self.scope = SubtreeScopeResolver(self.locations, strategy=strategy)

    def _validate_quantity(self, quantity: int) -> int:
        if quantity < 1:
            raise ValidationFailedError("Quantity must be at least 1", field="quantity")
        return quantity

    async def _require_location(self, location_id: UUID, owner_id: UUID) -> None:
        location = await self.locations.get_by_id_and_owner(location_id, owner_id)
        if location is None:
            raise NotFoundError("location", location_id)

    async def get(self, item_id: UUID, owner_id: UUID) -> Item:
        """
        Get an item owned by ``owner_id``.

        Raises:
            NotFoundError: If missing or owned by someone else
        """
        item = await self.items.get_by_id_and_owner(item_id, owner_id)
        if item is None:
            raise NotFoundError("item", item_id)
        return item

    async def get_detail(self, item_id: UUID, owner_id: UUID) -> tuple[Item, list[str], str]:
        """
        Get an item with its location's current path and name.

        Raises:
            NotFoundError: If missing or owned by someone else
        """
        found = await self.items.get_with_location_path(item_id, owner_id)
        if found is None:
            raise NotFoundError("item", item_id)
        return found

    async def create(
        self,
        owner_id: UUID,
        name: str,
        location_id: UUID,
        description: str | None = None,
        quantity: int = 1,
    ) -> Item:
        """
        Place a new item in a location.

        Raises:
            ValidationFailedError: If the name or quantity is invalid
            NotFoundError: If the location is missing or foreign
        """
        name = validate_name(name, self.settings.item_name_max_length)
        quantity = self._validate_quantity(quantity)
        await self._require_location(location_id, owner_id)

        item = await self.items.create(
            Item(
                owner_id=owner_id,
                location_id=location_id,
                name=name,
                description=description,
                quantity=quantity,
            )
        )

        logger.info(
            f"Item created: {item.name}",
            extra={"item_id": str(item.id), "location_id": str(location_id), "owner_id": str(owner_id)},
        )
        return item

    async def update(
        self,
        item_id: UUID,
        owner_id: UUID,
        name: str | None = None,
        description: str | None = None,
        quantity: int | None = None,
    ) -> Item:
        """
        Update an item's name, description or quantity. None leaves a field unchanged.

        Raises:
            ValidationFailedError: If the name or quantity is invalid
            NotFoundError: If the item is missing or foreign
        """
        item = await self.get(item_id, owner_id)

        if name is not None:
            item.name = validate_name(name, self.settings.item_name_max_length)
        if description is not None:
            item.description = description
        if quantity is not None:
            item.quantity = self._validate_quantity(quantity)

        item = await self.items.update(item)

        logger.info(
            f"Item updated: {item.name}",
            extra={"item_id": str(item.id), "owner_id": str(owner_id)},
        )
        return item

    async def move(self, item_id: UUID, location_id: UUID, owner_id: UUID) -> Item:
        """
        Move an item to another location.

        Raises:
            NotFoundError: If the item or the target location is missing or foreign
        """
        item = await self.get(item_id, owner_id)
        await self._require_location(location_id, owner_id)

        if item.location_id != location_id:
            previous = item.location_id
            item.location_id = location_id
            item = await self.items.update(item)
            logger.info(
                f"Item moved: {item.name}",
                extra={
                    "item_id": str(item.id),
                    "from_location_id": str(previous),
                    "to_location_id": str(location_id),
                    "owner_id": str(owner_id),
                },
            )
        return item

    async def delete(self, item_id: UUID, owner_id: UUID) -> None:
        """
        Delete an item.

        Raises:
            NotFoundError: If the item is missing or foreign
        """
        item = await self.get(item_id, owner_id)
        await self.items.delete(item)
        logger.info(
            f"Item deleted: {item.name}",
            extra={"item_id": str(item_id), "owner_id": str(owner_id)},
        )

    async def search(
        self,
        owner_id: UUID,
        query: str | None = None,
        location_id: UUID | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> SearchPage:
        """
        Search an owner's items by name, optionally within a location's subtree.

        Results are ordered by item name. A blank query matches every item.

        Args:
            owner_id: Owner UUID
            query: Case-insensitive name substring
            location_id: Restrict to this location and all of its descendants
            limit: Page size; defaults to the configured search limit
            offset: Number of results to skip

        Returns:
            SearchPage

        Raises:
            ValidationFailedError: If query, limit or offset is out of range
            NotFoundError: If ``location_id`` is missing or foreign
        """
        if query is not None:
            query = query.strip() or None
        if query is not None and len(query) > self.settings.search_query_max_length:
            raise ValidationFailedError(
                f"Query must not exceed {self.settings.search_query_max_length} characters", field="q"
            )

        if limit is None:
            limit = self.settings.search_default_limit
        if limit < 1 or limit > self.settings.search_max_limit:
            raise ValidationFailedError(
                f"Limit must be between 1 and {self.settings.search_max_limit}", field="limit"
            )
        if offset < 0:
            raise ValidationFailedError("Offset must not be negative", field="offset")

        location_ids: set[UUID] | None = None
        if location_id is not None:
            await self._require_location(location_id, owner_id)
            location_ids = await self.scope.subtree_ids(location_id)

        rows, total = await self.items.search(
            owner_id,
            query=query,
            location_ids=location_ids,
            limit=limit,
            offset=offset,
        )

        return SearchPage(
            items=[SearchHit(item=item, location_path=path) for item, path in rows],
            total=total,
            has_more=offset + limit < total,
        )
