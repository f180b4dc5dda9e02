"""
Item Repository

Provides database operations for Item model.
All queries are scoped to the owning user.
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from stuff_tracker.models.orm.item import Item
from stuff_tracker.models.orm.location import StorageLocation
from stuff_tracker.repositories.base import BaseRepository


def _escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches as a plain substring."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ItemRepository(BaseRepository[Item]):
    """Repository for Item model operations."""

    model = Item

    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def get_by_location(self, location_id: UUID, owner_id: UUID) -> list[Item]:
        """
        Get the items placed directly in a location, ordered by name.

        Args:
            location_id: Location UUID
            owner_id: Owner UUID

        Returns:
            List of items
        """
        result = await self.session.execute(
            select(Item)
            .where(Item.location_id == location_id, Item.owner_id == owner_id)
            .order_by(Item.name, Item.id)
        )
        return list(result.scalars().all())

    async def get_with_location_path(
        self, item_id: UUID, owner_id: UUID
    ) -> tuple[Item, list[str], str] | None:
        """
        Get an item together with the current cached path of its location.

        Args:
            item_id: Item UUID
            owner_id: Owner UUID

        Returns:
            Tuple of (item, location path names, location name) or None
        """
        result = await self.session.execute(
            select(Item, StorageLocation.path_names, StorageLocation.name)
            .join(StorageLocation, Item.location_id == StorageLocation.id)
            .where(Item.id == item_id, Item.owner_id == owner_id)
        )
        row = result.first()
        if row is None:
            return None
        return row[0], list(row[1] or []), row[2]

    async def search(
        self,
        owner_id: UUID,
        *,
        query: str | None = None,
        location_ids: Iterable[UUID] | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[tuple[Item, list[str]]], int]:
        """
        Search an owner's items by name with an optional location scope.

        Args:
            owner_id: Owner UUID
            query: Case-insensitive substring to match against item names
            location_ids: Restrict to items placed in these locations
            limit: Maximum number of results
            offset: Number of results to skip

        Returns:
            Tuple of (list of (item, location path names), total count)
        """
        filters = [Item.owner_id == owner_id]

        if location_ids is not None:
            filters.append(Item.location_id.in_(list(location_ids)))

        if query:
            filters.append(Item.name.ilike(f"%{_escape_like(query)}%", escape="\\"))

        count_query = select(func.count(Item.id)).where(*filters)
        total = await self.session.scalar(count_query) or 0

        result = await self.session.execute(
            select(Item, StorageLocation.path_names)
            .join(StorageLocation, Item.location_id == StorageLocation.id)
            .where(*filters)
            .order_by(Item.name, Item.id)
            .limit(limit)
            .offset(offset)
        )
        rows = [(row[0], list(row[1] or [])) for row in result.all()]

        return rows, total
