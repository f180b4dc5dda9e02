"""
Location Repository

Provides database operations for the StorageLocation tree.
All queries are scoped to the owning user except pure id walks
(descendant and child-id lookups), where ids are globally unique.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import delete, func, literal, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from stuff_tracker.models.orm.item import Item
from stuff_tracker.models.orm.location import StorageLocation
from stuff_tracker.repositories.base import BaseRepository
from stuff_tracker.services.location_paths import build_create_path

DEFAULT_MAX_DEPTH = 10_000


@dataclass
class LocationContentsCount:
    """Direct and subtree contents of a location."""

    child_count: int
    item_count: int
    total_descendant_items: int


@dataclass
class LocationSummary:
    """A location with its direct child and item counts."""

    location: StorageLocation
    child_count: int
    item_count: int


class LocationRepository(BaseRepository[StorageLocation]):
    """Repository for StorageLocation operations with recursive-query support."""

    model = StorageLocation

    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def get_children(self, parent_id: UUID, owner_id: UUID) -> list[StorageLocation]:
        """
        Get the direct children of a location, ordered by name.

        Args:
            parent_id: Parent location UUID
            owner_id: Owner UUID

        Returns:
            List of child locations
        """
        result = await self.session.execute(
            select(StorageLocation)
            .where(
                StorageLocation.parent_id == parent_id,
                StorageLocation.owner_id == owner_id,
            )
            .order_by(StorageLocation.name, StorageLocation.id)
        )
        return list(result.scalars().all())

    async def get_child_ids(self, parent_ids: Iterable[UUID]) -> list[UUID]:
        """
        Get the ids of the direct children of any of the given locations.

        Args:
            parent_ids: Parent location UUIDs

        Returns:
            List of child UUIDs
        """
        parent_ids = list(parent_ids)
        if not parent_ids:
            return []
        result = await self.session.execute(
            select(StorageLocation.id).where(StorageLocation.parent_id.in_(parent_ids))
        )
        return list(result.scalars().all())

    async def get_descendant_ids(self, location_id: UUID, max_depth: int = DEFAULT_MAX_DEPTH) -> list[UUID]:
        """
        Get every descendant id of a location with one recursive query.

        The location itself is not included. ``max_depth`` bounds the
        recursion so a corrupt parent chain cannot loop forever.

        Args:
            location_id: Root location UUID
            max_depth: Maximum number of levels to descend

        Returns:
            List of descendant UUIDs
        """
        descendants = (
            select(StorageLocation.id.label("id"), literal(1).label("level"))
            .where(StorageLocation.parent_id == location_id)
            .cte(name="descendants", recursive=True)
        )
        parent = descendants.alias("parent")
        child = aliased(StorageLocation, name="child")
        descendants = descendants.union_all(
            select(child.id, parent.c.level + 1).where(
                child.parent_id == parent.c.id,
                parent.c.level < max_depth,
            )
        )

        result = await self.session.execute(select(descendants.c.id).distinct())
        return [row for row in result.scalars().all() if row != location_id]

    async def get_by_ids(self, ids: Iterable[UUID], owner_id: UUID | None = None) -> list[StorageLocation]:
        """
        Get locations by id.

        Args:
            ids: Location UUIDs
            owner_id: Optional owner scope

        Returns:
            List of locations (order not guaranteed)
        """
        ids = list(ids)
        if not ids:
            return []
        query = select(StorageLocation).where(StorageLocation.id.in_(ids))
        if owner_id is not None:
            query = query.where(StorageLocation.owner_id == owner_id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_deeper_than(self, owner_id: UUID, depth: int) -> list[StorageLocation]:
        """
        Get the owner's locations deeper than ``depth``.

        Used as a cheap pre-filter for rename propagation: only nodes with a
        longer cached path can have the renamed node's path as a prefix.

        Args:
            owner_id: Owner UUID
            depth: Depth of the renamed location

        Returns:
            List of locations
        """
        result = await self.session.execute(
            select(StorageLocation).where(
                StorageLocation.owner_id == owner_id,
                StorageLocation.depth > depth,
            )
        )
        return list(result.scalars().all())

    async def get_all_by_owner(self, owner_id: UUID) -> list[StorageLocation]:
        """
        Get every location of an owner.

        Args:
            owner_id: Owner UUID

        Returns:
            List of locations
        """
        result = await self.session.execute(
            select(StorageLocation).where(StorageLocation.owner_id == owner_id)
        )
        return list(result.scalars().all())

    async def get_owner_ids(self) -> list[UUID]:
        """
        Get every owner id that has at least one location.

        Returns:
            List of owner UUIDs
        """
        result = await self.session.execute(select(StorageLocation.owner_id).distinct())
        return list(result.scalars().all())

    async def get_tree(self, owner_id: UUID) -> list[StorageLocation]:
        """
        Get the owner's whole forest as a flat list, ordered by depth then name.

        Args:
            owner_id: Owner UUID

        Returns:
            List of locations
        """
        result = await self.session.execute(
            select(StorageLocation)
            .where(StorageLocation.owner_id == owner_id)
            .order_by(StorageLocation.depth, StorageLocation.name, StorageLocation.id)
        )
        return list(result.scalars().all())

    async def get_summaries(self, parent_id: UUID | None, owner_id: UUID) -> list[LocationSummary]:
        """
        Get child locations of ``parent_id`` (top level when None) with their direct counts.

        Args:
            parent_id: Parent location UUID, or None for top-level locations
            owner_id: Owner UUID

        Returns:
            List of summaries ordered by name
        """
        child = aliased(StorageLocation, name="child")
        child_count = (
            select(func.count(child.id))
            .where(child.parent_id == StorageLocation.id)
            .correlate(StorageLocation)
            .scalar_subquery()
        )
        item_count = (
            select(func.count(Item.id))
            .where(Item.location_id == StorageLocation.id)
            .correlate(StorageLocation)
            .scalar_subquery()
        )

        parent_filter = (
            StorageLocation.parent_id.is_(None)
            if parent_id is None
            else StorageLocation.parent_id == parent_id
        )
        result = await self.session.execute(
            select(StorageLocation, child_count.label("child_count"), item_count.label("item_count"))
            .where(StorageLocation.owner_id == owner_id, parent_filter)
            .order_by(StorageLocation.name, StorageLocation.id)
        )
        return [
            LocationSummary(location=row[0], child_count=row[1] or 0, item_count=row[2] or 0)
            for row in result.all()
        ]

    async def create_with_computed_path(self, location: StorageLocation) -> StorageLocation:
        """
        Create a location, computing its path from its parent's cached path.

        Args:
            location: New location with owner_id, name and optional parent_id

        Returns:
            Created location
        """
        parent = None
        if location.parent_id is not None:
            parent = await self.get_by_id_and_owner(location.parent_id, location.owner_id)

        build_create_path(location, parent)
        return await self.create(location)

    async def update_batch(self, locations: Sequence[StorageLocation]) -> None:
        """
        Write a batch of changed locations in one flush.

        The flush runs inside the caller's transaction; if any row fails the
        exception propagates and the transaction is rolled back as a whole.

        Args:
            locations: Locations to persist
        """
        if not locations:
            return
        self.session.add_all(locations)
        await self.session.flush()

    async def count_children_and_items(
        self,
        location_id: UUID,
        owner_id: UUID,
        subtree_ids: Iterable[UUID] | None = None,
    ) -> LocationContentsCount:
        """
        Count the direct children, direct items and subtree items of a location.

        Args:
            location_id: Location UUID
            owner_id: Owner UUID
            subtree_ids: Location plus descendants; resolved with a recursive
                query when not given

        Returns:
            LocationContentsCount
        """
        child_count = await self.session.scalar(
            select(func.count(StorageLocation.id)).where(
                StorageLocation.parent_id == location_id,
                StorageLocation.owner_id == owner_id,
            )
        )
        item_count = await self.session.scalar(
            select(func.count(Item.id)).where(
                Item.location_id == location_id,
                Item.owner_id == owner_id,
            )
        )

        if subtree_ids is None:
            subtree_ids = [location_id, *await self.get_descendant_ids(location_id)]
        total = await self.session.scalar(
            select(func.count(Item.id)).where(
                Item.location_id.in_(list(subtree_ids)),
                Item.owner_id == owner_id,
            )
        )

        return LocationContentsCount(
            child_count=child_count or 0,
            item_count=item_count or 0,
            total_descendant_items=total or 0,
        )

    async def delete_subtree(self, location_ids: Iterable[UUID], owner_id: UUID) -> int:
        """
        Delete locations and every item placed in them.

        The count is taken before the delete, since the parent_id cascade
        removes descendants outside the statement's rowcount.

        Args:
            location_ids: The location and all of its descendants
            owner_id: Owner UUID

        Returns:
            Number of deleted locations
        """
        location_ids = list(location_ids)
        if not location_ids:
            return 0

        owned = StorageLocation.id.in_(location_ids), StorageLocation.owner_id == owner_id
        existing = await self.session.scalar(select(func.count(StorageLocation.id)).where(*owned))

        await self.session.execute(
            delete(Item).where(
                Item.location_id.in_(location_ids),
                Item.owner_id == owner_id,
            )
        )
        await self.session.execute(delete(StorageLocation).where(*owned))
        await self.session.flush()
        return existing or 0
