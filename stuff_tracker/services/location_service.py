"""
Location Service

Entry point for every operation on the location tree: create, rename, move,
delete, tree and detail reads, and path repair. Runs inside the caller's
session so each operation is one transaction.
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from stuff_tracker.config import get_settings
from stuff_tracker.core.exceptions import LocationHasContentsError, NotFoundError, ValidationFailedError
from stuff_tracker.models.orm.item import Item
from stuff_tracker.models.orm.location import StorageLocation
from stuff_tracker.repositories.item import ItemRepository
from stuff_tracker.repositories.location import LocationRepository, LocationSummary
from stuff_tracker.services.location_paths import apply_rename, rebuild_paths
from stuff_tracker.services.relocation import RelocationProtocol
from stuff_tracker.services.subtree_scope import DescendantStrategy, SubtreeScopeResolver

logger = logging.getLogger(__name__)


def validate_name(name: str | None, max_length: int, field: str = "name") -> str:
    """
    Validate and normalize a location or item name.

    Raises:
        ValidationFailedError: If the name is missing, blank or too long
    """
    if name is None or not name.strip():
        raise ValidationFailedError("Name is required", field=field)
    name = name.strip()
    if len(name) > max_length:
        raise ValidationFailedError(f"Name must not exceed {max_length} characters", field=field)
    return name


class LocationService:
    """Service for storage location operations."""

    def __init__(self, db: AsyncSession, strategy: DescendantStrategy | None = None):
        """
        Initialize location service.

        Args:
            db: Database session
            strategy: Optional descendant strategy override ("cte" or "bfs")
        """
        self.db = db
        self.settings = get_settings()
        self.locations = LocationRepository(db)
        self.items = ItemRepository(db)
        self.scope = SubtreeScopeResolver(self.locations, strategy=strategy)
        self.relocation = RelocationProtocol(self.locations, self.scope)

    async def get(self, location_id: UUID, owner_id: UUID) -> StorageLocation:
        """
        Get a location owned by ``owner_id``.

        Raises:
            NotFoundError: If missing or owned by someone else
        """
        location = await self.locations.get_by_id_and_owner(location_id, owner_id)
        if location is None:
            raise NotFoundError("location", location_id)
        return location

    async def create(self, owner_id: UUID, name: str, parent_id: UUID | None = None) -> StorageLocation:
        """
        Create a location under ``parent_id`` (top level when None).

        Args:
            owner_id: Owner UUID
            name: Location name
            parent_id: Optional parent location UUID

        Returns:
            Created location with its computed path

        Raises:
            ValidationFailedError: If the name is invalid
            NotFoundError: If the parent is missing or foreign
        """
        name = validate_name(name, self.settings.location_name_max_length)

        if parent_id is not None:
            parent = await self.locations.get_by_id_and_owner(parent_id, owner_id)
            if parent is None:
                raise NotFoundError("location", parent_id, "Parent location not found")

        location = await self.locations.create_with_computed_path(
            StorageLocation(owner_id=owner_id, name=name, parent_id=parent_id)
        )

        logger.info(
            f"Location created: {location.name}",
            extra={
                "location_id": str(location.id),
                "parent_id": str(parent_id) if parent_id else None,
                "owner_id": str(owner_id),
                "depth": location.depth,
            },
        )
        return location

    async def rename(self, location_id: UUID, name: str, owner_id: UUID) -> StorageLocation:
        """
        Rename a location and propagate the new name to its subtree's paths.

        Raises:
            ValidationFailedError: If the name is invalid
            NotFoundError: If the location is missing or foreign
        """
        name = validate_name(name, self.settings.location_name_max_length)
        location = await self.get(location_id, owner_id)

        if name == location.name and location.path_names and location.path_names[-1] == name:
            return location

        candidates = await self.locations.get_deeper_than(owner_id, location.depth)
        changed = apply_rename(location, name, candidates)
        await self.locations.update_batch(changed)

        logger.info(
            f"Location renamed: {location.name}",
            extra={
                "location_id": str(location.id),
                "owner_id": str(owner_id),
                "descendants_rewritten": len(changed) - 1,
            },
        )
        return location

    async def move(self, location_id: UUID, new_parent_id: UUID | None, owner_id: UUID) -> StorageLocation:
        """
        Move a location under a new parent, or to the top level when None.

        Raises:
            NotFoundError: If the location or the new parent is missing or foreign
            CycleRejectedError: If the new parent is the location or one of its descendants
        """
        return await self.relocation.relocate(location_id, new_parent_id, owner_id)

    async def delete(self, location_id: UUID, owner_id: UUID, force: bool = False) -> int:
        """
        Delete a location.

        Without ``force`` the location must have no children and no items.
        With ``force`` the whole subtree and every item in it is deleted.

        Returns:
            Number of deleted locations

        Raises:
            NotFoundError: If the location is missing or foreign
            LocationHasContentsError: If not forced and the location has contents
        """
        location = await self.get(location_id, owner_id)
        subtree = await self.scope.subtree_ids(location.id)

        if not force:
            counts = await self.locations.count_children_and_items(location.id, owner_id, subtree)
            if counts.child_count > 0 or counts.item_count > 0:
                raise LocationHasContentsError(
                    counts.child_count, counts.item_count, counts.total_descendant_items
                )

        deleted = await self.locations.delete_subtree(subtree, owner_id)

        logger.info(
            f"Location deleted: {location.name}",
            extra={
                "location_id": str(location_id),
                "owner_id": str(owner_id),
                "force": force,
                "deleted_locations": deleted,
            },
        )
        return deleted

    async def list_top_level(self, owner_id: UUID) -> list[LocationSummary]:
        """Get top-level locations with their direct child and item counts."""
        return await self.locations.get_summaries(None, owner_id)

    async def get_detail(
        self, location_id: UUID, owner_id: UUID
    ) -> tuple[StorageLocation, list[LocationSummary], list[Item]]:
        """
        Get a location with its direct children and direct items.

        Raises:
            NotFoundError: If the location is missing or foreign
        """
        location = await self.get(location_id, owner_id)
        children = await self.locations.get_summaries(location.id, owner_id)
        items = await self.items.get_by_location(location.id, owner_id)
        return location, children, items

    async def get_tree(self, owner_id: UUID) -> list[StorageLocation]:
        """Get the owner's forest ordered by depth then name."""
        return await self.locations.get_tree(owner_id)

    async def rebuild_paths(self, owner_id: UUID) -> int:
        """
        Recompute every cached path of an owner from parent pointers.

        Returns:
            Number of locations whose path changed
        """
        locations = await self.locations.get_all_by_owner(owner_id)
        changed = rebuild_paths(locations, max_nodes=self.settings.max_tree_expansion)
        await self.locations.update_batch(changed)

        logger.info(
            "Location paths rebuilt",
            extra={"owner_id": str(owner_id), "total": len(locations), "rebuilt": len(changed)},
        )
        return len(changed)
