"""
Location Relocation

Validates a request to move a location under a new parent (or to the top
level) and, once valid, rewrites the cached paths of the whole subtree.

A relocation goes ``REQUESTED -> VALIDATED -> APPLIED`` or
``REQUESTED -> REJECTED``. Rules are checked in order and the first failure
wins:

1. the new parent exists and belongs to the owner (top level always valid)
2. the moved location exists and belongs to the owner
3. the new parent is not the location itself
4. the new parent is not a descendant of the location

Nothing is written unless every rule passes.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from stuff_tracker.core.exceptions import CycleRejectedError, NotFoundError, StuffTrackerError
from stuff_tracker.models.orm.location import StorageLocation
from stuff_tracker.repositories.location import LocationRepository
from stuff_tracker.services.location_paths import apply_move
from stuff_tracker.services.subtree_scope import SubtreeScopeResolver

logger = logging.getLogger(__name__)


class RelocationState(str, Enum):
    """Lifecycle of a relocation request."""

    REQUESTED = "requested"
    VALIDATED = "validated"
    APPLIED = "applied"
    REJECTED = "rejected"


@dataclass
class Relocation:
    """A single relocation request and what validation resolved for it."""

    location_id: UUID
    owner_id: UUID
    new_parent_id: UUID | None
    state: RelocationState = RelocationState.REQUESTED
    location: StorageLocation | None = None
    new_parent: StorageLocation | None = None
    descendant_ids: set[UUID] = field(default_factory=set)
    rejection: StuffTrackerError | None = None
    rewritten_count: int = 0

    def reject(self, error: StuffTrackerError) -> "Relocation":
        self.state = RelocationState.REJECTED
        self.rejection = error
        return self


class RelocationProtocol:
    """Validates and applies location relocations."""

    def __init__(self, locations: LocationRepository, scope: SubtreeScopeResolver):
        self.locations = locations
        self.scope = scope

    async def validate(self, relocation: Relocation) -> Relocation:
        """
        Run the validation rules against a requested relocation.

        Args:
            relocation: Relocation in REQUESTED state

        Returns:
            The same relocation, now VALIDATED or REJECTED
        """
        if relocation.new_parent_id is not None:
            new_parent = await self.locations.get_by_id_and_owner(
                relocation.new_parent_id, relocation.owner_id
            )
            if new_parent is None:
                return relocation.reject(
                    NotFoundError("location", relocation.new_parent_id, "Target parent location not found")
                )
            relocation.new_parent = new_parent

        location = await self.locations.get_by_id_and_owner(relocation.location_id, relocation.owner_id)
        if location is None:
            return relocation.reject(NotFoundError("location", relocation.location_id))
        relocation.location = location

        if relocation.new_parent_id == location.id:
            return relocation.reject(CycleRejectedError("Cannot move location to itself"))

        relocation.descendant_ids = await self.scope.descendant_ids(location.id)
        if relocation.new_parent_id is not None and relocation.new_parent_id in relocation.descendant_ids:
            return relocation.reject(CycleRejectedError("Cannot move location into its own subtree"))

        relocation.state = RelocationState.VALIDATED
        return relocation

    async def apply(self, relocation: Relocation) -> StorageLocation:
        """
        Rewrite the moved location's path and its subtree in one batch.

        Moving to the current parent leaves everything unchanged.

        Args:
            relocation: Relocation in VALIDATED state

        Returns:
            The moved location
        """
        if relocation.state is not RelocationState.VALIDATED or relocation.location is None:
            raise RuntimeError(f"Cannot apply relocation in state {relocation.state.value}")

        location = relocation.location
        if location.parent_id == relocation.new_parent_id:
            relocation.state = RelocationState.APPLIED
            return location

        descendants = await self.locations.get_by_ids(relocation.descendant_ids)
        changed = apply_move(location, relocation.new_parent, descendants)
        await self.locations.update_batch(changed)

        relocation.rewritten_count = len(changed) - 1
        relocation.state = RelocationState.APPLIED
        return location

    async def relocate(self, location_id: UUID, new_parent_id: UUID | None, owner_id: UUID) -> StorageLocation:
        """
        Validate and apply a relocation.

        Args:
            location_id: Location to move
            new_parent_id: New parent, or None for the top level
            owner_id: Requesting owner

        Returns:
            The moved location

        Raises:
            NotFoundError: If the location or the new parent is missing or foreign
            CycleRejectedError: If the new parent is the location or one of its descendants
        """
        relocation = await self.validate(
            Relocation(location_id=location_id, owner_id=owner_id, new_parent_id=new_parent_id)
        )
        if relocation.state is RelocationState.REJECTED and relocation.rejection is not None:
            logger.info(
                f"Location move rejected: {relocation.rejection.message}",
                extra={"location_id": str(location_id), "owner_id": str(owner_id)},
            )
            raise relocation.rejection

        location = await self.apply(relocation)
        logger.info(
            f"Location moved: {location.name}",
            extra={
                "location_id": str(location.id),
                "parent_id": str(location.parent_id) if location.parent_id else None,
                "owner_id": str(owner_id),
                "descendants_rewritten": relocation.rewritten_count,
            },
        )
        return location
