"""
Subtree Scope Resolver

Expands a location id into the ids of its subtree. Used by the move cycle
check, delete impact counting and location-scoped item search.

Two strategies produce the same id set:

- ``cte``: one recursive query against the store
- ``bfs``: breadth-first expansion, one children query per tree level
"""

import logging
from typing import Literal
from uuid import UUID

from stuff_tracker.config import get_settings
from stuff_tracker.repositories.location import LocationRepository

logger = logging.getLogger(__name__)

DescendantStrategy = Literal["cte", "bfs"]


class SubtreeScopeResolver:
    """Resolves descendant and subtree id sets for a location."""

    def __init__(
        self,
        locations: LocationRepository,
        strategy: DescendantStrategy | None = None,
        max_expansion: int | None = None,
    ):
        """
        Initialize the resolver.

        Args:
            locations: Location repository
            strategy: "cte" or "bfs"; defaults to the configured strategy
            max_expansion: Cap on visited nodes (bfs) or recursion depth (cte)
        """
        settings = get_settings()
        self.locations = locations
        self.strategy: DescendantStrategy = strategy or settings.descendant_strategy
        self.max_expansion = max_expansion or settings.max_tree_expansion

    async def descendant_ids(self, root_id: UUID) -> set[UUID]:
        """
        Get every id below ``root_id``, excluding ``root_id`` itself.

        Args:
            root_id: Location UUID

        Returns:
            Set of descendant UUIDs
        """
        if self.strategy == "bfs":
            return await self._expand_breadth_first(root_id)

        ids = await self.locations.get_descendant_ids(root_id, max_depth=self.max_expansion)
        return set(ids)

    async def subtree_ids(self, root_id: UUID) -> set[UUID]:
        """
        Get ``root_id`` plus every id below it.

        Args:
            root_id: Location UUID

        Returns:
            Set of subtree UUIDs
        """
        return {root_id} | await self.descendant_ids(root_id)

    async def is_descendant(self, candidate_id: UUID, root_id: UUID) -> bool:
        """Check whether ``candidate_id`` lies strictly below ``root_id``."""
        return candidate_id in await self.descendant_ids(root_id)

    async def _expand_breadth_first(self, root_id: UUID) -> set[UUID]:
        visited: set[UUID] = {root_id}
        frontier: list[UUID] = [root_id]
        found: set[UUID] = set()

        while frontier:
            if len(found) >= self.max_expansion:
                logger.warning(
                    "Descendant expansion stopped at the iteration cap",
                    extra={"location_id": str(root_id), "cap": self.max_expansion},
                )
                break

            next_frontier: list[UUID] = []
            for child_id in await self.locations.get_child_ids(frontier):
                if child_id in visited:
                    continue
                visited.add(child_id)
                found.add(child_id)
                next_frontier.append(child_id)
            frontier = next_frontier

        return found
