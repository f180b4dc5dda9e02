"""
Location Path Maintenance

Keeps the materialized path of storage locations consistent. Every location
caches ``path_names`` and ``path_ids`` (its ancestor chain from the top-level
root down to and including itself) and ``depth`` (number of ancestors).

Invariants after every operation in this module:

    len(path_names) == len(path_ids) == depth + 1
    path_names[-1] == name
    path_ids[-1] == str(id)

The functions here are pure: they mutate the ORM objects handed to them and
return the ones that changed. Persisting them is the caller's job
(``LocationRepository.update_batch``) so that a rename or move is written as
one batch.
"""

import logging
from collections import deque
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from uuid import UUID, uuid4

from stuff_tracker.models.orm.location import StorageLocation

logger = logging.getLogger(__name__)

# Parent path used for top-level locations: depth -1 becomes 0 after increment
ROOT_PATH: tuple[list[str], list[str], int] = ([], [], -1)


def _touch(location: StorageLocation, now: datetime) -> None:
    location.updated_at = now


def _replace_prefix(values: Sequence[str], old_prefix: Sequence[str], new_prefix: Sequence[str]) -> list[str] | None:
    """Return ``values`` with ``old_prefix`` swapped for ``new_prefix``, or None if it doesn't start with it."""
    n = len(old_prefix)
    if len(values) < n or list(values[:n]) != list(old_prefix):
        return None
    return list(new_prefix) + list(values[n:])


def parent_path(parent: StorageLocation | None) -> tuple[list[str], list[str], int]:
    """
    Get the (path_names, path_ids, depth) base a child of ``parent`` extends.

    None (top level) and an unresolved parent are treated identically.
    """
    if parent is None:
        return [], [], ROOT_PATH[2]
    return list(parent.path_names), list(parent.path_ids), parent.depth


def has_consistent_path(location: StorageLocation) -> bool:
    """Check the path invariants for a single location."""
    names = location.path_names or []
    ids = location.path_ids or []
    return (
        len(names) == len(ids) == location.depth + 1
        and names[-1] == location.name
        and ids[-1] == str(location.id)
    )


def build_create_path(location: StorageLocation, parent: StorageLocation | None) -> StorageLocation:
    """
    Compute the path of a location about to be created.

    Args:
        location: New, not yet persisted location (``id`` assigned here if missing)
        parent: Current row of the requested parent, or None. When the
            location names a parent that could not be resolved the location
            degrades to a top-level path of length 1.

    Returns:
        The same location with path_names, path_ids and depth set
    """
    if location.id is None:
        location.id = uuid4()

    if location.parent_id is not None and parent is None:
        logger.warning(
            "Parent location not resolvable at create time, storing as top-level path",
            extra={"location_id": str(location.id), "parent_id": str(location.parent_id)},
        )

    names, ids, depth = parent_path(parent)
    location.path_names = names + [location.name]
    location.path_ids = ids + [str(location.id)]
    location.depth = depth + 1
    return location


def apply_rename(
    location: StorageLocation,
    new_name: str,
    candidates: Iterable[StorageLocation],
) -> list[StorageLocation]:
    """
    Rename a location and propagate the new name into its subtree's cached paths.

    The renamed location keeps its ``path_ids``; only the trailing element of
    ``path_names`` changes. Every candidate whose ``path_ids`` starts with the
    location's ids gets the old name prefix replaced by the new one, keeping
    its suffix. Candidates outside the subtree (siblings, ancestors, other
    branches sharing the same names) are left untouched.

    Args:
        location: Location being renamed
        new_name: Validated new name
        candidates: Locations of the same owner deeper than ``location``

    Returns:
        All locations that changed, the renamed one first
    """
    now = datetime.now(UTC)
    old_names = list(location.path_names or [])
    old_ids = list(location.path_ids or [])

    location.name = new_name
    _touch(location, now)

    if not old_names or not old_ids:
        logger.warning(
            "Renamed location had no cached path, rebuilding as top-level path",
            extra={"location_id": str(location.id)},
        )
        location.path_names = [new_name]
        location.path_ids = [str(location.id)]
        location.depth = 0
        return [location]

    new_names = old_names[:-1] + [new_name]
    location.path_names = new_names
    changed = [location]

    if new_names == old_names:
        return changed

    prefix_len = len(old_ids)
    for candidate in candidates:
        ids = candidate.path_ids or []
        if len(ids) <= prefix_len or list(ids[:prefix_len]) != old_ids:
            continue
        candidate.path_names = new_names + list(candidate.path_names[prefix_len:])
        _touch(candidate, now)
        changed.append(candidate)

    return changed


def apply_move(
    location: StorageLocation,
    new_parent: StorageLocation | None,
    descendants: Iterable[StorageLocation],
) -> list[StorageLocation]:
    """
    Re-parent a location and rewrite the cached paths of its whole subtree.

    Args:
        location: Location being moved
        new_parent: Current row of the new parent, or None for top level
        descendants: Every descendant of ``location``

    Returns:
        All locations that changed, the moved one first
    """
    now = datetime.now(UTC)
    old_names = list(location.path_names or [])
    old_ids = list(location.path_ids or [])
    old_depth = location.depth

    base_names, base_ids, base_depth = parent_path(new_parent)
    location.parent_id = new_parent.id if new_parent is not None else None
    location.depth = base_depth + 1
    location.path_names = base_names + [location.name]
    location.path_ids = base_ids + [str(location.id)]
    _touch(location, now)

    delta = location.depth - old_depth
    changed = [location]

    for descendant in descendants:
        descendant.depth = descendant.depth + delta

        names = _replace_prefix(descendant.path_names or [], old_names, location.path_names)
        if names is not None:
            descendant.path_names = names

        ids = _replace_prefix(descendant.path_ids or [], old_ids, location.path_ids)
        if ids is not None:
            descendant.path_ids = ids

        if names is None or ids is None:
            logger.warning(
                "Descendant path did not start with the moved location's path",
                extra={"location_id": str(descendant.id), "moved_location_id": str(location.id)},
            )

        _touch(descendant, now)
        changed.append(descendant)

    return changed


def rebuild_paths(locations: Sequence[StorageLocation], max_nodes: int | None = None) -> list[StorageLocation]:
    """
    Recompute every cached path from parent pointers and current names.

    Walks the forest top-down. A location whose parent is not among
    ``locations`` is treated as top-level. Locations unreachable from any
    top-level node (only possible with a corrupt parent chain) are left as-is.

    Args:
        locations: All locations of one owner
        max_nodes: Optional cap on the number of visited nodes

    Returns:
        The locations whose path_names, path_ids or depth changed
    """
    now = datetime.now(UTC)
    by_id: dict[UUID, StorageLocation] = {loc.id: loc for loc in locations}
    children: dict[UUID, list[StorageLocation]] = {}
    queue: deque[tuple[StorageLocation, tuple[list[str], list[str], int]]] = deque()

    for loc in locations:
        if loc.parent_id is not None and loc.parent_id in by_id:
            children.setdefault(loc.parent_id, []).append(loc)
        else:
            if loc.parent_id is not None:
                logger.warning(
                    "Location parent not found while rebuilding paths, treating as top-level",
                    extra={"location_id": str(loc.id), "parent_id": str(loc.parent_id)},
                )
            queue.append((loc, ROOT_PATH))

    changed: list[StorageLocation] = []
    visited: set[UUID] = set()
    limit = max_nodes if max_nodes is not None else len(locations)

    while queue and len(visited) < limit:
        loc, (names, ids, depth) = queue.popleft()
        if loc.id in visited:
            continue
        visited.add(loc.id)

        new_names = names + [loc.name]
        new_ids = ids + [str(loc.id)]
        new_depth = depth + 1
        if (list(loc.path_names or []), list(loc.path_ids or []), loc.depth) != (new_names, new_ids, new_depth):
            loc.path_names = new_names
            loc.path_ids = new_ids
            loc.depth = new_depth
            _touch(loc, now)
            changed.append(loc)

        for child in children.get(loc.id, []):
            queue.append((child, (new_names, new_ids, new_depth)))

    if queue and len(visited) >= limit:
        logger.warning(
            f"Path rebuild stopped at the {limit} node cap, "
            f"{len(locations) - len(visited)} location(s) not visited"
        )
    elif len(visited) < len(locations):
        logger.warning(
            f"Path rebuild left {len(locations) - len(visited)} unreachable location(s) untouched"
        )

    return changed
