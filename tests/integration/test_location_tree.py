"""
Integration tests for the location tree.

Runs LocationService against a real database to check that cached paths
stay consistent with parent pointers through create, rename, move, delete
and rebuild.
"""

from uuid import uuid4

import pytest
from sqlalchemy import select

from stuff_tracker.core.exceptions import (
    CycleRejectedError,
    LocationHasContentsError,
    NotFoundError,
    ValidationFailedError,
)
from stuff_tracker.models.orm.item import Item
from stuff_tracker.models.orm.location import StorageLocation
from stuff_tracker.repositories.location import LocationRepository
from stuff_tracker.services.item_service import ItemService
from stuff_tracker.services.location_paths import has_consistent_path
from stuff_tracker.services.location_service import LocationService


async def load_all(db_session, owner_id):
    """Reload every location of an owner from the database."""
    result = await db_session.execute(
        select(StorageLocation)
        .where(StorageLocation.owner_id == owner_id)
        .execution_options(populate_existing=True)
    )
    return {loc.name: loc for loc in result.scalars().all()}


def walk_parent_ids(locations, location):
    """Ancestor ids from the root down to ``location``, following parent pointers."""
    by_id = {loc.id: loc for loc in locations}
    chain = []
    current = location
    while current is not None:
        chain.append(str(current.id))
        current = by_id.get(current.parent_id)
    return list(reversed(chain))


def assert_tree_consistent(locations):
    """Check every cached path against the parent chain."""
    for loc in locations:
        assert has_consistent_path(loc), loc
        assert loc.path_ids == walk_parent_ids(locations, loc)


@pytest.mark.integration
class TestCreate:
    """Tests for location creation."""

    async def test_nested_create_builds_paths(self, db_session, owner_id, make_tree):
        """House -> Kitchen -> Drawer produces the full breadcrumb chain."""
        nodes = await make_tree(owner_id, {"House": {"Kitchen": {"Drawer": {}}}})

        drawer = nodes["Drawer"]
        assert drawer.path_names == ["House", "Kitchen", "Drawer"]
        assert drawer.path_ids == [str(nodes["House"].id), str(nodes["Kitchen"].id), str(drawer.id)]
        assert drawer.depth == 2

    async def test_create_under_missing_parent(self, db_session, owner_id):
        service = LocationService(db_session)

        with pytest.raises(NotFoundError):
            await service.create(owner_id, "Shelf", parent_id=uuid4())

    async def test_create_under_foreign_parent(self, db_session, owner_id, other_owner_id, make_tree):
        """Another owner's location cannot be used as a parent."""
        nodes = await make_tree(other_owner_id, {"Their House": {}})
        service = LocationService(db_session)

        with pytest.raises(NotFoundError):
            await service.create(owner_id, "Shelf", parent_id=nodes["Their House"].id)

    @pytest.mark.parametrize("name", ["", "   ", "x" * 201])
    async def test_invalid_names_rejected(self, db_session, owner_id, name):
        service = LocationService(db_session)

        with pytest.raises(ValidationFailedError):
            await service.create(owner_id, name)

    async def test_name_is_trimmed(self, db_session, owner_id):
        service = LocationService(db_session)

        location = await service.create(owner_id, "  Attic  ")

        assert location.name == "Attic"
        assert location.path_names == ["Attic"]


@pytest.mark.integration
class TestRename:
    """Tests for rename propagation."""

    async def test_rename_propagates_to_subtree(self, db_session, owner_id, make_tree):
        await make_tree(owner_id, {"House": {"Kitchen": {"Drawer": {}}, "Garage": {}}})
        service = LocationService(db_session)
        nodes = await load_all(db_session, owner_id)

        await service.rename(nodes["Kitchen"].id, "Cookhouse", owner_id)

        nodes = await load_all(db_session, owner_id)
        assert nodes["Drawer"].path_names == ["House", "Cookhouse", "Drawer"]
        assert nodes["Garage"].path_names == ["House", "Garage"]
        assert_tree_consistent(list(nodes.values()))

    async def test_rename_leaves_same_named_branch_alone(self, db_session, owner_id, make_tree):
        """Two houses with a Kitchen each: renaming one house touches only its kitchen."""
        first = await make_tree(owner_id, {"House": {"Kitchen": {}}})
        second = await make_tree(owner_id, {"House": {"Kitchen": {}}})
        service = LocationService(db_session)

        await service.rename(first["House"].id, "Cabin", owner_id)

        await db_session.refresh(first["Kitchen"])
        await db_session.refresh(second["Kitchen"])
        assert first["Kitchen"].path_names == ["Cabin", "Kitchen"]
        assert second["Kitchen"].path_names == ["House", "Kitchen"]

    async def test_rename_does_not_touch_other_owner(self, db_session, owner_id, other_owner_id, make_tree):
        mine = await make_tree(owner_id, {"House": {}})
        theirs = await make_tree(other_owner_id, {"House": {"Kitchen": {}}})
        service = LocationService(db_session)

        await service.rename(mine["House"].id, "Home", owner_id)

        await db_session.refresh(theirs["Kitchen"])
        assert theirs["Kitchen"].path_names == ["House", "Kitchen"]

    async def test_rename_foreign_location_is_not_found(self, db_session, owner_id, other_owner_id, make_tree):
        theirs = await make_tree(other_owner_id, {"House": {}})
        service = LocationService(db_session)

        with pytest.raises(NotFoundError):
            await service.rename(theirs["House"].id, "Mine Now", owner_id)


@pytest.mark.integration
class TestMove:
    """Tests for subtree relocation."""

    async def test_move_rewrites_subtree(self, db_session, owner_id, make_tree):
        await make_tree(owner_id, {"House": {"Kitchen": {"Drawer": {}}, "Garage": {}}})
        service = LocationService(db_session)
        nodes = await load_all(db_session, owner_id)

        await service.move(nodes["Kitchen"].id, nodes["Garage"].id, owner_id)

        nodes = await load_all(db_session, owner_id)
        assert nodes["Kitchen"].parent_id == nodes["Garage"].id
        assert nodes["Drawer"].path_names == ["House", "Garage", "Kitchen", "Drawer"]
        assert nodes["Drawer"].depth == 3
        assert_tree_consistent(list(nodes.values()))

    async def test_move_to_top_level(self, db_session, owner_id, make_tree):
        await make_tree(owner_id, {"House": {"Kitchen": {"Drawer": {}}}})
        service = LocationService(db_session)
        nodes = await load_all(db_session, owner_id)

        await service.move(nodes["Kitchen"].id, None, owner_id)

        nodes = await load_all(db_session, owner_id)
        assert nodes["Kitchen"].parent_id is None
        assert nodes["Kitchen"].depth == 0
        assert nodes["Drawer"].path_names == ["Kitchen", "Drawer"]
        assert_tree_consistent(list(nodes.values()))

    @pytest.mark.parametrize("strategy", ["cte", "bfs"])
    async def test_move_into_descendant_rejected(self, db_session, owner_id, make_tree, strategy):
        """A cycle is refused and the tree is left exactly as it was."""
        nodes = await make_tree(owner_id, {"Root": {"A": {"B": {"C": {}}}}})
        service = LocationService(db_session, strategy=strategy)
        before = {
            name: (loc.parent_id, list(loc.path_ids), loc.depth)
            for name, loc in (await load_all(db_session, owner_id)).items()
        }

        with pytest.raises(CycleRejectedError, match="subtree"):
            await service.move(nodes["A"].id, nodes["C"].id, owner_id)

        after = {
            name: (loc.parent_id, list(loc.path_ids), loc.depth)
            for name, loc in (await load_all(db_session, owner_id)).items()
        }
        assert after == before

    async def test_move_to_self_rejected(self, db_session, owner_id, make_tree):
        nodes = await make_tree(owner_id, {"Root": {}})
        service = LocationService(db_session)

        with pytest.raises(CycleRejectedError, match="itself"):
            await service.move(nodes["Root"].id, nodes["Root"].id, owner_id)

    async def test_move_to_missing_parent(self, db_session, owner_id, make_tree):
        nodes = await make_tree(owner_id, {"Root": {}})
        service = LocationService(db_session)

        with pytest.raises(NotFoundError, match="Target parent"):
            await service.move(nodes["Root"].id, uuid4(), owner_id)

    async def test_move_is_idempotent(self, db_session, owner_id, make_tree):
        """Applying the same move twice yields the same state as once."""
        await make_tree(owner_id, {"House": {"Kitchen": {"Drawer": {}}, "Garage": {}}})
        service = LocationService(db_session)
        nodes = await load_all(db_session, owner_id)

        await service.move(nodes["Kitchen"].id, nodes["Garage"].id, owner_id)
        once = {n: (list(loc.path_ids), loc.depth) for n, loc in (await load_all(db_session, owner_id)).items()}
        await service.move(nodes["Kitchen"].id, nodes["Garage"].id, owner_id)
        twice = {n: (list(loc.path_ids), loc.depth) for n, loc in (await load_all(db_session, owner_id)).items()}

        assert once == twice


@pytest.mark.integration
class TestDescendantStrategies:
    """Tests that both descendant strategies agree."""

    async def test_cte_and_bfs_agree(self, db_session, owner_id, make_tree):
        nodes = await make_tree(
            owner_id,
            {"Root": {"A": {"B": {"C": {}}, "B2": {}}, "D": {"E": {}}}, "Other": {"X": {}}},
        )
        cte = LocationService(db_session, strategy="cte").scope
        bfs = LocationService(db_session, strategy="bfs").scope

        for location in nodes.values():
            assert await cte.descendant_ids(location.id) == await bfs.descendant_ids(location.id)

        expected = {nodes[n].id for n in ("A", "B", "C", "B2", "D", "E")}
        assert await cte.descendant_ids(nodes["Root"].id) == expected

    async def test_repository_descendants_exclude_root(self, db_session, owner_id, make_tree):
        nodes = await make_tree(owner_id, {"Root": {"A": {"B": {"C": {}}}}})
        repo = LocationRepository(db_session)

        ids = await repo.get_descendant_ids(nodes["Root"].id)

        assert set(ids) == {nodes["A"].id, nodes["B"].id, nodes["C"].id}

    async def test_repository_descendants_respect_depth_cap(self, db_session, owner_id, make_tree):
        nodes = await make_tree(owner_id, {"Root": {"A": {"B": {"C": {}}}}})
        repo = LocationRepository(db_session)

        ids = await repo.get_descendant_ids(nodes["Root"].id, max_depth=2)

        assert set(ids) == {nodes["A"].id, nodes["B"].id}


@pytest.mark.integration
class TestDelete:
    """Tests for location deletion."""

    async def test_delete_with_contents_requires_force(self, db_session, owner_id, make_tree):
        nodes = await make_tree(owner_id, {"House": {"Kitchen": {"Drawer": {}}}})
        items = ItemService(db_session)
        await items.create(owner_id, "Lamp", nodes["House"].id)
        await items.create(owner_id, "Spoon", nodes["Drawer"].id)
        await items.create(owner_id, "Fork", nodes["Drawer"].id)
        service = LocationService(db_session)

        with pytest.raises(LocationHasContentsError) as exc_info:
            await service.delete(nodes["House"].id, owner_id)

        assert exc_info.value.child_count == 1
        assert exc_info.value.item_count == 1
        assert exc_info.value.total_descendant_items == 3
        assert len(await load_all(db_session, owner_id)) == 3

    async def test_forced_delete_removes_subtree_and_items(self, db_session, owner_id, make_tree):
        nodes = await make_tree(owner_id, {"House": {"Kitchen": {"Drawer": {}}}, "Shed": {}})
        items = ItemService(db_session)
        await items.create(owner_id, "Spoon", nodes["Drawer"].id)
        await items.create(owner_id, "Rake", nodes["Shed"].id)
        service = LocationService(db_session)

        deleted = await service.delete(nodes["House"].id, owner_id, force=True)

        assert deleted == 3
        assert set(await load_all(db_session, owner_id)) == {"Shed"}
        remaining = (await db_session.execute(select(Item.name))).scalars().all()
        assert remaining == ["Rake"]

    async def test_delete_subtree_counts_cascaded_rows(self, db_session, owner_id, other_owner_id, make_tree):
        """Every location in the subtree is counted, not just the ones the statement reached."""
        nodes = await make_tree(owner_id, {"House": {"Kitchen": {"Drawer": {"Box": {}}}, "Garage": {}}})
        theirs = await make_tree(other_owner_id, {"Their Shed": {}})
        repo = LocationRepository(db_session)
        subtree = [nodes[name].id for name in ("House", "Kitchen", "Drawer", "Box", "Garage")]

        deleted = await repo.delete_subtree([*subtree, uuid4(), theirs["Their Shed"].id], owner_id)

        assert deleted == 5
        assert await load_all(db_session, owner_id) == {}
        assert set(await load_all(db_session, other_owner_id)) == {"Their Shed"}

    async def test_delete_empty_location(self, db_session, owner_id, make_tree):
        nodes = await make_tree(owner_id, {"Shed": {}})
        service = LocationService(db_session)

        assert await service.delete(nodes["Shed"].id, owner_id) == 1

    async def test_delete_missing_location(self, db_session, owner_id):
        service = LocationService(db_session)

        with pytest.raises(NotFoundError):
            await service.delete(uuid4(), owner_id, force=True)


@pytest.mark.integration
class TestReads:
    """Tests for list, detail and tree reads."""

    async def test_list_top_level_with_counts(self, db_session, owner_id, other_owner_id, make_tree):
        nodes = await make_tree(owner_id, {"House": {"Kitchen": {}, "Garage": {}}, "Attic": {}})
        await make_tree(other_owner_id, {"Elsewhere": {}})
        await ItemService(db_session).create(owner_id, "Box", nodes["House"].id)
        service = LocationService(db_session)

        summaries = await service.list_top_level(owner_id)

        assert [(s.location.name, s.child_count, s.item_count) for s in summaries] == [
            ("Attic", 0, 0),
            ("House", 2, 1),
        ]

    async def test_get_detail(self, db_session, owner_id, make_tree):
        nodes = await make_tree(owner_id, {"House": {"Kitchen": {"Drawer": {}}, "Garage": {}}})
        await ItemService(db_session).create(owner_id, "Lamp", nodes["House"].id, quantity=2)
        service = LocationService(db_session)

        location, children, items = await service.get_detail(nodes["House"].id, owner_id)

        assert location.id == nodes["House"].id
        assert [(c.location.name, c.child_count) for c in children] == [("Garage", 0), ("Kitchen", 1)]
        assert [(i.name, i.quantity) for i in items] == [("Lamp", 2)]

    async def test_tree_ordered_by_depth_then_name(self, db_session, owner_id, make_tree):
        await make_tree(owner_id, {"B": {"Z": {}, "Y": {}}, "A": {"X": {}}})
        service = LocationService(db_session)

        tree = await service.get_tree(owner_id)

        assert [(loc.depth, loc.name) for loc in tree] == [
            (0, "A"), (0, "B"), (1, "X"), (1, "Y"), (1, "Z"),
        ]


@pytest.mark.integration
class TestRebuildPaths:
    """Tests for path repair."""

    async def test_rebuild_repairs_drifted_paths(self, db_session, owner_id, make_tree):
        nodes = await make_tree(owner_id, {"House": {"Kitchen": {"Drawer": {}}}})
        nodes["Drawer"].path_names = ["Wrong"]
        nodes["Drawer"].path_ids = []
        nodes["Kitchen"].depth = 5
        await db_session.flush()
        service = LocationService(db_session)

        rebuilt = await service.rebuild_paths(owner_id)

        assert rebuilt == 2
        reloaded = await load_all(db_session, owner_id)
        assert reloaded["Drawer"].path_names == ["House", "Kitchen", "Drawer"]
        assert_tree_consistent(list(reloaded.values()))

    async def test_rebuild_of_consistent_tree_is_noop(self, db_session, owner_id, make_tree):
        await make_tree(owner_id, {"House": {"Kitchen": {}}})

        assert await LocationService(db_session).rebuild_paths(owner_id) == 0
