"""Unit tests for RelocationProtocol."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from stuff_tracker.core.exceptions import CycleRejectedError, NotFoundError
from stuff_tracker.models.orm.location import StorageLocation
from stuff_tracker.services.location_paths import build_create_path
from stuff_tracker.services.relocation import Relocation, RelocationProtocol, RelocationState


def make_location(name, parent=None, owner_id=None):
    location = StorageLocation(
        id=uuid4(),
        owner_id=owner_id or uuid4(),
        name=name,
        parent_id=parent.id if parent is not None else None,
    )
    return build_create_path(location, parent)


@pytest.fixture
def owner_id():
    return uuid4()


@pytest.fixture
def tree(owner_id):
    """Root -> A -> B, Root -> C."""
    root = make_location("Root", owner_id=owner_id)
    a = make_location("A", root, owner_id)
    b = make_location("B", a, owner_id)
    c = make_location("C", root, owner_id)
    return {"Root": root, "A": a, "B": b, "C": c}


@pytest.fixture
def mock_locations(tree):
    """Location repository backed by the in-memory tree."""
    by_id = {loc.id: loc for loc in tree.values()}
    repo = MagicMock()
    repo.get_by_id_and_owner = AsyncMock(
        side_effect=lambda id, owner_id: by_id.get(id) if by_id.get(id) and by_id[id].owner_id == owner_id else None
    )
    repo.get_by_ids = AsyncMock(side_effect=lambda ids: [by_id[i] for i in ids])
    repo.update_batch = AsyncMock()
    return repo


@pytest.fixture
def mock_scope(tree):
    """Scope resolver answering from the in-memory tree."""
    descendants = {
        tree["Root"].id: {tree["A"].id, tree["B"].id, tree["C"].id},
        tree["A"].id: {tree["B"].id},
        tree["B"].id: set(),
        tree["C"].id: set(),
    }
    scope = MagicMock()
    scope.descendant_ids = AsyncMock(side_effect=lambda root_id: set(descendants[root_id]))
    return scope


@pytest.fixture
def protocol(mock_locations, mock_scope):
    return RelocationProtocol(mock_locations, mock_scope)


@pytest.mark.unit
class TestRelocationValidation:
    """Tests for the ordered validation rules."""

    @pytest.mark.asyncio
    async def test_missing_new_parent_is_rejected_first(self, protocol, owner_id):
        """An unknown target is reported even when the moved location is unknown too."""
        relocation = await protocol.validate(
            Relocation(location_id=uuid4(), owner_id=owner_id, new_parent_id=uuid4())
        )

        assert relocation.state is RelocationState.REJECTED
        assert isinstance(relocation.rejection, NotFoundError)
        assert relocation.rejection.message == "Target parent location not found"

    @pytest.mark.asyncio
    async def test_foreign_parent_is_not_found(self, protocol, tree):
        """A parent owned by someone else behaves like a missing one."""
        relocation = await protocol.validate(
            Relocation(location_id=tree["A"].id, owner_id=uuid4(), new_parent_id=tree["C"].id)
        )

        assert isinstance(relocation.rejection, NotFoundError)

    @pytest.mark.asyncio
    async def test_missing_location_is_rejected(self, protocol, owner_id, tree):
        relocation = await protocol.validate(
            Relocation(location_id=uuid4(), owner_id=owner_id, new_parent_id=tree["C"].id)
        )

        assert isinstance(relocation.rejection, NotFoundError)
        assert relocation.rejection.message == "Location not found"

    @pytest.mark.asyncio
    async def test_move_to_self_is_a_cycle(self, protocol, owner_id, tree):
        relocation = await protocol.validate(
            Relocation(location_id=tree["A"].id, owner_id=owner_id, new_parent_id=tree["A"].id)
        )

        assert isinstance(relocation.rejection, CycleRejectedError)
        assert relocation.rejection.message == "Cannot move location to itself"

    @pytest.mark.asyncio
    async def test_move_into_descendant_is_a_cycle(self, protocol, owner_id, tree):
        relocation = await protocol.validate(
            Relocation(location_id=tree["A"].id, owner_id=owner_id, new_parent_id=tree["B"].id)
        )

        assert isinstance(relocation.rejection, CycleRejectedError)
        assert relocation.rejection.message == "Cannot move location into its own subtree"

    @pytest.mark.asyncio
    async def test_move_to_top_level_is_valid(self, protocol, owner_id, tree):
        relocation = await protocol.validate(
            Relocation(location_id=tree["B"].id, owner_id=owner_id, new_parent_id=None)
        )

        assert relocation.state is RelocationState.VALIDATED
        assert relocation.new_parent is None


@pytest.mark.unit
class TestRelocate:
    """Tests for validate-then-apply."""

    @pytest.mark.asyncio
    async def test_relocate_rewrites_subtree(self, protocol, mock_locations, owner_id, tree):
        """Moving A under C rewrites A and B in one batch."""
        moved = await protocol.relocate(tree["A"].id, tree["C"].id, owner_id)

        assert moved is tree["A"]
        assert tree["B"].path_names == ["Root", "C", "A", "B"]
        assert tree["B"].depth == 3
        mock_locations.update_batch.assert_awaited_once()
        assert mock_locations.update_batch.call_args[0][0] == [tree["A"], tree["B"]]

    @pytest.mark.asyncio
    async def test_rejected_relocation_writes_nothing(self, protocol, mock_locations, owner_id, tree):
        """A cycle leaves every node unchanged."""
        before = {name: (list(loc.path_names), loc.depth, loc.parent_id) for name, loc in tree.items()}

        with pytest.raises(CycleRejectedError):
            await protocol.relocate(tree["Root"].id, tree["B"].id, owner_id)

        mock_locations.update_batch.assert_not_awaited()
        after = {name: (list(loc.path_names), loc.depth, loc.parent_id) for name, loc in tree.items()}
        assert after == before

    @pytest.mark.asyncio
    async def test_move_to_current_parent_is_noop(self, protocol, mock_locations, owner_id, tree):
        """Re-parenting onto the current parent changes nothing."""
        moved = await protocol.relocate(tree["B"].id, tree["A"].id, owner_id)

        assert moved.path_names == ["Root", "A", "B"]
        mock_locations.update_batch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_apply_requires_validated_state(self, protocol, owner_id):
        relocation = Relocation(location_id=uuid4(), owner_id=owner_id, new_parent_id=None)

        with pytest.raises(RuntimeError):
            await protocol.apply(relocation)
