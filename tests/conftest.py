"""
Pytest fixtures for Stuff Tracker API testing infrastructure.

This module provides:
1. Database fixtures (in-memory SQLite with SQLAlchemy async)
2. Owner fixtures
3. Tree-building helpers shared by integration tests
"""

import os
import sys
from collections.abc import AsyncGenerator, Callable
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Set environment variables BEFORE any imports that might load settings
# This must happen at module level, not in fixtures, to run before test collection
os.environ.setdefault("STUFF_TRACKER_ENVIRONMENT", "testing")
os.environ.setdefault("STUFF_TRACKER_SECRET_KEY",
                      "test-secret-key-for-testing-must-be-32-chars")
os.environ.setdefault("STUFF_TRACKER_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("STUFF_TRACKER_DATABASE_URL_SYNC", "sqlite://")


# ==================== CONFIGURATION ====================

TEST_DATABASE_URL = "sqlite+aiosqlite://"


# ==================== SESSION FIXTURES ====================


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Reset cached settings and global database state once per session."""
    from stuff_tracker.config import clear_settings_cache
    from stuff_tracker.core.database import reset_db_state

    clear_settings_cache()
    reset_db_state()

    yield

    reset_db_state()


# ==================== DATABASE FIXTURES ====================


@pytest_asyncio.fixture
async def async_engine():
    """Create a fresh in-memory database with every table for one test.

    StaticPool keeps a single connection so every session in the test sees
    the same in-memory database.
    """
    from stuff_tracker.core.database import enable_sqlite_foreign_keys
    from stuff_tracker.models.orm import Base

    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def async_session_factory(async_engine):
    """Create async session factory."""
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(async_session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a database session for each test.

    The database itself is discarded with the engine after the test.
    """
    async with async_session_factory() as session:
        yield session
        await session.rollback()


# ==================== TEST DATA FIXTURES ====================


@pytest.fixture
def owner_id() -> UUID:
    """Owner of the test data."""
    return uuid4()


@pytest.fixture
def other_owner_id() -> UUID:
    """A second owner, for isolation checks."""
    return uuid4()


@pytest.fixture
def make_tree(db_session) -> Callable:
    """
    Build a location tree from nested dicts.

    Usage:
        nodes = await make_tree(owner_id, {"House": {"Kitchen": {"Drawer": {}}}})
        nodes["Drawer"].path_names == ["House", "Kitchen", "Drawer"]
    """
    from stuff_tracker.services.location_service import LocationService

    async def _make(owner: UUID, spec: dict, parent_id: UUID | None = None, nodes: dict | None = None):
        service = LocationService(db_session)
        nodes = {} if nodes is None else nodes
        for name, children in spec.items():
            location = await service.create(owner, name, parent_id=parent_id)
            nodes[name] = location
            await _make(owner, children, location.id, nodes)
        return nodes

    return _make


# ==================== MARKERS ====================


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, mocked dependencies)")
    config.addinivalue_line(
        "markers", "integration: Integration tests (real database)"
    )
