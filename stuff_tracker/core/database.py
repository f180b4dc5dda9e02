"""
Database Configuration and Session Management

Provides async SQLAlchemy engine and session factory.
PostgreSQL (asyncpg) in production; any async dialect works for local runs.
"""

import ssl
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from fastapi import Depends
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from stuff_tracker.config import Settings, get_settings
from stuff_tracker.models.orm.base import Base  # noqa: F401 - imported for Alembic


def _prepare_asyncpg_url(url: str) -> tuple[str, dict]:
    """
    Prepare a database URL for asyncpg compatibility.

    asyncpg doesn't accept 'sslmode' as a URL query parameter - it requires
    SSL to be configured via connect_args instead. This function extracts
    sslmode from the URL and converts it to the appropriate SSL context.

    Args:
        url: PostgreSQL database URL (may contain sslmode parameter)

    Returns:
        Tuple of (cleaned_url without sslmode, connect_args dict with ssl config)
    """
    parsed = urlparse(url)
    query_params = parse_qs(parsed.query)
    connect_args: dict = {}

    if "sslmode" in query_params:
        sslmode = query_params.pop("sslmode")[0]

        if sslmode in ("require", "verify-ca", "verify-full"):
            ssl_context = ssl.create_default_context()

            if sslmode == "require":
                ssl_context.check_hostname = False
                ssl_context.verify_mode = ssl.CERT_NONE
            elif sslmode == "verify-ca":
                ssl_context.check_hostname = False
                ssl_context.verify_mode = ssl.CERT_REQUIRED
            # verify-full uses default (check_hostname=True, CERT_REQUIRED)

            connect_args["ssl"] = ssl_context
        elif sslmode == "prefer":
            connect_args["ssl"] = "prefer"

    new_query = urlencode(query_params, doseq=True)
    cleaned_url = urlunparse(parsed._replace(query=new_query))

    return cleaned_url, connect_args


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """
    Turn on foreign key enforcement for every new SQLite connection.

    SQLite ignores ON DELETE CASCADE unless the pragma is set per connection.

    Args:
        engine: Async engine bound to a SQLite database
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(settings: Settings) -> AsyncEngine:
    """
    Create an async engine for the configured database.

    PostgreSQL gets a sized connection pool and asyncpg SSL handling;
    SQLite gets foreign key enforcement and no pool sizing.

    Args:
        settings: Application settings

    Returns:
        New AsyncEngine
    """
    if settings.is_sqlite:
        engine = create_async_engine(settings.database_url, echo=settings.debug)
        enable_sqlite_foreign_keys(engine)
        return engine

    db_url, connect_args = _prepare_asyncpg_url(settings.database_url)
    return create_async_engine(
        db_url,
        echo=settings.debug,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


# Global engine and session factory (initialized on startup)
_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine(settings: Settings | None = None) -> AsyncEngine:
    """
    Get or create the async SQLAlchemy engine.

    Args:
        settings: Optional settings override (for testing)

    Returns:
        AsyncEngine instance
    """
    global _engine

    if _engine is None:
        _engine = build_engine(settings or get_settings())

    return _engine


def get_session_factory(settings: Settings | None = None) -> async_sessionmaker[AsyncSession]:
    """
    Get or create the async session factory.

    Args:
        settings: Optional settings override (for testing)

    Returns:
        async_sessionmaker instance
    """
    global _async_session_factory

    if _async_session_factory is None:
        engine = get_engine(settings)
        _async_session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    return _async_session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting database sessions in FastAPI routes.

    One session per request: every mutation made while handling the request
    is committed together, or rolled back together on error.

    Yields:
        AsyncSession that is automatically closed after request
    """
    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# Type alias for dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db)]


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for getting database sessions outside of FastAPI routes.

    Useful for scripts and maintenance commands.

    Usage:
        async with get_db_context() as db:
            await LocationService(db).rebuild_paths(owner_id)
    """
    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """
    Initialize database connection and verify connectivity.

    Called on application startup.
    """
    engine = get_engine()

    async with engine.begin() as conn:
        await conn.run_sync(lambda _: None)


async def close_db() -> None:
    """
    Close database connections.

    Called on application shutdown.
    """
    global _engine, _async_session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None


def reset_db_state() -> None:
    """
    Reset database state (for testing).

    Clears the engine and session factory so they are recreated
    with fresh settings on next access.
    """
    global _engine, _async_session_factory
    _engine = None
    _async_session_factory = None
