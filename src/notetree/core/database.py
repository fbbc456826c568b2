"""
Database Configuration

Async SQLAlchemy 2.0 setup with lazy engine creation and session management.
PostgreSQL (asyncpg + pgvector) in production; SQLite (aiosqlite) is accepted
through DATABASE_URL_OVERRIDE for local runs and the unit test suite.

Design:
    - Lazy initialization: engine created on first use, not at import.
    - get_session_factory: returns a reusable async session maker.
    - get_db: FastAPI dependency that yields a request-scoped session.
    - init_models: idempotent schema creation (no migration tooling).
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from notetree.core.config import settings
from notetree.models import Base
from notetree.models.distance import sqlite_l2_distance

logger = logging.getLogger(__name__)

# Module-level singletons (lazy)
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _on_sqlite_connect(dbapi_connection: Any, connection_record: Any) -> None:
    """Enforce foreign keys and register the vector distance function."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
    dbapi_connection.create_function("vector_l2_distance", 2, sqlite_l2_distance)


def build_engine(url: str) -> AsyncEngine:
    """
    Create an async engine for ``url``.

    In-memory SQLite URLs share one connection (StaticPool) so every session
    sees the same database.
    """
    if url.startswith("sqlite"):
        kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/").endswith("sqlite+aiosqlite:"):
            kwargs["poolclass"] = StaticPool
        engine = create_async_engine(url, echo=False, **kwargs)
        event.listen(engine.sync_engine, "connect", _on_sqlite_connect)
        return engine
    return create_async_engine(url, echo=False, pool_size=5, max_overflow=10)


def get_engine() -> AsyncEngine:
    """Get or create the async SQLAlchemy engine (singleton)."""
    global _engine  # noqa: PLW0603
    if _engine is None:
        _engine = build_engine(settings.DATABASE_URL)
        logger.info("Database engine created (%s)", _engine.dialect.name)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the async session factory (singleton)."""
    global _session_factory  # noqa: PLW0603
    if _session_factory is None:
        # expire_on_commit=False: no implicit I/O when reading attributes after commit
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Yields:
        AsyncSession: Scoped to the request lifecycle. Automatically closed
        after the request completes (including on exceptions).
    """
    factory = get_session_factory()
    async with factory() as session:
        yield session


async def init_models(engine: AsyncEngine) -> None:
    """Create the vector extension (PostgreSQL) and all tables if missing."""
    async with engine.begin() as conn:
        if conn.dialect.name == "postgresql":
            await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready")


async def dispose_engine() -> None:
    """Dispose the engine at application shutdown."""
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Database engine disposed")


__all__ = [
    "Base",
    "build_engine",
    "dispose_engine",
    "get_db",
    "get_engine",
    "get_session_factory",
    "init_models",
]
