"""
Repository Transaction Helpers

Every mutating store operation runs inside ``atomic``: all statements commit
together or the session is rolled back. Driver errors never leave this layer
raw; they become ``StorageError`` with the detail kept in the log.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notetree.core.errors import StorageError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Run the enclosed statements as one transaction.

    Usage::

        async with atomic(session):
            await session.execute(stmt_a)
            session.add(row_b)

    Raises:
        StorageError: Any SQLAlchemy failure, after rollback.

    Any other exception (domain errors included) is re-raised unchanged after
    rollback.
    """
    try:
        yield session
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.exception("Transaction rolled back")
        raise StorageError() from e
    except Exception:
        await session.rollback()
        raise


@asynccontextmanager
async def reading(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Translate driver failures of read-only statements into StorageError."""
    try:
        yield session
    except SQLAlchemyError as e:
        logger.exception("Read query failed")
        raise StorageError() from e
