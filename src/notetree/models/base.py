"""
SQLAlchemy Base Models

Provides the declarative base and reusable mixins for all ORM models.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    """Timezone-aware current time, used for every timestamp the app writes."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Declarative base class for all SQLAlchemy ORM models."""

    pass


class TimestampMixin:
    """
    Mixin that adds created_at and updated_at timestamp fields.

    Behavior:
        - created_at: Set on INSERT, never rewritten.
        - updated_at: Set on INSERT; repositories set it explicitly on every
          mutating statement (bulk UPDATE / upsert bypass ORM onupdate).

    Note:
        Python-side defaults keep microsecond ordering identical across
        PostgreSQL and SQLite.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )
