"""
Note Models

Core entities: the note forest with vector embeddings for semantic search,
and the append-only revision log.

Tables:
    notes:     one row per note; ``parent`` is a self reference (forest).
    revisions: content snapshots, one per mutating write to ``notes``.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pgvector.sqlalchemy import Vector
from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from notetree.core.config import settings
from notetree.models.base import Base, TimestampMixin, utcnow

EMBEDDING_DIMENSION: int = settings.EMBEDDING_DIMENSION

# JSONB on PostgreSQL, plain JSON elsewhere
TagsType = JSON().with_variant(JSONB(), "postgresql")


class Note(Base, TimestampMixin):
    """
    Note entity with vector embedding support.

    Attributes:
        id: UUID primary key, client- or server-generated.
        title: Note title.
        body: Structured editor document (JSON text).
        embedding: Fixed-dimension vector, NULL when the provider failed.
        user_id: Owner identifier, immutable.
        parent: Parent note of the same owner, NULL for roots.
        tags: Denormalized ``[{"id": ..., "path": [...]}]`` list.
        is_shared: Public read flag.
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    embedding: Mapped[list[float] | None] = mapped_column(
        Vector(EMBEDDING_DIMENSION),
        nullable=True,
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    parent: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("notes.id"),
        nullable=True,
        index=True,
    )
    tags: Mapped[list[dict[str, Any]]] = mapped_column(
        TagsType,
        nullable=False,
        default=list,
    )
    is_shared: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Note(id={self.id!s:.8}, title='{self.title[:20]}')>"


class Revision(Base):
    """
    Immutable snapshot of a note's content at write time.

    Attributes:
        id: UUID primary key.
        note_id: The note this snapshot belongs to.
        title: Title at write time.
        body: Body at write time.
        user_id: Owner of the note.
        created_at: Write timestamp.
    """

    __tablename__ = "revisions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("notes.id"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Revision(id={self.id!s:.8}, note={self.note_id!s:.8})>"
