"""
Note Repository

Data access layer for the note forest and its revision log.

Every method takes the authenticated ``owner`` explicitly and filters on it;
a note owned by someone else is indistinguishable from a missing one.
Mutations run inside ``atomic`` and pair each write to ``notes`` with one
``Revision`` row. Reads never load the raw embedding vector.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from typing import Any

from pgvector.sqlalchemy import Vector
from sqlalchemy import Select, delete, exists, func, literal, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from notetree.core.errors import NoteNotFoundError
from notetree.models import EMBEDDING_DIMENSION, Note, Revision, utcnow
from notetree.models.distance import l2_distance
from notetree.repositories.base import atomic, reading
from notetree.repositories.tree import descendant_levels, validate_parent_link
from notetree.schemas.notes import NoteRead, NoteWrite, ParentFilter, ParentScope
from notetree.services.codec import decode_tags, encode_tags

logger = logging.getLogger(__name__)

_Child = aliased(Note, name="child")

_has_children = (
    select(_Child.id).where(_Child.parent == Note.id).exists().label("has_children")
)
_has_embedding = Note.embedding.is_not(None).label("has_embedding")

# Every listed column except the vector itself
_NOTE_COLUMNS = (
    Note.id,
    Note.title,
    Note.body,
    Note.user_id,
    Note.parent,
    Note.tags,
    Note.is_shared,
    Note.created_at,
    Note.updated_at,
    _has_children,
    _has_embedding,
)


def _to_read(row: Any, distance: float = 0.0, expose_owner: bool = True) -> NoteRead:
    return NoteRead(
        id=row.id,
        title=row.title,
        body=row.body,
        user_id=row.user_id if expose_owner else None,
        parent=row.parent,
        created_at=row.created_at,
        updated_at=row.updated_at,
        distance=distance,
        is_shared=bool(row.is_shared),
        tags=decode_tags(row.tags),
        has_children=bool(row.has_children),
        has_embedding=bool(row.has_embedding),
    )


def _insert_for(session: AsyncSession) -> Any:
    """Dialect-specific INSERT construct (both support ON CONFLICT)."""
    if session.get_bind().dialect.name == "postgresql":
        return postgresql.insert
    return sqlite.insert


class NoteRepository:
    """
    Repository for the note forest with vector search support.

    Operations:
        - upsert: insert-or-update keyed by id, plus one revision
        - delete_subtree: cascade delete of a note, its descendants and
          their revisions
        - get / get_shared / children / list_revisions: owner-scoped reads
        - count / page: list and semantic search under a parent filter
        - set_shared / set_parent: targeted updates, plus one revision
    """

    def __init__(self, dimension: int = EMBEDDING_DIMENSION) -> None:
        self.dimension = dimension

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def exists(
        self, session: AsyncSession, note_id: uuid.UUID, owner: str
    ) -> bool:
        """Whether ``note_id`` exists and belongs to ``owner``."""
        async with reading(session):
            found = await session.scalar(
                select(Note.id).where(Note.id == note_id, Note.user_id == owner)
            )
        return found is not None

    async def get(
        self, session: AsyncSession, note_id: uuid.UUID, owner: str
    ) -> NoteRead:
        """
        Get one owned note.

        Raises:
            NoteNotFoundError: Missing or owned by someone else.
        """
        async with reading(session):
            result = await session.execute(
                select(*_NOTE_COLUMNS).where(Note.id == note_id, Note.user_id == owner)
            )
            row = result.one_or_none()
        if row is None:
            raise NoteNotFoundError()
        return _to_read(row)

    async def get_shared(self, session: AsyncSession, note_id: uuid.UUID) -> NoteRead:
        """Get a publicly shared note for any caller. The owner is not exposed."""
        async with reading(session):
            result = await session.execute(
                select(*_NOTE_COLUMNS).where(Note.id == note_id, Note.is_shared.is_(True))
            )
            row = result.one_or_none()
        if row is None:
            raise NoteNotFoundError("Note not found or not shared")
        return _to_read(row, expose_owner=False)

    async def children(
        self, session: AsyncSession, parent_id: uuid.UUID, owner: str
    ) -> list[NoteRead]:
        """Direct children of an owned note, most recently updated first."""
        if not await self.exists(session, parent_id, owner):
            raise NoteNotFoundError()
        async with reading(session):
            result = await session.execute(
                select(*_NOTE_COLUMNS)
                .where(Note.parent == parent_id, Note.user_id == owner)
                .order_by(Note.updated_at.desc(), Note.id)
            )
            return [_to_read(row) for row in result]

    async def list_revisions(
        self, session: AsyncSession, note_id: uuid.UUID, owner: str
    ) -> Sequence[Revision]:
        """Revision history of an owned note, newest first."""
        if not await self.exists(session, note_id, owner):
            raise NoteNotFoundError()
        async with reading(session):
            result = await session.execute(
                select(Revision)
                .where(Revision.note_id == note_id)
                .order_by(Revision.created_at.desc(), Revision.id)
            )
            return result.scalars().all()

    # ------------------------------------------------------------------
    # List / search
    # ------------------------------------------------------------------

    def _distance(self, query_vector: list[float]) -> Any:
        return l2_distance(Note.embedding, literal(query_vector, Vector(self.dimension)))

    def _scoped(
        self,
        stmt: Select[Any],
        owner: str,
        parent_filter: ParentFilter,
        query_vector: list[float] | None,
        threshold: float,
    ) -> Select[Any]:
        stmt = stmt.where(Note.user_id == owner)
        if parent_filter.scope is ParentScope.ROOT:
            stmt = stmt.where(Note.parent.is_(None))
        elif parent_filter.scope is ParentScope.CHILDREN:
            stmt = stmt.where(Note.parent == parent_filter.parent_id)
        if query_vector is not None:
            # NULL embeddings yield NULL distance and drop out here
            stmt = stmt.where(self._distance(query_vector) < threshold)
        return stmt

    async def count(
        self,
        session: AsyncSession,
        owner: str,
        parent_filter: ParentFilter,
        query_vector: list[float] | None = None,
        threshold: float = 0.8,
    ) -> int:
        """Number of notes matching the filter (and the search, if any)."""
        stmt = self._scoped(
            select(func.count()).select_from(Note),
            owner,
            parent_filter,
            query_vector,
            threshold,
        )
        async with reading(session):
            total = await session.scalar(stmt)
        return int(total or 0)

    async def page(
        self,
        session: AsyncSession,
        owner: str,
        parent_filter: ParentFilter,
        offset: int,
        limit: int,
        query_vector: list[float] | None = None,
        threshold: float = 0.8,
    ) -> list[NoteRead]:
        """
        One page of notes.

        With ``query_vector``: nearest first by L2 distance, id tiebreak.
        Without: most recently updated first, id tiebreak, distance 0.
        """
        if query_vector is not None:
            distance = self._distance(query_vector).label("distance")
            stmt = select(*_NOTE_COLUMNS, distance).order_by(distance, Note.id)
        else:
            stmt = select(*_NOTE_COLUMNS).order_by(Note.updated_at.desc(), Note.id)

        stmt = self._scoped(stmt, owner, parent_filter, query_vector, threshold)
        stmt = stmt.offset(offset).limit(limit)

        async with reading(session):
            result = await session.execute(stmt)
            if query_vector is None:
                return [_to_read(row) for row in result]
            return [_to_read(row, distance=float(row.distance)) for row in result]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def upsert(
        self,
        session: AsyncSession,
        write: NoteWrite,
        owner: str,
        embedding: list[float] | None,
    ) -> NoteRead:
        """
        Insert or update a note keyed by id and append one revision.

        On conflict title, body, parent, embedding and tags are overwritten and
        ``updated_at`` refreshed; owner, ``created_at`` and ``is_shared`` are
        kept. An id owned by another user matches no row.

        Raises:
            InvalidParentError: Parent missing or foreign-owned.
            CircularReferenceError: Parent is the note or one of its descendants.
            NoteNotFoundError: The id belongs to another user.
        """
        now = utcnow()
        async with atomic(session):
            await validate_parent_link(session, write.id, owner, write.parent)

            insert = _insert_for(session)
            stmt = insert(Note).values(
                id=write.id,
                title=write.title,
                body=write.body,
                embedding=embedding,
                user_id=owner,
                parent=write.parent,
                tags=encode_tags(write.tags),
                is_shared=False,
                created_at=now,
                updated_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[Note.id],
                set_={
                    "title": stmt.excluded.title,
                    "body": stmt.excluded.body,
                    "parent": stmt.excluded.parent,
                    "embedding": stmt.excluded.embedding,
                    "tags": stmt.excluded.tags,
                    "updated_at": stmt.excluded.updated_at,
                },
                where=Note.user_id == stmt.excluded.user_id,
            ).returning(Note.is_shared, Note.created_at, Note.updated_at)

            row = (await session.execute(stmt)).one_or_none()
            if row is None:
                raise NoteNotFoundError()

            session.add(
                Revision(
                    note_id=write.id,
                    title=write.title,
                    body=write.body,
                    user_id=owner,
                    created_at=now,
                )
            )
            has_children = await session.scalar(
                select(exists().where(Note.parent == write.id))
            )

        logger.debug("Upserted note %s for %s", write.id, owner)
        return NoteRead(
            id=write.id,
            title=write.title,
            body=write.body,
            user_id=owner,
            parent=write.parent,
            created_at=row.created_at,
            updated_at=row.updated_at,
            is_shared=bool(row.is_shared),
            tags=list(write.tags),
            has_children=bool(has_children),
            has_embedding=embedding is not None,
        )

    async def delete_subtree(
        self, session: AsyncSession, note_id: uuid.UUID, owner: str
    ) -> int:
        """
        Delete a note, all its descendants and all their revisions.

        Returns:
            Number of notes removed (at least 1).

        Raises:
            NoteNotFoundError: Missing or owned by someone else.
        """
        async with atomic(session):
            levels = await descendant_levels(session, note_id, owner)
            if not levels:
                raise NoteNotFoundError()
            doomed = [nid for level in levels for nid in level]

            await session.execute(
                delete(Revision)
                .where(Revision.note_id.in_(doomed))
                .execution_options(synchronize_session=False)
            )
            # Leaves first so no row ever points at a deleted parent
            for level in reversed(levels):
                await session.execute(
                    delete(Note)
                    .where(Note.id.in_(level), Note.user_id == owner)
                    .execution_options(synchronize_session=False)
                )

        if len(doomed) > 1:
            logger.info("Deleted note %s with %d descendants", note_id, len(doomed) - 1)
        return len(doomed)

    async def _update_with_revision(
        self,
        session: AsyncSession,
        note_id: uuid.UUID,
        owner: str,
        **values: Any,
    ) -> None:
        """Targeted UPDATE of an owned note plus one revision (inside a transaction)."""
        now = utcnow()
        stmt = (
            update(Note)
            .where(Note.id == note_id, Note.user_id == owner)
            .values(updated_at=now, **values)
            .returning(Note.title, Note.body)
            .execution_options(synchronize_session=False)
        )
        row = (await session.execute(stmt)).one_or_none()
        if row is None:
            raise NoteNotFoundError()
        session.add(
            Revision(
                note_id=note_id,
                title=row.title,
                body=row.body,
                user_id=owner,
                created_at=now,
            )
        )

    async def set_shared(
        self,
        session: AsyncSession,
        note_id: uuid.UUID,
        owner: str,
        is_shared: bool,
    ) -> bool:
        """Set the public-read flag of an owned note."""
        async with atomic(session):
            await self._update_with_revision(
                session, note_id, owner, is_shared=is_shared
            )
        return is_shared

    async def set_parent(
        self,
        session: AsyncSession,
        note_id: uuid.UUID,
        owner: str,
        parent: uuid.UUID | None,
    ) -> uuid.UUID | None:
        """
        Move an owned note under ``parent`` (``None`` makes it a root).

        Raises:
            InvalidParentError: Parent missing or foreign-owned.
            CircularReferenceError: Parent is the note or one of its descendants.
            NoteNotFoundError: The note is missing or foreign-owned.
        """
        async with atomic(session):
            await validate_parent_link(session, note_id, owner, parent)
            await self._update_with_revision(session, note_id, owner, parent=parent)
        return parent


# Module-level instance shared by the services
note_repository = NoteRepository()
