"""
Note Service

Pagination/search façade over the note repository.

Translates request parameters into repository calls and assembles the
response envelopes. Also owns the write pipeline of an upsert:

    body (editor JSON) -> markdown -> "# title\\n" + markdown -> embedding -> store

The embedding is requested before any transaction opens. A provider failure
on write degrades to a note without embedding; on search it fails the
request.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from notetree.core.config import settings
from notetree.core.errors import EmbeddingError, NoteValidationError
from notetree.repositories.notes import NoteRepository, note_repository
from notetree.schemas.notes import (
    DeleteResponse,
    NoteEnvelope,
    NoteList,
    NoteListResponse,
    NoteRead,
    NoteWrite,
    Pagination,
    ParentFilter,
    RevisionList,
    RevisionRead,
)
from notetree.services import ai
from notetree.services.codec import encode_embedding
from notetree.services.embedding_cache import Embedder, QueryEmbeddingCache
from notetree.services.renderer import RenderError, render_document

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


def embedding_text(title: str, body: str) -> str:
    """
    Text that represents a note for embedding purposes.

    Raises:
        NoteValidationError: ``body`` is not a valid editor document.
    """
    try:
        markdown = render_document(body)
    except RenderError as e:
        raise NoteValidationError(f"Invalid note body: {e}") from e
    return f"# {title}\n{markdown}"


class NoteService:
    """
    Façade used by the notes router.

    Args:
        repository: Note store.
        embedder: Embeds note content on write.
        query_embedder: Embeds search text (typically cached).
        dimension: Expected vector length.
        distance_threshold: Search cut-off on L2 distance.
    """

    def __init__(
        self,
        repository: NoteRepository | None = None,
        embedder: Embedder | None = None,
        query_embedder: Embedder | None = None,
        dimension: int | None = None,
        distance_threshold: float | None = None,
    ) -> None:
        self.repository = repository or note_repository
        self._embed = embedder or ai.get_embedding
        self._embed_query = query_embedder or self._embed
        self.dimension = dimension or settings.EMBEDDING_DIMENSION
        self.distance_threshold = (
            distance_threshold
            if distance_threshold is not None
            else settings.SEARCH_DISTANCE_THRESHOLD
        )

    async def _note_embedding(self, write: NoteWrite) -> list[float] | None:
        text = embedding_text(write.title, write.body)
        try:
            return encode_embedding(await self._embed(text), self.dimension)
        except Exception as e:
            logger.warning("Embedding failed for note %s, storing without: %s", write.id, e)
            return None

    async def _query_embedding(self, search: str) -> list[float]:
        try:
            return encode_embedding(await self._embed_query(search), self.dimension)
        except EmbeddingError:
            raise
        except Exception as e:
            logger.error("Query embedding failed: %s", e)
            raise EmbeddingError("Embedding service unavailable") from e

    async def upsert(
        self, session: AsyncSession, write: NoteWrite, owner: str
    ) -> NoteEnvelope:
        """Create or replace a note and return it as stored."""
        embedding = await self._note_embedding(write)
        note = await self.repository.upsert(session, write, owner, embedding)
        return NoteEnvelope(note=note)

    async def get(
        self, session: AsyncSession, note_id: uuid.UUID, owner: str
    ) -> NoteEnvelope:
        return NoteEnvelope(note=await self.repository.get(session, note_id, owner))

    async def get_shared(self, session: AsyncSession, note_id: uuid.UUID) -> NoteEnvelope:
        return NoteEnvelope(note=await self.repository.get_shared(session, note_id))

    async def children(
        self, session: AsyncSession, note_id: uuid.UUID, owner: str
    ) -> NoteList:
        return NoteList(notes=await self.repository.children(session, note_id, owner))

    async def revisions(
        self, session: AsyncSession, note_id: uuid.UUID, owner: str
    ) -> RevisionList:
        rows = await self.repository.list_revisions(session, note_id, owner)
        return RevisionList(revisions=[RevisionRead.model_validate(r) for r in rows])

    async def delete(
        self, session: AsyncSession, note_id: uuid.UUID, owner: str
    ) -> DeleteResponse:
        count = await self.repository.delete_subtree(session, note_id, owner)
        message = "Note deleted" if count == 1 else "Note and child notes deleted"
        return DeleteResponse(message=message, deleted_count=count)

    async def list_notes(
        self,
        session: AsyncSession,
        owner: str,
        search: str | None = None,
        parent_filter: ParentFilter | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> NoteListResponse:
        """
        List or search notes with offset pagination.

        Args:
            session: Database session.
            owner: Authenticated user id.
            search: Free text; non-empty switches to nearest-first ordering.
            parent_filter: Parent scope, ANY when omitted.
            page: 1-based page number.
            limit: Page size (1..MAX_PAGE_SIZE).

        Raises:
            NoteValidationError: ``page`` or ``limit`` out of range.
            EmbeddingError: The search text could not be embedded.
        """
        if page < 1:
            raise NoteValidationError("page must be >= 1")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise NoteValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")

        parent_filter = parent_filter or ParentFilter.any()
        query_vector = await self._query_embedding(search) if search else None
        offset = (page - 1) * limit

        total = await self.repository.count(
            session, owner, parent_filter, query_vector, self.distance_threshold
        )
        notes: list[NoteRead] = await self.repository.page(
            session,
            owner,
            parent_filter,
            offset,
            limit,
            query_vector,
            self.distance_threshold,
        )
        return NoteListResponse(
            notes=notes,
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                has_more=page * limit < total,
            ),
        )


# Query texts repeat while paging, note bodies do not
query_cache = QueryEmbeddingCache(
    settings.REDIS_URL,
    settings.EMBEDDING_MODEL,
    default_ttl=settings.QUERY_CACHE_TTL,
)

note_service = NoteService(query_embedder=query_cache.wrap(ai.get_embedding))


def get_note_service() -> NoteService:
    """FastAPI dependency returning the shared note service."""
    return note_service
