"""
Notes API Router

REST endpoints for the note forest: create/replace, read, children,
revision history, cascade delete, sharing, reparenting and semantic search.

Every endpoint except the public shared-note read requires an authenticated
user; a note owned by another user always answers 404.
"""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from notetree.core.database import get_db
from notetree.core.security import get_current_user
from notetree.schemas.notes import (
    DeleteResponse,
    NoteCreate,
    NoteEnvelope,
    NoteList,
    NoteListResponse,
    NoteReplace,
    NoteWrite,
    ParentFilter,
    ParentResponse,
    ParentUpdate,
    RevisionList,
    ShareResponse,
    ShareUpdate,
)
from notetree.services.linkage import LinkageService, get_linkage_service
from notetree.services.notes import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    NoteService,
    get_note_service,
)

router = APIRouter()
shared_router = APIRouter()


@router.get("", response_model=NoteListResponse)
async def list_notes(
    search: str | None = Query(default=None, description="Semantic search text"),
    parent: str | None = Query(
        default=None,
        description="Omit for all notes, empty for root notes, an id for its children",
    ),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    """
    List notes, or search them when ``search`` is given.

    Search results are ordered nearest first and limited to notes within the
    configured distance threshold; notes without an embedding never match.

    Raises:
        HTTPException 502: If the embedding service is unavailable.
    """
    return await service.list_notes(
        db,
        user_id,
        search=search or None,
        parent_filter=ParentFilter.from_query(parent),
        page=page,
        limit=limit,
    )


@router.post("", response_model=NoteEnvelope, status_code=status.HTTP_201_CREATED)
async def create_note(
    note: NoteCreate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    """
    Create a note (server-generated id) or upsert one by client id.

    The embedding is computed before the write. If the provider fails the
    note is stored without one and won't appear in semantic search.
    """
    return await service.upsert(db, NoteWrite.from_create(note), user_id)


@router.put("/{note_id}", response_model=NoteEnvelope)
async def replace_note(
    note_id: uuid.UUID,
    note: NoteReplace,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    """Create or replace the note with the given id."""
    return await service.upsert(db, NoteWrite.from_replace(note_id, note), user_id)


@router.get("/{note_id}", response_model=NoteEnvelope)
async def read_note(
    note_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    return await service.get(db, note_id, user_id)


@router.get("/{note_id}/children", response_model=NoteList)
async def read_children(
    note_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    """Direct children of a note, most recently updated first."""
    return await service.children(db, note_id, user_id)


@router.get("/{note_id}/revisions", response_model=RevisionList)
async def read_revisions(
    note_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    return await service.revisions(db, note_id, user_id)


@router.delete("/{note_id}", response_model=DeleteResponse)
async def delete_note(
    note_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    """Delete a note together with all its descendants and their revisions."""
    return await service.delete(db, note_id, user_id)


@router.patch("/{note_id}/share", response_model=ShareResponse)
async def share_note(
    note_id: uuid.UUID,
    update: ShareUpdate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user),
    linkage: LinkageService = Depends(get_linkage_service),
):
    return await linkage.set_shared(db, note_id, user_id, update.is_shared)


@router.patch("/{note_id}/parent", response_model=ParentResponse)
async def move_note(
    note_id: uuid.UUID,
    update: ParentUpdate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user),
    linkage: LinkageService = Depends(get_linkage_service),
):
    """
    Move a note under another note, or to the root level with ``parent: null``.

    Raises:
        HTTPException 400: Parent not owned, or the move would create a cycle.
    """
    return await linkage.set_parent(db, note_id, user_id, update.parent)


@shared_router.get("/{note_id}", response_model=NoteEnvelope)
async def read_shared_note(
    note_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: NoteService = Depends(get_note_service),
):
    """Public read of a shared note. No authentication required."""
    return await service.get_shared(db, note_id)
