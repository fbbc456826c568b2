"""Sharing and parent-linkage control for existing notes."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from notetree.repositories.notes import NoteRepository, note_repository
from notetree.schemas.notes import ParentResponse, ShareResponse

logger = logging.getLogger(__name__)


class LinkageService:
    """Ownership and acyclicity checked updates of ``is_shared`` and ``parent``."""

    def __init__(self, repository: NoteRepository | None = None) -> None:
        self.repository = repository or note_repository

    async def set_shared(
        self,
        session: AsyncSession,
        note_id: uuid.UUID,
        owner: str,
        is_shared: bool,
    ) -> ShareResponse:
        shared = await self.repository.set_shared(session, note_id, owner, is_shared)
        logger.info("Note %s sharing set to %s", note_id, shared)
        return ShareResponse(message="Note sharing updated", is_shared=shared)

    async def set_parent(
        self,
        session: AsyncSession,
        note_id: uuid.UUID,
        owner: str,
        parent: uuid.UUID | None,
    ) -> ParentResponse:
        """
        Reparent an owned note; ``parent=None`` detaches it to the root level.

        Raises:
            InvalidParentError: ``parent`` is not one of the owner's notes.
            CircularReferenceError: ``parent`` lies in the note's own subtree.
            NoteNotFoundError: The note is missing or foreign-owned.
        """
        new_parent = await self.repository.set_parent(session, note_id, owner, parent)
        return ParentResponse(message="Note parent updated", parent=new_parent)


linkage_service = LinkageService()


def get_linkage_service() -> LinkageService:
    """FastAPI dependency returning the shared linkage service."""
    return linkage_service
