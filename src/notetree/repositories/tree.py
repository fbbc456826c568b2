"""
Note Tree Rules

Descendant closure and parent-link validation for the note forest.

The closure is computed level by level with an explicit worklist instead of
a recursive query, so depth is bounded only by the data and a visited set
stops traversal even if a cycle was ever persisted.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from notetree.core.errors import CircularReferenceError, InvalidParentError
from notetree.models import Note

logger = logging.getLogger(__name__)


async def descendant_levels(
    session: AsyncSession,
    note_id: uuid.UUID,
    owner: str,
) -> list[list[uuid.UUID]]:
    """
    Breadth-first levels of the subtree rooted at ``note_id``.

    Level 0 is ``[note_id]`` itself. Only notes owned by ``owner`` are
    visited; a missing or foreign-owned root yields ``[]``.
    """
    root = await session.scalar(
        select(Note.id).where(Note.id == note_id, Note.user_id == owner)
    )
    if root is None:
        return []

    levels: list[list[uuid.UUID]] = [[root]]
    visited: set[uuid.UUID] = {root}
    frontier = [root]

    while frontier:
        result = await session.execute(
            select(Note.id)
            .where(Note.parent.in_(frontier), Note.user_id == owner)
            .order_by(Note.id)
        )
        next_level = []
        for child_id in result.scalars():
            if child_id in visited:
                logger.warning("Cycle detected below note %s at %s", note_id, child_id)
                continue
            visited.add(child_id)
            next_level.append(child_id)
        if not next_level:
            break
        levels.append(next_level)
        frontier = next_level

    return levels


async def descendant_closure(
    session: AsyncSession,
    note_id: uuid.UUID,
    owner: str,
) -> set[uuid.UUID]:
    """``{note_id}`` plus every descendant owned by ``owner`` (empty if not owned)."""
    levels = await descendant_levels(session, note_id, owner)
    return {nid for level in levels for nid in level}


async def validate_parent_link(
    session: AsyncSession,
    note_id: uuid.UUID,
    owner: str,
    parent: uuid.UUID | None,
) -> None:
    """
    Check that ``note_id`` may hang below ``parent``.

    Raises:
        InvalidParentError: ``parent`` is missing or owned by someone else.
        CircularReferenceError: ``parent`` is the note itself or one of its
            descendants.
    """
    if parent is None:
        return

    owned = await session.scalar(
        select(Note.id).where(Note.id == parent, Note.user_id == owner)
    )
    if owned is None:
        raise InvalidParentError()

    if parent == note_id:
        raise CircularReferenceError()

    if parent in await descendant_closure(session, note_id, owner):
        logger.info("Rejected reparenting %s under its descendant %s", note_id, parent)
        raise CircularReferenceError()
