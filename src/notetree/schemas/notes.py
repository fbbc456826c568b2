"""
Note Schemas

Pydantic models for Note API request/response validation, plus the two
internal value types the store works with:

    - NoteWrite: the single write command both API variants (create with an
      optional id, replace by path id) collapse into.
    - ParentFilter: explicit three-case scope for list/search queries.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from notetree.core.errors import NoteValidationError


class NoteTag(BaseModel):
    """Tag reference with its ancestor path in the tag tree."""

    id: str = Field(..., min_length=1)
    path: list[str] = Field(default_factory=list)


class NoteFields(BaseModel):
    """Writable note fields shared by both write variants."""

    title: str = Field(..., max_length=500, description="Note title")
    body: str = Field(..., description="Structured editor document (JSON)")
    parent: uuid.UUID | None = Field(default=None, description="Parent note id")
    tags: list[NoteTag] = Field(default_factory=list)


class NoteCreate(NoteFields):
    """
    Request schema for POST /notes.

    ``id`` may be supplied by clients that generate ids locally; a UUID4 is
    assigned otherwise. Re-posting an existing id updates it.
    """

    id: uuid.UUID | None = None


class NoteReplace(NoteFields):
    """Request schema for PUT /notes/{id} (create-or-replace by id)."""

    pass


class NoteRead(BaseModel):
    """Note representation returned to clients. Never carries the vector."""

    id: uuid.UUID
    title: str
    body: str
    user_id: str | None = None
    parent: uuid.UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    distance: float = 0.0
    is_shared: bool = False
    tags: list[NoteTag] = Field(default_factory=list)
    has_children: bool = False
    has_embedding: bool = False

    model_config = ConfigDict(from_attributes=True)


class NoteEnvelope(BaseModel):
    note: NoteRead


class NoteList(BaseModel):
    notes: list[NoteRead]


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    has_more: bool


class NoteListResponse(BaseModel):
    notes: list[NoteRead]
    pagination: Pagination


class DeleteResponse(BaseModel):
    message: str
    deleted_count: int


class ShareUpdate(BaseModel):
    is_shared: bool


class ShareResponse(BaseModel):
    message: str
    is_shared: bool


class ParentUpdate(BaseModel):
    """Request body for PATCH /notes/{id}/parent. ``null`` moves to root."""

    parent: uuid.UUID | None = None


class ParentResponse(BaseModel):
    message: str
    parent: uuid.UUID | None


class RevisionRead(BaseModel):
    id: uuid.UUID
    note_id: uuid.UUID
    title: str
    body: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RevisionList(BaseModel):
    revisions: list[RevisionRead]


# ----------------------------------------------------------------------------
# Internal value types
# ----------------------------------------------------------------------------


@dataclass(frozen=True)
class NoteWrite:
    """Validated write command consumed by the store."""

    id: uuid.UUID
    title: str
    body: str
    parent: uuid.UUID | None = None
    tags: list[NoteTag] = field(default_factory=list)

    @classmethod
    def from_create(cls, payload: NoteCreate) -> NoteWrite:
        return cls(
            id=payload.id or uuid.uuid4(),
            title=payload.title,
            body=payload.body,
            parent=payload.parent,
            tags=list(payload.tags),
        )

    @classmethod
    def from_replace(cls, note_id: uuid.UUID, payload: NoteReplace) -> NoteWrite:
        return cls(
            id=note_id,
            title=payload.title,
            body=payload.body,
            parent=payload.parent,
            tags=list(payload.tags),
        )


class ParentScope(StrEnum):
    ANY = "any"
    ROOT = "root"
    CHILDREN = "children"


@dataclass(frozen=True)
class ParentFilter:
    """
    Parent constraint of a list/search query.

    ANY:      no constraint, notes at every depth.
    ROOT:     only notes without a parent.
    CHILDREN: only direct children of ``parent_id``.
    """

    scope: ParentScope = ParentScope.ANY
    parent_id: uuid.UUID | None = None

    @classmethod
    def any(cls) -> ParentFilter:
        return cls(ParentScope.ANY)

    @classmethod
    def root(cls) -> ParentFilter:
        return cls(ParentScope.ROOT)

    @classmethod
    def children_of(cls, parent_id: uuid.UUID) -> ParentFilter:
        return cls(ParentScope.CHILDREN, parent_id)

    @classmethod
    def from_query(cls, raw: str | None) -> ParentFilter:
        """
        Map the ``parent`` query parameter: absent → ANY, empty → ROOT,
        otherwise a UUID → CHILDREN.

        Raises:
            NoteValidationError: Non-empty value that is not a UUID.
        """
        if raw is None:
            return cls.any()
        if raw.strip() == "":
            return cls.root()
        try:
            return cls.children_of(uuid.UUID(raw.strip()))
        except ValueError as e:
            raise NoteValidationError(f"Invalid parent id: '{raw}'") from e
