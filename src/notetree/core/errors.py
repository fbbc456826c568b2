"""
Domain Errors

Exception hierarchy for the note store and its collaborators, plus the
FastAPI handler that renders every one of them as ``{"error", "message"}``.

Not-found and foreign-owned resources share ``NoteNotFoundError`` so that a
caller cannot probe for the existence of another user's notes.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class NoteTreeError(Exception):
    """Base class for all errors surfaced to API clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NoteValidationError(NoteTreeError):
    """Malformed id, body or query parameter. Raised before storage access."""

    status_code = 422
    error = "validation_error"


class NoteNotFoundError(NoteTreeError):
    """Note is missing or owned by someone else."""

    status_code = status.HTTP_404_NOT_FOUND
    error = "not_found"

    def __init__(
        self,
        message: str = "Note not found or you don't have permission to access it",
    ) -> None:
        super().__init__(message)


class NoteIntegrityError(NoteTreeError):
    """Write rejected because it would break a tree invariant."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "integrity_error"


class CircularReferenceError(NoteIntegrityError):
    error = "circular_reference"

    def __init__(
        self,
        message: str = "Cannot set parent: would create circular reference",
    ) -> None:
        super().__init__(message)


class InvalidParentError(NoteIntegrityError):
    error = "invalid_parent"

    def __init__(
        self,
        message: str = "Parent note not found or you don't have permission to use it",
    ) -> None:
        super().__init__(message)


class EmbeddingError(NoteTreeError):
    """Embedding provider failed or returned a malformed vector."""

    status_code = status.HTTP_502_BAD_GATEWAY
    error = "embedding_unavailable"


class StorageError(NoteTreeError):
    """Database failure. The message never carries driver details."""

    error = "storage_error"

    def __init__(self, message: str = "Internal storage error") -> None:
        super().__init__(message)


class AuthenticationError(NoteTreeError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "unauthorized"


class ModelNotAllowedError(NoteTreeError):
    """Completion requested for a model outside ALLOWED_MODELS."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "model_not_allowed"


async def note_tree_exception_handler(
    request: Request, exc: NoteTreeError
) -> JSONResponse:
    """Render a domain error with its status code."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error, "message": exc.message},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Attach the domain error handler to the application."""
    app.add_exception_handler(NoteTreeError, note_tree_exception_handler)  # type: ignore[arg-type]


__all__ = [
    "AuthenticationError",
    "CircularReferenceError",
    "EmbeddingError",
    "InvalidParentError",
    "ModelNotAllowedError",
    "NoteIntegrityError",
    "NoteNotFoundError",
    "NoteTreeError",
    "NoteValidationError",
    "StorageError",
    "register_error_handlers",
]
