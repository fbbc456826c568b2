"""Repositories package."""

from notetree.repositories.base import atomic
from notetree.repositories.notes import NoteRepository, note_repository

__all__ = [
    "NoteRepository",
    "atomic",
    "note_repository",
]
