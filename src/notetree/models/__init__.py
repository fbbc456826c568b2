"""Models package - re-exports all models for convenient imports."""

from notetree.models.base import Base, TimestampMixin, utcnow
from notetree.models.note import EMBEDDING_DIMENSION, Note, Revision

__all__ = [
    "Base",
    "EMBEDDING_DIMENSION",
    "Note",
    "Revision",
    "TimestampMixin",
    "utcnow",
]
