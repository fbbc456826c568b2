"""
Tag / Vector Codec

Conversion between API-level values and their storage representation:

    - tags: ``list[NoteTag]`` <-> JSON list of ``{"id", "path"}`` objects
    - embeddings: provider output -> validated ``list[float]`` of the
      configured dimension (or an ``EmbeddingError``)
"""

from __future__ import annotations

import json
import math
from collections.abc import Sequence
from typing import Any

from notetree.core.errors import EmbeddingError
from notetree.schemas.notes import NoteTag


def encode_tags(tags: Sequence[NoteTag] | None) -> list[dict[str, Any]]:
    """Serialize tags for the JSON column, preserving order."""
    if not tags:
        return []
    return [{"id": tag.id, "path": list(tag.path)} for tag in tags]


def decode_tags(raw: Any) -> list[NoteTag]:
    """
    Parse a stored tags value.

    Accepts the decoded JSON list (the normal case), a JSON string (drivers
    that hand back JSON as text) or NULL.
    """
    if raw is None:
        return []
    if isinstance(raw, (str, bytes)):
        raw = json.loads(raw) if raw else []
    return [NoteTag.model_validate(item) for item in raw]


def encode_embedding(vector: Sequence[float], dimension: int) -> list[float]:
    """
    Validate a provider vector before it reaches the database.

    Raises:
        EmbeddingError: Wrong dimension or non-finite components.
    """
    if len(vector) != dimension:
        raise EmbeddingError(
            f"Embedding has {len(vector)} dimensions, expected {dimension}"
        )
    values = [float(v) for v in vector]
    if not all(math.isfinite(v) for v in values):
        raise EmbeddingError("Embedding contains non-finite values")
    return values
