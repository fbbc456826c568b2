"""
AI Service

OpenAI integration for generating text embeddings.
Supports mock mode for local development without API costs.
"""

import hashlib
import logging
import os
import random

from openai import AsyncOpenAI

from notetree.core.config import settings
from notetree.core.errors import EmbeddingError
from notetree.services.codec import encode_embedding

logger = logging.getLogger(__name__)


def _mock_embedding(text: str, dimension: int) -> list[float]:
    """Deterministic pseudo-embedding: identical text yields identical vectors."""
    rng = random.Random(hashlib.sha256(text.encode("utf-8")).digest())
    return [rng.random() for _ in range(dimension)]


async def get_embedding(text: str) -> list[float]:
    """
    Generate a vector embedding for the given text.

    Uses the configured OpenAI embedding model in production.
    Falls back to deterministic mock vectors when OPENAI_API_KEY is missing
    or set to 'mock'.

    Args:
        text: Input text to embed.

    Returns:
        EMBEDDING_DIMENSION-long embedding vector.

    Raises:
        EmbeddingError: If the OpenAI call fails or returns a malformed vector.
    """
    api_key = os.getenv("OPENAI_API_KEY") or settings.OPENAI_API_KEY
    dimension = settings.EMBEDDING_DIMENSION

    # Mock mode: no API costs, no network dependency
    if not api_key or api_key.lower() == "mock":
        return _mock_embedding(text, dimension)

    client = AsyncOpenAI(api_key=api_key)
    text = text.replace("\n", " ")  # OpenAI recommends single-line input

    try:
        response = await client.embeddings.create(
            input=[text], model=settings.EMBEDDING_MODEL
        )
    except Exception as e:
        logger.warning("OpenAI embedding request failed: %s", e)
        raise EmbeddingError("Embedding service unavailable") from e

    return encode_embedding(response.data[0].embedding, dimension)
