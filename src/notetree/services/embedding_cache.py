"""Redis cache for search-query embeddings.

Paging through one search would otherwise call the embedding provider once
per page. Only query texts are cached; note bodies are always embedded fresh.
Redis being unavailable disables caching and nothing else.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Optional

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)

CACHE_PREFIX = "query_embedding:"
DEFAULT_TTL = 600  # 10 minutes

Embedder = Callable[[str], Awaitable[list[float]]]


class QueryEmbeddingCache:
    """Async Redis cache keyed by the SHA-256 of model name and query text."""

    def __init__(
        self,
        redis_url: str,
        model: str,
        default_ttl: int = DEFAULT_TTL,
    ) -> None:
        self._redis_url = redis_url
        self._model = model
        self._default_ttl = default_ttl
        self._client: Optional[aioredis.Redis] = None

    @property
    def available(self) -> bool:
        """Whether the Redis connection is active."""
        return self._client is not None

    async def connect(self) -> None:
        """Connect to Redis. Non-fatal if Redis is unavailable."""
        try:
            self._client = aioredis.from_url(self._redis_url, decode_responses=True)
            await self._client.ping()
            logger.info("Query embedding cache connected: %s", self._redis_url)
        except Exception as e:
            logger.warning("Redis unavailable, query cache disabled: %s", e)
            self._client = None

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _make_key(self, text: str) -> str:
        digest = hashlib.sha256(f"{self._model}\x00{text}".encode()).hexdigest()
        return f"{CACHE_PREFIX}{digest}"

    async def get(self, text: str) -> Optional[list[float]]:
        """Cached vector for ``text``, or None on miss / Redis failure."""
        if not self._client:
            return None
        try:
            raw = await self._client.get(self._make_key(text))
        except Exception as e:
            logger.warning("Redis get failed: %s", e)
            return None
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, text: str, vector: list[float]) -> None:
        """Store ``vector`` with TTL. Failures are logged and ignored."""
        if not self._client:
            return
        try:
            await self._client.setex(
                self._make_key(text), self._default_ttl, json.dumps(vector)
            )
        except Exception as e:
            logger.warning("Redis set failed: %s", e)

    def wrap(self, embed: Embedder) -> Embedder:
        """Return an embedder that consults the cache before ``embed``."""

        async def cached_embed(text: str) -> list[float]:
            vector = await self.get(text)
            if vector is not None:
                return vector
            vector = await embed(text)
            await self.set(text, vector)
            return vector

        return cached_embed
