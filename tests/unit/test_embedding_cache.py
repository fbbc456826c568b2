"""Query embedding cache tests with a mocked Redis client."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from notetree.services.embedding_cache import CACHE_PREFIX, QueryEmbeddingCache


@pytest.fixture
def cache() -> QueryEmbeddingCache:
    cache = QueryEmbeddingCache("redis://localhost:6379", "test-model", default_ttl=30)
    cache._client = AsyncMock()
    return cache


@pytest.mark.asyncio
async def test_wrap_uses_cached_vector(cache):
    cache._client.get.return_value = json.dumps([1.0, 0.0])
    embed = AsyncMock()

    vector = await cache.wrap(embed)("query")

    assert vector == [1.0, 0.0]
    embed.assert_not_called()


@pytest.mark.asyncio
async def test_wrap_stores_miss_with_ttl(cache):
    cache._client.get.return_value = None
    embed = AsyncMock(return_value=[0.5, 0.5])

    vector = await cache.wrap(embed)("query")

    assert vector == [0.5, 0.5]
    key, ttl, payload = cache._client.setex.call_args.args
    assert key.startswith(CACHE_PREFIX)
    assert ttl == 30
    assert json.loads(payload) == [0.5, 0.5]


def test_keys_depend_on_model():
    a = QueryEmbeddingCache("redis://x", "model-a")
    b = QueryEmbeddingCache("redis://x", "model-b")

    assert a._make_key("q") != b._make_key("q")
    assert a._make_key("q") == a._make_key("q")


@pytest.mark.asyncio
async def test_redis_failures_fall_through(cache):
    cache._client.get.side_effect = ConnectionError("down")
    cache._client.setex.side_effect = ConnectionError("down")
    embed = AsyncMock(return_value=[0.1])

    assert await cache.wrap(embed)("q") == [0.1]
    embed.assert_awaited_once_with("q")


@pytest.mark.asyncio
async def test_connect_failure_disables_cache():
    cache = QueryEmbeddingCache("redis://unreachable:6379", "m")
    client = AsyncMock()
    client.ping.side_effect = ConnectionError("refused")

    with patch("notetree.services.embedding_cache.aioredis.from_url", return_value=client):
        await cache.connect()

    assert cache.available is False
    assert await cache.get("q") is None
