"""CacheService over a mocked Redis client."""

from unittest.mock import AsyncMock

import redis.asyncio as redis

from kontext.application.services.response_cache import ResponseCache
from kontext.infrastructure.cache.redis_cache import CacheService


def _redis() -> AsyncMock:
    client = AsyncMock()
    client.hget = AsyncMock(return_value=None)
    client.delete = AsyncMock(return_value=1)
    return client


async def test_members_are_json_in_a_hash() -> None:
    client = _redis()
    cache = CacheService(redis_client=client)
    assert await cache.set_member("kontext:handlers:portfolio", "{}", {"items": [1]}) is True
    client.hset.assert_awaited_once_with("kontext:handlers:portfolio", "{}", '{"items": [1]}')

    client.hget.return_value = '{"items": [1]}'
    assert await cache.get_member("kontext:handlers:portfolio", "{}") == {"items": [1]}


async def test_delete_reports_whether_key_existed() -> None:
    client = _redis()
    cache = CacheService(redis_client=client)
    assert await cache.delete("k") is True
    client.delete.return_value = 0
    assert await cache.delete("k") is False


async def test_redis_errors_degrade_to_misses() -> None:
    """A failing Redis never breaks reads: the response is computed each time."""
    client = _redis()
    client.hget.side_effect = redis.ConnectionError("down")
    client.hset.side_effect = redis.ConnectionError("down")
    compute = AsyncMock(return_value={"items": []})

    responses = ResponseCache(CacheService(redis_client=client), "kontext:handlers")
    for _ in range(2):
        assert await responses.get_or_compute("portfolio", "{}", compute) == {"items": []}
    assert compute.await_count == 2


async def test_undecodable_entry_is_a_miss() -> None:
    client = _redis()
    client.hget.return_value = "{not json"
    assert await CacheService(redis_client=client).get_member("k", "m") is None


async def test_disconnected_store_is_unavailable() -> None:
    cache = CacheService()
    assert cache.is_available() is False
    assert await cache.get_member("k", "m") is None
    assert await cache.set_member("k", "m", 1) is False
    assert await cache.delete("k") is False
