"""
Tests for the Redis list cache behind notification fan-out.

Tests cover:
- RPUSH, LTRIM and EXPIRE issued together in one transaction
- Key prefixing and JSON payloads
- Input validation and unavailable-store errors
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.core.cache import RedisListCache
from app.core.exceptions import DependencyUnavailableError, ValidationFailureError


@pytest.fixture
def redis_mocks():
    """Patch the pool and client; yields (client, pipeline) mocks"""
    with patch("app.core.cache.ConnectionPool") as mock_pool_cls, patch("app.core.cache.Redis") as mock_redis_cls:
        mock_pool = MagicMock()
        mock_pool.aclose = AsyncMock()
        mock_pool_cls.from_url.return_value = mock_pool

        mock_pipe = MagicMock()
        mock_pipe.__aenter__.return_value = mock_pipe
        mock_pipe.__aexit__.return_value = False
        mock_pipe.execute = AsyncMock(return_value=[1, True, True])

        mock_redis = AsyncMock()
        mock_redis.ping = AsyncMock()
        mock_redis.aclose = AsyncMock()
        mock_redis.pipeline = MagicMock(return_value=mock_pipe)
        mock_redis_cls.return_value = mock_redis

        yield mock_redis, mock_pipe


class TestAppendToListWithExpiry:
    async def test_push_trim_and_expire_in_one_transaction(self, redis_mocks):
        mock_redis, mock_pipe = redis_mocks
        cache = RedisListCache(url="redis://localhost:6379", max_list_length=100)
        await cache.initialize()

        try:
            length = await cache.append_to_list_with_expiry("notification:u1", {"id": "n1", "read": False}, 604800)

            assert length == 1
            mock_redis.pipeline.assert_called_once_with(transaction=True)
            mock_pipe.rpush.assert_called_once_with("notification:u1", json.dumps({"id": "n1", "read": False}))
            mock_pipe.ltrim.assert_called_once_with("notification:u1", -100, -1)
            mock_pipe.expire.assert_called_once_with("notification:u1", 604800)
            mock_pipe.execute.assert_awaited_once()
        finally:
            await cache.close()

    async def test_key_prefix(self, redis_mocks):
        _, mock_pipe = redis_mocks
        cache = RedisListCache(key_prefix="sg:")
        await cache.initialize()

        await cache.append_to_list_with_expiry("notification:u1", "x", 10)

        assert mock_pipe.rpush.call_args[0][0] == "sg:notification:u1"
        assert mock_pipe.expire.call_args[0] == ("sg:notification:u1", 10)

    async def test_reported_length_is_capped(self, redis_mocks):
        _, mock_pipe = redis_mocks
        mock_pipe.execute.return_value = [101, True, True]
        cache = RedisListCache(max_list_length=100)
        await cache.initialize()

        assert await cache.append_to_list_with_expiry("k", "v", 10) == 100

    @pytest.mark.parametrize("ttl", [0, -1, None])
    async def test_non_positive_ttl_rejected(self, redis_mocks, ttl):
        mock_redis, _ = redis_mocks
        cache = RedisListCache()
        await cache.initialize()

        with pytest.raises(ValidationFailureError):
            await cache.append_to_list_with_expiry("k", "v", ttl)
        mock_redis.pipeline.assert_not_called()

    async def test_not_initialized(self):
        cache = RedisListCache()
        with pytest.raises(DependencyUnavailableError):
            await cache.append_to_list_with_expiry("k", "v", 10)

    async def test_redis_error_becomes_dependency_unavailable(self, redis_mocks):
        _, mock_pipe = redis_mocks
        mock_pipe.execute.side_effect = RedisConnectionError("connection reset")
        cache = RedisListCache()
        await cache.initialize()

        with pytest.raises(DependencyUnavailableError):
            await cache.append_to_list_with_expiry("k", "v", 10)


class TestLifecycle:
    async def test_initialize_failure_closes_pool(self, redis_mocks):
        mock_redis, _ = redis_mocks
        mock_redis.ping.side_effect = RedisConnectionError("refused")
        cache = RedisListCache()

        with pytest.raises(DependencyUnavailableError):
            await cache.initialize()

        mock_redis.aclose.assert_awaited_once()
        with pytest.raises(DependencyUnavailableError):
            await cache.append_to_list_with_expiry("k", "v", 10)

    async def test_initialize_is_idempotent(self, redis_mocks):
        mock_redis, _ = redis_mocks
        cache = RedisListCache()
        await cache.initialize()
        await cache.initialize()
        mock_redis.ping.assert_awaited_once()

    async def test_close(self, redis_mocks):
        mock_redis, _ = redis_mocks
        cache = RedisListCache()
        await cache.initialize()

        await cache.close()

        mock_redis.aclose.assert_awaited_once()
        with pytest.raises(DependencyUnavailableError):
            await cache.append_to_list_with_expiry("k", "v", 10)
