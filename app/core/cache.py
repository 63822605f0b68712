"""
Redis list cache used as the read-acceleration copy of notifications.

The relational store stays authoritative; entries here are appended on the
write path and expire on their own.
"""
import json
import logging
from typing import Any, Optional

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from app.core.exceptions import DependencyUnavailableError, ValidationFailureError

logger = logging.getLogger(__name__)


class RedisListCache:
    """Bounded Redis lists with a per-key expiry"""

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        max_list_length: int = 100,
        key_prefix: str = "",
        max_connections: int = 10,
    ):
        """
        Args:
            url: Redis connection URL
            max_list_length: Newest entries kept per list
            key_prefix: Prefix for all cache keys
            max_connections: Maximum Redis connections in pool
        """
        self.url = url
        self.max_list_length = max_list_length
        self.key_prefix = key_prefix
        self.max_connections = max_connections

        self._pool: Optional[ConnectionPool] = None
        self._redis: Optional[Redis] = None
        self._initialized = False

    async def initialize(self) -> None:
        """Create the connection pool and check the server answers"""
        if self._initialized:
            return

        self._pool = ConnectionPool.from_url(
            self.url,
            max_connections=self.max_connections,
            decode_responses=True,
        )
        self._redis = Redis(connection_pool=self._pool)

        try:
            await self._redis.ping()
            self._initialized = True
            logger.info(f"RedisListCache initialized: {self.url} (max_list_length={self.max_list_length})")
        except (RedisError, OSError) as e:
            logger.error(f"RedisListCache initialization failed: {e}")
            await self.close()
            raise DependencyUnavailableError(f"Cache store unavailable: {e}") from e

    async def close(self) -> None:
        """Close Redis connection pool."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

        if self._pool:
            await self._pool.aclose()
            self._pool = None

        self._initialized = False

    def _make_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def append_to_list_with_expiry(self, key: str, value: Any, ttl_seconds: int) -> int:
        """
        Append a JSON-serialized value to the list at key, keep only the newest
        max_list_length entries, and reset the key's expiry to ttl_seconds.

        The three commands run in one MULTI/EXEC pipeline. Returns the list
        length after the append.
        """
        if ttl_seconds is None or ttl_seconds <= 0:
            raise ValidationFailureError("ttl_seconds must be positive")
        if not self._initialized or not self._redis:
            raise DependencyUnavailableError("Cache store is not initialized")

        full_key = self._make_key(key)
        payload = json.dumps(value, default=str)
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.rpush(full_key, payload)
                pipe.ltrim(full_key, -self.max_list_length, -1)
                pipe.expire(full_key, ttl_seconds)
                length, _, _ = await pipe.execute()
        except (RedisError, OSError) as e:
            logger.warning(f"Cache append failed for key {full_key}: {e}")
            raise DependencyUnavailableError(f"Cache store unavailable: {e}") from e

        return min(length, self.max_list_length)
