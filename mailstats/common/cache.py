"""
Redis cache client with async support.

Backs the statistics cache when `cache.backend` is "redis".
"""

from __future__ import annotations

from typing import Any

from redis.asyncio import ConnectionPool, Redis

from mailstats.common.config import get_settings
from mailstats.common.exceptions import CacheError
from mailstats.common.logger import get_logger
from mailstats.common.utils import json_dumps, json_loads

logger = get_logger(__name__)


class RedisClient:
    """
    Async Redis client wrapper.

    Provides high-level caching operations with JSON serialization.
    """

    def __init__(self) -> None:
        self._pool: ConnectionPool | None = None
        self._client: Redis | None = None

    @property
    def client(self) -> Redis:
        """Get the Redis client."""
        if self._client is None:
            raise RuntimeError("Redis not initialized. Call connect() first.")
        return self._client

    async def connect(self) -> None:
        """Initialize Redis connection pool."""
        settings = get_settings()

        self._pool = ConnectionPool.from_url(
            settings.redis.url,
            max_connections=settings.redis.pool_size,
            socket_timeout=settings.redis.socket_timeout,
            socket_connect_timeout=settings.redis.socket_timeout,
            decode_responses=True,
        )
        self._client = Redis(connection_pool=self._pool)

        # Test connection
        await self._client.ping()

        logger.info(
            "Redis connected",
            host=settings.redis.host,
            port=settings.redis.port,
            db=settings.redis.db,
        )

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None
        if self._pool:
            await self._pool.disconnect()
            self._pool = None
        logger.info("Redis connection closed")

    async def health_check(self) -> bool:
        """Check Redis connection health."""
        try:
            await self.client.ping()
            return True
        except Exception as e:
            logger.error("Redis health check failed", error=str(e))
            return False

    # ==================== Basic Operations ====================

    async def get(self, key: str) -> str | None:
        """Get a string value."""
        return await self.client.get(key)

    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        """
        Set a string value.

        Args:
            key: Redis key.
            value: String value.
            ttl: Time to live in seconds.
        """
        result = await self.client.set(key, value, ex=ttl)
        return bool(result)

    # ==================== JSON Operations ====================

    async def get_json(self, key: str) -> Any:
        """Get and deserialize JSON value."""
        value = await self.get(key)
        if value is None:
            return None
        try:
            return json_loads(value)
        except Exception as e:
            logger.warning("Failed to parse JSON", key=key, error=str(e))
            return None

    async def set_json(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Serialize and set JSON value."""
        try:
            json_str = json_dumps(value)
        except Exception as e:
            raise CacheError(f"Failed to serialize JSON: {e}")
        return await self.set(key, json_str, ttl=ttl)


# Global Redis client instance
redis_client = RedisClient()


# ==================== Key Builders ====================


class CacheKeys:
    """Redis key builders for different data types."""

    @staticmethod
    def campaign_stats(account_id: str, campaign_uid: str) -> str:
        return f"stats:campaign:{account_id}:{campaign_uid}"
