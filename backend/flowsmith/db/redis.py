"""
Redis client wrapper. Backs the per-user generation quota.
"""
import os
from typing import Optional

import redis.asyncio as redis


class RedisClient:
    """Singleton async Redis client wrapper."""

    _instance: Optional['RedisClient'] = None
    _client: Optional[redis.Redis] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._client is None:
            redis_url = os.getenv("REDIS_URL", "redis://localhost:6379/0")
            # from_url is lazy; the first command opens the connection
            self._client = redis.from_url(redis_url, encoding="utf-8", decode_responses=True)

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client instance."""
        if self._client is None:
            raise RuntimeError("Redis client not initialized. Check REDIS_URL.")
        return self._client

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def get_redis() -> RedisClient:
    """Get the Redis client singleton."""
    return RedisClient()
