"""
Per-user generation quota.

Each user gets QUOTA_LIMIT generations per fixed window of QUOTA_WINDOW_SECONDS.
The counter lives in Redis under `quota:{user_id}` and counts *remaining*
generations; the key's TTL is the window. All mutations are single Redis
commands (SET NX EX, DECR), so no in-process locking is needed.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Callable

from dotenv import load_dotenv
from redis.exceptions import RedisError

from flowsmith.models.generation import QuotaStatus

load_dotenv()

logger = logging.getLogger(__name__)

QUOTA_LIMIT = int(os.getenv("QUOTA_LIMIT", "10"))
QUOTA_WINDOW_SECONDS = int(os.getenv("QUOTA_WINDOW_SECONDS", "86400"))  # 24 hours


class QuotaStoreError(Exception):
    """The quota counter store could not be reached."""


class RateLimiter:
    def __init__(
        self,
        store: Any,
        *,
        limit: int = QUOTA_LIMIT,
        window_seconds: int = QUOTA_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock

    @staticmethod
    def quota_key(identity: str) -> str:
        return f"quota:{identity}"

    async def check_and_consume(self, identity: str) -> QuotaStatus:
        """
        Consume one generation for `identity` if any remain.

        Rejections do not touch the counter, so repeated calls while exhausted
        keep returning remaining=0 with the same reset time.
        """
        key = self.quota_key(identity)
        try:
            if await self._start_window(key, nx=True):
                return QuotaStatus(
                    allowed=True,
                    remaining=self.limit - 1,
                    reset_at=self._window_reset_at(),
                )

            raw = await self.store.get(key)
            if raw is None:
                # Window expired between SET NX and GET
                await self._start_window(key, nx=False)
                return QuotaStatus(
                    allowed=True,
                    remaining=self.limit - 1,
                    reset_at=self._window_reset_at(),
                )

            if _parse_count(raw) <= 0:
                ttl = await self.store.ttl(key)
                logger.info("Quota exhausted for %s", identity)
                return QuotaStatus(allowed=False, remaining=0, reset_at=self._reset_at(ttl))

            remaining = int(await self.store.decr(key))
            ttl = await self.store.ttl(key)
            if ttl == -1:
                # Key lost its expiry; put the window back so it can reset
                await self.store.expire(key, self.window_seconds)
                ttl = self.window_seconds
        except RedisError as e:
            logger.error("Quota store unavailable while checking %s: %s", identity, e)
            raise QuotaStoreError(f"Quota store unavailable: {e}") from e

        return QuotaStatus(
            allowed=True,
            remaining=max(remaining, 0),
            reset_at=self._reset_at(ttl),
        )

    async def peek(self, identity: str) -> QuotaStatus:
        """Current quota for `identity` without consuming anything."""
        key = self.quota_key(identity)
        try:
            raw = await self.store.get(key)
            ttl = await self.store.ttl(key) if raw is not None else -2
        except RedisError as e:
            logger.error("Quota store unavailable while reading %s: %s", identity, e)
            raise QuotaStoreError(f"Quota store unavailable: {e}") from e

        remaining = self.limit if raw is None else max(_parse_count(raw), 0)
        reset_at = self._reset_at(ttl) if ttl > 0 else self._window_reset_at()
        return QuotaStatus(allowed=remaining > 0, remaining=remaining, reset_at=reset_at)

    async def _start_window(self, key: str, *, nx: bool) -> bool:
        created = await self.store.set(key, self.limit - 1, ex=self.window_seconds, nx=nx)
        return bool(created)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _window_reset_at(self) -> int:
        return self._now_ms() + self.window_seconds * 1000

    def _reset_at(self, ttl: int) -> int:
        return self._now_ms() + (ttl * 1000 if ttl > 0 else 0)


def _parse_count(raw: Any) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return 0


def get_rate_limiter() -> RateLimiter:
    """FastAPI dependency returning a limiter bound to the shared Redis client."""
    from flowsmith.db.redis import get_redis

    return RateLimiter(get_redis().client)
