"""
Shared test doubles.

FakeRedis implements the handful of async Redis commands the rate limiter uses
(SET with EX/NX, GET, DECR, TTL, EXPIRE) against an in-memory dict and a
controllable clock.
"""

import math
import sys
from pathlib import Path

import pytest

backend_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(backend_root))


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRedis:
    def __init__(self, clock: FakeClock):
        self._clock = clock
        self.values: dict[str, str] = {}
        self.expires_at: dict[str, float] = {}
        self.commands: list[tuple[str, str]] = []

    def _purge(self, key: str) -> None:
        expires_at = self.expires_at.get(key)
        if expires_at is not None and expires_at <= self._clock():
            self.values.pop(key, None)
            self.expires_at.pop(key, None)

    async def set(self, key, value, ex=None, nx=False):
        self.commands.append(("set", key))
        self._purge(key)
        if nx and key in self.values:
            return None
        self.values[key] = str(value)
        if ex is not None:
            self.expires_at[key] = self._clock() + ex
        else:
            self.expires_at.pop(key, None)
        return True

    async def get(self, key):
        self.commands.append(("get", key))
        self._purge(key)
        return self.values.get(key)

    async def decr(self, key):
        self.commands.append(("decr", key))
        self._purge(key)
        value = int(self.values.get(key, "0")) - 1
        self.values[key] = str(value)
        return value

    async def ttl(self, key):
        self.commands.append(("ttl", key))
        self._purge(key)
        if key not in self.values:
            return -2
        expires_at = self.expires_at.get(key)
        if expires_at is None:
            return -1
        return max(int(math.ceil(expires_at - self._clock())), 0)

    async def expire(self, key, seconds):
        self.commands.append(("expire", key))
        self._purge(key)
        if key not in self.values:
            return False
        self.expires_at[key] = self._clock() + seconds
        return True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_redis(clock):
    return FakeRedis(clock)
