"""
Fixed-window rate limiters for invite issuance and join attempts.

Contract: allow(key, max_requests, window_ms) -> bool

  - first request in a window starts it: count=1, reset_at=now+window_ms
  - later requests in the window increment count; rejected once count > max_requests
  - once now > reset_at the window starts over

Fixed window, not sliding: a burst straddling a window boundary can get
close to 2x the nominal rate through. These limits deter abuse of the
invite endpoints; they are not quota enforcement.

Backends:
  - InMemoryRateLimiter: process-local, lost on restart. Clock is injectable.
  - RedisRateLimiter: INCR + PEXPIRE, shared across instances. Fails open
    when Redis is unreachable so invites keep working.

Limiters are built once in the app lifespan and handed to the services;
nothing here is module-level state.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from redis.exceptions import RedisError

from services.api.config import settings

logger = logging.getLogger(__name__)

# Sweep expired windows once the table grows past this many keys.
_SWEEP_THRESHOLD = 10_000


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class RateLimiter(Protocol):
    async def allow(self, key: str, max_requests: int, window_ms: int) -> bool: ...


@dataclass
class _Window:
    count: int
    reset_at: float


class InMemoryRateLimiter:
    """Process-local fixed-window counter per key."""

    def __init__(self, clock: Callable[[], float] = _monotonic_ms):
        self._clock = clock
        self._windows: dict[str, _Window] = {}

    async def allow(self, key: str, max_requests: int, window_ms: int) -> bool:
        now = self._clock()
        window = self._windows.get(key)
        if window is None or now > window.reset_at:
            if len(self._windows) >= _SWEEP_THRESHOLD:
                self._sweep(now)
            self._windows[key] = _Window(count=1, reset_at=now + window_ms)
            return True

        window.count += 1
        return window.count <= max_requests

    def _sweep(self, now: float) -> None:
        expired = [k for k, w in self._windows.items() if now > w.reset_at]
        for k in expired:
            del self._windows[k]


class RedisRateLimiter:
    """Fixed-window counter in Redis, keyed ratelimit:<key>."""

    def __init__(self, redis_client):
        self.redis = redis_client

    async def allow(self, key: str, max_requests: int, window_ms: int) -> bool:
        window_key = f"ratelimit:{key}"
        try:
            pipe = self.redis.pipeline()
            pipe.incr(window_key)
            pipe.pttl(window_key)
            count, ttl = await pipe.execute()
            # -1: key has no expiry yet, i.e. this request opened the window
            if ttl is None or ttl < 0:
                await self.redis.pexpire(window_key, window_ms)
        except RedisError as exc:
            logger.warning("rate_limit_unavailable key=%s error=%s", key, exc)
            return True
        return int(count) <= max_requests


def build_rate_limiter(redis_client: Optional[object] = None) -> RateLimiter:
    """Pick the configured backend. Falls back to in-process when Redis is absent."""
    if settings.rate_limit_backend == "redis":
        if redis_client is not None:
            return RedisRateLimiter(redis_client)
        logger.warning("rate_limit_backend=redis but no client available, using in-process limiter")
    return InMemoryRateLimiter()
