"""Fixed-window rate limiting for user actions."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from threading import Lock
from typing import Any

import redis

from persuasion_forum.core.settings import settings

logger = logging.getLogger(__name__)


class RateLimitError(RuntimeError):
    """Raised when an identifier has used up its allowance for the window."""

    def __init__(self, message: str, *, retry_after: int) -> None:
        super().__init__(message)
        self.retry_after = retry_after


@dataclass(frozen=True)
class RateLimit:
    """Allowance of ``max_requests`` per ``window_seconds``."""

    max_requests: int
    window_seconds: int


class RateLimiter:
    """Counts actions per identifier in fixed windows.

    Backed by Redis if available; falls back to an in-process table.
    """

    def __init__(self, redis_url: str | None = None) -> None:
        self._redis: Any = None
        url = redis_url if redis_url is not None else settings.redis_url
        if url:
            try:
                self._redis = redis.from_url(url)
            except (redis.RedisError, ValueError) as exc:
                logger.warning("Rate limiter falling back to memory: %s", exc)
                self._redis = None

    def hit(self, action: str, identifier: str, limit: RateLimit) -> int:
        """Record one action and return the remaining allowance.

        Raises:
            RateLimitError: If the allowance for the current window is used up.
        """
        key = f"ratelimit:{action}:{identifier}:{limit.window_seconds}"
        if self._redis is not None:
            try:
                pipe = self._redis.pipeline()
                pipe.incr(key)
                pipe.ttl(key)
                count, ttl = pipe.execute()
                if ttl is None or ttl < 0:
                    self._redis.expire(key, limit.window_seconds)
                    ttl = limit.window_seconds
                return self._check(int(count), limit, int(ttl))
            except redis.RedisError as exc:
                logger.warning("Rate limiter redis failure, using memory: %s", exc)
                self._redis = None

        now = time.monotonic()
        with _LIMIT_LOCK:
            _purge_expired(now)
            count, reset_at = _LIMIT_CACHE.get(key, (0, 0.0))
            if now >= reset_at:
                count, reset_at = 0, now + limit.window_seconds
            if count < limit.max_requests:
                count += 1
                _LIMIT_CACHE[key] = (count, reset_at)
            else:
                count = limit.max_requests + 1
        return self._check(count, limit, math.ceil(reset_at - now))

    @staticmethod
    def _check(count: int, limit: RateLimit, retry_after: int) -> int:
        if count > limit.max_requests:
            minutes = max(1, math.ceil(retry_after / 60))
            raise RateLimitError(
                f"Rate limit reached. Try again in {minutes} minute(s).",
                retry_after=max(retry_after, 0),
            )
        return limit.max_requests - count

    def reset(self) -> None:
        """Drop every in-process counter."""
        with _LIMIT_LOCK:
            _LIMIT_CACHE.clear()


_LIMIT_CACHE: dict[str, tuple[int, float]] = {}
_LIMIT_LOCK = Lock()


def _purge_expired(now: float) -> None:
    # Caller holds _LIMIT_LOCK.
    expired = [key for key, (_, reset_at) in _LIMIT_CACHE.items() if reset_at <= now]
    for key in expired:
        del _LIMIT_CACHE[key]


def vote_limit() -> RateLimit:
    """Return the vote allowance configured for this deployment."""
    return RateLimit(
        max_requests=settings.vote_rate_limit,
        window_seconds=settings.vote_rate_window_seconds,
    )


_limiter_instance: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    """Return the shared rate limiter."""
    global _limiter_instance
    if _limiter_instance is None:
        _limiter_instance = RateLimiter()
    return _limiter_instance
