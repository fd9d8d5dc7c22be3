"""Short-lived cache of verified sessions.

A validated access token is remembered under the SHA-256 of the token so the
auth provider is not consulted on every protected request. Entries expire after
the configured TTL or at the token's own expiry, whichever comes first, and are
dropped explicitly on logout.
"""

from __future__ import annotations

import json
import logging
import time
from threading import Lock
from typing import Any, Final

import redis

from persuasion_forum.core.security import hash_token, token_expiry
from persuasion_forum.core.settings import settings
from persuasion_forum.db.time import utcnow
from persuasion_forum.services.supabase import AuthUser

logger = logging.getLogger(__name__)

_KEY_PREFIX: Final[str] = "session"


class SessionCache:
    """Verified-session cache backed by Redis with an in-process fallback."""

    def __init__(self, ttl_seconds: int | None = None, redis_url: str | None = None) -> None:
        self.ttl_seconds = settings.session_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._redis: Any = None
        url = redis_url if redis_url is not None else settings.redis_url
        if url:
            try:
                self._redis = redis.from_url(url)
            except (redis.RedisError, ValueError) as exc:
                logger.warning("Session cache falling back to memory: %s", exc)
                self._redis = None

    @staticmethod
    def _key(token: str) -> str:
        return f"{_KEY_PREFIX}:{hash_token(token)}"

    def _ttl_for(self, token: str) -> int:
        ttl = self.ttl_seconds
        expiry = token_expiry(token)
        if expiry is not None:
            ttl = min(ttl, int((expiry - utcnow()).total_seconds()))
        return ttl

    def get(self, token: str) -> AuthUser | None:
        """Return the cached user for ``token`` or None."""
        key = self._key(token)
        if self._redis is not None:
            try:
                raw = self._redis.get(key)
                return AuthUser.from_payload(json.loads(raw)) if raw else None
            except redis.RedisError as exc:
                logger.warning("Session cache read failed, using memory: %s", exc)
                self._redis = None

        now = time.monotonic()
        with _CACHE_LOCK:
            entry = _SESSION_CACHE.get(key)
            if entry is None:
                return None
            user, expires_at = entry
            if expires_at <= now:
                _SESSION_CACHE.pop(key, None)
                return None
            return user

    def put(self, token: str, user: AuthUser) -> None:
        """Remember ``user`` as the verified owner of ``token``."""
        ttl = self._ttl_for(token)
        if ttl <= 0:
            return

        key = self._key(token)
        if self._redis is not None:
            try:
                self._redis.set(key, json.dumps(user.as_dict()), ex=ttl)
                return
            except redis.RedisError as exc:
                logger.warning("Session cache write failed, using memory: %s", exc)
                self._redis = None

        now = time.monotonic()
        with _CACHE_LOCK:
            _purge_expired(now)
            _SESSION_CACHE[key] = (user, now + ttl)

    def invalidate(self, token: str) -> None:
        """Forget any cached verification of ``token``."""
        key = self._key(token)
        if self._redis is not None:
            try:
                self._redis.delete(key)
            except redis.RedisError as exc:
                logger.warning("Session cache delete failed: %s", exc)
                self._redis = None

        with _CACHE_LOCK:
            _SESSION_CACHE.pop(key, None)

    def clear(self) -> None:
        """Drop every in-process entry."""
        with _CACHE_LOCK:
            _SESSION_CACHE.clear()


_SESSION_CACHE: dict[str, tuple[AuthUser, float]] = {}
_CACHE_LOCK = Lock()


def _purge_expired(now: float) -> None:
    # Caller holds _CACHE_LOCK.
    expired = [key for key, (_, expires_at) in _SESSION_CACHE.items() if expires_at <= now]
    for key in expired:
        del _SESSION_CACHE[key]


_cache_instance: SessionCache | None = None


def get_session_cache() -> SessionCache:
    """Return the shared session cache."""
    global _cache_instance
    if _cache_instance is None:
        _cache_instance = SessionCache()
    return _cache_instance
