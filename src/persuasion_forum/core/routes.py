"""Route access policy.

The policy is an immutable value built once at process start and handed to the
session middleware. It classifies a request path against three pattern lists
(public, protected and auth-only) and decides whether the request may proceed.

Pattern forms:
    * ``/exact``: matches the path exactly, or any nested path below it
      (``/exact/child``) but not a sibling sharing the prefix (``/exactly``).
    * ``/prefix*``: matches every path starting with ``/prefix``.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from typing import Literal
from urllib.parse import quote

logger = logging.getLogger(__name__)

AccessAction = Literal["allow", "redirect_login", "redirect_home", "deny"]

DEFAULT_PROTECTED_PATTERNS: tuple[str, ...] = (
    "/bookmarks",
    "/create",
    "/post/create",
    "/notifications",
    "/post/*",
    "/popular-votes",
    "/user-ranking",
    "/vote-results",
    "/trending",
    "/tags/*",
    "/space/*",
    "/profile/*",
    "/settings",
    "/api/protected",
    "/api/user",
    "/api/admin",
    "/api/posts",
    "/api/ranking",
    "/api/analysis",
)

DEFAULT_AUTH_PATTERNS: tuple[str, ...] = (
    "/auth/login",
    "/auth/signup",
    "/auth/reset",
)

DEFAULT_PUBLIC_PATTERNS: tuple[str, ...] = (
    "/",
    "/about",
    "/contact",
    "/health",
    "/api/public",
    "/api/auth/*",
    "/auth/callback",
    "/docs",
    "/openapi.json",
)


class RouteIntegrityError(RuntimeError):
    """Raised when a policy's pattern lists no longer match their checksum."""


class RouteRegistrationError(RuntimeError):
    """Raised for any attempt to register a route pattern at runtime."""


@dataclass(frozen=True)
class RouteAccessResult:
    """Outcome of classifying a single request path."""

    allowed: bool
    action: AccessAction
    redirect: str | None = None


def match_pattern(path: str, pattern: str) -> bool:
    """Return True if ``path`` is covered by ``pattern``."""
    if path == pattern:
        return True

    if pattern.endswith("*"):
        return path.startswith(pattern[:-1])

    if path.startswith(pattern):
        remainder = path[len(pattern):]
        return remainder == "" or remainder.startswith("/")

    return False


def _checksum(*groups: tuple[str, ...]) -> str:
    data = "|".join(pattern for group in groups for pattern in group)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class RoutePolicy:
    """Immutable route classification policy."""

    protected: tuple[str, ...] = DEFAULT_PROTECTED_PATTERNS
    auth: tuple[str, ...] = DEFAULT_AUTH_PATTERNS
    public: tuple[str, ...] = DEFAULT_PUBLIC_PATTERNS
    login_path: str = "/auth/login"
    home_path: str = "/"
    checksum: str = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # Accept any iterable on construction but store tuples only.
        for name in ("protected", "auth", "public"):
            object.__setattr__(self, name, tuple(getattr(self, name)))
        object.__setattr__(self, "checksum", _checksum(self.protected, self.auth, self.public))

    def verify_integrity(self) -> None:
        """Raise RouteIntegrityError if the pattern lists were altered."""
        if _checksum(self.protected, self.auth, self.public) != self.checksum:
            raise RouteIntegrityError("Route configuration has been tampered with")

    def is_protected_route(self, path: str) -> bool:
        self.verify_integrity()
        return any(match_pattern(path, pattern) for pattern in self.protected)

    def is_auth_route(self, path: str) -> bool:
        self.verify_integrity()
        return any(match_pattern(path, pattern) for pattern in self.auth)

    def is_public_route(self, path: str) -> bool:
        self.verify_integrity()
        return any(match_pattern(path, pattern) for pattern in self.public)

    def protected_api_routes(self) -> tuple[str, ...]:
        """Return the protected patterns that belong to the JSON API."""
        self.verify_integrity()
        return tuple(pattern for pattern in self.protected if pattern.startswith("/api/"))

    def login_redirect(self, path: str) -> str:
        """Return the login URL carrying ``path`` as its return target."""
        return f"{self.login_path}?redirect={quote(path, safe='')}"

    def validate_access(self, path: str, is_authenticated: bool) -> RouteAccessResult:
        """Decide what to do with a request for ``path``.

        Public routes win over protected ones, protected over auth-only ones;
        anything unlisted is denied.
        """
        self.verify_integrity()

        if self.is_public_route(path):
            return RouteAccessResult(allowed=True, action="allow")

        if self.is_protected_route(path):
            if not is_authenticated:
                return RouteAccessResult(
                    allowed=False,
                    action="redirect_login",
                    redirect=self.login_redirect(path),
                )
            return RouteAccessResult(allowed=True, action="allow")

        if self.is_auth_route(path):
            if is_authenticated:
                return RouteAccessResult(
                    allowed=False,
                    action="redirect_home",
                    redirect=self.home_path,
                )
            return RouteAccessResult(allowed=True, action="allow")

        return RouteAccessResult(allowed=False, action="deny")

    def register_protected_route(self, pattern: str) -> None:
        """Reject runtime route registration.

        The policy is fixed at construction; build a new ``RoutePolicy`` instead.
        """
        if not pattern or not isinstance(pattern, str):
            raise RouteRegistrationError(f"Invalid route pattern: {pattern!r}")

        logger.warning("Runtime route registration attempted: %s", pattern)
        raise RouteRegistrationError(
            f"Runtime route changes are not permitted. Pattern: {pattern}"
        )


def default_route_policy() -> RoutePolicy:
    """Build the policy used by the application."""
    return RoutePolicy()
