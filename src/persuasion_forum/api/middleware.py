"""Session gate applied to every non-static request."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse, RedirectResponse, Response

from persuasion_forum.api.cookies import clear_session_cookies
from persuasion_forum.core.routes import RoutePolicy
from persuasion_forum.core.settings import settings
from persuasion_forum.services.session_cache import SessionCache, get_session_cache
from persuasion_forum.services.supabase import (
    AuthUser,
    SupabaseClient,
    SupabaseError,
    get_supabase_client,
)

logger = logging.getLogger(__name__)

STATIC_PREFIXES = ("_next/static", "_next/image", "static/")
STATIC_EXTENSIONS = (".svg", ".png", ".jpg", ".jpeg", ".gif", ".webp")
# Sign-in endpoints run anonymously when the old session cookie is stale.
SIGN_IN_PREFIXES = ("/api/auth/", "/auth/callback")


def is_static_asset(path: str) -> bool:
    """Return True for paths the session gate never looks at."""
    relative = path.lstrip("/")
    if relative == "favicon.ico" or relative.startswith(STATIC_PREFIXES):
        return True
    return relative.lower().endswith(STATIC_EXTENSIONS)


class SessionCookieMiddleware(BaseHTTPMiddleware):
    """Validate the session cookie, then apply the route policy.

    The Supabase client and session cache are resolved through the app's
    dependency overrides, so tests that replace them for the endpoints also
    replace them here.
    """

    def __init__(self, app: FastAPI, policy: RoutePolicy) -> None:
        super().__init__(app)
        self.policy = policy

    @staticmethod
    def _resolve(request: Request, factory):
        overrides = getattr(request.app, "dependency_overrides", {})
        return overrides.get(factory, factory)()

    async def _verify(self, request: Request, access_token: str) -> AuthUser:
        cache: SessionCache = self._resolve(request, get_session_cache)
        cached = cache.get(access_token)
        if cached is not None:
            return cached

        client: SupabaseClient = self._resolve(request, get_supabase_client)
        user = await client.get_user(access_token)
        cache.put(access_token, user)
        return user

    def _fail_closed(self) -> Response:
        response = RedirectResponse(
            self.policy.login_path, status_code=status.HTTP_307_TEMPORARY_REDIRECT
        )
        clear_session_cookies(response)
        return response

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if is_static_asset(path):
            return await call_next(request)

        user: AuthUser | None = None
        access_token = request.cookies.get(settings.access_cookie_name)
        if access_token:
            try:
                user = await self._verify(request, access_token)
            except SupabaseError as exc:
                logger.warning("Session token rejected on %s: %s", path, exc)
                if not path.startswith(SIGN_IN_PREFIXES):
                    return self._fail_closed()
            except Exception:
                logger.exception("Session validation failed on %s", path)
                if not path.startswith(SIGN_IN_PREFIXES):
                    return self._fail_closed()

        decision = self.policy.validate_access(path, user is not None)
        if decision.action == "allow":
            request.state.user = user
            return await call_next(request)
        if decision.redirect is not None:
            return RedirectResponse(
                decision.redirect, status_code=status.HTTP_307_TEMPORARY_REDIRECT
            )
        return JSONResponse({"error": "Forbidden"}, status_code=status.HTTP_403_FORBIDDEN)
