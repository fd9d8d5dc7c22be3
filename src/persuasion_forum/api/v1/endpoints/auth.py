# src/persuasion_forum/api/v1/endpoints/auth.py
"""Session cookie endpoints and the OAuth callback."""

from __future__ import annotations

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, HTTPException, Request, Response, status
from fastapi.responses import RedirectResponse

from persuasion_forum.api.cookies import clear_session_cookies, set_session_cookies
from persuasion_forum.api.v1.dependencies import SessionCacheDep, SupabaseDep
from persuasion_forum.core.settings import settings
from persuasion_forum.schemas.auth import TokenPair
from persuasion_forum.schemas.common import ErrorResponse, SuccessResponse
from persuasion_forum.services.supabase import SupabaseError

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/auth",
    tags=["authentication"],
    responses={400: {"model": ErrorResponse}},
)
callback_router = APIRouter(prefix="/auth", tags=["authentication"])

LOGIN_PATH = "/auth/login"


def _login_redirect(**params: str) -> RedirectResponse:
    return RedirectResponse(
        f"{LOGIN_PATH}?{urlencode(params)}",
        status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    )


@router.post("/set-cookies", response_model=SuccessResponse)
async def set_cookies(request: Request, response: Response) -> SuccessResponse:
    """Move the browser's token pair into httpOnly cookies."""
    try:
        tokens = TokenPair.model_validate(await request.json())
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing tokens",
        ) from err

    if not tokens.access_token or not tokens.refresh_token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing tokens",
        )

    set_session_cookies(response, tokens.access_token, tokens.refresh_token)
    return SuccessResponse()


@router.post("/clear-cookies", response_model=SuccessResponse)
async def clear_cookies(
    request: Request,
    response: Response,
    cache: SessionCacheDep,
) -> SuccessResponse:
    """Expire the session cookies and forget the cached verification."""
    access_token = request.cookies.get(settings.access_cookie_name)
    if access_token:
        cache.invalidate(access_token)
    clear_session_cookies(response)
    return SuccessResponse()


@callback_router.get("/callback")
async def oauth_callback(
    client: SupabaseDep,
    code: str | None = None,
    error: str | None = None,
) -> RedirectResponse:
    """Finish an OAuth sign-in by exchanging the code for a session."""
    if error:
        logger.warning("OAuth provider returned an error: %s", error)
        return _login_redirect(error="oauth_error", message=error)

    if not code:
        return _login_redirect(error="no_code")

    try:
        session = await client.exchange_code_for_session(code)
    except SupabaseError as exc:
        logger.warning("OAuth code exchange failed: %s", exc)
        return _login_redirect(error="callback_failed")

    response = RedirectResponse("/", status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    set_session_cookies(response, session.access_token, session.refresh_token)
    return response
