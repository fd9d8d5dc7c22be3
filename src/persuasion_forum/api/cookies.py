"""Session cookie helpers shared by the middleware and the auth endpoints."""

from starlette.responses import Response

from persuasion_forum.core.settings import settings


def _cookie_options() -> dict[str, object]:
    return {
        "httponly": True,
        "secure": settings.is_production,
        "samesite": "lax",
        "path": "/",
    }


def set_session_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    """Store the token pair as httpOnly cookies."""
    response.set_cookie(
        settings.access_cookie_name,
        access_token,
        max_age=settings.access_cookie_max_age,
        **_cookie_options(),
    )
    response.set_cookie(
        settings.refresh_cookie_name,
        refresh_token,
        max_age=settings.refresh_cookie_max_age,
        **_cookie_options(),
    )


def clear_session_cookies(response: Response) -> None:
    """Expire both session cookies immediately."""
    for name in (settings.access_cookie_name, settings.refresh_cookie_name):
        response.set_cookie(name, "", max_age=0, **_cookie_options())
