# src/persuasion_forum/api/v1/endpoints/protected.py
"""Example of an endpoint that validates the session cookie itself."""

import logging

from fastapi import APIRouter, HTTPException, Request, status

from persuasion_forum.api.v1.dependencies import SupabaseDep
from persuasion_forum.core.settings import settings
from persuasion_forum.db.time import utcnow
from persuasion_forum.schemas.auth import ProtectedExampleResponse, SessionUser
from persuasion_forum.services.supabase import SupabaseError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/protected", tags=["protected"])


@router.get("/example", response_model=ProtectedExampleResponse)
async def protected_example(request: Request, client: SupabaseDep) -> ProtectedExampleResponse:
    access_token = request.cookies.get(settings.access_cookie_name)
    if not access_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized - No access token",
        )

    try:
        user = await client.get_user(access_token)
    except SupabaseError as exc:
        logger.info("Protected example rejected token: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized - Invalid token",
        ) from exc

    return ProtectedExampleResponse(
        message="This is protected data",
        user=SessionUser(id=user.id, email=user.email),
        timestamp=utcnow().isoformat(),
    )
