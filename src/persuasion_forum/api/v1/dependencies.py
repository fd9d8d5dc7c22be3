"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from persuasion_forum.db.session import get_db
from persuasion_forum.services.analysis import AnalysisService
from persuasion_forum.services.posts import PostService
from persuasion_forum.services.rate_limit import RateLimiter, get_rate_limiter
from persuasion_forum.services.session_cache import SessionCache, get_session_cache
from persuasion_forum.services.supabase import AuthUser, SupabaseClient, get_supabase_client
from persuasion_forum.services.votes import VoteService

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]
SupabaseDep = Annotated[SupabaseClient, Depends(get_supabase_client)]
SessionCacheDep = Annotated[SessionCache, Depends(get_session_cache)]
RateLimiterDep = Annotated[RateLimiter, Depends(get_rate_limiter)]


def get_optional_user(request: Request) -> AuthUser | None:
    """Return the user the session middleware verified, if any."""
    return getattr(request.state, "user", None)


def get_current_user(user: Annotated[AuthUser | None, Depends(get_optional_user)]) -> AuthUser:
    """Get the current authenticated user.

    Raises:
        HTTPException: If the request carries no verified session
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[AuthUser, Depends(get_current_user)]
OptionalUserDep = Annotated[AuthUser | None, Depends(get_optional_user)]


def get_post_service(client: SupabaseDep) -> PostService:
    return PostService(client)


def get_vote_service(client: SupabaseDep, limiter: RateLimiterDep) -> VoteService:
    return VoteService(client, limiter)


def get_analysis_service(client: SupabaseDep, db: SessionDep) -> AnalysisService:
    return AnalysisService(client, db)


PostServiceDep = Annotated[PostService, Depends(get_post_service)]
VoteServiceDep = Annotated[VoteService, Depends(get_vote_service)]
AnalysisServiceDep = Annotated[AnalysisService, Depends(get_analysis_service)]
