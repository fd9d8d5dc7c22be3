# src/persuasion_forum/api/v1/endpoints/votes.py
"""Vote-related endpoints."""

from fastapi import APIRouter, HTTPException, status

from persuasion_forum.api.v1.dependencies import CurrentUserDep, VoteServiceDep
from persuasion_forum.api.v1.errors import upstream_error
from persuasion_forum.schemas.vote import VoteCreate, VoteResult, VoteSummary
from persuasion_forum.services.rate_limit import RateLimitError
from persuasion_forum.services.supabase import SupabaseError
from persuasion_forum.services.votes import VoteRejectedError

router = APIRouter(prefix="/api/posts", tags=["votes"])


@router.post("/{post_id}/votes", response_model=VoteResult)
async def cast_vote(
    post_id: int,
    vote_data: VoteCreate,
    current_user: CurrentUserDep,
    service: VoteServiceDep,
) -> VoteResult:
    """Cast, change or withdraw the caller's vote on a post."""
    try:
        return await service.cast_vote(post_id, current_user, vote_data.vote)
    except RateLimitError as exc:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=str(exc),
            headers={"Retry-After": str(exc.retry_after)},
        ) from exc
    except VoteRejectedError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc
    except SupabaseError as exc:
        raise upstream_error(exc) from exc


@router.get("/{post_id}/votes", response_model=VoteSummary)
async def get_votes(
    post_id: int,
    current_user: CurrentUserDep,
    service: VoteServiceDep,
) -> VoteSummary:
    """Get vote tallies and the caller's own vote on a post."""
    try:
        return await service.summarize(post_id, current_user.id)
    except VoteRejectedError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc
    except SupabaseError as exc:
        raise upstream_error(exc) from exc
