"""Vote-related Pydantic schemas."""

from typing import Any, Literal

from pydantic import BaseModel, Field

from .post import VoteWindowResponse


class VoteCreate(BaseModel):
    """Schema for casting or changing a vote."""

    vote: Literal[-1, 1] = Field(..., description="1 to agree, -1 to disagree")


class VoteResult(BaseModel):
    """Outcome of a vote request."""

    action: Literal["inserted", "updated", "deleted"]
    data: Any = None
    persuasion_changed: bool = False


class VoteSummary(BaseModel):
    """Tallies for a post and the caller's own vote."""

    post_id: int
    up_votes: int
    down_votes: int
    total_votes: int
    up_vote_percentage: float
    down_vote_percentage: float
    user_vote: Literal[-1, 1] | None = None
    changed_during_persuasion: bool = False
    window: VoteWindowResponse
