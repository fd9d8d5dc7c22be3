"""Post-related Pydantic schemas."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class TimeRemainingResponse(BaseModel):
    """Whole units left before the vote deadline."""

    expired: bool
    days: int = 0
    hours: int = 0
    minutes: int = 0

    model_config = ConfigDict(from_attributes=True)


class VoteWindowResponse(BaseModel):
    """Voting phase of a post when the response was built."""

    persuasion_time: bool
    voting_expired: bool
    time_remaining: TimeRemainingResponse | None

    model_config = ConfigDict(from_attributes=True)


class PostResponse(BaseModel):
    """Schema for post information returned by the API.

    Rows come from the hosted database; columns this service does not know
    about are passed through untouched.
    """

    id: int
    title: str
    content: str | None = None
    created_at: datetime | None = None
    image_url: str | None = None
    vote_deadline: datetime | None = None
    community_id: int | None = None
    user_id: str | None = None
    parent_post_id: int | None = None
    nest_level: int = 0
    target_vote_choice: Literal[-1, 1] | None = None
    vote_count: int = 0
    comment_count: int = 0
    window: VoteWindowResponse | None = None

    model_config = ConfigDict(extra="allow")


class PersuasionStats(BaseModel):
    """Vote changes observed during the persuasion window."""

    total_votes: int = 0
    changed_votes: int = 0
    change_rate: float = 0


class DerivedQuestionCreate(BaseModel):
    """Schema for a derived question asked beneath a parent post.

    ``nest_level`` is optional; when sent it must be one deeper than the
    parent's. ``target_vote_choice`` names the side of the parent vote the
    question is addressed to.
    """

    title: str = Field(..., min_length=1, max_length=200)
    content: str | None = Field(default=None, max_length=10000)
    vote_deadline: datetime
    target_vote_choice: int
    nest_level: int | None = None
    image_url: str | None = None


class PersuasionCommentCreate(BaseModel):
    """Schema for a persuasion comment written by the post owner."""

    content: str = Field(..., min_length=1, max_length=5000)


class CommentResponse(BaseModel):
    """Comment row as stored by the hosted database."""

    id: int | None = None
    post_id: int
    content: str
    author: str | None = None
    user_id: str | None = None
    is_persuasion_comment: bool = False
    created_at: datetime | None = None

    model_config = ConfigDict(extra="allow")


def with_window(row: dict[str, Any], window: object) -> dict[str, Any]:
    """Return a copy of ``row`` carrying the computed vote window."""
    return {**row, "window": VoteWindowResponse.model_validate(window)}
