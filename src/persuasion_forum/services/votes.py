"""Vote casting, derived-question gating and tallies."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from persuasion_forum.schemas.post import VoteWindowResponse
from persuasion_forum.schemas.vote import VoteResult, VoteSummary
from persuasion_forum.services.rate_limit import RateLimiter, get_rate_limiter, vote_limit
from persuasion_forum.services.supabase import (
    AuthUser,
    SupabaseClient,
    SupabaseError,
    SupabaseNotFoundError,
)
from persuasion_forum.services.vote_window import (
    configured_window,
    is_persuasion_time,
    is_voting_expired,
    vote_window_state,
)

logger = logging.getLogger(__name__)

POST_COLUMNS = "id,user_id,parent_post_id,target_vote_choice,vote_deadline"


class VoteRejectedError(RuntimeError):
    """Raised when a vote is refused; carries the HTTP status to report."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class VoteService:
    """Vote operations against the hosted database."""

    def __init__(self, client: SupabaseClient, limiter: RateLimiter | None = None) -> None:
        self.client = client
        self.limiter = limiter or get_rate_limiter()

    async def _get_post(self, post_id: int) -> dict[str, Any]:
        try:
            return await self.client.select(
                "posts", POST_COLUMNS, filters={"id": f"eq.{post_id}"}, single=True
            )
        except SupabaseNotFoundError as exc:
            raise VoteRejectedError("Post not found", 404) from exc

    async def get_user_vote(self, post_id: int, user_id: str) -> dict[str, Any] | None:
        """Return the user's vote row on a post, if any."""
        rows = await self.client.select(
            "votes",
            filters={"post_id": f"eq.{post_id}", "user_id": f"eq.{user_id}"},
            limit=1,
        )
        return rows[0] if rows else None

    async def validate_nested_vote(self, post: dict[str, Any], user: AuthUser) -> None:
        """Apply the derived-question rule.

        A child post with a ``target_vote_choice`` only accepts votes from its
        owner, the parent's owner, or users whose vote on the parent matches
        the target.

        Raises:
            VoteRejectedError: 403 when the user is not allowed to vote.
        """
        parent_id = post.get("parent_post_id")
        target = post.get("target_vote_choice")
        if not parent_id or target is None:
            return
        if post.get("user_id") == user.id:
            return

        try:
            parent = await self.client.select(
                "posts", "user_id", filters={"id": f"eq.{parent_id}"}, single=True
            )
        except SupabaseNotFoundError:
            parent = {}
        if parent.get("user_id") == user.id:
            return

        parent_vote = await self.get_user_vote(parent_id, user.id)
        if parent_vote is None or parent_vote.get("vote") != target:
            raise VoteRejectedError(
                "Only users who voted for the targeted choice on the parent post can vote here",
                403,
            )

    async def cast_vote(
        self,
        post_id: int,
        user: AuthUser,
        vote: int,
        *,
        now: datetime | None = None,
    ) -> VoteResult:
        """Cast, change or withdraw a vote.

        Raises:
            RateLimitError: The user exceeded the vote rate limit.
            VoteRejectedError: The post is missing, closed, or the user may
                not vote on it.
            SupabaseError: The hosted database rejected the write.
        """
        self.limiter.hit("vote", user.id, vote_limit())

        post = await self._get_post(post_id)
        deadline = post.get("vote_deadline")
        if is_voting_expired(deadline, now):
            raise VoteRejectedError("Voting has ended for this post", 409)

        await self.validate_nested_vote(post, user)

        existing = await self.get_user_vote(post_id, user.id)
        changing = existing is not None and existing.get("vote") != vote

        if changing and is_persuasion_time(deadline, now, configured_window()):
            if existing.get("persuasion_vote_changed"):
                raise VoteRejectedError(
                    "Votes can only be changed once during persuasion time", 409
                )
            result = await self._change_during_persuasion(post_id, user.id, vote, existing)
        else:
            payload = await self.client.rpc(
                "handle_vote_secure",
                {"p_post_id": post_id, "p_user_id": user.id, "p_vote_value": vote},
            )
            result = VoteResult.model_validate(payload)

        await self._reward_auto_spread(post_id)
        logger.info("Vote %s on post %s by %s", result.action, post_id, user.id)
        return result

    async def _change_during_persuasion(
        self,
        post_id: int,
        user_id: str,
        vote: int,
        existing: dict[str, Any],
    ) -> VoteResult:
        changed = await self.client.rpc(
            "track_persuasion_vote_change",
            {"p_post_id": post_id, "p_user_id": user_id, "p_new_vote": vote},
        )
        try:
            updated = await self.client.select(
                "votes", filters={"id": f"eq.{existing['id']}"}, single=True
            )
        except SupabaseNotFoundError:
            updated = {**existing, "vote": vote}
        return VoteResult(action="updated", data=updated, persuasion_changed=bool(changed))

    async def _reward_auto_spread(self, post_id: int) -> None:
        try:
            await self.client.rpc("check_and_reward_auto_spread")
        except SupabaseError as exc:
            logger.warning("Auto-spread check after vote on post %s failed: %s", post_id, exc)

    async def summarize(
        self,
        post_id: int,
        user_id: str | None = None,
        *,
        now: datetime | None = None,
    ) -> VoteSummary:
        """Tally a post's votes and report the caller's own vote."""
        post = await self._get_post(post_id)
        votes = await self.client.select("votes", filters={"post_id": f"eq.{post_id}"}) or []

        up_votes = sum(1 for row in votes if row.get("vote") == 1)
        down_votes = sum(1 for row in votes if row.get("vote") == -1)
        total = up_votes + down_votes
        own = next((row for row in votes if user_id and row.get("user_id") == user_id), None)

        return VoteSummary(
            post_id=post_id,
            up_votes=up_votes,
            down_votes=down_votes,
            total_votes=total,
            up_vote_percentage=(up_votes / total) * 100 if total else 0,
            down_vote_percentage=(down_votes / total) * 100 if total else 0,
            user_vote=own.get("vote") if own else None,
            changed_during_persuasion=bool(own and own.get("persuasion_vote_changed")),
            window=VoteWindowResponse.model_validate(
                vote_window_state(post.get("vote_deadline"), now, configured_window())
            ),
        )
