"""Post reads, derived questions and persuasion comments."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any

from persuasion_forum.schemas.post import DerivedQuestionCreate, PersuasionStats, with_window
from persuasion_forum.services.supabase import (
    AuthUser,
    SupabaseClient,
    SupabaseError,
    SupabaseNotFoundError,
)
from persuasion_forum.services.vote_window import (
    configured_window,
    is_persuasion_time,
    vote_window_state,
)

logger = logging.getLogger(__name__)

MAX_NEST_LEVEL = 3


class PostAccessError(RuntimeError):
    """Raised when a post is missing or an action on it is not allowed."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def decorate(row: dict[str, Any], now: datetime | None = None) -> dict[str, Any]:
    """Attach the vote-window state of ``row`` at ``now``."""
    state = vote_window_state(row.get("vote_deadline"), now, configured_window())
    return with_window(row, state)


def visible_to(child: dict[str, Any], *, viewer_vote: int | None, is_parent_owner: bool) -> bool:
    """Return True if a derived question should be listed for this viewer."""
    target = child.get("target_vote_choice")
    if target is None or is_parent_owner:
        return True
    if viewer_vote is None:
        return False
    return target == viewer_vote


class PostService:
    """Post operations backed by the hosted database."""

    def __init__(self, client: SupabaseClient) -> None:
        self.client = client

    async def list_posts(self, *, now: datetime | None = None) -> list[dict[str, Any]]:
        rows = await self.client.rpc("get_posts_with_counts") or []
        return [decorate(row, now) for row in rows]

    async def get_post(self, post_id: int, *, now: datetime | None = None) -> dict[str, Any]:
        """Fetch one post with its vote-window state.

        Raises:
            PostAccessError: 404 when the post does not exist.
        """
        try:
            row = await self.client.select("posts", filters={"id": f"eq.{post_id}"}, single=True)
        except SupabaseNotFoundError as exc:
            raise PostAccessError("Post not found", 404) from exc
        return decorate(row, now)

    async def _count(self, table: str, post_id: int) -> int:
        rows = await self.client.select(table, "id", filters={"post_id": f"eq.{post_id}"})
        return len(rows or [])

    async def _with_counts(self, child: dict[str, Any], now: datetime | None) -> dict[str, Any]:
        vote_count, comment_count = await asyncio.gather(
            self._count("votes", child["id"]),
            self._count("comments", child["id"]),
        )
        return decorate({**child, "vote_count": vote_count, "comment_count": comment_count}, now)

    async def get_children(
        self,
        post_id: int,
        viewer: AuthUser | None = None,
        *,
        now: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """List derived questions of a post that the viewer may see.

        Vote and comment counts for every child are fetched concurrently.
        """
        parent = await self.get_post(post_id, now=now)
        children = await self.client.select(
            "posts",
            filters={"parent_post_id": f"eq.{post_id}"},
            order="created_at.asc",
        ) or []

        viewer_vote: int | None = None
        is_parent_owner = viewer is not None and parent.get("user_id") == viewer.id
        if viewer is not None and not is_parent_owner:
            viewer_vote = await self._parent_vote(post_id, viewer.id)

        visible = [
            child
            for child in children
            if visible_to(child, viewer_vote=viewer_vote, is_parent_owner=is_parent_owner)
        ]
        return list(await asyncio.gather(*(self._with_counts(child, now) for child in visible)))

    async def _parent_vote(self, post_id: int, user_id: str) -> int | None:
        rows = await self.client.select(
            "votes",
            "vote",
            filters={"post_id": f"eq.{post_id}", "user_id": f"eq.{user_id}"},
            limit=1,
        )
        return rows[0].get("vote") if rows else None

    async def create_child(
        self,
        parent_id: int,
        user: AuthUser,
        payload: DerivedQuestionCreate,
        *,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Create a derived question beneath ``parent_id``.

        The parent owner may address either side of the vote. Anyone else must
        have voted on the parent, and only for the side they voted.

        Raises:
            PostAccessError: 404 for a missing parent, 400 for a nesting or
                target error, 403 when the user may not address that side.
        """
        try:
            parent = await self.client.select(
                "posts",
                "id,nest_level,user_id,community_id",
                filters={"id": f"eq.{parent_id}"},
                single=True,
            )
        except SupabaseNotFoundError as exc:
            raise PostAccessError("Parent post not found", 404) from exc

        parent_level = parent.get("nest_level") or 0
        if parent_level >= MAX_NEST_LEVEL:
            raise PostAccessError(f"Derived questions nest at most {MAX_NEST_LEVEL} levels", 400)
        expected_level = parent_level + 1
        if payload.nest_level is not None and payload.nest_level != expected_level:
            raise PostAccessError(f"Invalid nest level. Expected {expected_level}", 400)
        if payload.target_vote_choice not in (1, -1):
            raise PostAccessError("target_vote_choice must be 1 or -1", 400)

        if parent.get("user_id") != user.id:
            vote = await self._parent_vote(parent_id, user.id)
            if vote is None:
                raise PostAccessError(
                    "Vote on the parent post before creating a derived question", 403
                )
            if vote != payload.target_vote_choice:
                raise PostAccessError(
                    "Derived questions can only address the side you voted for", 403
                )

        row = await self.client.insert(
            "posts",
            {
                "title": payload.title,
                "content": payload.content,
                "vote_deadline": payload.vote_deadline.isoformat(),
                "parent_post_id": parent_id,
                "nest_level": expected_level,
                "target_vote_choice": payload.target_vote_choice,
                "community_id": parent.get("community_id"),
                "user_id": user.id,
                "image_url": payload.image_url,
            },
        )
        logger.info("Derived question created under post %s by %s", parent_id, user.id)
        return decorate(row, now)

    async def delete_post(self, post_id: int, user: AuthUser) -> None:
        """Delete one of the user's posts with its children, votes and comments.

        Raises:
            PostAccessError: 403 when the post is missing or not the user's.
        """
        rows = await self.client.rpc(
            "delete_user_post_secure", {"p_post_id": post_id, "p_user_id": user.id}
        )
        result = rows[0] if isinstance(rows, list) and rows else {}
        if not result.get("success"):
            raise PostAccessError(result.get("message") or "Post could not be deleted", 403)

        try:
            await self.client.rpc("calculate_empathy_points", {"target_user_id": user.id})
        except SupabaseError as exc:
            logger.warning("Empathy points not recalculated for %s: %s", user.id, exc)
        logger.info("Post %s deleted by %s", post_id, user.id)

    async def persuasion_stats(self, post_id: int) -> PersuasionStats:
        rows = await self.client.rpc("get_persuasion_vote_stats", {"p_post_id": post_id})
        if isinstance(rows, list) and rows:
            return PersuasionStats.model_validate(rows[0])
        return PersuasionStats()

    async def persuasion_report(self, post_id: int) -> Any:
        return await self.client.rpc(
            "get_persuasion_effectiveness_report", {"p_post_id": post_id}
        )

    async def ranking(self) -> list[dict[str, Any]]:
        return await self.client.rpc("get_user_total_ranking") or []

    async def create_persuasion_comment(
        self,
        post_id: int,
        user: AuthUser,
        content: str,
        *,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Post the owner's persuasion comment during the persuasion window.

        Raises:
            PostAccessError: 404 for a missing post, 403 when the user does
                not own it, 409 outside the persuasion window.
        """
        post = await self.get_post(post_id, now=now)
        if post.get("user_id") != user.id:
            raise PostAccessError("Only the post owner can write persuasion comments", 403)
        if not is_persuasion_time(post.get("vote_deadline"), now, configured_window()):
            raise PostAccessError("Persuasion comments are only allowed during persuasion time", 409)

        comment = await self.client.insert(
            "comments",
            {
                "post_id": post_id,
                "content": content,
                "user_id": user.id,
                "author": user.display_name,
                "is_persuasion_comment": True,
            },
        )
        logger.info("Persuasion comment added to post %s", post_id)
        return comment
