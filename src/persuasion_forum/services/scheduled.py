"""Periodic jobs run with the service-role key."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from persuasion_forum.core.settings import settings
from persuasion_forum.db.time import utcnow
from persuasion_forum.services.supabase import SupabaseClient, SupabaseError

logger = logging.getLogger(__name__)


async def _notify(client: SupabaseClient, post: dict[str, Any]) -> int:
    count = await client.rpc(
        "create_deadline_notifications",
        {"p_post_id": post["id"], "p_post_title": post.get("title")},
    )
    if count is None:
        return 0
    if isinstance(count, bool) or not isinstance(count, int):
        raise TypeError(f"Unexpected notification count: {count!r}")
    return count


async def run_deadline_checker(
    client: SupabaseClient,
    now: datetime | None = None,
    limit: int | None = None,
) -> dict[str, Any]:
    """Create deadline notifications for posts whose voting has closed.

    A failure for one post is recorded in ``results`` and the run carries on.

    Raises:
        SupabaseError: If the expired posts cannot be fetched.
    """
    cutoff = (now or utcnow()).isoformat()
    batch = limit if limit is not None else settings.deadline_checker_batch_size

    expired = await client.select(
        "posts",
        "id,title,vote_deadline,created_at",
        filters={"vote_deadline": f"lt.{cutoff}", "and": "(vote_deadline.not.is.null)"},
        order="vote_deadline.desc",
        limit=batch,
    ) or []

    if not expired:
        return {"message": "No expired posts found", "processed": 0}

    processed = 0
    results: list[dict[str, Any]] = []
    for post in expired:
        try:
            notification_count = await _notify(client, post)
        except SupabaseError as exc:
            logger.error("Failed to create notifications for post %s: %s", post["id"], exc)
            results.append({"postId": post["id"], "success": False, "error": exc.message})
            continue
        except Exception as exc:
            logger.exception("Unexpected failure for post %s", post["id"])
            results.append({"postId": post["id"], "success": False, "error": str(exc)})
            continue

        logger.info("Created %s notifications for post %s", notification_count, post["id"])
        results.append(
            {"postId": post["id"], "success": True, "notificationCount": notification_count}
        )
        if notification_count > 0:
            processed += 1

    return {
        "message": f"Processed {processed} posts with deadline notifications",
        "processed": processed,
        "total": len(expired),
        "results": results,
    }


async def run_auto_spread_checker(client: SupabaseClient) -> dict[str, Any]:
    """Reward posts that qualified for automatic spreading.

    Raises:
        SupabaseError: If the stored procedure fails.
    """
    logger.info("Starting auto-spread check")
    data = await client.rpc("check_and_reward_auto_spread")
    logger.info("Auto-spread check finished: %s", data)
    return {
        "success": True,
        "message": "Auto-spread check completed",
        "timestamp": utcnow().isoformat(),
    }
