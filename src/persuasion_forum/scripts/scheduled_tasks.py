# src/persuasion_forum/scripts/scheduled_tasks.py
"""Run a scheduled job once and print its JSON result.

Usage:
    python -m persuasion_forum.scripts.scheduled_tasks deadline-check
    python -m persuasion_forum.scripts.scheduled_tasks auto-spread
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from persuasion_forum.core.settings import settings
from persuasion_forum.services.scheduled import run_auto_spread_checker, run_deadline_checker
from persuasion_forum.services.supabase import SupabaseClient, SupabaseError, get_service_client

logger = logging.getLogger("persuasion_forum.scheduled")


async def _run(task: str, client: SupabaseClient, limit: int | None) -> dict[str, Any]:
    try:
        if task == "deadline-check":
            return await run_deadline_checker(client, limit=limit)
        return await run_auto_spread_checker(client)
    finally:
        await client.close()


def main(argv: list[str] | None = None, client: SupabaseClient | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run a persuasion forum scheduled job")
    parser.add_argument("task", choices=["deadline-check", "auto-spread"])
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="maximum number of expired posts to process (deadline-check only)",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.log_level.upper())

    try:
        result = asyncio.run(_run(args.task, client or get_service_client(), args.limit))
    except SupabaseError as exc:
        logger.error("%s failed: %s", args.task, exc)
        print(json.dumps({"success": False, "error": exc.message}))
        return 1

    print(json.dumps(result, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
