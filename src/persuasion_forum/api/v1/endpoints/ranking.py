# src/persuasion_forum/api/v1/endpoints/ranking.py
"""User ranking endpoint."""

from typing import Any

from fastapi import APIRouter

from persuasion_forum.api.v1.dependencies import PostServiceDep
from persuasion_forum.api.v1.errors import upstream_error
from persuasion_forum.services.supabase import SupabaseError

router = APIRouter(prefix="/api/ranking", tags=["ranking"])


@router.get("")
async def get_ranking(service: PostServiceDep) -> list[dict[str, Any]]:
    """Return users ordered by their total ranking score."""
    try:
        return await service.ranking()
    except SupabaseError as exc:
        raise upstream_error(exc) from exc
