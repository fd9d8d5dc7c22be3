# src/persuasion_forum/api/v1/endpoints/posts.py
"""Post-related endpoints."""

from typing import Any

from fastapi import APIRouter, HTTPException, status

from persuasion_forum.api.v1.dependencies import (
    CurrentUserDep,
    OptionalUserDep,
    PostServiceDep,
)
from persuasion_forum.api.v1.errors import upstream_error
from persuasion_forum.schemas.common import ErrorResponse, SuccessResponse
from persuasion_forum.schemas.post import (
    CommentResponse,
    DerivedQuestionCreate,
    PersuasionCommentCreate,
    PersuasionStats,
    PostResponse,
)
from persuasion_forum.services.posts import PostAccessError
from persuasion_forum.services.supabase import SupabaseError

router = APIRouter(
    prefix="/api/posts",
    tags=["posts"],
    responses={404: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)


def _access_error(exc: PostAccessError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)


@router.get("", response_model=list[PostResponse])
async def list_posts(service: PostServiceDep) -> list[dict[str, Any]]:
    """List posts with vote and comment counts."""
    try:
        return await service.list_posts()
    except SupabaseError as exc:
        raise upstream_error(exc) from exc


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(post_id: int, service: PostServiceDep) -> dict[str, Any]:
    try:
        return await service.get_post(post_id)
    except PostAccessError as exc:
        raise _access_error(exc) from exc
    except SupabaseError as exc:
        raise upstream_error(exc) from exc


@router.get("/{post_id}/children", response_model=list[PostResponse])
async def get_children(
    post_id: int,
    service: PostServiceDep,
    viewer: OptionalUserDep,
) -> list[dict[str, Any]]:
    """List derived questions visible to the caller."""
    try:
        return await service.get_children(post_id, viewer)
    except PostAccessError as exc:
        raise _access_error(exc) from exc
    except SupabaseError as exc:
        raise upstream_error(exc) from exc


@router.post(
    "/{post_id}/children",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
async def create_child(
    post_id: int,
    payload: DerivedQuestionCreate,
    current_user: CurrentUserDep,
    service: PostServiceDep,
) -> dict[str, Any]:
    """Ask a derived question addressed to one side of the parent vote."""
    try:
        return await service.create_child(post_id, current_user, payload)
    except PostAccessError as exc:
        raise _access_error(exc) from exc
    except SupabaseError as exc:
        raise upstream_error(exc) from exc


@router.delete(
    "/{post_id}",
    response_model=SuccessResponse,
    responses={403: {"model": ErrorResponse}},
)
async def delete_post(
    post_id: int,
    current_user: CurrentUserDep,
    service: PostServiceDep,
) -> SuccessResponse:
    try:
        await service.delete_post(post_id, current_user)
    except PostAccessError as exc:
        raise _access_error(exc) from exc
    except SupabaseError as exc:
        raise upstream_error(exc) from exc
    return SuccessResponse()


@router.get("/{post_id}/persuasion-stats", response_model=PersuasionStats)
async def get_persuasion_stats(post_id: int, service: PostServiceDep) -> PersuasionStats:
    try:
        return await service.persuasion_stats(post_id)
    except SupabaseError as exc:
        raise upstream_error(exc) from exc


@router.get("/{post_id}/persuasion-report")
async def get_persuasion_report(post_id: int, service: PostServiceDep) -> Any:
    try:
        return await service.persuasion_report(post_id)
    except SupabaseError as exc:
        raise upstream_error(exc) from exc


@router.post(
    "/{post_id}/persuasion-comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_persuasion_comment(
    post_id: int,
    payload: PersuasionCommentCreate,
    current_user: CurrentUserDep,
    service: PostServiceDep,
) -> dict[str, Any]:
    """Add the owner's persuasion comment while the persuasion window is open."""
    try:
        return await service.create_persuasion_comment(post_id, current_user, payload.content)
    except PostAccessError as exc:
        raise _access_error(exc) from exc
    except SupabaseError as exc:
        raise upstream_error(exc) from exc
