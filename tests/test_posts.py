# tests/test_posts.py
"""Tests for post reads, derived questions and persuasion comments."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from persuasion_forum.schemas.post import DerivedQuestionCreate
from persuasion_forum.services.posts import PostAccessError, PostService, visible_to
from persuasion_forum.services.supabase import (
    AuthUser,
    SupabaseClient,
    SupabaseError,
    SupabaseNotFoundError,
)

DEADLINE = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)
IN_WINDOW = DEADLINE - timedelta(minutes=30)
BEFORE_WINDOW = DEADLINE - timedelta(hours=3)

OWNER = AuthUser(id="owner", email="owner@example.com", user_metadata={"user_name": "Owner"})
VIEWER = AuthUser(id="viewer", email="viewer@example.com")

PARENT = {"id": 1, "title": "Parent", "user_id": "owner", "vote_deadline": DEADLINE.isoformat()}
CHILDREN = [
    {"id": 2, "title": "Open to all", "parent_post_id": 1, "target_vote_choice": None},
    {"id": 3, "title": "For agree voters", "parent_post_id": 1, "target_vote_choice": 1},
    {"id": 4, "title": "For disagree voters", "parent_post_id": 1, "target_vote_choice": -1},
]


def _select_router(viewer_vote: int | None = None, parent: dict | None = None):
    async def select(table, columns="*", *, filters=None, order=None, limit=None, single=False):
        filters = filters or {}
        if table == "posts" and single:
            if filters.get("id") == "eq.1":
                return parent or PARENT
            raise SupabaseNotFoundError("no rows", code="PGRST116")
        if table == "posts":
            return CHILDREN
        if table == "votes" and "user_id" in filters:
            return [] if viewer_vote is None else [{"vote": viewer_vote}]
        if table == "votes":
            return [{"id": 1}, {"id": 2}]
        if table == "comments":
            return [{"id": 9}]
        return []

    return select


@pytest.fixture
def mock_client() -> AsyncMock:
    client = AsyncMock(spec=SupabaseClient)
    client.select.side_effect = _select_router()
    return client


@pytest.mark.parametrize(
    ("target", "viewer_vote", "is_owner", "expected"),
    [
        (None, None, False, True),
        (1, None, False, False),
        (1, 1, False, True),
        (1, -1, False, False),
        (-1, None, True, True),
    ],
)
def test_visible_to(target, viewer_vote, is_owner, expected) -> None:
    child = {"target_vote_choice": target}
    assert visible_to(child, viewer_vote=viewer_vote, is_parent_owner=is_owner) is expected


@pytest.mark.asyncio
async def test_list_posts_decorates_window(mock_client: AsyncMock) -> None:
    mock_client.rpc.return_value = [PARENT]

    posts = await PostService(mock_client).list_posts(now=IN_WINDOW)

    mock_client.rpc.assert_awaited_once_with("get_posts_with_counts")
    assert posts[0]["window"].persuasion_time is True
    assert posts[0]["window"].voting_expired is False


@pytest.mark.asyncio
async def test_get_post_missing(mock_client: AsyncMock) -> None:
    with pytest.raises(PostAccessError) as excinfo:
        await PostService(mock_client).get_post(404)
    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_children_filtered_by_viewer_vote(mock_client: AsyncMock) -> None:
    mock_client.select.side_effect = _select_router(viewer_vote=1)

    children = await PostService(mock_client).get_children(1, VIEWER, now=BEFORE_WINDOW)

    assert [child["id"] for child in children] == [2, 3]
    assert all(child["vote_count"] == 2 for child in children)
    assert all(child["comment_count"] == 1 for child in children)


@pytest.mark.asyncio
async def test_children_hide_targeted_questions_from_non_voters(mock_client: AsyncMock) -> None:
    children = await PostService(mock_client).get_children(1, VIEWER, now=BEFORE_WINDOW)
    assert [child["id"] for child in children] == [2]


@pytest.mark.asyncio
async def test_parent_owner_sees_every_child(mock_client: AsyncMock) -> None:
    children = await PostService(mock_client).get_children(1, OWNER, now=BEFORE_WINDOW)
    assert [child["id"] for child in children] == [2, 3, 4]


@pytest.mark.asyncio
async def test_persuasion_stats_default(mock_client: AsyncMock) -> None:
    mock_client.rpc.return_value = []

    stats = await PostService(mock_client).persuasion_stats(1)

    assert (stats.total_votes, stats.changed_votes, stats.change_rate) == (0, 0, 0)


@pytest.mark.asyncio
async def test_persuasion_stats_first_row(mock_client: AsyncMock) -> None:
    mock_client.rpc.return_value = [{"total_votes": 10, "changed_votes": 2, "change_rate": 20.0}]

    stats = await PostService(mock_client).persuasion_stats(1)

    mock_client.rpc.assert_awaited_once_with("get_persuasion_vote_stats", {"p_post_id": 1})
    assert stats.change_rate == 20.0


@pytest.mark.asyncio
async def test_persuasion_comment_by_owner_in_window(mock_client: AsyncMock) -> None:
    mock_client.insert.return_value = {"id": 7, "post_id": 1, "content": "Reconsider!"}

    await PostService(mock_client).create_persuasion_comment(1, OWNER, "Reconsider!", now=IN_WINDOW)

    mock_client.insert.assert_awaited_once_with(
        "comments",
        {
            "post_id": 1,
            "content": "Reconsider!",
            "user_id": "owner",
            "author": "Owner",
            "is_persuasion_comment": True,
        },
    )


@pytest.mark.asyncio
async def test_persuasion_comment_requires_owner(mock_client: AsyncMock) -> None:
    with pytest.raises(PostAccessError) as excinfo:
        await PostService(mock_client).create_persuasion_comment(1, VIEWER, "hi", now=IN_WINDOW)
    assert excinfo.value.status_code == 403
    mock_client.insert.assert_not_awaited()


@pytest.mark.asyncio
async def test_persuasion_comment_requires_window(mock_client: AsyncMock) -> None:
    with pytest.raises(PostAccessError) as excinfo:
        await PostService(mock_client).create_persuasion_comment(1, OWNER, "hi", now=BEFORE_WINDOW)
    assert excinfo.value.status_code == 409


def _question(**overrides) -> DerivedQuestionCreate:
    fields = {
        "title": "Why agree?",
        "vote_deadline": DEADLINE + timedelta(days=1),
        "target_vote_choice": 1,
    }
    fields.update(overrides)
    return DerivedQuestionCreate(**fields)


def _inserted(table, row):
    return {"id": 10, **row}


@pytest.mark.asyncio
async def test_owner_creates_derived_question_for_either_side(mock_client: AsyncMock) -> None:
    mock_client.insert.side_effect = _inserted

    child = await PostService(mock_client).create_child(
        1, OWNER, _question(target_vote_choice=-1), now=BEFORE_WINDOW
    )

    assert child["id"] == 10
    assert child["nest_level"] == 1
    assert child["parent_post_id"] == 1
    assert child["target_vote_choice"] == -1
    assert child["user_id"] == "owner"
    assert child["window"].voting_expired is False


@pytest.mark.asyncio
async def test_voter_creates_derived_question_for_own_side(mock_client: AsyncMock) -> None:
    mock_client.select.side_effect = _select_router(viewer_vote=1)
    mock_client.insert.side_effect = _inserted

    child = await PostService(mock_client).create_child(1, VIEWER, _question(nest_level=1))

    assert child["target_vote_choice"] == 1
    mock_client.insert.assert_awaited_once()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("viewer_vote", "target"),
    [(None, 1), (-1, 1), (1, -1)],
)
async def test_derived_question_requires_matching_parent_vote(
    mock_client: AsyncMock, viewer_vote: int | None, target: int
) -> None:
    mock_client.select.side_effect = _select_router(viewer_vote=viewer_vote)

    with pytest.raises(PostAccessError) as excinfo:
        await PostService(mock_client).create_child(
            1, VIEWER, _question(target_vote_choice=target)
        )

    assert excinfo.value.status_code == 403
    mock_client.insert.assert_not_awaited()


@pytest.mark.asyncio
async def test_derived_question_parent_missing(mock_client: AsyncMock) -> None:
    with pytest.raises(PostAccessError) as excinfo:
        await PostService(mock_client).create_child(404, OWNER, _question())
    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_derived_question_nesting_is_capped(mock_client: AsyncMock) -> None:
    mock_client.select.side_effect = _select_router(parent={**PARENT, "nest_level": 3})

    with pytest.raises(PostAccessError) as excinfo:
        await PostService(mock_client).create_child(1, OWNER, _question())

    assert excinfo.value.status_code == 400
    mock_client.insert.assert_not_awaited()


@pytest.mark.asyncio
async def test_derived_question_nest_level_must_follow_parent(mock_client: AsyncMock) -> None:
    mock_client.select.side_effect = _select_router(parent={**PARENT, "nest_level": 1})

    with pytest.raises(PostAccessError, match="Expected 2") as excinfo:
        await PostService(mock_client).create_child(1, OWNER, _question(nest_level=3))

    assert excinfo.value.status_code == 400


@pytest.mark.asyncio
async def test_derived_question_target_must_be_a_side(mock_client: AsyncMock) -> None:
    with pytest.raises(PostAccessError) as excinfo:
        await PostService(mock_client).create_child(1, OWNER, _question(target_vote_choice=0))
    assert excinfo.value.status_code == 400


@pytest.mark.asyncio
async def test_delete_post_recalculates_points(mock_client: AsyncMock) -> None:
    mock_client.rpc.side_effect = [[{"success": True, "message": "deleted"}], None]

    await PostService(mock_client).delete_post(1, OWNER)

    mock_client.rpc.assert_any_await(
        "delete_user_post_secure", {"p_post_id": 1, "p_user_id": "owner"}
    )
    mock_client.rpc.assert_any_await("calculate_empathy_points", {"target_user_id": "owner"})


@pytest.mark.asyncio
async def test_delete_post_survives_points_failure(mock_client: AsyncMock) -> None:
    mock_client.rpc.side_effect = [[{"success": True}], SupabaseError("function missing")]

    await PostService(mock_client).delete_post(1, OWNER)


@pytest.mark.asyncio
async def test_delete_post_refused(mock_client: AsyncMock) -> None:
    mock_client.rpc.return_value = [{"success": False, "message": "Not your post"}]

    with pytest.raises(PostAccessError, match="Not your post") as excinfo:
        await PostService(mock_client).delete_post(1, VIEWER)

    assert excinfo.value.status_code == 403


def test_display_name_fallbacks() -> None:
    assert OWNER.display_name == "Owner"
    assert VIEWER.display_name == "viewer"
    assert AuthUser(id="x").display_name == "Anonymous"


# --- Endpoints -----------------------------------------------------------------


def test_list_posts_endpoint(auth_client: TestClient, supabase: AsyncMock) -> None:
    supabase.rpc.return_value = [{**PARENT, "vote_count": 4, "comment_count": 1}]

    response = auth_client.get("/api/posts")

    assert response.status_code == status.HTTP_200_OK
    post = response.json()[0]
    assert post["vote_count"] == 4
    assert post["window"]["voting_expired"] is True
    assert post["window"]["time_remaining"]["expired"] is True


def test_get_post_endpoint_not_found(auth_client: TestClient, supabase: AsyncMock) -> None:
    supabase.select.side_effect = _select_router()

    response = auth_client.get("/api/posts/404")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"error": "Post not found"}


def test_children_endpoint(auth_client: TestClient, supabase: AsyncMock) -> None:
    supabase.select.side_effect = _select_router(viewer_vote=-1)

    response = auth_client.get("/api/posts/1/children")

    assert response.status_code == status.HTTP_200_OK
    assert [child["id"] for child in response.json()] == [2, 4]


def test_persuasion_report_endpoint(auth_client: TestClient, supabase: AsyncMock) -> None:
    supabase.rpc.return_value = {"effectiveness": "high"}

    response = auth_client.get("/api/posts/1/persuasion-report")

    assert response.json() == {"effectiveness": "high"}
    supabase.rpc.assert_awaited_once_with("get_persuasion_effectiveness_report", {"p_post_id": 1})


def test_persuasion_comment_endpoint_rejects_non_owner(
    auth_client: TestClient, supabase: AsyncMock
) -> None:
    supabase.select.side_effect = _select_router()

    response = auth_client.post("/api/posts/1/persuasion-comments", json={"content": "hello"})

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_upstream_failure_is_bad_gateway(auth_client: TestClient, supabase: AsyncMock) -> None:
    supabase.rpc.side_effect = SupabaseError("relation does not exist")

    response = auth_client.get("/api/posts")

    assert response.status_code == status.HTTP_502_BAD_GATEWAY
    assert response.json() == {"error": "relation does not exist"}


def test_ranking_endpoint(auth_client: TestClient, supabase: AsyncMock) -> None:
    supabase.rpc.return_value = [{"user_id": "a", "rank": 1}]

    response = auth_client.get("/api/ranking")

    assert response.json() == [{"user_id": "a", "rank": 1}]
    supabase.rpc.assert_awaited_once_with("get_user_total_ranking")


def test_create_child_endpoint(
    auth_client: TestClient, supabase: AsyncMock, test_user: AuthUser
) -> None:
    supabase.select.side_effect = _select_router(parent={**PARENT, "user_id": test_user.id})
    supabase.insert.side_effect = _inserted

    response = auth_client.post(
        "/api/posts/1/children",
        json={
            "title": "Why disagree?",
            "vote_deadline": "2099-01-01T00:00:00Z",
            "target_vote_choice": -1,
        },
    )

    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["parent_post_id"] == 1
    assert body["nest_level"] == 1


def test_create_child_endpoint_rejects_bad_target(
    auth_client: TestClient, supabase: AsyncMock
) -> None:
    supabase.select.side_effect = _select_router()

    response = auth_client.post(
        "/api/posts/1/children",
        json={"title": "Q", "vote_deadline": "2099-01-01T00:00:00Z", "target_vote_choice": 2},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "target_vote_choice must be 1 or -1"}


def test_create_child_endpoint_requires_parent_vote(
    auth_client: TestClient, supabase: AsyncMock
) -> None:
    supabase.select.side_effect = _select_router()

    response = auth_client.post(
        "/api/posts/1/children",
        json={"title": "Q", "vote_deadline": "2099-01-01T00:00:00Z", "target_vote_choice": 1},
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_delete_post_endpoint(auth_client: TestClient, supabase: AsyncMock) -> None:
    supabase.rpc.side_effect = [[{"success": True}], None]

    response = auth_client.delete("/api/posts/1")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"success": True}
