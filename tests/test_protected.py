# tests/test_protected.py
"""Tests for the protected example endpoint.

The endpoint checks the cookie itself, so it is mounted here without the
session middleware to exercise its own 401 responses.
"""

from collections.abc import Iterator
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI, status
from fastapi.testclient import TestClient
from starlette.exceptions import HTTPException as StarletteHTTPException

from persuasion_forum.api.v1 import protected_router
from persuasion_forum.core.settings import settings
from persuasion_forum.main import http_exception_handler
from persuasion_forum.services.supabase import AuthUser, SupabaseAuthError, get_supabase_client


@pytest.fixture
def bare_client(supabase: AsyncMock) -> Iterator[TestClient]:
    bare_app = FastAPI()
    bare_app.include_router(protected_router)
    bare_app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    bare_app.dependency_overrides[get_supabase_client] = lambda: supabase
    yield TestClient(bare_app)


def test_missing_cookie(bare_client: TestClient) -> None:
    response = bare_client.get("/api/protected/example")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Unauthorized - No access token"}


def test_rejected_token(bare_client: TestClient, supabase: AsyncMock) -> None:
    supabase.get_user.side_effect = SupabaseAuthError("bad jwt", status_code=401)
    bare_client.cookies.set(settings.access_cookie_name, "bad")

    response = bare_client.get("/api/protected/example")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Unauthorized - Invalid token"}


def test_valid_token(bare_client: TestClient, supabase: AsyncMock, test_user: AuthUser) -> None:
    supabase.get_user.return_value = test_user
    bare_client.cookies.set(settings.access_cookie_name, "good")

    response = bare_client.get("/api/protected/example")

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["message"] == "This is protected data"
    assert body["user"] == {"id": test_user.id, "email": test_user.email}
    assert body["timestamp"]


def test_example_through_full_app(auth_client: TestClient, test_user: AuthUser) -> None:
    response = auth_client.get("/api/protected/example")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["user"]["id"] == test_user.id
