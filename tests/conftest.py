# tests/conftest.py
from __future__ import annotations

from collections.abc import Generator, Iterator
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from persuasion_forum.core.settings import settings
from persuasion_forum.db.session import Base
from persuasion_forum.db.session import get_db as app_get_session
from persuasion_forum.main import app as fastapi_app
from persuasion_forum.services.analysis import get_analysis_cache
from persuasion_forum.services.rate_limit import RateLimiter, get_rate_limiter
from persuasion_forum.services.session_cache import SessionCache, get_session_cache
from persuasion_forum.services.supabase import AuthUser, SupabaseClient, get_supabase_client

TEST_DB_URL = "sqlite://"
ACCESS_TOKEN = "access-token-value"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def supabase(app: FastAPI) -> Iterator[AsyncMock]:
    """Replace the hosted-backend client for both the middleware and the endpoints."""
    mock_client = AsyncMock(spec=SupabaseClient)
    mock_client.enabled = True
    app.dependency_overrides[get_supabase_client] = lambda: mock_client
    try:
        yield mock_client
    finally:
        app.dependency_overrides.pop(get_supabase_client, None)


@pytest.fixture(autouse=True)
def session_cache(app: FastAPI) -> Iterator[SessionCache]:
    cache = SessionCache(ttl_seconds=60, redis_url="")
    cache.clear()
    app.dependency_overrides[get_session_cache] = lambda: cache
    try:
        yield cache
    finally:
        cache.clear()
        app.dependency_overrides.pop(get_session_cache, None)


@pytest.fixture(autouse=True)
def rate_limiter(app: FastAPI) -> Iterator[RateLimiter]:
    limiter = RateLimiter(redis_url="")
    limiter.reset()
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    try:
        yield limiter
    finally:
        limiter.reset()
        app.dependency_overrides.pop(get_rate_limiter, None)


@pytest.fixture(autouse=True)
def reset_analysis_cache() -> Iterator[None]:
    get_analysis_cache().clear()
    yield
    get_analysis_cache().clear()


@pytest.fixture(autouse=True)
def instant_mock_analysis() -> Iterator[None]:
    original = (settings.mock_analysis_min_delay, settings.mock_analysis_max_delay)
    settings.mock_analysis_min_delay = 0.0
    settings.mock_analysis_max_delay = 0.0
    try:
        yield
    finally:
        settings.mock_analysis_min_delay, settings.mock_analysis_max_delay = original


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    yield TestClient(app, base_url="http://test", follow_redirects=False)


@pytest.fixture()
def test_user() -> AuthUser:
    return AuthUser(
        id="11111111-1111-1111-1111-111111111111",
        email="alice@example.com",
        user_metadata={"user_name": "alice"},
    )


@pytest.fixture()
def other_user() -> AuthUser:
    return AuthUser(id="22222222-2222-2222-2222-222222222222", email="bob@example.com")


@pytest.fixture()
def auth_client(client: TestClient, supabase: AsyncMock, test_user: AuthUser) -> TestClient:
    """Client carrying a session cookie the auth provider accepts for ``test_user``."""
    supabase.get_user.return_value = test_user
    client.cookies.set(settings.access_cookie_name, ACCESS_TOKEN)
    client.cookies.set(settings.refresh_cookie_name, "refresh-token-value")
    return client
