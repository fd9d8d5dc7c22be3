# src/persuasion_forum/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    analysis_router,
    auth_router,
    callback_router,
    posts_router,
    protected_router,
    ranking_router,
    votes_router,
)

__all__ = [
    "analysis_router",
    "auth_router",
    "callback_router",
    "posts_router",
    "protected_router",
    "ranking_router",
    "votes_router",
]
