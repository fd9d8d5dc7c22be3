# src/persuasion_forum/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .analysis import router as analysis_router
from .auth import callback_router
from .auth import router as auth_router
from .posts import router as posts_router
from .protected import router as protected_router
from .ranking import router as ranking_router
from .votes import router as votes_router

__all__ = [
    "analysis_router",
    "auth_router",
    "callback_router",
    "posts_router",
    "protected_router",
    "ranking_router",
    "votes_router",
]
