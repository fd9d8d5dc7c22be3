# src/persuasion_forum/services/__init__.py
"""Business logic services for the persuasion forum."""

from .analysis import AnalysisCache, AnalysisError, AnalysisService
from .posts import PostAccessError, PostService
from .rate_limit import RateLimiter, RateLimitError
from .session_cache import SessionCache
from .supabase import SupabaseClient, SupabaseError
from .votes import VoteRejectedError, VoteService

__all__ = [
    "AnalysisCache",
    "AnalysisError",
    "AnalysisService",
    "PostAccessError",
    "PostService",
    "RateLimiter",
    "RateLimitError",
    "SessionCache",
    "SupabaseClient",
    "SupabaseError",
    "VoteRejectedError",
    "VoteService",
]
