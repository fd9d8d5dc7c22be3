# src/persuasion_forum/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .analysis import AIAnalysisResult, AnalysisEligibility
from .auth import ProtectedExampleResponse, SessionUser, TokenPair
from .common import ErrorResponse, SuccessResponse
from .post import (
    CommentResponse,
    PersuasionCommentCreate,
    PersuasionStats,
    PostResponse,
    VoteWindowResponse,
)
from .vote import VoteCreate, VoteResult, VoteSummary

__all__ = [
    "AIAnalysisResult", "AnalysisEligibility",
    "ProtectedExampleResponse", "SessionUser", "TokenPair",
    "ErrorResponse", "SuccessResponse",
    "CommentResponse", "PersuasionCommentCreate", "PersuasionStats",
    "PostResponse", "VoteWindowResponse",
    "VoteCreate", "VoteResult", "VoteSummary",
]
