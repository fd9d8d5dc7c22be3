"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str = Field(..., description="Human-readable error message.")


class SuccessResponse(BaseModel):
    """Acknowledgement returned by state-changing endpoints without a payload."""

    success: bool = True
