# src/persuasion_forum/db/time.py
"""Time utilities shared by models and vote-window checks."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)
