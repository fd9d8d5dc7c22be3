# src/persuasion_forum/models/__init__.py
"""SQLAlchemy models for the Persuasion Forum service."""

from .analysis import AnalysisSnapshot

__all__ = ["AnalysisSnapshot"]
