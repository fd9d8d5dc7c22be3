# src/persuasion_forum/models/analysis.py
"""Local snapshots of AI analysis results."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from persuasion_forum.db.session import Base
from persuasion_forum.db.time import utcnow


class AnalysisSnapshot(Base):
    """Last analysis result generated or fetched for a post.

    One row per post; a newer result replaces the previous one.
    """

    __tablename__ = "ai_analysis_snapshot"

    post_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    trend_analysis: Mapped[str] = mapped_column(Text, nullable=False)
    sentiment_analysis: Mapped[str] = mapped_column(Text, nullable=False)
    discussion_quality: Mapped[str] = mapped_column(Text, nullable=False)
    persuasion_effectiveness: Mapped[str] = mapped_column(Text, nullable=False)
    overall_assessment: Mapped[str] = mapped_column(Text, nullable=False)
    confidence_score: Mapped[int] = mapped_column(Integer, nullable=False)
    analyzed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # True when the row came from the local mock generator.
    is_mock: Mapped[bool] = mapped_column(default=False, nullable=False)
    stored_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )
