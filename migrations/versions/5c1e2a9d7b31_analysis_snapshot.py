"""analysis snapshot

Revision ID: 5c1e2a9d7b31
Revises:
Create Date: 2026-10-17 09:12:44.318204

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e2a9d7b31"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the local store of AI analysis results."""
    op.create_table(
        "ai_analysis_snapshot",
        sa.Column("post_id", sa.BigInteger(), nullable=False),
        sa.Column("trend_analysis", sa.Text(), nullable=False),
        sa.Column("sentiment_analysis", sa.Text(), nullable=False),
        sa.Column("discussion_quality", sa.Text(), nullable=False),
        sa.Column("persuasion_effectiveness", sa.Text(), nullable=False),
        sa.Column("overall_assessment", sa.Text(), nullable=False),
        sa.Column("confidence_score", sa.Integer(), nullable=False),
        sa.Column("analyzed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_mock", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("stored_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("post_id"),
    )


def downgrade() -> None:
    """Drop the local store of AI analysis results."""
    op.drop_table("ai_analysis_snapshot")
