"""AI analysis Pydantic schemas."""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from persuasion_forum.db.time import utcnow


class AIAnalysisResult(BaseModel):
    """Analysis of a closed vote.

    Accepts both the snake_case rows stored by the hosted database and the
    camelCase payload returned by the analysis function.
    """

    id: int | None = None
    post_id: int = Field(validation_alias=AliasChoices("post_id", "postId"))
    trend_analysis: str = Field(validation_alias=AliasChoices("trend_analysis", "trendAnalysis"))
    sentiment_analysis: str = Field(
        validation_alias=AliasChoices("sentiment_analysis", "sentimentAnalysis")
    )
    discussion_quality: str = Field(
        validation_alias=AliasChoices("discussion_quality", "discussionQuality")
    )
    persuasion_effectiveness: str = Field(
        validation_alias=AliasChoices("persuasion_effectiveness", "persuasionEffectiveness")
    )
    overall_assessment: str = Field(
        validation_alias=AliasChoices("overall_assessment", "overallAssessment")
    )
    confidence_score: int = Field(
        ge=1,
        le=10,
        validation_alias=AliasChoices("confidence_score", "confidenceScore"),
    )
    analyzed_at: datetime = Field(
        default_factory=utcnow,
        validation_alias=AliasChoices("analyzed_at", "analyzedAt"),
    )
    created_at: datetime | None = None
    is_mock: bool = False

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class AnalysisEligibility(BaseModel):
    """Whether an analysis may be generated for a post yet."""

    post_id: int
    can_generate: bool
