"""Orchestration of AI analysis for closed votes.

Analysis itself runs in a serverless function on the hosted backend. This
service decides when a post is eligible, triggers generation, falls back to a
local mock generator when the function fails, and keeps the latest result in
both an in-process query cache and the local snapshot table.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from threading import Lock

from pydantic import ValidationError
from sqlalchemy.orm import Session

from persuasion_forum.core.settings import settings
from persuasion_forum.db.time import utcnow
from persuasion_forum.models import AnalysisSnapshot
from persuasion_forum.schemas.analysis import AIAnalysisResult
from persuasion_forum.services.supabase import (
    SupabaseClient,
    SupabaseError,
    SupabaseNotFoundError,
)
from persuasion_forum.services.vote_window import is_voting_expired

logger = logging.getLogger(__name__)

ANALYSIS_TABLE = "ai_vote_analysis"

_MOCK_TEXTS = {
    "trend_analysis": (
        "Early votes leaned towards agreement, disagreement grew mid-way, and the "
        "persuasion window brought a small shift. Overall the voting pattern was stable."
    ),
    "sentiment_analysis": (
        "Comments were mostly constructive and reasoned. Emotional remarks were rare and "
        "the exchange rested on mutual respect."
    ),
    "discussion_quality": (
        "Participants raised a range of viewpoints backed by reasons. Active exchanges "
        "produced a high-quality discussion space."
    ),
    "persuasion_effectiveness": (
        "A moderate number of votes changed during the persuasion window, and the "
        "author's follow-up had a measurable persuasive effect."
    ),
    "overall_assessment": (
        "High participation and constructive debate make this a reliable result. The "
        "community showed maturity and the discussion quality was strong."
    ),
}


class AnalysisError(RuntimeError):
    """Raised when neither the analysis function nor the mock produced a result."""


class AnalysisCache:
    """Per-post analysis cache; the last write for a post wins."""

    def __init__(self, stale_seconds: int | None = None) -> None:
        self.stale_seconds = (
            settings.analysis_stale_seconds if stale_seconds is None else stale_seconds
        )
        self._entries: dict[int, tuple[AIAnalysisResult, float]] = {}
        self._lock = Lock()

    def get(self, post_id: int) -> AIAnalysisResult | None:
        with self._lock:
            entry = self._entries.get(post_id)
            if entry is None:
                return None
            result, stored_at = entry
            if time.monotonic() - stored_at > self.stale_seconds:
                self._entries.pop(post_id, None)
                return None
            return result

    def set(self, post_id: int, result: AIAnalysisResult) -> None:
        with self._lock:
            self._entries[post_id] = (result, time.monotonic())

    def invalidate(self, post_id: int) -> None:
        with self._lock:
            self._entries.pop(post_id, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def generate_mock_analysis(post_id: int) -> AIAnalysisResult:
    """Build a fixed-shape analysis with a confidence score between 7 and 9."""
    now = utcnow()
    return AIAnalysisResult(
        id=random.randint(0, 999),
        post_id=post_id,
        confidence_score=random.randint(7, 9),
        analyzed_at=now,
        created_at=now,
        is_mock=True,
        **_MOCK_TEXTS,
    )


class AnalysisService:
    """Fetch, gate and generate AI analyses for posts."""

    def __init__(
        self,
        client: SupabaseClient,
        db: Session,
        cache: AnalysisCache | None = None,
        *,
        function_name: str | None = None,
        mock_delay: tuple[float, float] | None = None,
    ) -> None:
        self.client = client
        self.db = db
        self.cache = cache if cache is not None else get_analysis_cache()
        self.function_name = function_name or settings.analysis_function_name
        self.mock_delay = mock_delay or (
            settings.mock_analysis_min_delay,
            settings.mock_analysis_max_delay,
        )

    async def get_analysis(self, post_id: int) -> AIAnalysisResult | None:
        """Return the stored analysis for a post, or None if none exists yet.

        Lookup order is the query cache, the local snapshot table, then the
        hosted ``ai_vote_analysis`` table.

        Raises:
            AnalysisError: If the hosted read fails for any reason other than
                the row not existing.
        """
        cached = self.cache.get(post_id)
        if cached is not None:
            return cached

        snapshot = self.db.get(AnalysisSnapshot, post_id)
        if snapshot is not None:
            result = AIAnalysisResult.model_validate(snapshot)
            self.cache.set(post_id, result)
            return result

        try:
            row = await self.client.select(
                ANALYSIS_TABLE,
                filters={"post_id": f"eq.{post_id}"},
                single=True,
            )
        except SupabaseNotFoundError:
            logger.debug("No analysis stored for post %s", post_id)
            return None
        except SupabaseError as exc:
            raise AnalysisError(f"Failed to fetch AI analysis: {exc.message}") from exc

        result = AIAnalysisResult.model_validate(row)
        self.cache.set(post_id, result)
        return result

    async def can_generate(self, post_id: int) -> bool:
        """Return True only once the post's vote deadline has passed."""
        try:
            post = await self.client.select(
                "posts",
                "vote_deadline",
                filters={"id": f"eq.{post_id}"},
                single=True,
            )
        except SupabaseError as exc:
            logger.warning("Eligibility check failed for post %s: %s", post_id, exc)
            return False

        deadline = post.get("vote_deadline") if isinstance(post, dict) else None
        if not deadline:
            return False
        try:
            return is_voting_expired(deadline)
        except ValueError:
            logger.warning("Post %s has an unparseable vote deadline: %r", post_id, deadline)
            return False

    async def generate(self, post_id: int, *, use_mock: bool = False) -> AIAnalysisResult:
        """Generate an analysis and store it.

        The serverless function is tried first unless ``use_mock`` is set; any
        failure there falls back to the mock generator.

        Raises:
            AnalysisError: If the mock generator fails as well.
        """
        result: AIAnalysisResult | None = None
        if not use_mock:
            try:
                result = await self._invoke_function(post_id)
            except (AnalysisError, SupabaseError) as exc:
                logger.warning(
                    "Analysis function %s failed for post %s, using mock: %s",
                    self.function_name,
                    post_id,
                    exc,
                )

        if result is None:
            result = await self.generate_mock(post_id)

        self._store(result)
        return result

    async def _invoke_function(self, post_id: int) -> AIAnalysisResult:
        logger.info("Requesting analysis for post %s from %s", post_id, self.function_name)
        payload = await self.client.invoke_function(self.function_name, {"postId": post_id})

        if not isinstance(payload, dict) or not payload.get("success"):
            message = payload.get("error") if isinstance(payload, dict) else None
            raise AnalysisError(message or "Analysis function reported a failure")

        analysis = payload.get("analysis")
        if not isinstance(analysis, dict):
            raise AnalysisError("Analysis function returned no analysis")

        try:
            return AIAnalysisResult.model_validate({"post_id": post_id, **analysis})
        except ValidationError as exc:
            raise AnalysisError(f"Analysis function returned a malformed result: {exc}") from exc

    async def generate_mock(self, post_id: int) -> AIAnalysisResult:
        """Produce a mock analysis after an artificial delay."""
        low, high = self.mock_delay
        try:
            if high > 0:
                await asyncio.sleep(random.uniform(max(low, 0.0), high))
            result = generate_mock_analysis(post_id)
        except (ValueError, ValidationError) as exc:
            logger.error("Mock analysis failed for post %s: %s", post_id, exc)
            raise AnalysisError(f"AI analysis could not be generated: {exc}") from exc

        logger.info("Mock analysis generated for post %s", post_id)
        return result

    def _store(self, result: AIAnalysisResult) -> None:
        self.cache.set(result.post_id, result)

        snapshot = self.db.get(AnalysisSnapshot, result.post_id)
        if snapshot is None:
            snapshot = AnalysisSnapshot(post_id=result.post_id)
            self.db.add(snapshot)

        snapshot.trend_analysis = result.trend_analysis
        snapshot.sentiment_analysis = result.sentiment_analysis
        snapshot.discussion_quality = result.discussion_quality
        snapshot.persuasion_effectiveness = result.persuasion_effectiveness
        snapshot.overall_assessment = result.overall_assessment
        snapshot.confidence_score = result.confidence_score
        snapshot.analyzed_at = result.analyzed_at
        snapshot.is_mock = result.is_mock
        self.db.commit()


_cache_instance: AnalysisCache | None = None


def get_analysis_cache() -> AnalysisCache:
    """Return the process-wide analysis cache."""
    global _cache_instance
    if _cache_instance is None:
        _cache_instance = AnalysisCache()
    return _cache_instance
