# src/persuasion_forum/api/v1/endpoints/analysis.py
"""AI analysis endpoints."""

from fastapi import APIRouter, HTTPException, status

from persuasion_forum.api.v1.dependencies import AnalysisServiceDep
from persuasion_forum.schemas.analysis import AIAnalysisResult, AnalysisEligibility
from persuasion_forum.services.analysis import AnalysisError

router = APIRouter(prefix="/api/analysis", tags=["analysis"])


@router.get("/{post_id}", response_model=AIAnalysisResult | None)
async def get_analysis(post_id: int, service: AnalysisServiceDep) -> AIAnalysisResult | None:
    """Return the stored analysis for a post, or null if none exists yet."""
    try:
        return await service.get_analysis(post_id)
    except AnalysisError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc


@router.get("/{post_id}/eligibility", response_model=AnalysisEligibility)
async def get_eligibility(post_id: int, service: AnalysisServiceDep) -> AnalysisEligibility:
    return AnalysisEligibility(post_id=post_id, can_generate=await service.can_generate(post_id))


@router.post("/{post_id}", response_model=AIAnalysisResult)
async def generate_analysis(
    post_id: int,
    service: AnalysisServiceDep,
    mock: bool = False,
) -> AIAnalysisResult:
    """Generate an analysis once the post's voting has closed."""
    if not await service.can_generate(post_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Analysis is available after voting has ended",
        )

    try:
        return await service.generate(post_id, use_mock=mock)
    except AnalysisError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
