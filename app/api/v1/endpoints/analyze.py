from fastapi import APIRouter, Body, Depends, Request
import logging

from app.schemas.analysis import AnalyzeRequest, CompetitiveAnalysis, ErrorResponse
from app.services.competitive_analysis import (
    CompetitiveAnalysisService,
    build_competitive_analysis_service,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_competitive_analysis_service(request: Request) -> CompetitiveAnalysisService:
    service = getattr(request.app.state, "analysis_service", None)
    if service is None:
        service = build_competitive_analysis_service()
        request.app.state.analysis_service = service
    return service


@router.post(
    "/analyze",
    response_model=CompetitiveAnalysis,
    response_model_exclude_none=True,
    responses={
        400: {"model": ErrorResponse, "description": "Missing or invalid request fields"},
        404: {"model": ErrorResponse, "description": "App or reviews not found"},
        429: {"model": ErrorResponse, "description": "Model quota or rate limit reached"},
        502: {"model": ErrorResponse, "description": "Store or model unreachable"},
        504: {"model": ErrorResponse, "description": "Analysis or upstream timeout"},
        500: {"model": ErrorResponse, "description": "Unclassified failure"},
    },
)
async def analyze_competitive(
    payload: AnalyzeRequest = Body(...),
    service: CompetitiveAnalysisService = Depends(get_competitive_analysis_service),
):
    """Compare the reviews of your app against one competitor.

    Fetches both apps' public reviews from the selected store, clusters each
    review set into themes, compares the themes the two apps share and asks
    the model for insights and recommendations grounded on those numbers.

    Args:
        payload: yourAppId, competitorId and optional source (default google-play)
        service: Competitive analysis service dependency

    Returns:
        CompetitiveAnalysis for the pair

    Raises:
        CompetitiveAnalysisError: Rendered by the registered exception handlers
    """
    logger.info(
        f"Analyze request: {payload.your_app_id} vs {payload.competitor_id} ({payload.source.value})"
    )
    return await service.analyze(
        payload.your_app_id, payload.competitor_id, payload.source
    )
