from fastapi import APIRouter, Request
from datetime import datetime, timezone

from app.core.config import settings
from app.schemas.analysis import ReviewSource

router = APIRouter()


@router.get("/")
async def root():
    """API root endpoint"""
    return {
        "message": "Competitive Review Analyzer API",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
        "status": "running",
    }


@router.get("/check")
async def health_check():
    return {
        "status": "ok" if settings.OPENAI_API_KEY else "degraded",
        "model_configured": bool(settings.OPENAI_API_KEY),
        "model": settings.OPENAI_MODEL,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/info")
async def api_info(request: Request):
    """Analyzer configuration plus live rate-limit and cache usage.

    The guard section is null until the analysis pipeline has been built
    (on startup, or on the first /analyze request).
    """
    service = getattr(request.app.state, "analysis_service", None)
    return {
        "name": settings.APP_NAME,
        "version": settings.VERSION,
        "sources": [source.value for source in ReviewSource],
        "review_counts": {
            ReviewSource.GOOGLE_PLAY.value: settings.GOOGLE_PLAY_REVIEW_COUNT,
            ReviewSource.APP_STORE.value: settings.APP_STORE_REVIEW_COUNT,
        },
        "timeouts_seconds": {
            "model": settings.MODEL_TIMEOUT_SECONDS,
            "scraper": settings.SCRAPER_TIMEOUT_SECONDS,
            "pipeline": settings.PIPELINE_TIMEOUT_SECONDS,
        },
        "guards": service.guard_status() if service is not None else None,
    }
