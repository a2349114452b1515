"""
Competitive Review Analyzer API
FastAPI application main entry point
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware

from app.core.config import settings
from app.core.error_handlers import register_exception_handlers
from app.middleware.logging import LoggingMiddleware
from app.api.v1.router import api_router
from app.services.competitive_analysis import build_competitive_analysis_service

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    logger.info("Starting up Competitive Review Analyzer API...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")
    if not settings.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY is not set; /analyze will fail until it is configured")

    # One pipeline (and so one rate limiter and one cache) per process.
    app.state.analysis_service = build_competitive_analysis_service(settings)

    yield

    # Shutdown
    logger.info("Shutting down Competitive Review Analyzer API...")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="Compares two mobile apps through their public store reviews: theme clusters, shared-theme deltas, insights and recommendations.",
    version=settings.VERSION,
    docs_url=settings.DOCS_URL if settings.docs_enabled else None,
    redoc_url=settings.REDOC_URL if settings.docs_enabled else None,
    openapi_url=settings.OPENAPI_URL if settings.docs_enabled else None,
    lifespan=lifespan,
)

# Security middleware
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.get_allowed_hosts())

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# Request logging middleware
app.add_middleware(LoggingMiddleware)

register_exception_handlers(app)

app.include_router(api_router, prefix=settings.API_PREFIX)
