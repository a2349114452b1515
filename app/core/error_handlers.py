from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging

from app.core.exceptions import (
    CompetitiveAnalysisError,
    InvalidRequestError,
    PipelineTimeout,
)

logger = logging.getLogger(__name__)


def _error_body(error: str, details: str, suggestion: str = None) -> dict:
    body = {"error": error, "details": details}
    if suggestion:
        body["suggestion"] = suggestion
    return body


async def analysis_exception_handler(request: Request, exc: CompetitiveAnalysisError):
    """Handler for the typed analysis failures"""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        f"{exc.error_code} on {request.url.path}: {exc.message}",
        extra={"details": exc.details},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, exc.details, exc.suggestion),
    )


async def pipeline_timeout_handler(request: Request, exc: PipelineTimeout):
    """Specific handler for the overall analysis budget"""
    logger.critical(
        f"Pipeline timeout on {request.url.path}: {exc.details}",
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, exc.details, exc.suggestion),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Render body validation errors in the same shape as every other failure"""
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))
    logger.warning(f"Validation error on {request.url.path}: {problems}")
    error = InvalidRequestError(details="; ".join(problems) or "Invalid request body")
    return JSONResponse(
        status_code=error.status_code,
        content=_error_body(error.message, error.details, error.suggestion),
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handler for unhandled exceptions"""
    logger.error(
        f"Unhandled exception on {request.url.path}: {str(exc)}", exc_info=True
    )
    return JSONResponse(
        status_code=500,
        content=_error_body(
            "Failed to perform competitive analysis",
            str(exc) or type(exc).__name__,
        ),
    )


def register_exception_handlers(app):
    """Registers all exception handlers in the application"""
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(PipelineTimeout, pipeline_timeout_handler)
    app.add_exception_handler(CompetitiveAnalysisError, analysis_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
