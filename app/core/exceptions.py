from datetime import datetime, timezone
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class CompetitiveAnalysisError(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[str] = None,
        suggestion: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or message
        self.suggestion = suggestion
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(self.message)


class InvalidRequestError(CompetitiveAnalysisError):
    def __init__(
        self, message: str = "Invalid analysis request", details: Optional[str] = None
    ):
        super().__init__(
            message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=details,
            suggestion=(
                "Send yourAppId and competitorId, and optionally source "
                "('google-play' or 'app-store')."
            ),
        )


# ---------------------------------------------------------------------------
# Review source failures
# ---------------------------------------------------------------------------


class UpstreamNotFound(CompetitiveAnalysisError):
    def __init__(self, message: str = "App not found", details: Optional[str] = None):
        logger.warning(f"UpstreamNotFound: {message}, Details: {details}")
        super().__init__(
            message,
            status_code=404,
            error_code="APP_NOT_FOUND",
            details=details,
            suggestion="Verify the app ID and the selected store.",
        )


class UpstreamEmpty(CompetitiveAnalysisError):
    def __init__(
        self, message: str = "No reviews found", details: Optional[str] = None
    ):
        logger.warning(f"UpstreamEmpty: {message}, Details: {details}")
        super().__init__(
            message,
            status_code=404,
            error_code="NO_REVIEWS",
            details=details,
            suggestion="The app may be new or have no public reviews yet.",
        )


class UpstreamTimeout(CompetitiveAnalysisError):
    def __init__(
        self, message: str = "Upstream request timed out", details: Optional[str] = None
    ):
        logger.warning(f"UpstreamTimeout: {message}, Details: {details}")
        super().__init__(
            message,
            status_code=504,
            error_code="UPSTREAM_TIMEOUT",
            details=details,
            suggestion="Try again in a few moments.",
        )


class UpstreamNetworkRestricted(CompetitiveAnalysisError):
    def __init__(
        self, message: str = "Upstream network error", details: Optional[str] = None
    ):
        logger.warning(f"UpstreamNetworkRestricted: {message}, Details: {details}")
        super().__init__(
            message,
            status_code=502,
            error_code="UPSTREAM_NETWORK_RESTRICTED",
            details=details,
            suggestion="The store may be unreachable from this deployment. Try again later.",
        )


class NoValidReviews(CompetitiveAnalysisError):
    def __init__(
        self,
        message: str = "No valid reviews found for analysis",
        details: Optional[str] = None,
    ):
        super().__init__(
            message,
            status_code=404,
            error_code="NO_VALID_REVIEWS",
            details=details,
            suggestion="Reviews were too short to analyze. Try an app with more detailed reviews.",
        )


# ---------------------------------------------------------------------------
# Language model failures
# ---------------------------------------------------------------------------


class RateLimited(CompetitiveAnalysisError):
    def __init__(
        self,
        message: str = "Rate limit exceeded, please try again later",
        details: Optional[str] = None,
    ):
        logger.warning(f"RateLimited: {message}, Details: {details}")
        super().__init__(
            message,
            status_code=429,
            error_code="RATE_LIMITED",
            details=details,
            suggestion="Wait a minute before starting another analysis.",
        )


class ModelQuotaExceeded(CompetitiveAnalysisError):
    def __init__(
        self, message: str = "Model quota exceeded", details: Optional[str] = None
    ):
        logger.warning(f"ModelQuotaExceeded: {message}, Details: {details}")
        super().__init__(
            message,
            status_code=429,
            error_code="MODEL_QUOTA_EXCEEDED",
            details=details,
            suggestion="The AI provider is throttling requests. Try again later.",
        )


class ModelTransportError(CompetitiveAnalysisError):
    def __init__(
        self, message: str = "Model request failed", details: Optional[str] = None
    ):
        logger.error(f"ModelTransportError: {message}, Details: {details}")
        super().__init__(
            message,
            status_code=502,
            error_code="MODEL_TRANSPORT_ERROR",
            details=details,
            suggestion="Try again in a few moments.",
        )


class ModelNotConfigured(CompetitiveAnalysisError):
    def __init__(
        self,
        message: str = "OPENAI_API_KEY is required",
        details: Optional[str] = None,
    ):
        logger.error(f"ModelNotConfigured: {message}")
        super().__init__(
            message, status_code=500, error_code="MODEL_NOT_CONFIGURED", details=details
        )


class InvalidModelResponse(CompetitiveAnalysisError):
    def __init__(
        self, message: str = "Invalid AI response format", details: Optional[str] = None
    ):
        logger.error(f"InvalidModelResponse: {message}, Details: {details}")
        super().__init__(
            message,
            status_code=500,
            error_code="INVALID_MODEL_RESPONSE",
            details=details,
            suggestion="Retry the analysis; model output varies between runs.",
        )


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class PipelineTimeout(CompetitiveAnalysisError):
    def __init__(
        self, message: str = "Analysis timed out", details: Optional[str] = None
    ):
        logger.error(f"PipelineTimeout: {message}, Details: {details}")
        super().__init__(
            message,
            status_code=504,
            error_code="PIPELINE_TIMEOUT",
            details=details,
            suggestion="Try again, or compare apps with fewer reviews.",
        )
