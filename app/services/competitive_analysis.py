import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from app.core.config import Settings, settings as default_settings
from app.core.exceptions import CompetitiveAnalysisError, UpstreamTimeout
from app.core.guards import ClusterCache, RateLimiter
from app.integrations.openai.analysis_integration import OpenAIAnalysisIntegration
from app.integrations.scrapers.base import ReviewSourceConnector
from app.integrations.scrapers.factory import get_review_connector
from app.schemas.analysis import CompetitiveAnalysis, ReviewSource
from app.services.analysis_context import AnalysisContext, PipelineState
from app.services.app_summary import AppSummaryService
from app.services.competitive_synthesis import CompetitiveSynthesisService
from app.services.theme_clustering import ThemeClusteringService
from app.services.theme_reconciliation import reconcile_themes

logger = logging.getLogger(__name__)


class CompetitiveAnalysisService:
    """
    Runs one two-app comparison end to end.

    Stages: fetch your app, fetch the competitor, cluster both, reconcile,
    synthesize. Both apps are fetched before any model call, so a missing
    app never costs a rate-limit slot. Any typed failure aborts the run with
    no partial result; nothing is retried.
    """

    def __init__(
        self,
        summaries: AppSummaryService,
        synthesis: CompetitiveSynthesisService,
        pipeline_timeout: float = 55.0,
    ):
        self.summaries = summaries
        self.synthesis = synthesis
        self.pipeline_timeout = pipeline_timeout

    async def analyze(
        self,
        your_app_id: str,
        competitor_id: str,
        source: ReviewSource = ReviewSource.GOOGLE_PLAY,
    ) -> CompetitiveAnalysis:
        """
        Compare two apps from the same store.

        Raises:
            PipelineTimeout: If the whole run exceeds ``pipeline_timeout``
            CompetitiveAnalysisError: The first typed failure of any stage
        """
        ctx = AnalysisContext(self.pipeline_timeout, request_id=uuid.uuid4().hex[:8])
        logger.info(
            f"[{ctx.request_id}] Competitive analysis: {your_app_id} vs {competitor_id} ({source.value})"
        )

        try:
            result = await asyncio.wait_for(
                self._run(ctx, your_app_id, competitor_id, source),
                timeout=self.pipeline_timeout,
            )
        except asyncio.TimeoutError as e:
            error = ctx.timeout_error()
            ctx.transition(PipelineState.FAILED)
            raise error from e
        except UpstreamTimeout as e:
            # A call clipped to the remaining budget timed out: that is the budget.
            error = ctx.timeout_error() if ctx.expired() else e
            ctx.transition(PipelineState.FAILED)
            if error is e:
                raise
            raise error from e
        except CompetitiveAnalysisError:
            ctx.transition(PipelineState.FAILED)
            raise

        ctx.transition(PipelineState.DONE)
        return result

    def guard_status(self) -> dict:
        """Rate-limit window usage and cache size shared by every request."""
        limiter = self.synthesis.rate_limiter
        return {
            "rate_limit": {
                "calls_in_window": limiter.calls_in_window,
                "max_calls": limiter.max_calls,
                "window_seconds": limiter.window_seconds,
                "accepting_calls": limiter.under_limit(),
            },
            "cached_cluster_sets": len(self.summaries.clustering.cache),
            "pipeline_timeout_seconds": self.pipeline_timeout,
        }

    async def _run(
        self,
        ctx: AnalysisContext,
        your_app_id: str,
        competitor_id: str,
        source: ReviewSource,
    ) -> CompetitiveAnalysis:
        ctx.transition(PipelineState.FETCHING_YOUR_APP)
        your_meta, your_reviews = await self.summaries.fetch_app_reviews(
            your_app_id, source, ctx
        )

        ctx.transition(PipelineState.FETCHING_COMPETITOR)
        competitor_meta, competitor_reviews = await self.summaries.fetch_app_reviews(
            competitor_id, source, ctx
        )

        ctx.transition(PipelineState.CLUSTERING)
        your_app = await self.summaries.summarize_app(
            your_app_id, your_meta, your_reviews, ctx
        )
        competitor = await self.summaries.summarize_app(
            competitor_id, competitor_meta, competitor_reviews, ctx
        )

        ctx.transition(PipelineState.RECONCILING)
        reconciliation = reconcile_themes(your_app, competitor)

        ctx.transition(PipelineState.SYNTHESIZING)
        synthesis = await self.synthesis.synthesize(your_app, competitor, reconciliation, ctx)

        return CompetitiveAnalysis(
            your_app=your_app,
            competitor=competitor,
            insights=synthesis.insights,
            recommendations=synthesis.recommendations,
            market_position=synthesis.market_position,
            theme_comparisons=synthesis.theme_comparisons,
            summary=synthesis.summary,
            last_updated=datetime.now(timezone.utc).isoformat(),
        )


def build_competitive_analysis_service(
    config: Optional[Settings] = None,
    model_client: Optional[OpenAIAnalysisIntegration] = None,
    connector_lookup: Callable[[ReviewSource], ReviewSourceConnector] = get_review_connector,
    rate_limiter: Optional[RateLimiter] = None,
    cache: Optional[ClusterCache] = None,
) -> CompetitiveAnalysisService:
    """
    Wire the pipeline. One rate limiter and one cache are shared by every
    request served by the returned service.
    """
    config = config or default_settings
    model_client = model_client or OpenAIAnalysisIntegration()
    rate_limiter = rate_limiter or RateLimiter(
        max_calls=config.RATE_LIMIT_MAX_CALLS,
        window_seconds=config.RATE_LIMIT_WINDOW_SECONDS,
    )
    cache = cache if cache is not None else ClusterCache()

    clustering = ThemeClusteringService(
        model_client, rate_limiter, cache, model_timeout=config.MODEL_TIMEOUT_SECONDS
    )
    summaries = AppSummaryService(
        clustering,
        connector_lookup=connector_lookup,
        scraper_timeout=config.SCRAPER_TIMEOUT_SECONDS,
        lang=config.DEFAULT_LANG,
        country=config.DEFAULT_COUNTRY,
    )
    synthesis = CompetitiveSynthesisService(
        model_client, rate_limiter, model_timeout=config.MODEL_TIMEOUT_SECONDS
    )
    return CompetitiveAnalysisService(
        summaries, synthesis, pipeline_timeout=config.PIPELINE_TIMEOUT_SECONDS
    )
