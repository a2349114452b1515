import json
import logging
from typing import Dict, List, Optional

from pydantic import ValidationError

from app.core.exceptions import InvalidModelResponse
from app.core.guards import RateLimiter
from app.integrations.openai.analysis_integration import OpenAIAnalysisIntegration
from app.integrations.openai.competitive_synthesis_prompt import (
    COMPETITIVE_SYNTHESIS_PROMPT,
    COMPETITIVE_SYSTEM_PROMPT,
)
from app.integrations.openai.json_extraction import extract_json_object
from app.integrations.openai.review_model_response import (
    CompetitiveModelResponse,
    RawInsight,
    RawMarketPosition,
    RawRecommendation,
)
from app.schemas.analysis import (
    AppAnalysis,
    CompetitiveInsight,
    MarketPosition,
    Recommendation,
    RelativePosition,
    SynthesisResult,
    ThemeComparison,
    ThemeReconciliation,
)
from app.services.analysis_context import AnalysisContext

logger = logging.getLogger(__name__)

TOLERANCE = 0.05


def compute_rank(your: AppAnalysis, competitor: AppAnalysis) -> int:
    return 1 if your.average_rating >= competitor.average_rating else 2


def relative_bucket(value: float, other: float) -> RelativePosition:
    """Compare two scalars with a +/-0.05 band counted as average."""
    if value >= other + TOLERANCE:
        return RelativePosition.ABOVE
    if value <= other - TOLERANCE:
        return RelativePosition.BELOW
    return RelativePosition.AVERAGE


def build_market_position(
    raw: RawMarketPosition,
    your: AppAnalysis,
    competitor: AppAnalysis,
    reconciliation: ThemeReconciliation,
) -> MarketPosition:
    """Use each model-supplied field when valid, else the local computation."""
    return MarketPosition(
        rank=raw.rank or compute_rank(your, competitor),
        total_apps=2,
        rating_comparison=raw.rating_comparison
        or relative_bucket(your.average_rating, competitor.average_rating),
        volume_comparison=raw.volume_comparison
        or relative_bucket(your.total_reviews, competitor.total_reviews),
        unique_strengths=(
            raw.unique_strengths
            if raw.unique_strengths is not None
            else reconciliation.unique_strengths
        ),
        competitive_gaps=(
            raw.competitive_gaps
            if raw.competitive_gaps is not None
            else reconciliation.competitive_gaps
        ),
    )


def build_insight(
    index: int, raw: RawInsight, shared: Dict[str, ThemeComparison]
) -> CompetitiveInsight:
    """
    Turn a coerced model insight into the public record.

    When the insight names a shared theme, the locally computed ratings and
    counts replace whatever the model reported.
    """
    your_rating = raw.your_rating
    competitor_rating = raw.competitor_rating
    your_count = raw.your_count
    competitor_count = raw.competitor_count

    row = shared.get(raw.theme) if raw.theme else None
    if row is not None:
        your_rating = row.your_rating
        competitor_rating = row.competitor_rating
        your_count = row.your_count
        competitor_count = row.competitor_count

    if your_rating is not None and competitor_rating is not None:
        rating_delta = your_rating - competitor_rating
    else:
        rating_delta = raw.rating_delta

    return CompetitiveInsight(
        id=f"ins-{index}",
        type=raw.type,
        category=raw.category,
        description=raw.description,
        evidence=raw.evidence,
        priority=raw.priority,
        theme=raw.theme,
        your_rating=your_rating,
        competitor_rating=competitor_rating,
        rating_delta=rating_delta,
        your_count=your_count,
        competitor_count=competitor_count,
        sentiment=raw.sentiment,
        confidence=raw.confidence,
    )


def build_recommendation(index: int, raw: RawRecommendation) -> Recommendation:
    return Recommendation(
        id=f"rec-{index}",
        title=raw.title,
        description=raw.description,
        impact=raw.impact,
        effort=raw.effort,
        category=raw.category,
        based_on=raw.based_on,
        metric=raw.metric,
        expected_impact=raw.expected_impact,
        target_delta=raw.target_delta,
        timeframe=raw.timeframe,
        based_on_themes=raw.based_on_themes,
    )


class CompetitiveSynthesisService:
    """Asks the model for insights and recommendations, grounded on local numbers."""

    def __init__(
        self,
        model_client: OpenAIAnalysisIntegration,
        rate_limiter: RateLimiter,
        model_timeout: float = 25.0,
    ):
        self.model_client = model_client
        self.rate_limiter = rate_limiter
        self.model_timeout = model_timeout

    @staticmethod
    def build_context(
        your: AppAnalysis, competitor: AppAnalysis, reconciliation: ThemeReconciliation
    ) -> dict:
        def describe(analysis: AppAnalysis) -> dict:
            return {
                "name": analysis.app_name,
                "avg": analysis.average_rating,
                "total": analysis.total_reviews,
                "themes": [
                    {"t": c.theme, "r": c.average_rating, "n": c.count}
                    for c in analysis.clusters
                ],
            }

        return {
            "yourApp": describe(your),
            "competitor": describe(competitor),
            "sharedThemes": [
                row.model_dump(by_alias=True, exclude={"classification"})
                for row in reconciliation.theme_comparisons
            ],
        }

    def build_prompt(
        self, your: AppAnalysis, competitor: AppAnalysis, reconciliation: ThemeReconciliation
    ) -> str:
        context = self.build_context(your, competitor, reconciliation)
        return COMPETITIVE_SYNTHESIS_PROMPT.format(
            analysis_data=json.dumps(context, ensure_ascii=False)
        )

    def parse_response(self, response_text: str) -> CompetitiveModelResponse:
        """
        Coerce the reply field by field. An unparseable envelope yields an
        empty response, which means no qualitative output.
        """
        try:
            payload = extract_json_object(response_text)
        except InvalidModelResponse as e:
            logger.warning(f"Competitive synthesis reply unusable, continuing without it: {e.details}")
            payload = {}
        try:
            return CompetitiveModelResponse.model_validate(payload)
        except ValidationError as e:
            logger.warning(
                f"Competitive synthesis reply failed coercion, continuing without it: "
                f"{e.error_count()} error(s)"
            )
            return CompetitiveModelResponse()

    async def synthesize(
        self,
        your: AppAnalysis,
        competitor: AppAnalysis,
        reconciliation: ThemeReconciliation,
        ctx: Optional[AnalysisContext] = None,
    ) -> SynthesisResult:
        """
        Produce insights, recommendations and market position for the pair.

        ``themeComparisons`` and ``summary`` always come from the local
        reconciliation; the model cannot change them.

        Raises:
            ModelNotConfigured: If no API key is set
            RateLimited: If the shared model-call window is full
            ModelQuotaExceeded, ModelTransportError, UpstreamTimeout: From the model call
        """
        self.model_client.ensure_configured()
        self.rate_limiter.acquire("competitive synthesis")

        timeout = ctx.bound(self.model_timeout) if ctx else self.model_timeout
        response_text = await self.model_client.generate(
            self.build_prompt(your, competitor, reconciliation),
            timeout=timeout,
            system_prompt=COMPETITIVE_SYSTEM_PROMPT,
        )
        parsed = self.parse_response(response_text)

        shared = {row.theme: row for row in reconciliation.theme_comparisons}
        insights: List[CompetitiveInsight] = [
            build_insight(index, raw, shared) for index, raw in enumerate(parsed.insights)
        ]
        recommendations = [
            build_recommendation(index, raw)
            for index, raw in enumerate(parsed.recommendations)
        ]
        logger.info(
            f"Synthesis produced {len(insights)} insights and "
            f"{len(recommendations)} recommendations"
        )

        return SynthesisResult(
            insights=insights,
            recommendations=recommendations,
            market_position=build_market_position(
                parsed.market_position, your, competitor, reconciliation
            ),
            theme_comparisons=reconciliation.theme_comparisons,
            summary=reconciliation.summary,
        )
