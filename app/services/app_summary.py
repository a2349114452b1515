import logging
import math
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from app.integrations.scrapers.base import ReviewSourceConnector
from app.integrations.scrapers.factory import get_review_connector
from app.schemas.analysis import AppAnalysis, AppMetadata, Review, ReviewSource
from app.services.analysis_context import AnalysisContext
from app.services.theme_clustering import ThemeClusteringService

logger = logging.getLogger(__name__)

MAX_CLUSTERS = 5


def rating_distribution(reviews: List[Review]) -> Dict[int, int]:
    """Count reviews per star bucket, rounding half up and clamping to 1..5."""
    distribution = {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}
    for review in reviews:
        bucket = max(1, min(5, math.floor(review.rating + 0.5)))
        distribution[bucket] += 1
    return distribution


def average_rating(reviews: List[Review]) -> float:
    """Mean of the raw ratings; 0 for an empty list."""
    if not reviews:
        return 0.0
    return sum(r.rating for r in reviews) / len(reviews)


class AppSummaryService:
    """Builds one AppAnalysis: connector fetch, rating statistics, theme clusters."""

    def __init__(
        self,
        clustering: ThemeClusteringService,
        connector_lookup: Callable[[ReviewSource], ReviewSourceConnector] = get_review_connector,
        scraper_timeout: float = 15.0,
        lang: str = "en",
        country: str = "us",
    ):
        self.clustering = clustering
        self.connector_lookup = connector_lookup
        self.scraper_timeout = scraper_timeout
        self.lang = lang
        self.country = country

    def _timeout(self, ctx: Optional[AnalysisContext]) -> float:
        return ctx.bound(self.scraper_timeout) if ctx else self.scraper_timeout

    async def fetch_app_reviews(
        self,
        app_id: str,
        source: ReviewSource,
        ctx: Optional[AnalysisContext] = None,
    ) -> Tuple[AppMetadata, List[Review]]:
        """
        Fetch metadata and reviews for one app, stamping the app name on each review.

        Connector errors (not found, timeout, network restricted, empty)
        propagate unchanged.
        """
        connector = self.connector_lookup(source)
        metadata = await connector.fetch_app_metadata(
            app_id, lang=self.lang, country=self.country, timeout=self._timeout(ctx)
        )
        reviews = await connector.fetch_reviews(
            app_id,
            lang=self.lang,
            country=self.country,
            max_count=connector.default_review_count,
            timeout=self._timeout(ctx),
        )
        reviews = [r.model_copy(update={"app_name": metadata.title}) for r in reviews]
        logger.info(f"Fetched {len(reviews)} reviews for {app_id} ({metadata.title})")
        return metadata, reviews

    async def summarize_app(
        self,
        app_id: str,
        metadata: AppMetadata,
        reviews: List[Review],
        ctx: Optional[AnalysisContext] = None,
    ) -> AppAnalysis:
        clusters = await self.clustering.cluster_reviews(reviews, ctx)

        return AppAnalysis(
            app_id=app_id,
            app_name=metadata.title,
            total_reviews=len(reviews),
            average_rating=average_rating(reviews),
            rating_distribution=rating_distribution(reviews),
            clusters=clusters[:MAX_CLUSTERS],
            last_updated=datetime.now(timezone.utc).isoformat(),
        )

    async def analyze_single_app(
        self,
        app_id: str,
        source: ReviewSource,
        ctx: Optional[AnalysisContext] = None,
    ) -> AppAnalysis:
        metadata, reviews = await self.fetch_app_reviews(app_id, source, ctx)
        return await self.summarize_app(app_id, metadata, reviews, ctx)

