import logging
from typing import List, Optional

from pydantic import ValidationError

from app.core.exceptions import InvalidModelResponse, NoValidReviews
from app.core.guards import ClusterCache, RateLimiter
from app.integrations.openai.analysis_integration import OpenAIAnalysisIntegration
from app.integrations.openai.json_extraction import extract_json_object
from app.integrations.openai.review_model_response import ClusterModelResponse
from app.integrations.openai.theme_clustering_prompt import THEME_CLUSTERING_PROMPT
from app.schemas.analysis import Review, ReviewCluster
from app.services.analysis_context import AnalysisContext

logger = logging.getLogger(__name__)


def truncate(text: str, max_length: int) -> str:
    return text[:max_length] + "..." if len(text) > max_length else text


class ThemeClusteringService:
    """Groups one app's reviews into themes with the language model."""

    MIN_TEXT_LENGTH = 15
    MAX_THEMES = 7
    MAX_MODEL_CLUSTERS = 6
    MAX_SAMPLES = 5
    PROMPT_TEXT_LIMIT = 200
    SUMMARY_LIMIT = 200

    def __init__(
        self,
        model_client: OpenAIAnalysisIntegration,
        rate_limiter: RateLimiter,
        cache: ClusterCache,
        model_timeout: float = 25.0,
    ):
        self.model_client = model_client
        self.rate_limiter = rate_limiter
        self.cache = cache
        self.model_timeout = model_timeout

    @classmethod
    def filter_reviews(cls, reviews: List[Review]) -> List[Review]:
        """Keep reviews whose trimmed text is longer than MIN_TEXT_LENGTH characters."""
        return [r for r in reviews if len((r.text or "").strip()) > cls.MIN_TEXT_LENGTH]

    def build_prompt(self, reviews: List[Review]) -> str:
        reviews_block = "\n".join(
            f"{index}. ({review.rating:g}★) {truncate(review.text, self.PROMPT_TEXT_LIMIT)}"
            for index, review in enumerate(reviews, 1)
        )
        return THEME_CLUSTERING_PROMPT.format(
            max_themes=self.MAX_THEMES,
            summary_limit=self.SUMMARY_LIMIT,
            reviews_block=reviews_block,
        )

    async def cluster_reviews(
        self, reviews: List[Review], ctx: Optional[AnalysisContext] = None
    ) -> List[ReviewCluster]:
        """
        Cluster reviews into at most six themes, largest first.

        Identical review sets (same ids, same order) are answered from the
        cache without a model call or a rate-limit slot.

        Raises:
            NoValidReviews: If every review is too short to be meaningful
            ModelNotConfigured: If no API key is set
            RateLimited: If the shared model-call window is full
            InvalidModelResponse: If the reply is not a valid clusters payload
        """
        valid_reviews = self.filter_reviews(reviews)
        if not valid_reviews:
            raise NoValidReviews(
                details=(
                    f"All {len(reviews)} reviews had {self.MIN_TEXT_LENGTH} characters "
                    "or fewer of text"
                )
            )

        key = self.cache.key_for([r.id for r in valid_reviews])
        cached = self.cache.get(key)
        if cached is not None:
            logger.info(f"Theme clusters served from cache ({len(valid_reviews)} reviews)")
            return cached

        self.model_client.ensure_configured()
        self.rate_limiter.acquire("theme clustering")

        timeout = ctx.bound(self.model_timeout) if ctx else self.model_timeout
        response_text = await self.model_client.generate(
            self.build_prompt(valid_reviews), timeout=timeout
        )

        clusters = self.normalize_clusters(response_text, valid_reviews)
        self.cache.set(key, clusters)
        logger.info(f"Clustered {len(valid_reviews)} reviews into {len(clusters)} themes")
        return clusters

    def normalize_clusters(
        self, response_text: str, valid_reviews: List[Review]
    ) -> List[ReviewCluster]:
        """Validate the model reply and map review numbers back to reviews."""
        payload = extract_json_object(response_text)
        try:
            parsed = ClusterModelResponse.model_validate(payload)
        except ValidationError as e:
            raise InvalidModelResponse(
                "Invalid AI response format",
                details=f"Clusters payload failed validation: {e.error_count()} error(s); {e.errors()[0]['msg']}",
            ) from e

        clusters = []
        for index, entry in enumerate(parsed.clusters[: self.MAX_MODEL_CLUSTERS]):
            numbers = entry.matched_numbers(len(valid_reviews))[: self.MAX_SAMPLES]
            matched = [valid_reviews[number - 1] for number in numbers]

            if entry.avg_rating:
                average = entry.avg_rating
            elif matched:
                average = sum(r.rating for r in matched) / len(matched)
            else:
                average = 0.0

            summary = (entry.summary or "").strip() or "No summary available"
            clusters.append(
                ReviewCluster(
                    id=f"cluster-{index}",
                    theme=entry.theme or f"Theme {index + 1}",
                    summary=summary[: self.SUMMARY_LIMIT],
                    reviews=matched,
                    average_rating=round(average, 1),
                    count=len(matched),
                )
            )

        # sorted() is stable: equal counts keep the model's order.
        return sorted(clusters, key=lambda c: c.count, reverse=True)
