"""
Shared fakes for the pipeline tests.

The connectors and the model client are replaced with in-memory fakes so no
test touches the network or spends API credits.
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Union

import pytest

from app.core.config import Settings
from app.core.guards import ClusterCache, RateLimiter
from app.integrations.scrapers.base import ReviewSourceConnector
from app.schemas.analysis import (
    AppAnalysis,
    AppMetadata,
    Review,
    ReviewCluster,
    ReviewSource,
)
from app.services.competitive_analysis import build_competitive_analysis_service


def make_review(
    index: int,
    rating: float = 4,
    text: Optional[str] = None,
    app_id: str = "com.example.app",
    source: ReviewSource = ReviewSource.GOOGLE_PLAY,
) -> Review:
    return Review(
        id=f"gplay-{app_id}-{index}",
        author=f"user{index}",
        rating=rating,
        date="2024-06-01T00:00:00+00:00",
        text=text if text is not None else f"Review number {index} for {app_id} with detail",
        source=source,
        app_id=app_id,
        app_name="",
    )


def make_cluster(theme: str, rating: float, count: int, index: int = 0) -> ReviewCluster:
    return ReviewCluster(
        id=f"cluster-{index}",
        theme=theme,
        summary=f"Users talk about {theme}",
        reviews=[],
        average_rating=rating,
        count=count,
    )


def make_analysis(
    app_id: str,
    clusters: List[ReviewCluster],
    average: float = 4.0,
    total: int = 100,
) -> AppAnalysis:
    return AppAnalysis(
        app_id=app_id,
        app_name=app_id.split(".")[-1].title(),
        total_reviews=total,
        average_rating=average,
        rating_distribution={1: 0, 2: 0, 3: 0, 4: total, 5: 0},
        clusters=clusters,
        last_updated=datetime.now(timezone.utc).isoformat(),
    )


class FakeModelClient:
    """Stands in for OpenAIAnalysisIntegration.generate."""

    def __init__(
        self,
        handler: Union[str, Callable[[str], str]],
        delay: float = 0.0,
        delay_when: Optional[Callable[[str], bool]] = None,
    ):
        self.handler = handler
        self.delay = delay
        self.delay_when = delay_when
        self.prompts: List[str] = []
        self.timeouts: List[float] = []

    async def generate(self, prompt: str, timeout: float, system_prompt: str = "") -> str:
        self.prompts.append(prompt)
        self.timeouts.append(timeout)
        if self.delay and (self.delay_when is None or self.delay_when(prompt)):
            await asyncio.sleep(self.delay)
        if callable(self.handler):
            return self.handler(prompt)
        return self.handler

    def ensure_configured(self) -> None:
        return None

    @property
    def calls(self) -> int:
        return len(self.prompts)


class FakeConnector(ReviewSourceConnector):
    """Serves canned reviews per app id, or raises a canned error."""

    source = ReviewSource.GOOGLE_PLAY
    default_review_count = 100

    def __init__(self, apps: Dict[str, Union[tuple, Exception]]):
        self.apps = apps
        self.requested: List[str] = []
        self.langs: List[str] = []

    def _lookup(self, app_id: str):
        self.requested.append(app_id)
        entry = self.apps[app_id]
        if isinstance(entry, Exception):
            raise entry
        return entry

    async def fetch_app_metadata(self, app_id, lang="en", country="us", timeout=15.0) -> AppMetadata:
        self.langs.append(lang)
        metadata, _ = self._lookup(app_id)
        return metadata

    async def fetch_reviews(self, app_id, lang="en", country="us", max_count=100, timeout=15.0):
        _, reviews = self._lookup(app_id)
        return list(reviews)


def clusters_json(*clusters: dict) -> str:
    return json.dumps({"clusters": list(clusters)})


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        OPENAI_API_KEY="test-key",
        RATE_LIMIT_MAX_CALLS=10,
        RATE_LIMIT_WINDOW_SECONDS=60,
        PIPELINE_TIMEOUT_SECONDS=5,
        MODEL_TIMEOUT_SECONDS=2,
        SCRAPER_TIMEOUT_SECONDS=2,
    )


@pytest.fixture
def rate_limiter() -> RateLimiter:
    return RateLimiter(max_calls=10, window_seconds=60)


@pytest.fixture
def cluster_cache() -> ClusterCache:
    return ClusterCache()


@pytest.fixture
def build_pipeline(test_settings, rate_limiter, cluster_cache):
    """Factory: wire the real pipeline around a fake connector and model."""

    def _build(connector: FakeConnector, model: FakeModelClient, config: Settings = None):
        return build_competitive_analysis_service(
            config=config or test_settings,
            model_client=model,
            connector_lookup=lambda source: connector,
            rate_limiter=rate_limiter,
            cache=cluster_cache,
        )

    return _build


YOUR_APP_ID = "com.acme.notes"
COMPETITOR_ID = "com.rival.notes"


def scenario_connector(competitor=None) -> FakeConnector:
    """Your app: 120 reviews averaging 4.5. Competitor: 80 reviews averaging 4.0."""
    your_reviews = [
        make_review(i, rating=5 if i % 2 else 4, text=f"Your app review {i}: battery lasts all day", app_id=YOUR_APP_ID)
        for i in range(120)
    ]
    competitor_reviews = [
        make_review(i, rating=4, text=f"Rival review {i}: battery drains quickly", app_id=COMPETITOR_ID)
        for i in range(80)
    ]
    return FakeConnector(
        {
            YOUR_APP_ID: (AppMetadata(title="Acme Notes", developer="Acme"), your_reviews),
            COMPETITOR_ID: competitor
            if competitor is not None
            else (AppMetadata(title="Rival Notes", developer="Rival"), competitor_reviews),
        }
    )


def scenario_model(
    competitor_themes=("battery life", "ads"),
    synthesis_reply=None,
    competitor_ratings=None,
) -> FakeModelClient:
    """Answers clustering prompts per app and the synthesis prompt with one insight."""

    def handler(prompt: str) -> str:
        if prompt.startswith("Analyze these app reviews"):
            if "Your app review" in prompt:
                return clusters_json(
                    {"theme": "battery life", "summary": "Battery lasts", "reviewNumbers": list(range(1, 11)), "avgRating": 4.6},
                    {"theme": "ads", "summary": "Too many ads", "reviewNumbers": [11, 12, 13], "avgRating": 2.0},
                )
            ratings = competitor_ratings or {"battery life": 3.8, "ads": 3.5}
            return clusters_json(
                *[
                    {"theme": theme, "summary": f"About {theme}", "reviewNumbers": [n + 1, n + 2], "avgRating": ratings.get(theme, 3.0)}
                    for n, theme in enumerate(competitor_themes)
                ]
            )
        if synthesis_reply is not None:
            return synthesis_reply
        return json.dumps(
            {
                "insights": [
                    {
                        "type": "strength",
                        "category": "performance",
                        "description": "Battery life beats the rival",
                        "evidence": ["Battery lasts all day"],
                        "priority": "high",
                        "theme": "battery life",
                        "yourRating": 2.0,
                        "ratingDelta": 9,
                    }
                ],
                "recommendations": [
                    {
                        "title": "Reduce ad load",
                        "description": "Cap interstitials per session.",
                        "impact": "high",
                        "effort": "low",
                        "category": "retention",
                        "basedOn": ["i0"],
                    }
                ],
            }
        )

    return FakeModelClient(handler)
