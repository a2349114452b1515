import asyncio

from app.core.guards import ClusterCache, RateLimiter
from app.schemas.analysis import AppMetadata, ReviewSource
from app.services.app_summary import AppSummaryService, average_rating, rating_distribution
from app.services.theme_clustering import ThemeClusteringService
from tests.conftest import FakeConnector, FakeModelClient, clusters_json, make_review


def _summary_service(connector, model):
    clustering = ThemeClusteringService(
        model, RateLimiter(max_calls=10, window_seconds=60), ClusterCache()
    )
    return AppSummaryService(clustering, connector_lookup=lambda source: connector)


def test_distribution_rounds_half_up_and_clamps():
    reviews = [make_review(i, rating=r) for i, r in enumerate([0, 1.4, 2.5, 3.49, 4.5, 7, 5])]
    assert rating_distribution(reviews) == {1: 2, 2: 0, 3: 2, 4: 0, 5: 3}


def test_distribution_counts_every_review():
    reviews = [make_review(i, rating=(i % 5) + 1) for i in range(37)]
    distribution = rating_distribution(reviews)
    assert set(distribution) == {1, 2, 3, 4, 5}
    assert sum(distribution.values()) == 37


def test_average_uses_raw_ratings_and_zero_when_empty():
    assert average_rating([]) == 0.0
    assert average_rating([make_review(1, rating=4.5), make_review(2, rating=4)]) == 4.25


def test_analyze_single_app_stamps_name_and_caps_clusters():
    reviews = [make_review(i, rating=4, app_id="com.acme.notes") for i in range(1, 11)]
    connector = FakeConnector(
        {"com.acme.notes": (AppMetadata(title="Acme Notes", developer="Acme"), reviews)}
    )
    entries = [{"theme": f"theme {i}", "summary": "s", "reviewNumbers": [i]} for i in range(1, 7)]
    model = FakeModelClient(clusters_json(*entries))

    analysis = asyncio.run(
        _summary_service(connector, model).analyze_single_app("com.acme.notes", ReviewSource.GOOGLE_PLAY)
    )

    assert analysis.app_name == "Acme Notes"
    assert analysis.total_reviews == 10
    assert analysis.average_rating == 4.0
    assert sum(analysis.rating_distribution.values()) == analysis.total_reviews
    assert len(analysis.clusters) == 5
    assert all(r.app_name == "Acme Notes" for c in analysis.clusters for r in c.reviews)


def test_total_reviews_includes_short_reviews():
    reviews = [make_review(1, text="bad"), make_review(2, text="Crashes every time I open it")]
    connector = FakeConnector({"com.acme.notes": (AppMetadata(title="Acme"), reviews)})
    model = FakeModelClient(clusters_json({"theme": "crashes", "summary": "s", "reviewNumbers": [1]}))

    analysis = asyncio.run(
        _summary_service(connector, model).analyze_single_app("com.acme.notes", ReviewSource.GOOGLE_PLAY)
    )

    assert analysis.total_reviews == 2
    assert analysis.clusters[0].reviews[0].text == "Crashes every time I open it"
