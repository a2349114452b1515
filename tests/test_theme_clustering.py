import asyncio
import json

import pytest

from app.core.exceptions import InvalidModelResponse, NoValidReviews, RateLimited
from app.core.guards import ClusterCache, RateLimiter
from app.services.theme_clustering import ThemeClusteringService, truncate
from tests.conftest import FakeModelClient, clusters_json, make_review


def _service(model, limiter=None, cache=None):
    return ThemeClusteringService(
        model,
        limiter or RateLimiter(max_calls=10, window_seconds=60),
        cache if cache is not None else ClusterCache(),
        model_timeout=5,
    )


def test_short_reviews_are_filtered_out():
    reviews = [
        make_review(1, text="too short"),
        make_review(2, text="   " + "a" * 15 + "   "),
        make_review(3, text="this one is long enough to keep"),
    ]
    kept = ThemeClusteringService.filter_reviews(reviews)
    assert [r.id for r in kept] == [reviews[2].id]


def test_no_valid_reviews_raises_before_any_model_call():
    model = FakeModelClient(clusters_json())
    limiter = RateLimiter(max_calls=10, window_seconds=60)
    service = _service(model, limiter)

    with pytest.raises(NoValidReviews) as exc:
        asyncio.run(service.cluster_reviews([make_review(1, text="meh"), make_review(2, text="ok")]))

    assert exc.value.status_code == 404
    assert model.calls == 0
    assert limiter.calls_in_window == 0


def test_prompt_numbers_reviews_and_truncates_text():
    service = _service(FakeModelClient(""))
    long_text = "x" * 250
    prompt = service.build_prompt([make_review(1, rating=5, text="Great battery life overall"), make_review(2, rating=2.5, text=long_text)])

    assert "1. (5★) Great battery life overall" in prompt
    assert "2. (2.5★) " + "x" * 200 + "..." in prompt


def test_truncate_only_marks_cut_text():
    assert truncate("short", 10) == "short"
    assert truncate("abcdef", 3) == "abc..."


def test_clusters_map_review_numbers_back_to_reviews():
    reviews = [make_review(i, rating=i % 5 + 1) for i in range(1, 9)]
    model = FakeModelClient(
        clusters_json(
            {"theme": "ads", "summary": "Too many ads", "reviewNumbers": [2, 2, 0, 9, "3", True, 4.0], "sentiment": "negative"},
            {"theme": "battery life", "summary": "Lasts all day", "reviewNumbers": [1, 3, 5, 6, 7, 8], "avgRating": 4.26},
        )
    )
    clusters = asyncio.run(_service(model).cluster_reviews(reviews))

    # Largest first; samples capped at five.
    assert [c.theme for c in clusters] == ["battery life", "ads"]
    battery, ads = clusters
    assert [r.id for r in battery.reviews] == [reviews[i - 1].id for i in (1, 3, 5, 6, 7)]
    assert battery.count == 5
    assert battery.average_rating == 4.3

    # Duplicates, out-of-range, strings and booleans dropped; 4.0 accepted as 4.
    assert [r.id for r in ads.reviews] == [reviews[1].id, reviews[3].id]
    assert ads.count == 2
    assert ads.average_rating == round((reviews[1].rating + reviews[3].rating) / 2, 1)


def test_missing_fields_get_defaults_and_empty_cluster_has_zero_rating():
    reviews = [make_review(i) for i in range(1, 4)]
    model = FakeModelClient(clusters_json({"reviewNumbers": [42]}))
    [cluster] = asyncio.run(_service(model).cluster_reviews(reviews))

    assert cluster.theme == "Theme 1"
    assert cluster.summary == "No summary available"
    assert cluster.reviews == []
    assert cluster.count == 0
    assert cluster.average_rating == 0.0


def test_equal_counts_keep_model_order_and_only_six_are_used():
    reviews = [make_review(i) for i in range(1, 10)]
    entries = [{"theme": f"t{i}", "summary": "s", "reviewNumbers": [i]} for i in range(1, 9)]
    clusters = asyncio.run(_service(FakeModelClient(clusters_json(*entries))).cluster_reviews(reviews))

    assert [c.theme for c in clusters] == ["t1", "t2", "t3", "t4", "t5", "t6"]


def test_summary_is_truncated():
    reviews = [make_review(1)]
    model = FakeModelClient(clusters_json({"theme": "ux", "summary": "y" * 500, "reviewNumbers": [1]}))
    [cluster] = asyncio.run(_service(model).cluster_reviews(reviews))
    assert len(cluster.summary) == 200


@pytest.mark.parametrize(
    "reply",
    [
        "I cannot help with that.",
        json.dumps({"themes": []}),
        json.dumps({"clusters": "none"}),
        json.dumps({"clusters": [{"theme": 7, "reviewNumbers": [1]}]}),
        json.dumps({"clusters": [{"theme": "ads", "reviewNumbers": "1,2"}]}),
    ],
)
def test_malformed_payloads_raise_invalid_model_response(reply):
    with pytest.raises(InvalidModelResponse) as exc:
        asyncio.run(_service(FakeModelClient(reply)).cluster_reviews([make_review(1)]))
    assert exc.value.status_code == 500


def test_identical_review_set_is_served_from_cache():
    reviews = [make_review(i) for i in range(1, 4)]
    model = FakeModelClient(clusters_json({"theme": "sync", "summary": "s", "reviewNumbers": [1, 2]}))
    limiter = RateLimiter(max_calls=10, window_seconds=60)
    service = _service(model, limiter, ClusterCache())

    first = asyncio.run(service.cluster_reviews(reviews))
    second = asyncio.run(service.cluster_reviews(reviews))

    assert first == second
    assert model.calls == 1
    assert limiter.calls_in_window == 1


def test_cache_hit_needs_no_rate_limit_slot():
    reviews = [make_review(i) for i in range(1, 4)]
    model = FakeModelClient(clusters_json({"theme": "sync", "summary": "s", "reviewNumbers": [1]}))
    limiter = RateLimiter(max_calls=1, window_seconds=60)
    service = _service(model, limiter, ClusterCache())

    asyncio.run(service.cluster_reviews(reviews))
    assert not limiter.under_limit()

    clusters = asyncio.run(service.cluster_reviews(reviews))
    assert clusters[0].theme == "sync"

    with pytest.raises(RateLimited):
        asyncio.run(service.cluster_reviews([make_review(i) for i in range(4, 7)]))
    assert model.calls == 1


def test_non_finite_average_is_recomputed_from_samples():
    reviews = [make_review(1, rating=5), make_review(2, rating=3)]
    model = FakeModelClient('{"clusters": [{"theme": "sync", "summary": "s", "reviewNumbers": [1, 2], "avgRating": NaN}]}')
    [cluster] = asyncio.run(_service(model).cluster_reviews(reviews))

    assert cluster.average_rating == 4.0
