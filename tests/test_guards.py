import pytest

from app.core.exceptions import RateLimited
from app.core.guards import ClusterCache, RateLimiter
from tests.conftest import make_cluster


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_exactly_max_calls_succeed_within_window():
    clock = FakeClock()
    limiter = RateLimiter(max_calls=10, window_seconds=60, clock=clock)

    for _ in range(10):
        limiter.acquire()
        clock.now += 1

    assert limiter.calls_in_window == 10
    with pytest.raises(RateLimited) as exc:
        limiter.acquire()
    assert exc.value.status_code == 429


def test_window_resets_after_it_elapses():
    clock = FakeClock()
    limiter = RateLimiter(max_calls=2, window_seconds=60, clock=clock)
    limiter.acquire()
    limiter.acquire()
    with pytest.raises(RateLimited):
        limiter.acquire()

    clock.now += 61
    limiter.acquire()
    assert limiter.calls_in_window == 1


def test_rejected_call_does_not_consume_a_slot():
    clock = FakeClock()
    limiter = RateLimiter(max_calls=1, window_seconds=60, clock=clock)
    limiter.acquire()
    for _ in range(3):
        with pytest.raises(RateLimited):
            limiter.acquire()
    assert limiter.calls_in_window == 1


def test_under_limit_is_read_only():
    limiter = RateLimiter(max_calls=1, window_seconds=60, clock=FakeClock())
    assert limiter.under_limit()
    assert limiter.under_limit()
    assert limiter.calls_in_window == 0
    limiter.acquire()
    assert not limiter.under_limit()


def test_cache_key_is_ordered_ids_plus_count():
    assert ClusterCache.key_for(["a", "b", "c"]) == "a|b|c:3"
    assert ClusterCache.key_for(["b", "a", "c"]) != ClusterCache.key_for(["a", "b", "c"])


def test_cache_round_trip_returns_same_clusters():
    cache = ClusterCache()
    clusters = [make_cluster("battery life", 4.2, 3)]
    cache.set("k", clusters)
    clusters.append(make_cluster("ads", 2.0, 1))

    cached = cache.get("k")
    assert cached == [make_cluster("battery life", 4.2, 3)]
    assert cache.get("missing") is None
    assert len(cache) == 1
