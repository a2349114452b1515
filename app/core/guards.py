"""
Process-wide guards around the language model: a fixed-window rate limiter
and a content-addressed cache of clustering results.

Both are plain objects built once per application and injected into the
services that need them, so tests can construct isolated instances.
"""

import logging
import threading
import time
from typing import Callable, Dict, List, Optional

from app.core.exceptions import RateLimited
from app.schemas.analysis import ReviewCluster

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Fixed-window call counter.

    The window restarts lazily: the first call made after ``window_seconds``
    have elapsed since the window opened resets the counter. Bursts across a
    window boundary are accepted.
    """

    def __init__(
        self,
        max_calls: int = 10,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_calls = max_calls
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._window_start = clock()
        self._calls_in_window = 0

    def _roll_window(self, now: float) -> None:
        if now - self._window_start > self.window_seconds:
            self._window_start = now
            self._calls_in_window = 0

    def under_limit(self) -> bool:
        """Check whether a call would currently be admitted, without consuming a slot."""
        with self._lock:
            self._roll_window(self._clock())
            return self._calls_in_window < self.max_calls

    def acquire(self, purpose: str = "model call") -> None:
        """
        Consume one slot in the current window.

        Raises:
            RateLimited: If ``max_calls`` slots were already used in this window
        """
        with self._lock:
            now = self._clock()
            self._roll_window(now)
            if self._calls_in_window >= self.max_calls:
                retry_in = self.window_seconds - (now - self._window_start)
                raise RateLimited(
                    details=(
                        f"{self.max_calls} model calls per {self.window_seconds:g}s "
                        f"already used; {purpose} rejected. Window resets in "
                        f"{max(retry_in, 0):.0f}s."
                    )
                )
            self._calls_in_window += 1
            logger.debug(
                f"Rate limiter: {self._calls_in_window}/{self.max_calls} used ({purpose})"
            )

    @property
    def calls_in_window(self) -> int:
        with self._lock:
            return self._calls_in_window


class ClusterCache:
    """
    Unbounded key -> clusters store. Entries live for the process lifetime;
    there is no eviction and no TTL.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: Dict[str, List[ReviewCluster]] = {}

    @staticmethod
    def key_for(review_ids: List[str]) -> str:
        return "|".join(review_ids) + ":" + str(len(review_ids))

    def get(self, key: str) -> Optional[List[ReviewCluster]]:
        with self._lock:
            cached = self._entries.get(key)
        return list(cached) if cached is not None else None

    def set(self, key: str, clusters: List[ReviewCluster]) -> None:
        with self._lock:
            self._entries[key] = list(clusters)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
