import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

import pandas as pd

from app.core.exceptions import UpstreamTimeout
from app.schemas.analysis import AppMetadata, Review, ReviewSource

logger = logging.getLogger(__name__)


class ReviewSourceConnector(ABC):
    """
    Abstract base class for store review sources.

    Each connector turns one store's reviews and app details into the shared
    ``Review`` / ``AppMetadata`` models, and reports failures only through the
    typed upstream errors: ``UpstreamNotFound``, ``UpstreamTimeout``,
    ``UpstreamNetworkRestricted`` and ``UpstreamEmpty``.

    To add a new source:
      1. Create a subclass in this package.
      2. Implement ``fetch_reviews`` and ``fetch_app_metadata``.
      3. Register the subclass in factory.py.
    """

    source: ReviewSource
    default_review_count: int = 100

    @abstractmethod
    async def fetch_reviews(
        self,
        app_id: str,
        lang: str,
        country: str,
        max_count: int,
        timeout: float,
    ) -> List[Review]:
        """Fetch up to ``max_count`` of the newest reviews; never returns an empty list."""
        ...

    @abstractmethod
    async def fetch_app_metadata(
        self, app_id: str, lang: str, country: str, timeout: float
    ) -> AppMetadata:
        """Fetch title, icon and developer for the app."""
        ...

    # ------------------------------------------------------------------
    # Helpers shared by the concrete connectors
    # ------------------------------------------------------------------

    async def _run_blocking(
        self, func: Callable[..., Any], *args, timeout: float, what: str, **kwargs
    ) -> Any:
        """Run a blocking scraper call in a worker thread, bounded by ``timeout``."""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(func, *args, **kwargs), timeout=timeout
            )
        except asyncio.TimeoutError as e:
            raise UpstreamTimeout(
                f"{self.source.value} request timed out",
                details=f"{what} took longer than {timeout:.1f}s",
            ) from e

    @staticmethod
    def _to_iso(value: Optional[Any]) -> str:
        """Normalize a store date to ISO-8601, using now when it is missing."""
        parsed = pd.to_datetime(value, errors="coerce") if value is not None else pd.NaT
        if pd.isna(parsed):
            return datetime.now(timezone.utc).isoformat()
        return parsed.isoformat()

    def _make_review(
        self, prefix: str, app_id: str, index: int, author, rating, date, text
    ) -> Review:
        return Review(
            id=f"{prefix}-{app_id}-{index}",
            author=author or "Anonymous",
            rating=rating or 0,
            date=self._to_iso(date),
            text=text or "",
            source=self.source,
            app_id=app_id,
            app_name="",
        )
