"""App Store connector: iTunes lookup for metadata, app-store-scraper for reviews."""

import logging
from typing import List

import httpx
from app_store_scraper import AppStore

from app.core.config import settings
from app.core.exceptions import (
    CompetitiveAnalysisError,
    UpstreamEmpty,
    UpstreamNetworkRestricted,
    UpstreamNotFound,
    UpstreamTimeout,
)
from app.integrations.scrapers.base import ReviewSourceConnector
from app.schemas.analysis import AppMetadata, Review, ReviewSource

logger = logging.getLogger(__name__)


class AppStoreScraper(ReviewSourceConnector):
    """Integration with Apple App Store scraper."""

    source = ReviewSource.APP_STORE
    default_review_count = settings.APP_STORE_REVIEW_COUNT

    REQUEST_HEADERS = {
        "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
        "Accept": "application/json",
        "Cache-Control": "no-cache",
    }

    def _not_found(self, app_id: str) -> UpstreamNotFound:
        return UpstreamNotFound(
            f"App Store app not found: {app_id}",
            details=f"App Store app not found: {app_id}. Please verify the app ID is correct.",
        )

    async def fetch_app_metadata(
        self, app_id: str, lang: str = "en", country: str = "us", timeout: float = 15.0
    ) -> AppMetadata:
        """
        Fetch app metadata from the iTunes lookup API.

        Args:
            app_id: Numeric App Store app ID
            lang: Unused; the storefront country selects the language
            country: Storefront country code
            timeout: Seconds before the lookup is abandoned

        Returns:
            AppMetadata with title, icon and developer

        Raises:
            UpstreamNotFound, UpstreamTimeout, UpstreamNetworkRestricted
        """
        logger.info(f"Fetching App Store app details for {app_id}...")

        try:
            async with httpx.AsyncClient(timeout=timeout, headers=self.REQUEST_HEADERS) as client:
                response = await client.get(
                    settings.ITUNES_LOOKUP_URL,
                    params={"id": app_id, "country": country.lower()},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            raise UpstreamTimeout(
                "App Store request timed out",
                details=(
                    f"Timeout fetching App Store app details for {app_id}. This may be due "
                    "to network restrictions in the deployment environment."
                ),
            ) from e
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise self._not_found(app_id) from e
            raise UpstreamNetworkRestricted(
                "Failed to reach the App Store",
                details=f"Failed to fetch app details: {e.response.status_code} {e.response.reason_phrase}",
            ) from e
        except (httpx.RequestError, ValueError) as e:
            raise UpstreamNetworkRestricted(
                "Failed to reach the App Store",
                details=f"Network error fetching App Store data for {app_id}: {str(e)}",
            ) from e

        results = data.get("results") if isinstance(data, dict) else None
        if not results:
            raise self._not_found(app_id)

        app = results[0]
        logger.info(f"Found app: {app.get('trackName')}")
        return AppMetadata(
            title=app.get("trackName") or "Unknown App",
            icon=app.get("artworkUrl100") or "",
            developer=app.get("artistName") or "Unknown Developer",
        )

    def _scrape(self, app_id: str, country: str, max_count: int) -> list:
        # The slug in the store URL is ignored by Apple when the numeric id is given.
        app_store = AppStore(country=country.lower(), app_name=app_id, app_id=app_id)
        app_store.review(how_many=max_count)
        return app_store.reviews or []

    async def fetch_reviews(
        self,
        app_id: str,
        lang: str = "en",
        country: str = "us",
        max_count: int = 50,
        timeout: float = 15.0,
    ) -> List[Review]:
        """
        Fetch the most recent reviews for an app from the App Store.

        Args:
            app_id: Numeric App Store app ID
            lang: Unused; the storefront country selects the language
            country: Storefront country code
            max_count: Maximum number of reviews to fetch
            timeout: Seconds before the fetch is abandoned

        Returns:
            List of normalized reviews (never empty)

        Raises:
            UpstreamTimeout, UpstreamNetworkRestricted, UpstreamEmpty
        """
        logger.info(f"Fetching {max_count} App Store reviews for {app_id}...")
        try:
            raw_reviews = await self._run_blocking(
                self._scrape,
                app_id,
                country,
                max_count,
                timeout=timeout,
                what=f"App Store reviews for {app_id}",
            )
        except CompetitiveAnalysisError:
            raise
        except Exception as e:
            logger.error(f"Error fetching reviews for {app_id}: {str(e)}")
            raise UpstreamNetworkRestricted(
                "Failed to reach the App Store",
                details=f"Network error fetching App Store data for {app_id}: {str(e)}",
            ) from e

        parsed = []
        for index, review in enumerate(raw_reviews[:max_count]):
            text = (review.get("review") or "").strip()
            if not text:
                continue
            parsed.append(
                self._make_review(
                    "appstore",
                    app_id,
                    index,
                    author=review.get("userName"),
                    rating=review.get("rating"),
                    date=review.get("date"),
                    text=text,
                )
            )

        if not parsed:
            raise UpstreamEmpty(
                f"No reviews found for App Store app {app_id}",
                details=(
                    f"No reviews found for App Store app {app_id}. The app may be new, "
                    "have no reviews, or the app ID may be incorrect."
                ),
            )

        logger.info(f"Successfully parsed {len(parsed)} reviews from App Store")
        return parsed


# Singleton instance
app_store_scraper = AppStoreScraper()
