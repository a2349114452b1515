"""Google Play Store connector using google-play-scraper library."""

import logging
from typing import List

from google_play_scraper import app as gps_app, reviews, Sort
from google_play_scraper.exceptions import NotFoundError

from app.core.config import settings
from app.core.exceptions import (
    CompetitiveAnalysisError,
    UpstreamEmpty,
    UpstreamNetworkRestricted,
    UpstreamNotFound,
)
from app.integrations.scrapers.base import ReviewSourceConnector
from app.schemas.analysis import AppMetadata, Review, ReviewSource

logger = logging.getLogger(__name__)


class GooglePlayScraper(ReviewSourceConnector):
    """Integration with Google Play Store scraper."""

    source = ReviewSource.GOOGLE_PLAY
    default_review_count = settings.GOOGLE_PLAY_REVIEW_COUNT

    async def fetch_app_metadata(
        self, app_id: str, lang: str = "en", country: str = "us", timeout: float = 15.0
    ) -> AppMetadata:
        """
        Fetch app metadata from Google Play Store.

        Args:
            app_id: Google Play Store app ID (e.g., 'com.example.app')
            lang: Language of the store listing
            country: Country code for localization (default: 'us')
            timeout: Seconds before the lookup is abandoned

        Returns:
            AppMetadata with title, icon and developer

        Raises:
            UpstreamNotFound: If the app does not exist
            UpstreamTimeout: If the lookup exceeds ``timeout``
            UpstreamNetworkRestricted: For any other scraping failure
        """
        logger.info(f"Fetching app details from Play Store: {app_id} (lang: {lang}, country: {country})")
        try:
            app_data = await self._run_blocking(
                gps_app,
                app_id,
                lang=lang,
                country=country.lower(),
                timeout=timeout,
                what=f"Play Store details for {app_id}",
            )
        except NotFoundError as e:
            raise UpstreamNotFound(
                f"Google Play app not found: {app_id}",
                details=f"Google Play app not found: {app_id}. Please verify the app ID is correct.",
            ) from e
        except CompetitiveAnalysisError:
            raise
        except Exception as e:
            logger.error(f"Failed to fetch app data for {app_id}: {str(e)}")
            raise UpstreamNetworkRestricted(
                "Failed to reach Google Play",
                details=f"Error fetching app details for {app_id}: {str(e)}",
            ) from e

        if not app_data:
            raise UpstreamNotFound(
                f"Google Play app not found: {app_id}",
                details=f"Google Play app not found: {app_id}. Please verify the app ID is correct.",
            )

        return AppMetadata(
            title=app_data.get("title") if isinstance(app_data.get("title"), str) else "Unknown App",
            icon=app_data.get("icon") if isinstance(app_data.get("icon"), str) else "",
            developer=(
                app_data.get("developer")
                if isinstance(app_data.get("developer"), str)
                else "Unknown Developer"
            ),
        )

    async def fetch_reviews(
        self,
        app_id: str,
        lang: str = "en",
        country: str = "us",
        max_count: int = 100,
        timeout: float = 15.0,
    ) -> List[Review]:
        """
        Fetch the newest reviews for an app from Google Play Store.

        Args:
            app_id: Google Play Store app ID
            lang: Review language
            country: Country code for localization
            max_count: Maximum number of reviews to fetch
            timeout: Seconds before the fetch is abandoned

        Returns:
            List of normalized reviews (never empty)

        Raises:
            UpstreamNotFound, UpstreamTimeout, UpstreamNetworkRestricted, UpstreamEmpty
        """
        logger.info(f"Fetching {max_count} Google Play reviews for {app_id}...")
        try:
            result, _ = await self._run_blocking(
                reviews,
                app_id,
                lang=lang,
                country=country.lower(),
                sort=Sort.NEWEST,
                count=max_count,
                timeout=timeout,
                what=f"Play Store reviews for {app_id}",
            )
        except NotFoundError as e:
            raise UpstreamNotFound(
                f"Google Play app not found: {app_id}",
                details=f"Google Play app not found: {app_id}. Please verify the app ID is correct.",
            ) from e
        except CompetitiveAnalysisError:
            raise
        except Exception as e:
            logger.error(f"Error fetching reviews for {app_id}: {str(e)}")
            raise UpstreamNetworkRestricted(
                "Failed to reach Google Play",
                details=f"Failed to fetch reviews for app '{app_id}': {str(e)}",
            ) from e

        if not result:
            raise UpstreamEmpty(
                f"No reviews found for Google Play app {app_id}",
                details=(
                    f"No reviews found for Google Play app {app_id}. The app may be new, "
                    "have no reviews, or the app ID may be incorrect."
                ),
            )

        logger.info(f"Successfully fetched {len(result)} reviews from Google Play")
        return [
            self._make_review(
                "gplay",
                app_id,
                index,
                author=review.get("userName"),
                rating=review.get("score"),
                date=review.get("at"),
                text=review.get("content"),
            )
            for index, review in enumerate(result)
        ]


# Singleton instance
google_play_scraper = GooglePlayScraper()
