import logging
from typing import Dict

from app.integrations.scrapers.app_store import app_store_scraper
from app.integrations.scrapers.base import ReviewSourceConnector
from app.integrations.scrapers.google_play import google_play_scraper
from app.schemas.analysis import ReviewSource

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Connector registry
# ---------------------------------------------------------------------------
# Maps each review source to its connector instance.
# To add a new source:
#   1. Add the value to ReviewSource.
#   2. Create a subclass of ReviewSourceConnector in this package.
#   3. Add an entry here.
# ---------------------------------------------------------------------------
CONNECTORS: Dict[ReviewSource, ReviewSourceConnector] = {
    ReviewSource.GOOGLE_PLAY: google_play_scraper,
    ReviewSource.APP_STORE: app_store_scraper,
}


def get_review_connector(source: ReviewSource) -> ReviewSourceConnector:
    """
    Return the connector registered for ``source``.

    Raises:
        ValueError: If the source is not registered.
    """
    connector = CONNECTORS.get(ReviewSource(source))
    if connector is None:
        available = ", ".join(sorted(s.value for s in CONNECTORS))
        logger.error(f"Review source '{source}' not supported. Available: {available}")
        raise ValueError(f"Review source not supported: '{source}'. Available: {available}")
    return connector
