"""Watchlist operations shared by the HTTP API and the CLI."""

import logging
from typing import List, Optional

from core.database.operations import (
    DatabaseRecorder,
    DuplicateTrackingError,
    add_product,
    find_product_by_url,
    list_products,
    to_tracked_item,
)
from core.scrapers.models import ExtractionFailure, RefreshOutcome
from core.tracker.refresher import BatchRefresher

logger = logging.getLogger("tracker.service")


class ExtractionFailedError(Exception):
    """A product page yielded nothing worth tracking.

    ``kind`` is the failure kind ("render_failure", "scrape_error") or
    "zero_price" when the page loaded but no price was found on it.
    """

    def __init__(self, url: str, kind: str, message: str = ""):
        super().__init__(message or f"Failed to scrape product at {url}")
        self.url = url
        self.kind = kind


def track_product(db, extractor, url: str, target_price: Optional[int] = None):
    """Scrape ``url`` and add it to the watchlist.

    Raises:
        DuplicateTrackingError: the URL is already tracked (checked before
            any scraping happens).
        ExtractionFailedError: the page could not be scraped or showed no price.
    """
    existing = find_product_by_url(db, url)
    if existing is not None:
        raise DuplicateTrackingError(url, existing.id)

    outcome = extractor.try_extract(url)
    if isinstance(outcome, ExtractionFailure):
        raise ExtractionFailedError(url, outcome.kind.value, outcome.message)
    if outcome.price <= 0:
        raise ExtractionFailedError(url, "zero_price", f"No price found on {url}")

    return add_product(db, url, outcome, target_price=target_price)


def refresh_watchlist(db, extractor, notifier=None, delay_seconds: float = 2.0) -> List[RefreshOutcome]:
    """Re-scrape every tracked product, saving new prices as they come in."""
    items = [to_tracked_item(product) for product in list_products(db)]
    logger.info("Refreshing %d tracked products", len(items))
    refresher = BatchRefresher(
        extractor,
        recorder=DatabaseRecorder(db),
        notifier=notifier,
        delay_seconds=delay_seconds,
    )
    return refresher.refresh_all(items)
