import logging
from typing import Optional, Union
from urllib.parse import urljoin

from core.scrapers.models import (
    ExtractionFailure,
    ExtractionResult,
    FailureKind,
    PartialResult,
)
from core.scrapers.platforms import resolve_platform
from core.scrapers.renderer import DEFAULT_TIMEOUT_MS, PageRenderer, RenderFailure
from core.scrapers.scraper_factory import ScraperFactory

logger = logging.getLogger("scraper.extractor")


def merge_partial(found: PartialResult, candidate: Optional[PartialResult]) -> PartialResult:
    """Fill the gaps in ``found`` from ``candidate``.

    Per field, the first non-empty value wins: a field already set in
    ``found`` is never overwritten, and a price of 0 counts as unset.
    """
    if candidate is None:
        return found
    return PartialResult(
        title=found.title or candidate.title or None,
        price=found.price if found.has_price else (candidate.price if candidate.has_price else None),
        image_url=found.image_url or candidate.image_url or None,
    )


def run_strategy(strategy, document) -> Optional[PartialResult]:
    """Run one strategy; a strategy that raises contributes nothing."""
    try:
        return strategy.attempt(document)
    except Exception as e:  # pylint: disable=broad-exception-caught
        logger.warning("Strategy %s failed on %s: %s", strategy.name, document.url, e)
        return None


def _close_quietly(document) -> None:
    try:
        document.close()
    except Exception as e:  # pylint: disable=broad-exception-caught
        logger.warning("Error closing page %s: %s", getattr(document, "url", ""), e)


class ProductExtractor:
    """Turns a product URL into an ExtractionResult.

    Holds no state between calls: every extraction loads its own document
    and closes it before returning, whatever happens.
    """

    def __init__(self, renderer: PageRenderer, timeout_ms: int = DEFAULT_TIMEOUT_MS):
        self.renderer = renderer
        self.timeout_ms = timeout_ms

    def try_extract(self, url: str) -> Union[ExtractionResult, ExtractionFailure]:
        """Extract a product, reporting why it failed instead of returning None."""
        platform = resolve_platform(url)
        logger.info("Extracting %s (platform: %s)", url, platform.value)

        try:
            document = self.renderer.load(
                url,
                timeout_ms=self.timeout_ms,
                wait_for=ScraperFactory.wait_selector(platform),
            )
        except RenderFailure as e:
            logger.warning("Could not load %s: %s", url, e)
            return ExtractionFailure(url, FailureKind.RENDER_FAILURE, str(e))
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error("Unexpected error loading %s: %s", url, e, exc_info=True)
            return ExtractionFailure(url, FailureKind.SCRAPE_ERROR, str(e))

        try:
            found = PartialResult()

            platform_strategy = ScraperFactory.create_strategy(platform)
            if platform_strategy is not None:
                found = merge_partial(found, run_strategy(platform_strategy, document))

            if not found.title:
                found = merge_partial(found, PartialResult(title=document.page_title()))
            if not found.title or not found.image_url:
                found = merge_partial(
                    found, run_strategy(ScraperFactory.create_metadata_strategy(), document)
                )

            if not found.has_price:
                for strategy in ScraperFactory.create_price_fallbacks():
                    found = merge_partial(found, run_strategy(strategy, document))
                    if found.has_price:
                        logger.debug("Price for %s found by %s", url, strategy.name)
                        break

            if not found.has_price:
                logger.info("No price found on %s", url)

            return ExtractionResult(
                title=found.title or "",
                price=found.price or 0,
                platform=platform,
                image_url=urljoin(url, found.image_url) if found.image_url else None,
            )
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error("Error scraping %s: %s", url, e, exc_info=True)
            return ExtractionFailure(url, FailureKind.SCRAPE_ERROR, str(e))
        finally:
            _close_quietly(document)

    def extract(self, url: str) -> Optional[ExtractionResult]:
        """Extract a product, or return None when the page could not be scraped."""
        outcome = self.try_extract(url)
        if isinstance(outcome, ExtractionFailure):
            return None
        return outcome
