import logging
import time
from typing import Callable, Iterable, List, Optional

from core.scrapers.models import (
    ExtractionFailure,
    ExtractionResult,
    RefreshOutcome,
    RefreshStatus,
    TrackedItem,
)

logger = logging.getLogger("tracker.refresh")


def is_alert(new_price: int, target_price: Optional[int]) -> bool:
    """True when a target is set and the new price has reached it (inclusive)."""
    return target_price is not None and new_price <= target_price


class BatchRefresher:
    """Re-scrapes every tracked product and reports what happened to each.

    Products are handled one at a time with a pause between them so no
    retailer gets hammered. A product that fails is reported as failed and
    the batch moves on; nothing raised while handling one product reaches
    the caller.

    Collaborators:
        extractor: ProductExtractor (or anything with ``try_extract(url)``)
        recorder: saves a new price, ``record_price(item, result)``
        notifier: delivers alerts, ``notify(title, new_price, target_price, url)``
    """

    def __init__(
        self,
        extractor,
        recorder=None,
        notifier=None,
        delay_seconds: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.extractor = extractor
        self.recorder = recorder
        self.notifier = notifier
        self.delay_seconds = delay_seconds
        self.sleep = sleep

    def refresh_all(self, items: Iterable[TrackedItem]) -> List[RefreshOutcome]:
        outcomes = []
        for index, item in enumerate(items):
            if index > 0 and self.delay_seconds > 0:
                self.sleep(self.delay_seconds)
            outcomes.append(self.refresh_item(item))

        failed = sum(1 for o in outcomes if o.status == RefreshStatus.FAILED)
        alerts = sum(1 for o in outcomes if o.status == RefreshStatus.ALERT)
        logger.info(
            "Refreshed %d products: %d alerts, %d failed", len(outcomes), alerts, failed
        )
        return outcomes

    def refresh_item(self, item: TrackedItem) -> RefreshOutcome:
        try:
            outcome = self.extractor.try_extract(item.url)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error("Failed to refresh product %s: %s", item.id, e, exc_info=True)
            return self._failed(item, str(e))

        if isinstance(outcome, ExtractionFailure):
            logger.warning("Failed to refresh product %s (%s): %s", item.id, outcome.kind.value, outcome.message)
            return self._failed(item, outcome.message or outcome.kind.value)

        if outcome.price <= 0:
            logger.warning("No usable price for product %s at %s", item.id, item.url)
            return self._failed(item, "no price found")

        if self.recorder is not None:
            try:
                self.recorder.record_price(item, outcome)
            except Exception as e:  # pylint: disable=broad-exception-caught
                logger.error("Could not save new price for product %s: %s", item.id, e)
                return self._failed(item, f"could not save price: {e}")

        if is_alert(outcome.price, item.target_price):
            logger.info("Price drop alert for %s: NT$ %d", item.title, outcome.price)
            self._notify(item, outcome)
            return RefreshOutcome(item.id, RefreshStatus.ALERT, title=item.title, price=outcome.price)

        return RefreshOutcome(item.id, RefreshStatus.UPDATED, title=item.title, price=outcome.price)

    def _notify(self, item: TrackedItem, result: ExtractionResult) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.notify(item.title, result.price, item.target_price, item.url)
        except Exception as e:  # pylint: disable=broad-exception-caught
            # The new price is already saved; the item stays an alert
            logger.error("Could not send alert for product %s: %s", item.id, e)

    @staticmethod
    def _failed(item: TrackedItem, message: str) -> RefreshOutcome:
        return RefreshOutcome(item.id, RefreshStatus.FAILED, title=item.title, message=message)
