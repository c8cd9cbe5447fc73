# This file defines the abstract base class for all extraction strategies
# It establishes a common interface that every strategy must follow

import abc
import logging
import re
from typing import Optional

from core.scrapers.models import PartialResult
from core.scrapers.renderer import RenderedDocument

NON_DIGITS = re.compile(r"[^0-9]")


def parse_price_text(price_text: Optional[str]) -> int:
    """Turn displayed price text into whole currency units.

    Every non-digit character is dropped before parsing, so "NT$ 12,345",
    "$12345" and "12345" all give 12345. Text without digits gives 0.
    """
    if not price_text:
        return 0
    digits = NON_DIGITS.sub("", price_text)
    return int(digits) if digits else 0


class BaseStrategy(abc.ABC):
    """Base class for extraction strategies.

    A strategy looks at a rendered page and reports whichever of title, price
    and image it can find. Strategies are independent of each other: the
    orchestrator decides which ones run and in what order, and merges their
    contributions.

    A strategy that finds nothing returns None (or an empty PartialResult).
    Missing markup or unparseable metadata is never an error.
    """

    name = "base"

    def __init__(self):
        self.logger = logging.getLogger(f"scraper.{self.name}")

    @abc.abstractmethod
    def attempt(self, document: RenderedDocument) -> Optional[PartialResult]:
        """Look for product fields in ``document``.

        Returns:
            A PartialResult carrying any subset of title, price and image_url,
            or None when the strategy has nothing to contribute.
        """
        raise NotImplementedError("Concrete strategies must implement attempt()")

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}>"
