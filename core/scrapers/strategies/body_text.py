import re

from core.scrapers.base import BaseStrategy
from core.scrapers.models import PartialResult

# "$" or "NT$", an optional space, then digits grouped in threes by commas
PRICE_PATTERN = re.compile(r"(\$|NT\$)\s?(\d{1,3}(?:,\d{3})*)")


def find_price_in_text(text: str) -> int:
    """Price of the first currency amount in ``text``, or 0 when there is none."""
    match = PRICE_PATTERN.search(text or "")
    if not match:
        return 0
    return int(match.group(2).replace(",", ""))


class BodyTextPriceStrategy(BaseStrategy):
    """Last-resort price lookup: the first currency amount in the page text."""

    name = "body_text"

    def attempt(self, document):
        price = find_price_in_text(document.full_text())
        if price <= 0:
            return None
        self.logger.debug("Found price %d in body text of %s", price, document.url)
        return PartialResult(price=price)
