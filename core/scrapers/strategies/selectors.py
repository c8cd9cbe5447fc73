from dataclasses import dataclass
from typing import Optional

from core.scrapers.base import BaseStrategy, parse_price_text
from core.scrapers.models import PartialResult


@dataclass(frozen=True)
class SelectorRule:
    """Where a retailer puts its product fields in the page markup.

    A field whose selector is None is not scraped from markup for that
    retailer; the orchestrator falls back to the generic strategies for it.
    """

    title: Optional[str] = None
    title_attr: Optional[str] = None  # read an attribute instead of text
    price: Optional[str] = None
    image: Optional[str] = None
    image_attr: str = "src"
    wait_for: Optional[str] = None  # selector to wait for before scraping


class PlatformSelectorStrategy(BaseStrategy):
    """Scrapes a retailer's own product markup using a SelectorRule."""

    name = "selectors"

    def __init__(self, rule: SelectorRule, platform_name: str = ""):
        super().__init__()
        self.rule = rule
        self.platform_name = platform_name

    def attempt(self, document):
        rule = self.rule
        found = PartialResult()

        if rule.title:
            if rule.title_attr:
                found.title = document.query_attribute(rule.title, rule.title_attr)
            else:
                found.title = document.query_text(rule.title)

        if rule.price:
            price_text = document.query_text(rule.price)
            price = parse_price_text(price_text)
            self.logger.debug("%s raw price %r -> %d", self.platform_name, price_text, price)
            found.price = price or None

        if rule.image:
            found.image_url = document.query_attribute(rule.image, rule.image_attr)

        if found.is_empty():
            self.logger.info("No %s selectors matched on %s", self.platform_name, document.url)
            return None
        return found

    def __repr__(self):
        return f"<PlatformSelectorStrategy {self.platform_name}>"
