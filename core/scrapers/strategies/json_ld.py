import json
from typing import Any, Optional

from core.scrapers.base import BaseStrategy
from core.scrapers.models import PartialResult

LD_JSON_SCRIPT = 'script[type="application/ld+json"]'


def _is_product(entry: Any) -> bool:
    if not isinstance(entry, dict):
        return False
    kind = entry.get("@type")
    if isinstance(kind, list):
        return "Product" in kind
    return kind == "Product"


def _offer_price(entry: Any) -> int:
    """Whole-unit price from ``entry["offers"]["price"]``, or 0."""
    if not isinstance(entry, dict):
        return 0
    offers = entry.get("offers")
    if isinstance(offers, list):
        offers = offers[0] if offers else None
    if not isinstance(offers, dict):
        return 0

    raw = offers.get("price")
    if raw is None or isinstance(raw, bool):
        return 0
    try:
        return int(float(str(raw).replace(",", "").strip()))
    except (ValueError, OverflowError):  # "call us", NaN, Infinity
        return 0


def price_from_json_ld(payload: Any) -> int:
    """Price advertised by one decoded JSON-LD payload, or 0.

    A single object is used when it carries ``offers.price``; in an array
    only an entry typed ``Product`` counts.
    """
    if isinstance(payload, dict):
        return _offer_price(payload)
    if isinstance(payload, list):
        for entry in payload:
            if _is_product(entry):
                price = _offer_price(entry)
                if price > 0:
                    return price
    return 0


class JsonLdPriceStrategy(BaseStrategy):
    """Reads the price from schema.org structured data embedded in the page."""

    name = "json_ld"

    def attempt(self, document) -> Optional[PartialResult]:
        for raw in document.query_all_text(LD_JSON_SCRIPT):
            if not raw.strip():
                continue
            try:
                payload = json.loads(raw)
            except ValueError:
                self.logger.debug("Skipping malformed JSON-LD block on %s", document.url)
                continue

            price = price_from_json_ld(payload)
            if price > 0:
                return PartialResult(price=price)
        return None
