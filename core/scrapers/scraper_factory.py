from typing import Dict, List, Optional

from core.scrapers.base import BaseStrategy
from core.scrapers.platforms import Platform
from core.scrapers.strategies.body_text import BodyTextPriceStrategy
from core.scrapers.strategies.json_ld import JsonLdPriceStrategy
from core.scrapers.strategies.open_graph import OG_IMAGE, OG_TITLE, OpenGraphStrategy
from core.scrapers.strategies.selectors import PlatformSelectorStrategy, SelectorRule


class ScraperFactory:
    """Factory for the strategies used to scrape a given platform.

    Supporting a new retailer means adding a Platform member, a URL pattern
    and an entry in PLATFORM_RULES; the orchestrator itself does not change.
    """

    # Map of platforms to where they keep title, price and image.
    # Unknown has no rule: only the generic strategies apply to it.
    PLATFORM_RULES: Dict[Platform, Optional[SelectorRule]] = {
        # BigGo pages are aggregators with no stable price markup; the price
        # comes from the body text or structured data
        Platform.BIGGO: SelectorRule(
            title=OG_TITLE,
            title_attr="content",
            image=OG_IMAGE,
            image_attr="content",
        ),
        Platform.MOMO: SelectorRule(
            title=".pTitleName",
            price=".price.text",
            image=".jqzoom",
        ),
        Platform.PCHOME: SelectorRule(
            title=".prod_name",
            price=".price .val",
            image=".prod_img img",
        ),
        # Shopee renders client-side, so give the title a moment to appear
        Platform.SHOPEE: SelectorRule(
            title=".pdp-mod-product-badge-title",
            price=".pdp-mod-product-price",
            wait_for=".pdp-mod-product-badge-title",
        ),
        Platform.UNKNOWN: None,
    }

    @classmethod
    def rule_for(cls, platform: Platform) -> Optional[SelectorRule]:
        return cls.PLATFORM_RULES.get(platform)

    @classmethod
    def create_strategy(cls, platform: Platform) -> Optional[BaseStrategy]:
        """Return the platform-specific strategy, or None when there is none."""
        rule = cls.rule_for(platform)
        if rule is None:
            return None
        return PlatformSelectorStrategy(rule, platform_name=platform.value)

    @classmethod
    def wait_selector(cls, platform: Platform) -> Optional[str]:
        rule = cls.rule_for(platform)
        return rule.wait_for if rule else None

    @staticmethod
    def create_metadata_strategy() -> BaseStrategy:
        return OpenGraphStrategy()

    @staticmethod
    def create_price_fallbacks() -> List[BaseStrategy]:
        """Generic price strategies, in the order they are tried."""
        return [BodyTextPriceStrategy(), JsonLdPriceStrategy()]
