from enum import Enum
from typing import Tuple


class Platform(str, Enum):
    """Retailers the tracker knows how to scrape."""

    BIGGO = "BigGo"
    MOMO = "Momo"
    PCHOME = "PChome"
    SHOPEE = "Shopee"
    UNKNOWN = "Unknown"


# URL fragment -> platform, checked in order; the first fragment found wins
URL_PATTERNS: Tuple[Tuple[str, Platform], ...] = (
    ("biggo.com.tw", Platform.BIGGO),
    ("momoshop.com.tw", Platform.MOMO),
    ("pchome.com.tw", Platform.PCHOME),
    ("shopee.tw", Platform.SHOPEE),
)


def resolve_platform(url) -> Platform:
    """Classify a product URL by retailer.

    Pure string matching on the URL, so it works without network access and
    never raises: anything that is not a string, or matches no known
    retailer, resolves to ``Platform.UNKNOWN``.
    """
    if not isinstance(url, str) or not url:
        return Platform.UNKNOWN

    # Host names are case-insensitive, paths are not, so compare lowercased
    lowered = url.lower()
    for fragment, platform in URL_PATTERNS:
        if fragment in lowered:
            return platform
    return Platform.UNKNOWN
