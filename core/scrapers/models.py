# Plain data types shared by the extraction engine and the refresh loop.
# None of these are persisted directly; the database layer maps them to rows.

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from core.scrapers.platforms import Platform


@dataclass
class PartialResult:
    """Whatever a single strategy managed to find on a page.

    Every field is optional. A price of 0 counts as "not found".
    """

    title: Optional[str] = None
    price: Optional[int] = None
    image_url: Optional[str] = None

    @property
    def has_price(self) -> bool:
        return bool(self.price and self.price > 0)

    def is_empty(self) -> bool:
        return not (self.title or self.has_price or self.image_url)


@dataclass
class ExtractionResult:
    """Normalized product record produced for one URL."""

    title: str
    price: int
    platform: Platform
    image_url: Optional[str] = None

    def to_dict(self):
        return {
            "title": self.title,
            "price": self.price,
            "image_url": self.image_url,
            "platform": self.platform.value,
        }


class FailureKind(str, Enum):
    RENDER_FAILURE = "render_failure"
    SCRAPE_ERROR = "scrape_error"


@dataclass
class ExtractionFailure:
    """Why no document (or no usable DOM) could be obtained for a URL."""

    url: str
    kind: FailureKind
    message: str = ""


@dataclass(frozen=True)
class TrackedItem:
    """A product on the watchlist, as handed to a refresh cycle."""

    id: int
    url: str
    title: str
    current_price: int
    platform: Platform = Platform.UNKNOWN
    target_price: Optional[int] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RefreshStatus(str, Enum):
    UPDATED = "updated"
    ALERT = "alert"
    FAILED = "failed"


@dataclass
class RefreshOutcome:
    item_id: int
    status: RefreshStatus
    title: Optional[str] = None
    price: Optional[int] = None
    message: str = field(default="", compare=False)
