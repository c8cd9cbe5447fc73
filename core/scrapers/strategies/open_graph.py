from core.scrapers.base import BaseStrategy
from core.scrapers.models import PartialResult

OG_TITLE = 'meta[property="og:title"]'
OG_IMAGE = 'meta[property="og:image"]'


class OpenGraphStrategy(BaseStrategy):
    """Reads the og:title and og:image meta tags most shops publish for link previews."""

    name = "open_graph"

    def attempt(self, document):
        found = PartialResult(
            title=document.query_attribute(OG_TITLE, "content"),
            image_url=document.query_attribute(OG_IMAGE, "content"),
        )
        return None if found.is_empty() else found
