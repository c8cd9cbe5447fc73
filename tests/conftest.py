"""Shared test fixtures and configuration."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.database.operations import init_db
from core.scrapers.models import ExtractionResult
from core.scrapers.platforms import Platform
from core.scrapers.renderer import PageRenderer, RenderedDocument


class FakeRenderer(PageRenderer):
    """Serves canned HTML per URL and remembers every document it handed out.

    A page value that is an exception instance is raised from ``load``.
    """

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.loads = []
        self.documents = []

    def load(self, url, timeout_ms=30000, wait_for=None):
        self.loads.append((url, timeout_ms, wait_for))
        page = self.pages[url]
        if isinstance(page, Exception):
            raise page
        document = RenderedDocument(page, url=url)
        self.documents.append(document)
        return document


class FakeExtractor:
    """Stands in for ProductExtractor in refresh and watchlist tests.

    ``results`` maps URL to an ExtractionResult, an ExtractionFailure, or an
    exception to raise.
    """

    def __init__(self, results):
        self.results = results
        self.calls = []

    def try_extract(self, url):
        self.calls.append(url)
        result = self.results[url]
        if isinstance(result, Exception):
            raise result
        return result


def product_result(price, title="Test Product", platform=Platform.PCHOME, image_url=None):
    return ExtractionResult(title=title, price=price, platform=platform, image_url=image_url)


@pytest.fixture
def fake_renderer():
    return FakeRenderer()


@pytest.fixture
def make_document():
    """Build a RenderedDocument from an HTML snippet."""

    def _make(html, url="https://example.com/product/1", title=None, text=None):
        return RenderedDocument(html, url=url, title=title, text=text)

    return _make


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    Session = sessionmaker(bind=db_engine)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def fake_extractor():
    """Factory: ``fake_extractor({url: result})``."""
    return FakeExtractor


@pytest.fixture
def make_result():
    """Factory for ExtractionResult with sensible defaults."""
    return product_result
