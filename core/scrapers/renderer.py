import abc
import logging
from typing import Callable, List, Optional

import requests
from bs4 import BeautifulSoup
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

logger = logging.getLogger("scraper.renderer")

DEFAULT_TIMEOUT_MS = 30000
# How long to wait for a platform's "page is ready" selector before scraping anyway
WAIT_FOR_SELECTOR_MS = 5000


class RenderFailure(Exception):
    """The page could not be loaded (timeout, unreachable host, HTTP error)."""


class RenderedDocument:
    """Read-only view over a loaded page.

    DOM queries run against a BeautifulSoup parse of the page markup. The
    renderer may pass in the browser-level title and rendered text, and a
    callback that releases whatever session produced the page.
    """

    def __init__(
        self,
        markup: str,
        url: str = "",
        title: Optional[str] = None,
        text: Optional[str] = None,
        on_close: Optional[Callable[[], None]] = None,
    ):
        self.url = url
        self.markup = markup or ""
        self.soup = BeautifulSoup(self.markup, "lxml")
        self._title = title
        self._text = text
        self._on_close = on_close
        self.closed = False

    def query_text(self, selector: str) -> Optional[str]:
        """Stripped text of the first element matching ``selector``, or None."""
        element = self.soup.select_one(selector)
        if element is None:
            return None
        text = element.get_text(" ", strip=True)
        return text or None

    def query_all_text(self, selector: str) -> List[str]:
        """Raw text of every element matching ``selector``, in document order."""
        return [
            str(element.string) if element.string is not None else element.get_text()
            for element in self.soup.select(selector)
        ]

    def query_attribute(self, selector: str, attr: str) -> Optional[str]:
        """Value of ``attr`` on the first element matching ``selector``, or None."""
        element = self.soup.select_one(selector)
        if element is None:
            return None
        value = element.get(attr)
        if isinstance(value, list):  # multi-valued attributes such as class
            value = " ".join(value)
        if value is None:
            return None
        return value.strip() or None

    def full_text(self) -> str:
        if self._text is None:
            root = self.soup.body or self.soup
            self._text = root.get_text(" ", strip=True)
        return self._text

    def full_markup(self) -> str:
        return self.markup

    def page_title(self) -> str:
        if self._title is None:
            self._title = self.soup.title.get_text(strip=True) if self.soup.title else ""
        return self._title

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._on_close is not None:
            self._on_close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class PageRenderer(abc.ABC):
    """Loads a URL and hands back a RenderedDocument.

    The caller owns the returned document and must close it; implementations
    must not leak their session when ``load`` itself fails.
    """

    @abc.abstractmethod
    def load(
        self,
        url: str,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        wait_for: Optional[str] = None,
    ) -> RenderedDocument:
        raise NotImplementedError("Concrete renderers must implement load()")


class BrowserRenderer(PageRenderer):
    """Renders pages in a headless Chromium driven by Playwright.

    Each call to ``load`` starts its own browser and the returned document
    shuts it down on close. Sessions are never shared between calls.
    """

    def __init__(self, user_agent: str, executable_path: Optional[str] = None):
        self.user_agent = user_agent
        self.executable_path = executable_path

    def load(self, url, timeout_ms=DEFAULT_TIMEOUT_MS, wait_for=None):
        logger.info("Rendering %s", url)
        playwright = sync_playwright().start()
        browser = None

        def release():
            try:
                if browser is not None:
                    browser.close()
            finally:
                playwright.stop()

        try:
            browser = playwright.chromium.launch(
                headless=True,
                args=["--no-sandbox", "--disable-setuid-sandbox"],
                executable_path=self.executable_path,
            )
            page = browser.new_page(
                user_agent=self.user_agent,
                viewport={"width": 1280, "height": 800},
            )
            page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)

            if wait_for:
                try:
                    page.wait_for_selector(wait_for, timeout=WAIT_FOR_SELECTOR_MS)
                except PlaywrightTimeoutError:
                    logger.debug("Selector %s did not appear on %s", wait_for, url)

            markup = page.content()
            title = page.title()
            text = page.evaluate("() => document.body ? document.body.innerText : ''")
        except PlaywrightTimeoutError as e:
            release()
            raise RenderFailure(f"Timed out loading {url} after {timeout_ms} ms") from e
        except PlaywrightError as e:
            release()
            raise RenderFailure(f"Could not load {url}: {e}") from e
        except BaseException:
            release()
            raise

        return RenderedDocument(markup, url=url, title=title, text=text, on_close=release)


class StaticRenderer(PageRenderer):
    """Fetches raw HTML over HTTP without running any JavaScript.

    Much cheaper than a browser and good enough for retailers that server-side
    render their product pages. Like the browser renderer, every ``load`` gets
    its own HTTP session, closed together with the returned document.
    """

    def __init__(self, user_agent: str):
        self.user_agent = user_agent

    def new_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update({
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml",
            "Accept-Language": "zh-TW,zh;q=0.9,en-US;q=0.8,en;q=0.7",
        })
        return session

    def load(self, url, timeout_ms=DEFAULT_TIMEOUT_MS, wait_for=None):
        logger.info("Fetching %s", url)
        session = self.new_session()
        try:
            response = session.get(url, timeout=timeout_ms / 1000)
            response.raise_for_status()  # Raise exception for 4XX/5XX responses
        except requests.exceptions.Timeout as e:
            session.close()
            raise RenderFailure(f"Timed out loading {url} after {timeout_ms} ms") from e
        except requests.exceptions.RequestException as e:
            session.close()
            logger.error("Error fetching %s: %s", url, str(e))
            raise RenderFailure(f"Could not load {url}: {e}") from e
        except BaseException:
            session.close()
            raise

        return RenderedDocument(response.text, url=url, on_close=session.close)


def build_renderer(settings) -> PageRenderer:
    """Create the renderer selected by ``settings.RENDERER``."""
    if settings.RENDERER == "static":
        return StaticRenderer(settings.USER_AGENT)
    if settings.RENDERER != "browser":
        logger.warning("Unknown renderer '%s', using headless browser instead", settings.RENDERER)
    return BrowserRenderer(settings.USER_AGENT, settings.CHROMIUM_EXECUTABLE_PATH)
