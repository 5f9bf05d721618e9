"""
Headless browser session backed by the Playwright sync API.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from playwright.sync_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    Route,
    TimeoutError as PlaywrightTimeoutError,
    sync_playwright,
)

from app.scraping.config.models import ScrapingSettings
from app.scraping.errors import NavigationError, SessionNotInitializedError
from app.scraping.logging_utils import log_event
from app.scraping.types import ElementData

logger = logging.getLogger(__name__)

T = TypeVar("T")

BLOCKED_RESOURCE_TYPES = frozenset({"image", "stylesheet", "font", "media"})
LAUNCH_ARGS = ["--no-sandbox", "--disable-dev-shm-usage", "--disable-gpu"]

_COLLECT_ELEMENTS_JS = """
elements => elements.map(el => ({
    text: el.textContent || "",
    href: el.href || el.getAttribute("href"),
    html: el.innerHTML,
}))
"""


class PlaywrightSession:
    """
    One browser, one context and one page, owned by a single scrape job.

    Use as a context manager so the browser is always released.
    """

    def __init__(
        self,
        *,
        user_agent: str,
        headless: bool = True,
        timeout_ms: int = 30000,
        selector_timeout_ms: int = 5000,
        scroll_pause_ms: int = 1000,
        viewport_width: int = 1920,
        viewport_height: int = 1080,
        screenshot_dir: str = "logs/screenshots",
    ) -> None:
        self.user_agent = user_agent
        self._headless = headless
        self._timeout_ms = timeout_ms
        self._selector_timeout_ms = selector_timeout_ms
        self._scroll_pause_ms = scroll_pause_ms
        self._viewport = {"width": viewport_width, "height": viewport_height}
        self._screenshot_dir = Path(screenshot_dir)

        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    @classmethod
    def from_settings(
        cls,
        settings: ScrapingSettings,
        *,
        timeout_ms: int | None = None,
    ) -> "PlaywrightSession":
        return cls(
            user_agent=settings.user_agent,
            headless=settings.headless,
            timeout_ms=timeout_ms or settings.timeout_ms,
            selector_timeout_ms=settings.selector_timeout_ms,
            scroll_pause_ms=settings.scroll_pause_ms,
            viewport_width=settings.viewport_width,
            viewport_height=settings.viewport_height,
            screenshot_dir=settings.screenshot_dir,
        )

    def __enter__(self) -> "PlaywrightSession":
        self.initialize()
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.cleanup()

    def initialize(self) -> None:
        """
        Launch Chromium and open a page with heavy resources blocked.
        """

        if self._page is not None:
            return

        self._playwright = sync_playwright().start()
        try:
            self._browser = self._playwright.chromium.launch(
                headless=self._headless,
                args=LAUNCH_ARGS,
            )
            self._context = self._browser.new_context(
                user_agent=self.user_agent,
                viewport=self._viewport,
            )
            self._context.route("**/*", self._route_request)
            self._page = self._context.new_page()
            self._page.set_default_timeout(self._timeout_ms)
        except PlaywrightError:
            self.cleanup()
            raise

        log_event(
            logger,
            logging.INFO,
            "browser_initialized",
            headless=self._headless,
            user_agent=self.user_agent,
        )

    def navigate(self, url: str) -> None:
        page = self._require_page()
        try:
            page.goto(url, wait_until="networkidle", timeout=self._timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise NavigationError(
                f"Timed out after {self._timeout_ms}ms loading {url}",
                url=url,
            ) from exc
        except PlaywrightError as exc:
            raise NavigationError(f"Failed to load {url}: {exc}", url=url) from exc

    def extract_text(self, selector: str, default: str = "") -> str:
        page = self._require_page()
        if not self._wait_for_selector(page, selector, self._selector_timeout_ms):
            return default
        text = page.text_content(selector)
        if text is None:
            return default
        stripped = text.strip()
        return stripped if stripped else default

    def extract_attribute(
        self,
        selector: str,
        attribute: str,
        default: str | None = None,
    ) -> str | None:
        page = self._require_page()
        if not self._wait_for_selector(page, selector, self._selector_timeout_ms):
            return default
        value = page.get_attribute(selector, attribute)
        return value if value is not None else default

    def extract_multiple(
        self,
        selector: str,
        map_fn: Callable[[ElementData], T],
    ) -> list[T]:
        page = self._require_page()
        if not self._wait_for_selector(page, selector, self._selector_timeout_ms):
            return []
        raw_items = page.eval_on_selector_all(selector, _COLLECT_ELEMENTS_JS)
        return [
            map_fn(
                ElementData(
                    text=(item.get("text") or "").strip(),
                    href=item.get("href"),
                    html=item.get("html"),
                )
            )
            for item in raw_items
        ]

    def element_exists(self, selector: str) -> bool:
        page = self._require_page()
        return page.query_selector(selector) is not None

    def wait_for_content(self, selector: str, timeout_ms: int | None = None) -> bool:
        page = self._require_page()
        return self._wait_for_selector(page, selector, timeout_ms or 10000)

    def scroll_to_bottom(self, max_scrolls: int = 10) -> None:
        """
        Scroll until the document stops growing or the scroll budget is spent.
        """

        page = self._require_page()
        previous_height = page.evaluate("document.body.scrollHeight")
        for _ in range(max(0, max_scrolls)):
            page.evaluate("window.scrollTo(0, document.body.scrollHeight)")
            page.wait_for_timeout(self._scroll_pause_ms)
            current_height = page.evaluate("document.body.scrollHeight")
            if current_height == previous_height:
                break
            previous_height = current_height

    def screenshot(self, filename: str) -> str | None:
        """
        Save a full-page debug screenshot; failures are logged, not raised.
        """

        if self._page is None:
            return None
        target = self._screenshot_dir / filename
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            self._page.screenshot(path=str(target), full_page=True)
        except (PlaywrightError, OSError) as exc:
            log_event(
                logger,
                logging.WARNING,
                "screenshot_failed",
                path=str(target),
                error=str(exc),
            )
            return None
        log_event(logger, logging.INFO, "screenshot_saved", path=str(target))
        return str(target)

    def cleanup(self) -> None:
        """
        Close page, context, browser and the Playwright driver. Safe to call twice.
        """

        for name, closer in (
            ("page", self._page.close if self._page is not None else None),
            ("context", self._context.close if self._context is not None else None),
            ("browser", self._browser.close if self._browser is not None else None),
            ("playwright", self._playwright.stop if self._playwright is not None else None),
        ):
            if closer is None:
                continue
            try:
                closer()
            except PlaywrightError as exc:
                log_event(
                    logger,
                    logging.WARNING,
                    "browser_cleanup_failed",
                    resource=name,
                    error=str(exc),
                )

        was_open = self._playwright is not None
        self._page = None
        self._context = None
        self._browser = None
        self._playwright = None
        if was_open:
            log_event(logger, logging.INFO, "browser_closed")

    def _wait_for_selector(self, page: Page, selector: str, timeout_ms: int) -> bool:
        try:
            page.wait_for_selector(selector, state="attached", timeout=timeout_ms)
        except PlaywrightTimeoutError:
            log_event(
                logger,
                logging.WARNING,
                "selector_missing",
                selector=selector,
                url=page.url,
                timeout_ms=timeout_ms,
            )
            return False
        return True

    def _require_page(self) -> Page:
        if self._page is None:
            raise SessionNotInitializedError("Browser session is not initialized.")
        return self._page

    @staticmethod
    def _route_request(route: Route) -> None:
        if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
            route.abort()
        else:
            route.continue_()
