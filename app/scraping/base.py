"""
Base site scraper: link discovery, per-course extraction and run lifecycle.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import ClassVar
from urllib.parse import urldefrag, urljoin

from app.domain.course_catalog import RawCourseRecord
from app.scraping.config.models import ScrapeOptions
from app.scraping.errors import EntryPointError, NavigationError, RobotsDisallowedError
from app.scraping.logging_utils import log_event
from app.scraping.navigation import CompliantNavigator
from app.scraping.types import BrowserSession, ScraperRunResult, SourceType

logger = logging.getLogger(__name__)


class SiteScraper(ABC):
    """
    Base class implementing the scrape run and shared extraction helpers.

    Subclasses differ in selectors, limits and field mapping. Selectors live
    in `DEFAULT_SELECTORS` keyed by field name and can be overridden per
    source from the sources config file.
    """

    SOURCE_TYPE: ClassVar[SourceType]
    SOURCE_NAME: ClassVar[str]
    BASE_URL: ClassVar[str]
    DEFAULT_URL: ClassVar[str]
    RATE_LIMIT_MS: ClassVar[int] = 2000
    LINK_LIMIT: ClassVar[int] = 10
    LISTING_SELECTOR: ClassVar[str | None] = None
    LISTING_TIMEOUT_MS: ClassVar[int] = 15000
    LINK_SELECTOR: ClassVar[str] = "a"
    FALLBACK_LINK_SELECTOR: ClassVar[str | None] = None
    LINK_PATTERNS: ClassVar[tuple[str, ...]] = ()
    DEFAULT_SELECTORS: ClassVar[dict[str, str]] = {}

    def __init__(
        self,
        *,
        session: BrowserSession,
        navigator: CompliantNavigator,
        options: ScrapeOptions,
    ) -> None:
        self.session = session
        self.navigator = navigator
        self.options = options
        self.selectors = {**self.DEFAULT_SELECTORS, **options.selectors}

    @classmethod
    def entrypoint(
        cls,
        *,
        url: str | None = None,
        search_query: str | None = None,
        default_url: str | None = None,
    ) -> str:
        """
        Listing URL for one run.
        """

        return url or default_url or cls.DEFAULT_URL

    def run(self, entrypoint: str | None = None) -> ScraperRunResult:
        """
        Scrape the listing page and up to `link_limit` course pages.

        The browser session is released on every exit path. Failing to open
        the listing page raises EntryPointError; per-course failures only
        count against the run.
        """

        target = entrypoint or self.entrypoint()
        records: list[RawCourseRecord] = []
        errors: list[str] = []
        failed_pages = 0
        skipped_by_robots = 0
        attempted = 0

        with self.session:
            try:
                self.navigator.navigate_with_retry(target)
            except (RobotsDisallowedError, NavigationError) as exc:
                self.session.screenshot(f"{self.SOURCE_TYPE.value}-entrypoint-error.png")
                raise EntryPointError(
                    f"{self.SOURCE_NAME} listing page unavailable url={target}: {exc}",
                    url=target,
                ) from exc

            if self.LISTING_SELECTOR:
                self.session.wait_for_content(self.LISTING_SELECTOR, self.LISTING_TIMEOUT_MS)
            if self.options.max_scrolls > 0:
                self.session.scroll_to_bottom(self.options.max_scrolls)

            links = self.discover_links()
            for link in links[: self.options.link_limit]:
                attempted += 1
                if not self.navigator.is_allowed(link):
                    skipped_by_robots += 1
                    log_event(
                        logger,
                        logging.WARNING,
                        "page_blocked_by_robots",
                        source=self.SOURCE_TYPE.value,
                        url=link,
                    )
                    continue

                record = self.extract_details(link)
                if record is None:
                    failed_pages += 1
                    errors.append(f"url={link} extraction failed")
                    continue
                records.append(record)

        result = ScraperRunResult(
            source_type=self.SOURCE_TYPE,
            entrypoint=target,
            records=records,
            links_discovered=len(links),
            links_attempted=attempted,
            failed_pages=failed_pages,
            skipped_by_robots=skipped_by_robots,
            errors=errors,
        )
        log_event(
            logger,
            logging.INFO,
            "scraper_run_completed",
            source=self.SOURCE_TYPE.value,
            entrypoint=target,
            **result.counters(),
        )
        return result

    def discover_links(self) -> list[str]:
        """
        Collect detail-page URLs from the listing page, deduplicated in page order.
        """

        hrefs = self.session.extract_multiple(self.LINK_SELECTOR, lambda element: element.href)
        if not hrefs and self.FALLBACK_LINK_SELECTOR:
            hrefs = self.session.extract_multiple(
                self.FALLBACK_LINK_SELECTOR,
                lambda element: element.href,
            )

        links: list[str] = []
        seen: set[str] = set()
        for href in hrefs:
            link = self._normalize_link(href)
            if link is None or link in seen:
                continue
            seen.add(link)
            links.append(link)

        log_event(
            logger,
            logging.INFO,
            "links_discovered",
            source=self.SOURCE_TYPE.value,
            count=len(links),
        )
        return links

    def extract_details(self, url: str) -> RawCourseRecord | None:
        """
        Load one course page and parse it. Returns None on any failure.
        """

        try:
            self.navigator.navigate_with_retry(url)
            record = self.parse_details(url)
        except Exception as exc:
            log_event(
                logger,
                logging.WARNING,
                "course_scrape_failed",
                source=self.SOURCE_TYPE.value,
                url=url,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return None

        if record is not None:
            log_event(
                logger,
                logging.INFO,
                "course_scraped",
                source=self.SOURCE_TYPE.value,
                url=url,
                title=record.title,
            )
        return record

    @abstractmethod
    def parse_details(self, url: str) -> RawCourseRecord | None:
        """
        Map the currently loaded course page to a raw record.
        """

    def text(self, field: str, default: str = "") -> str:
        selector = self.selectors.get(field)
        if not selector:
            return default
        return self.session.extract_text(selector, default)

    def texts(self, field: str) -> list[str]:
        selector = self.selectors.get(field)
        if not selector:
            return []
        values = self.session.extract_multiple(selector, lambda element: " ".join(element.text.split()))
        return [value for value in values if value]

    def exists(self, field: str) -> bool:
        selector = self.selectors.get(field)
        return bool(selector) and self.session.element_exists(selector)

    def new_record(self, url: str, *, title: str, university: str, **fields: object) -> RawCourseRecord:
        raw_data = {"scraper": self.SOURCE_TYPE.value, **dict(fields.pop("raw_data", {}) or {})}
        return RawCourseRecord(
            title=title,
            university=university,
            source_url=url,
            source=self.SOURCE_TYPE.value,
            raw_data=raw_data,
            **fields,  # type: ignore[arg-type]
        )

    def _normalize_link(self, href: str | None) -> str | None:
        if not href or not href.strip():
            return None
        absolute, _fragment = urldefrag(urljoin(f"{self.BASE_URL}/", href.strip()))
        if not absolute.startswith(("http://", "https://")):
            return None
        if self.LINK_PATTERNS and not any(pattern in absolute for pattern in self.LINK_PATTERNS):
            return None
        return absolute
