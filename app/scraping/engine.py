"""
Course scraping engine: wires one browser session, pacing and compliance per run.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from typing import Any

import requests

from app.scraping.automation import PlaywrightSession
from app.scraping.config import load_source_overrides, resolve_scrape_options
from app.scraping.config.models import ScrapeOptions, ScrapingSettings, SourceOverrides
from app.scraping.logging_utils import log_event
from app.scraping.navigation import CompliantNavigator
from app.scraping.rate_limiter import RequestPacer
from app.scraping.registry import ScraperRegistry
from app.scraping.robots import RobotsPolicyManager
from app.scraping.types import BrowserSession, ScraperRunResult, SourceType

logger = logging.getLogger(__name__)

SessionFactory = Callable[[ScrapingSettings, ScrapeOptions], BrowserSession]


def _playwright_session_factory(settings: ScrapingSettings, options: ScrapeOptions) -> BrowserSession:
    return PlaywrightSession.from_settings(settings, timeout_ms=options.timeout_ms)


class ScrapingEngine:
    """
    Runs a single source scrape with shared robots cache and per-run pacing.
    """

    def __init__(
        self,
        *,
        settings: ScrapingSettings,
        registry: ScraperRegistry | None = None,
        robots_policy: RobotsPolicyManager | None = None,
        http_session: requests.Session | None = None,
        session_factory: SessionFactory | None = None,
        overrides: Mapping[SourceType, SourceOverrides] | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self._settings = settings
        self._registry = registry or ScraperRegistry()
        self._owned_http_session: requests.Session | None = None
        if robots_policy is None:
            if http_session is None:
                http_session = self._owned_http_session = requests.Session()
            http_session.headers.setdefault("User-Agent", settings.user_agent)
            robots_policy = RobotsPolicyManager(
                session=http_session,
                timeout_seconds=settings.robots_timeout_seconds,
                allow_when_unreachable=settings.allow_when_robots_unreachable,
            )
        self._robots_policy = robots_policy
        self._session_factory = session_factory or _playwright_session_factory
        self._overrides = (
            dict(overrides)
            if overrides is not None
            else load_source_overrides(settings.sources_config_path)
        )
        self._sleep = sleep or time.sleep

    @property
    def registry(self) -> ScraperRegistry:
        return self._registry

    def close(self) -> None:
        """
        Drop cached robots rules and release the HTTP session this engine opened.
        """

        self._robots_policy.clear()
        if self._owned_http_session is not None:
            self._owned_http_session.close()
            self._owned_http_session = None

    def is_enabled(self, source_type: SourceType) -> bool:
        overrides = self._overrides.get(source_type)
        return overrides is None or overrides.enabled

    def options_for(
        self,
        source_type: SourceType,
        job_options: Mapping[str, Any] | None = None,
    ) -> ScrapeOptions:
        scraper_class = self._registry.resolve(source_type)
        return resolve_scrape_options(
            settings=self._settings,
            default_rate_limit_ms=scraper_class.RATE_LIMIT_MS,
            default_link_limit=scraper_class.LINK_LIMIT,
            overrides=self._overrides.get(source_type),
            job_options=job_options,
        )

    def run(
        self,
        source_type: SourceType | str,
        *,
        url: str | None = None,
        search_query: str | None = None,
        job_options: Mapping[str, Any] | None = None,
    ) -> ScraperRunResult:
        """
        Build a fresh session for `source_type` and run its scraper once.
        """

        parsed = SourceType.parse(source_type)
        scraper_class = self._registry.resolve(parsed)
        options = self.options_for(parsed, job_options)
        overrides = self._overrides.get(parsed)

        session = self._session_factory(self._settings, options)
        pacer = RequestPacer(min_interval_ms=options.rate_limit_ms, sleep=self._sleep)
        navigator = CompliantNavigator(
            session=session,
            robots_policy=self._robots_policy,
            pacer=pacer,
            user_agent=self._settings.user_agent,
            retry_attempts=options.retry_attempts,
            retry_delay_ms=options.retry_delay_ms,
            respect_robots_txt=options.respect_robots_txt,
            sleep=self._sleep,
        )
        scraper = self._registry.create_scraper(
            parsed,
            session=session,
            navigator=navigator,
            options=options,
        )
        entrypoint = scraper_class.entrypoint(
            url=url,
            search_query=search_query,
            default_url=overrides.default_url if overrides else None,
        )
        log_event(
            logger,
            logging.INFO,
            "scraper_run_started",
            source=parsed.value,
            entrypoint=entrypoint,
            rate_limit_ms=options.rate_limit_ms,
            link_limit=options.link_limit,
        )
        return scraper.run(entrypoint)
