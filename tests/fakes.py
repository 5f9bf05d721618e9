"""
tests/fakes.py

Test doubles shared across test modules: controllable clock, fake browser
session and settings builders.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from app.scraping.config.models import ScrapeOptions, ScrapingSettings
from app.scraping.errors import NavigationError
from app.scraping.types import ElementData


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@dataclass
class FakePage:
    """Selector-keyed content of one fake page."""

    texts: dict[str, str] = field(default_factory=dict)
    elements: dict[str, list[ElementData]] = field(default_factory=dict)


class FakeBrowserSession:
    """
    In-memory BrowserSession. Selectors match by exact string.
    """

    def __init__(
        self,
        pages: dict[str, FakePage] | None = None,
        *,
        failing_urls: dict[str, int] | None = None,
        parse_errors: set[str] | None = None,
    ) -> None:
        self.pages = pages or {}
        self.failing_urls = dict(failing_urls or {})
        self.parse_errors = parse_errors or set()
        self.navigations: list[str] = []
        self.screenshots: list[str] = []
        self.initialized = False
        self.cleaned_up = False
        self.current: FakePage | None = None
        self.current_url: str | None = None

    def initialize(self) -> None:
        self.initialized = True

    def navigate(self, url: str) -> None:
        self.navigations.append(url)
        remaining = self.failing_urls.get(url, 0)
        if remaining:
            self.failing_urls[url] = remaining - 1
            raise NavigationError(f"Timed out loading {url}", url=url)
        self.current_url = url
        self.current = self.pages.get(url, FakePage())

    def extract_text(self, selector: str, default: str = "") -> str:
        if self.current_url in self.parse_errors:
            raise RuntimeError(f"page crashed: {self.current_url}")
        if self.current is None:
            return default
        return self.current.texts.get(selector, default)

    def extract_attribute(self, selector: str, attribute: str, default: str | None = None) -> str | None:
        for element in self._elements(selector):
            if attribute == "href" and element.href is not None:
                return element.href
        return default

    def extract_multiple(self, selector: str, map_fn: Callable[[ElementData], Any]) -> list[Any]:
        return [map_fn(element) for element in self._elements(selector)]

    def element_exists(self, selector: str) -> bool:
        if self.current is None:
            return False
        return selector in self.current.texts or bool(self.current.elements.get(selector))

    def wait_for_content(self, selector: str, timeout_ms: int | None = None) -> bool:
        return self.element_exists(selector)

    def scroll_to_bottom(self, max_scrolls: int = 10) -> None:
        return None

    def screenshot(self, filename: str) -> str | None:
        self.screenshots.append(filename)
        return filename

    def cleanup(self) -> None:
        self.cleaned_up = True

    def __enter__(self) -> "FakeBrowserSession":
        self.initialize()
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.cleanup()

    def _elements(self, selector: str) -> list[ElementData]:
        if self.current is None:
            return []
        return list(self.current.elements.get(selector, []))


def links(*hrefs: str) -> list[ElementData]:
    return [ElementData(text=href, href=href) for href in hrefs]


def items(*values: str) -> list[ElementData]:
    return [ElementData(text=value) for value in values]


def make_settings(**overrides: Any) -> ScrapingSettings:
    values: dict[str, Any] = {
        "sources_config_path": "/nonexistent/sources.json",
        "user_agent": "TestBot/1.0",
        "headless": True,
        "timeout_ms": 30000,
        "selector_timeout_ms": 5000,
        "rate_limit_ms": 0,
        "retry_attempts": 3,
        "retry_delay_ms": 0,
        "respect_robots_txt": True,
        "allow_when_robots_unreachable": True,
        "robots_timeout_seconds": 5.0,
        "link_limit": None,
        "max_scrolls": 0,
        "scroll_pause_ms": 0,
        "screenshot_dir": "/tmp/screenshots",
    }
    values.update(overrides)
    return ScrapingSettings(**values)


def make_options(**overrides: Any) -> ScrapeOptions:
    values: dict[str, Any] = {
        "rate_limit_ms": 0,
        "retry_attempts": 3,
        "retry_delay_ms": 0,
        "timeout_ms": 30000,
        "respect_robots_txt": True,
        "link_limit": 10,
        "max_scrolls": 0,
        "selectors": {},
    }
    values.update(overrides)
    return ScrapeOptions(**values)
