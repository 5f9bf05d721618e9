"""
Scraping configuration models.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class SourceOverrides:
    """
    Per-source overrides loaded from the sources JSON file.
    """

    enabled: bool = True
    default_url: str | None = None
    rate_limit_ms: int | None = None
    retry_attempts: int | None = None
    retry_delay_ms: int | None = None
    timeout_ms: int | None = None
    respect_robots_txt: bool | None = None
    link_limit: int | None = None
    max_scrolls: int | None = None
    selectors: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ScrapingSettings:
    """
    Runtime settings for browser-driven course scraping.
    """

    sources_config_path: str
    user_agent: str
    headless: bool
    timeout_ms: int
    selector_timeout_ms: int
    rate_limit_ms: int
    retry_attempts: int
    retry_delay_ms: int
    respect_robots_txt: bool
    allow_when_robots_unreachable: bool
    robots_timeout_seconds: float
    link_limit: int | None
    max_scrolls: int
    scroll_pause_ms: int
    screenshot_dir: str
    viewport_width: int = 1920
    viewport_height: int = 1080


@dataclass(frozen=True)
class ScrapeOptions:
    """
    Effective options for one scraper run after all overrides are applied.
    """

    rate_limit_ms: int
    retry_attempts: int
    retry_delay_ms: int
    timeout_ms: int
    respect_robots_txt: bool
    link_limit: int
    max_scrolls: int
    selectors: dict[str, str] = field(default_factory=dict)
