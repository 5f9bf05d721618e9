"""
Config helpers for course scraping.
"""

from app.scraping.config.loader import (
    get_scraping_settings,
    load_source_overrides,
    resolve_scrape_options,
)
from app.scraping.config.models import ScrapeOptions, ScrapingSettings, SourceOverrides

__all__ = [
    "ScrapeOptions",
    "ScrapingSettings",
    "SourceOverrides",
    "get_scraping_settings",
    "load_source_overrides",
    "resolve_scrape_options",
]
