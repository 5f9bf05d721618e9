"""
Exceptions raised by the browser automation and compliance layers.
"""

from __future__ import annotations


class ScrapeError(Exception):
    """Base exception for scraping failures."""


class SessionNotInitializedError(ScrapeError):
    """Raised when a page operation runs before the browser session is started."""


class NavigationError(ScrapeError):
    """Raised when a page cannot be loaded within the navigation budget."""

    def __init__(self, message: str, *, url: str, attempts: int = 1) -> None:
        super().__init__(message)
        self.url = url
        self.attempts = attempts


class RobotsDisallowedError(ScrapeError):
    """Raised when robots.txt forbids fetching a URL. Never retried."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Blocked by robots.txt url={url}")
        self.url = url


class EntryPointError(ScrapeError):
    """Raised when a scraper cannot open its listing page, failing the whole run."""

    def __init__(self, message: str, *, url: str) -> None:
        super().__init__(message)
        self.url = url
