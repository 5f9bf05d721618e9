"""
robots.txt compliance for course sites.

Rules are fetched once per origin and kept for the life of the process.
Sites that publish `Disallow: /path/*` style rules are rewritten into the
prefix form the standard-library parser understands.
"""

from __future__ import annotations

import logging
import re
import threading
from urllib.parse import urlparse
from urllib.robotparser import RobotFileParser

import requests

from app.scraping.logging_utils import log_event

logger = logging.getLogger(__name__)

_RULE_LINE = re.compile(r"^\s*(allow|disallow)\s*:\s*(\S*)", flags=re.IGNORECASE)

ALLOW_ALL = ("User-agent: *", "Allow: /")
DENY_ALL = ("User-agent: *", "Disallow: /")


class RobotsPolicyManager:
    """
    Answers "may this user agent fetch this URL" and "how long should it wait".

    One instance is shared by every job in a worker process. Concurrent
    misses for the same origin may both fetch; the last parser stored wins.
    """

    def __init__(
        self,
        *,
        session: requests.Session,
        timeout_seconds: float = 5.0,
        allow_when_unreachable: bool = True,
    ) -> None:
        self._http = session
        self._timeout_seconds = timeout_seconds
        self._allow_when_unreachable = allow_when_unreachable
        self._parsers: dict[str, RobotFileParser] = {}
        self._lock = threading.Lock()

    def can_fetch(self, *, url: str, user_agent: str) -> bool:
        return self._rules_for(url).can_fetch(user_agent, url)

    def crawl_delay(self, *, url: str, user_agent: str) -> float | None:
        """Crawl-delay for `user_agent`, falling back to the wildcard group."""

        rules = self._rules_for(url)
        for agent in (user_agent, "*"):
            delay = rules.crawl_delay(agent)
            if delay is not None:
                return float(delay)
        return None

    def clear(self) -> None:
        with self._lock:
            self._parsers.clear()

    def _rules_for(self, url: str) -> RobotFileParser:
        origin = origin_of(url)
        with self._lock:
            parser = self._parsers.get(origin)
        if parser is not None:
            return parser

        robots_url = f"{origin}/robots.txt"
        parser = RobotFileParser(robots_url)
        parser.parse(self._download(origin, robots_url))
        with self._lock:
            self._parsers[origin] = parser
        return parser

    def _download(self, origin: str, robots_url: str) -> list[str]:
        fallback = list(ALLOW_ALL if self._allow_when_unreachable else DENY_ALL)
        try:
            response = self._http.get(robots_url, timeout=self._timeout_seconds)
        except requests.RequestException as exc:
            log_event(
                logger,
                logging.WARNING,
                "robots_fetch_failed",
                origin=origin,
                fallback_allow=self._allow_when_unreachable,
                error=str(exc),
            )
            return fallback

        if not response.ok or not response.text:
            log_event(
                logger,
                logging.WARNING,
                "robots_unavailable",
                origin=origin,
                status_code=response.status_code,
                fallback_allow=self._allow_when_unreachable,
            )
            return fallback

        log_event(logger, logging.INFO, "robots_loaded", origin=origin)
        return normalize_wildcard_rules(response.text.splitlines())


def origin_of(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme or 'https'}://{parsed.netloc}"


def normalize_wildcard_rules(lines: list[str]) -> list[str]:
    """
    Rewrite trailing-wildcard rules into the prefix form RobotFileParser matches.

    `Disallow: /private/*` becomes `Disallow: /private/`; a `$` anchor is dropped.
    """

    normalized: list[str] = []
    for line in lines:
        match = _RULE_LINE.match(line)
        if match is None:
            normalized.append(line)
            continue
        directive, raw_path = match.group(1), match.group(2)
        path = raw_path.rstrip("$").rstrip("*")
        if raw_path and not path:
            path = "/"
        normalized.append(f"{directive}: {path}")
    return normalized
