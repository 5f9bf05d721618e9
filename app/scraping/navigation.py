"""
Compliant navigation: robots check, pacing and bounded retry around a browser session.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from app.scraping.errors import NavigationError, RobotsDisallowedError
from app.scraping.logging_utils import log_event
from app.scraping.rate_limiter import RequestPacer
from app.scraping.robots import RobotsPolicyManager
from app.scraping.types import BrowserSession

logger = logging.getLogger(__name__)


class CompliantNavigator:
    """
    Routes every page load of one scrape run through compliance and pacing.

    Pacing is keyed on the session, so consecutive loads are spaced by the
    configured interval even when they target different hosts. A published
    crawl delay stretches that interval for the host that asked for it.
    """

    def __init__(
        self,
        *,
        session: BrowserSession,
        robots_policy: RobotsPolicyManager | None,
        pacer: RequestPacer,
        user_agent: str,
        retry_attempts: int = 3,
        retry_delay_ms: int = 2000,
        respect_robots_txt: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.session = session
        self._robots_policy = robots_policy
        self._pacer = pacer
        self._user_agent = user_agent
        self._retry_attempts = max(1, retry_attempts)
        self._retry_delay_seconds = max(0, retry_delay_ms) / 1000.0
        self._respect_robots_txt = respect_robots_txt and robots_policy is not None
        self._sleep = sleep
        self._pace_key = f"session-{id(session)}"

    def is_allowed(self, url: str) -> bool:
        if not self._respect_robots_txt or self._robots_policy is None:
            return True
        return self._robots_policy.can_fetch(url=url, user_agent=self._user_agent)

    def navigate_with_retry(self, url: str) -> int:
        """
        Load `url`, retrying up to the configured attempt budget.

        Returns the attempt number that succeeded. Raises RobotsDisallowedError
        without touching the session, or NavigationError once attempts run out.
        """

        crawl_delay: float | None = None
        if self._respect_robots_txt and self._robots_policy is not None:
            if not self._robots_policy.can_fetch(url=url, user_agent=self._user_agent):
                log_event(
                    logger,
                    logging.WARNING,
                    "page_blocked_by_robots",
                    url=url,
                    user_agent=self._user_agent,
                )
                raise RobotsDisallowedError(url)
            crawl_delay = self._robots_policy.crawl_delay(url=url, user_agent=self._user_agent)

        last_error: NavigationError | None = None
        for attempt in range(1, self._retry_attempts + 1):
            self._pacer.wait(
                key=self._pace_key,
                crawl_delay_seconds=crawl_delay,
            )
            log_event(
                logger,
                logging.DEBUG,
                "navigation_attempt",
                url=url,
                attempt=attempt,
                max_attempts=self._retry_attempts,
            )
            try:
                self.session.navigate(url)
                return attempt
            except NavigationError as exc:
                last_error = exc
                log_event(
                    logger,
                    logging.WARNING,
                    "navigation_failed",
                    url=url,
                    attempt=attempt,
                    max_attempts=self._retry_attempts,
                    error=str(exc),
                )

            if attempt < self._retry_attempts:
                self._sleep(self._retry_delay_seconds)

        raise NavigationError(
            f"Failed to navigate to {url} after {self._retry_attempts} attempts: {last_error}",
            url=url,
            attempts=self._retry_attempts,
        ) from last_error
