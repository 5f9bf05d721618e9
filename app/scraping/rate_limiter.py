"""
Minimum-interval request pacing.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from app.scraping.logging_utils import log_event

logger = logging.getLogger(__name__)


class RequestPacer:
    """
    Enforces a minimum interval between consecutive requests sharing a key.

    The interval is measured from the issue time of the previous request.
    """

    def __init__(
        self,
        *,
        min_interval_ms: int,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._min_interval_ms = max(0, min_interval_ms)
        self._clock = clock
        self._sleep = sleep
        self._last_issue_by_key: dict[str, float] = {}
        self._lock = threading.Lock()

    @property
    def min_interval_ms(self) -> int:
        return self._min_interval_ms

    def wait(
        self,
        *,
        key: str,
        min_interval_ms: int | None = None,
        crawl_delay_seconds: float | None = None,
    ) -> float:
        """
        Sleep as needed before a request for `key` and return the seconds waited.

        A published crawl delay longer than the configured interval wins.
        """

        interval_ms = self._min_interval_ms if min_interval_ms is None else max(0, min_interval_ms)
        min_interval = interval_ms / 1000.0
        if crawl_delay_seconds is not None:
            min_interval = max(min_interval, max(0.0, crawl_delay_seconds))

        waited = 0.0
        with self._lock:
            last_issue = self._last_issue_by_key.get(key)
            if last_issue is not None:
                wait_seconds = min_interval - (self._clock() - last_issue)
                if wait_seconds > 0:
                    log_event(
                        logger,
                        logging.DEBUG,
                        "rate_limit_wait",
                        key=key,
                        wait_seconds=round(wait_seconds, 3),
                    )
                    self._sleep(wait_seconds)
                    waited = wait_seconds
            self._last_issue_by_key[key] = self._clock()
        return waited
