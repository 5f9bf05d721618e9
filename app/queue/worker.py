"""
Background worker that dispatches queued scrape jobs to a thread pool.
"""

from __future__ import annotations

import logging
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor

from app.queue.scrape_queue import ScrapeQueue
from app.schemas.scrape_queue import ScrapeJobView
from app.scraping.logging_utils import log_event

logger = logging.getLogger(__name__)


class QueueWorker:
    """
    Poll the queue and run at most `concurrency` jobs at once.

    Each tick heartbeats in-flight jobs, recovers stalled ones and fills free
    slots. `run_once()` performs a single tick for callers that drive the
    loop themselves.
    """

    def __init__(
        self,
        *,
        queue: ScrapeQueue,
        concurrency: int | None = None,
        poll_interval_seconds: float | None = None,
    ) -> None:
        settings = queue.settings
        self._queue = queue
        self._concurrency = max(1, concurrency or settings.concurrency)
        self._poll_interval = poll_interval_seconds or settings.poll_interval_seconds
        self._executor = ThreadPoolExecutor(
            max_workers=self._concurrency,
            thread_name_prefix="scrape-job",
        )
        self._in_flight: dict[uuid.UUID, Future[ScrapeJobView]] = {}
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def concurrency(self) -> int:
        return self._concurrency

    @property
    def in_flight(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="scrape-dispatcher", daemon=True)
        self._thread.start()
        log_event(
            logger,
            logging.INFO,
            "worker_started",
            concurrency=self._concurrency,
            poll_interval_seconds=self._poll_interval,
        )

    def stop(self, timeout: float | None = None) -> None:
        """
        Stop dispatching and wait for in-flight jobs to finish.
        """

        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        self._executor.shutdown(wait=True)
        log_event(logger, logging.INFO, "worker_stopped")

    def run_once(self) -> int:
        """
        Run one dispatch tick. Returns how many jobs were submitted.
        """

        with self._lock:
            active_ids = list(self._in_flight)
        if active_ids:
            self._queue.heartbeat(active_ids)
        self._queue.recover_stalled()

        submitted = 0
        while self.in_flight < self._concurrency and not self._stop.is_set():
            job = self._queue.claim_next()
            if job is None:
                break
            future = self._executor.submit(self._queue.execute, job)
            with self._lock:
                self._in_flight[job.id] = future
            future.add_done_callback(lambda done, job_id=job.id: self._on_done(job_id, done))
            submitted += 1
        return submitted

    def wait_idle(self, timeout: float | None = None) -> bool:
        """
        Block until every in-flight job has finished and freed its slot.
        Returns False on timeout.
        """

        with self._idle:
            return self._idle.wait_for(lambda: not self._in_flight, timeout)

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.run_once()
            except Exception as exc:  # noqa: BLE001
                log_event(
                    logger,
                    logging.ERROR,
                    "worker_tick_failed",
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
            self._stop.wait(self._poll_interval)

    def _on_done(self, job_id: uuid.UUID, future: Future[ScrapeJobView]) -> None:
        with self._idle:
            self._in_flight.pop(job_id, None)
            self._idle.notify_all()
        exc = future.exception()
        if exc is not None:
            # Outcome could not be recorded; stall recovery requeues the job.
            log_event(
                logger,
                logging.ERROR,
                "job_execution_crashed",
                job_id=job_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
