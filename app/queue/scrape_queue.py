"""
Durable, database-backed scrape job queue.

Jobs live in the `scrape_jobs` table, so queued work survives restarts and
several worker processes can share one database. Claiming uses row locks
with SKIP LOCKED on PostgreSQL.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from pydantic import ValidationError
from sqlalchemy.orm import Session, sessionmaker

from app.config import QueueSettings, get_queue_settings
from app.queue.errors import (
    InvalidJobError,
    JobNotFoundError,
    PermanentJobError,
    UnknownSourceTypeError,
)
from app.schemas.scrape_queue import QueueStats, ScrapeJobConfig, ScrapeJobView
from app.scraping.logging_utils import log_event
from app.scraping.types import SourceType
from db.base import as_utc
from db.models.scrape_job import ScrapeJob, ScrapeJobState
from db.repositories.scrape_job_repository import ScrapeJobRepository

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 10
MAX_ERROR_LENGTH = 2000


class JobProcessor(Protocol):
    def __call__(self, source_type: SourceType, config: ScrapeJobConfig) -> dict[str, Any]: ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ScrapeQueue:
    """
    Priority queue of scrape jobs with delay, retry backoff and stall recovery.
    """

    def __init__(
        self,
        *,
        session_factory: sessionmaker[Session],
        processor: JobProcessor | None = None,
        settings: QueueSettings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._processor = processor
        self._settings = settings or get_queue_settings()
        self._clock = clock or _utc_now
        self._paused = threading.Event()

    @property
    def settings(self) -> QueueSettings:
        return self._settings

    @property
    def is_paused(self) -> bool:
        return self._paused.is_set()

    # ------------------------------------------------------------------
    # Producing
    # ------------------------------------------------------------------

    def enqueue(
        self,
        source_type: SourceType | str,
        config: ScrapeJobConfig | Mapping[str, Any] | None = None,
        *,
        priority: int = DEFAULT_PRIORITY,
        delay_ms: int = 0,
        max_attempts: int | None = None,
    ) -> ScrapeJobView:
        """
        Validate and persist one waiting job.

        Raises UnknownSourceTypeError or InvalidJobError; nothing is stored then.
        """

        parsed_type = _parse_source_type(source_type)
        parsed_config = _parse_config(config)
        if delay_ms < 0:
            raise InvalidJobError("delay_ms must be >= 0.")
        attempts = self._settings.max_attempts if max_attempts is None else max_attempts
        if attempts < 1:
            raise InvalidJobError("max_attempts must be >= 1.")

        now = self._clock()
        with self._transaction() as session:
            job = ScrapeJobRepository(session).create_job(
                source_type=parsed_type.value,
                config=parsed_config.model_dump(mode="json", exclude_none=True),
                priority=priority,
                run_at=now + timedelta(milliseconds=delay_ms),
                max_attempts=attempts,
                backoff_base_ms=self._settings.backoff_base_ms,
                now=now,
            )
            view = _to_view(job)

        log_event(
            logger,
            logging.INFO,
            "job_enqueued",
            job_id=view.id,
            source=view.source_type,
            priority=priority,
            delay_ms=delay_ms,
        )
        return view

    # ------------------------------------------------------------------
    # Consuming
    # ------------------------------------------------------------------

    def claim_next(self) -> ScrapeJobView | None:
        """
        Activate the next eligible job, or return None when paused or idle.
        """

        if self.is_paused:
            return None
        now = self._clock()
        with self._transaction() as session:
            job = ScrapeJobRepository(session).claim_next(now=now)
            if job is None:
                return None
            view = _to_view(job)

        log_event(
            logger,
            logging.INFO,
            "job_claimed",
            job_id=view.id,
            source=view.source_type,
            attempt=view.attempts_made,
            max_attempts=view.max_attempts,
        )
        return view

    def process_next(self) -> ScrapeJobView | None:
        """
        Claim and execute one job synchronously. Returns its final view.
        """

        job = self.claim_next()
        if job is None:
            return None
        return self.execute(job)

    def execute(self, job: ScrapeJobView) -> ScrapeJobView:
        """
        Run the processor for a claimed job and record the outcome.

        Job-level failures are recorded, never raised.
        """

        if self._processor is None:
            raise RuntimeError("ScrapeQueue has no processor configured.")

        try:
            source_type = _parse_source_type(job.source_type)
            config = _parse_config(job.config)
            result = self._processor(source_type, config)
        except PermanentJobError as exc:
            return self._record_failure(job, exc, permanent=True)
        except Exception as exc:  # noqa: BLE001
            return self._record_failure(job, exc, permanent=False)
        return self._record_success(job, result)

    def heartbeat(self, job_ids: Sequence[uuid.UUID]) -> int:
        with self._transaction() as session:
            return ScrapeJobRepository(session).heartbeat(job_ids, now=self._clock())

    def recover_stalled(self) -> int:
        """
        Return active jobs with an expired heartbeat to waiting.

        Jobs that already used every attempt are failed instead.
        """

        now = self._clock()
        cutoff = now - timedelta(seconds=self._settings.stall_timeout_seconds)
        recovered = 0
        with self._transaction() as session:
            for job in ScrapeJobRepository(session).find_stalled(cutoff=cutoff):
                job.stalled_count += 1
                job.updated_at = now
                job.heartbeat_at = None
                if job.attempts_made >= job.max_attempts:
                    job.state = ScrapeJobState.FAILED
                    job.finished_at = now
                    job.last_error = "job stalled: heartbeat expired"
                else:
                    job.state = ScrapeJobState.WAITING
                    job.run_at = now
                recovered += 1
                log_event(
                    logger,
                    logging.WARNING,
                    "job_stalled",
                    job_id=job.id,
                    source=job.source_type,
                    stalled_count=job.stalled_count,
                    state=job.state,
                )
        return recovered

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def pause(self) -> None:
        self._paused.set()
        log_event(logger, logging.INFO, "queue_paused")

    def resume(self) -> None:
        self._paused.clear()
        log_event(logger, logging.INFO, "queue_resumed")

    def clean_older_than(
        self,
        age: timedelta,
        states: Sequence[str] = (ScrapeJobState.COMPLETED, ScrapeJobState.FAILED),
    ) -> int:
        invalid = [state for state in states if state not in ScrapeJobState.ALL]
        if invalid:
            raise ValueError(f"Unknown job states: {', '.join(invalid)}.")
        cutoff = self._clock() - age
        with self._transaction() as session:
            removed = ScrapeJobRepository(session).delete_finished_before(
                states=list(states),
                cutoff=cutoff,
            )
        log_event(
            logger,
            logging.INFO,
            "queue_cleaned",
            removed=removed,
            states=list(states),
            older_than_seconds=age.total_seconds(),
        )
        return removed

    def prune(self) -> int:
        """
        Apply the configured retention windows to completed and failed jobs.
        """

        removed = self.clean_older_than(
            timedelta(hours=self._settings.completed_retention_hours),
            states=(ScrapeJobState.COMPLETED,),
        )
        removed += self.clean_older_than(
            timedelta(hours=self._settings.failed_retention_hours),
            states=(ScrapeJobState.FAILED,),
        )
        return removed

    def retry_all_failed(self) -> int:
        """
        Give every failed job one more run. Returns how many were requeued.
        """

        now = self._clock()
        with self._transaction() as session:
            jobs = ScrapeJobRepository(session).list_by_state(ScrapeJobState.FAILED)
            for job in jobs:
                job.state = ScrapeJobState.WAITING
                job.run_at = now
                job.finished_at = None
                job.max_attempts = max(job.max_attempts, job.attempts_made + 1)
                job.updated_at = now
            count = len(jobs)
        log_event(logger, logging.INFO, "failed_jobs_retried", count=count)
        return count

    def remove_job(self, job_id: uuid.UUID | str) -> None:
        parsed_id = _parse_job_id(job_id)
        with self._transaction() as session:
            if not ScrapeJobRepository(session).delete_job(parsed_id):
                raise JobNotFoundError(job_id)
        log_event(logger, logging.INFO, "job_removed", job_id=parsed_id)

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    def get_stats(self) -> QueueStats:
        with self._transaction() as session:
            counts = ScrapeJobRepository(session).count_by_state(now=self._clock())
        return QueueStats(
            waiting=counts[ScrapeJobState.WAITING] - counts["delayed"],
            active=counts[ScrapeJobState.ACTIVE],
            completed=counts[ScrapeJobState.COMPLETED],
            failed=counts[ScrapeJobState.FAILED],
            delayed=counts["delayed"],
            total=sum(counts[state] for state in ScrapeJobState.ALL),
            paused=self.is_paused,
        )

    def list_jobs(self, state: str | None = None, limit: int = 50) -> list[ScrapeJobView]:
        if state is not None and state not in ScrapeJobState.ALL:
            raise ValueError(
                f"Unknown job state '{state}'. Allowed states: {', '.join(ScrapeJobState.ALL)}."
            )
        with self._transaction() as session:
            jobs = ScrapeJobRepository(session).list_jobs(limit=limit, state=state)
            return [_to_view(job) for job in jobs]

    def get_job(self, job_id: uuid.UUID | str) -> ScrapeJobView:
        parsed_id = _parse_job_id(job_id)
        with self._transaction() as session:
            job = ScrapeJobRepository(session).get_job(parsed_id)
            if job is None:
                raise JobNotFoundError(job_id)
            return _to_view(job)

    # ------------------------------------------------------------------
    # Outcome recording
    # ------------------------------------------------------------------

    def _record_success(self, claimed: ScrapeJobView, result: dict[str, Any]) -> ScrapeJobView:
        now = self._clock()
        with self._transaction() as session:
            job = self._owned_job(session, claimed)
            if job is None:
                return claimed
            job.state = ScrapeJobState.COMPLETED
            job.result_payload = result
            job.last_error = None
            job.finished_at = now
            job.updated_at = now
            view = _to_view(job)

        log_event(
            logger,
            logging.INFO,
            "job_completed",
            job_id=view.id,
            source=view.source_type,
            attempt=view.attempts_made,
            records_scraped=result.get("records_scraped"),
            records_ingested=result.get("records_ingested"),
        )
        return view

    def _record_failure(
        self,
        claimed: ScrapeJobView,
        exc: Exception,
        *,
        permanent: bool,
    ) -> ScrapeJobView:
        now = self._clock()
        message = f"{type(exc).__name__}: {exc}"[:MAX_ERROR_LENGTH]
        with self._transaction() as session:
            job = self._owned_job(session, claimed)
            if job is None:
                return claimed
            job.last_error = message
            job.updated_at = now
            retry = not permanent and job.attempts_made < job.max_attempts
            delay_ms = 0
            if retry:
                delay_ms = job.backoff_base_ms * 2 ** (job.attempts_made - 1)
                job.state = ScrapeJobState.WAITING
                job.run_at = now + timedelta(milliseconds=delay_ms)
                job.heartbeat_at = None
            else:
                job.state = ScrapeJobState.FAILED
                job.finished_at = now
            view = _to_view(job)

        log_event(
            logger,
            logging.WARNING if retry else logging.ERROR,
            "job_failed",
            job_id=view.id,
            source=view.source_type,
            attempt=view.attempts_made,
            max_attempts=view.max_attempts,
            permanent=permanent,
            error=message,
        )
        if retry:
            log_event(
                logger,
                logging.INFO,
                "job_retry_scheduled",
                job_id=view.id,
                source=view.source_type,
                next_attempt=view.attempts_made + 1,
                delay_ms=delay_ms,
            )
        return view

    def _owned_job(self, session: Session, claimed: ScrapeJobView) -> ScrapeJob | None:
        """
        Load the claimed job if this run still owns it.

        A job removed, or recovered as stalled and re-claimed, while running
        no longer belongs to this run and its outcome is dropped.
        """

        job = ScrapeJobRepository(session).get_job(claimed.id)
        if (
            job is None
            or job.state != ScrapeJobState.ACTIVE
            or job.attempts_made != claimed.attempts_made
        ):
            log_event(
                logger,
                logging.WARNING,
                "job_outcome_discarded",
                job_id=claimed.id,
                state=job.state if job is not None else None,
            )
            return None
        return job

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            with session.begin():
                yield session
        finally:
            session.close()


def _parse_source_type(value: SourceType | str) -> SourceType:
    try:
        return SourceType.parse(value)
    except ValueError:
        raise UnknownSourceTypeError(str(value)) from None


def _parse_config(config: ScrapeJobConfig | Mapping[str, Any] | None) -> ScrapeJobConfig:
    if isinstance(config, ScrapeJobConfig):
        return config
    try:
        return ScrapeJobConfig.model_validate(dict(config or {}))
    except ValidationError as exc:
        raise InvalidJobError(f"Invalid job config: {exc}") from exc


def _parse_job_id(job_id: uuid.UUID | str) -> uuid.UUID:
    if isinstance(job_id, uuid.UUID):
        return job_id
    try:
        return uuid.UUID(str(job_id))
    except ValueError:
        raise JobNotFoundError(job_id) from None


def _to_view(job: ScrapeJob) -> ScrapeJobView:
    return ScrapeJobView(
        id=job.id,
        source_type=job.source_type,
        state=job.state,
        priority=job.priority,
        attempts_made=job.attempts_made,
        max_attempts=job.max_attempts,
        config=dict(job.config or {}),
        run_at=as_utc(job.run_at),
        created_at=as_utc(job.created_at),
        started_at=as_utc(job.started_at),
        finished_at=as_utc(job.finished_at),
        last_error=job.last_error,
        result=job.result_payload,
    )
