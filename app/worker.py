"""
Worker process entry point: queue workers plus the periodic scheduler.
"""

from __future__ import annotations

import logging
import os
import signal
import threading
from dataclasses import dataclass
from types import FrameType
from typing import TYPE_CHECKING

from apscheduler.schedulers.background import BackgroundScheduler

if TYPE_CHECKING:
    from app.queue.scrape_queue import ScrapeQueue
    from app.queue.worker import QueueWorker
    from app.scraping.engine import ScrapingEngine


@dataclass
class WorkerRuntime:
    queue: ScrapeQueue
    worker: QueueWorker
    scheduler: BackgroundScheduler | None
    engine: ScrapingEngine


def _validate_env() -> None:
    """
    Fail fast when no database URL is configured.
    """

    from db.config import load_env_files

    load_env_files()

    names = ("DATABASE_URL", "LOCAL_DATABASE_URL", "CLOUD_DATABASE_URL")
    if not any(os.getenv(name, "").strip() for name in names):
        raise RuntimeError(
            "Startup validation failed: no database URL configured. "
            "Set DATABASE_URL, LOCAL_DATABASE_URL or CLOUD_DATABASE_URL."
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the worker process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Every table registered on Base.metadata must exist in the database.

    Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401  registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        logging.getLogger(__name__).critical(
            "Schema mismatch: %d table(s) absent from the database: %s. "
            "Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


def build_runtime(*, with_scheduler: bool = True, concurrency: int | None = None) -> WorkerRuntime:
    """
    Wire settings, scraping engine, ingestion and queue into one runtime.
    """

    from app.config import get_ingestion_settings, get_queue_settings
    from app.ingestion.currency import StaticRateProvider
    from app.ingestion.normalizer import CourseNormalizer
    from app.queue.processor import ScrapeJobProcessor
    from app.queue.scrape_queue import ScrapeQueue
    from app.queue.worker import QueueWorker
    from app.scheduler.jobs import build_scheduler
    from app.scraping.config import get_scraping_settings
    from app.scraping.engine import ScrapingEngine
    from db.session import get_session_factory

    session_factory = get_session_factory()
    normalizer = CourseNormalizer(
        rate_provider=StaticRateProvider(
            reference_currency=get_ingestion_settings().reference_currency,
        )
    )
    engine = ScrapingEngine(settings=get_scraping_settings())
    processor = ScrapeJobProcessor(
        engine=engine,
        session_factory=session_factory,
        normalizer=normalizer,
    )
    queue = ScrapeQueue(
        session_factory=session_factory,
        processor=processor,
        settings=get_queue_settings(),
    )
    worker = QueueWorker(queue=queue, concurrency=concurrency)
    scheduler = build_scheduler(queue) if with_scheduler else None
    return WorkerRuntime(queue=queue, worker=worker, scheduler=scheduler, engine=engine)


def run(*, with_scheduler: bool = True, concurrency: int | None = None) -> None:
    """
    Run workers (and optionally the scheduler) until SIGINT or SIGTERM.
    """

    _validate_env()
    _configure_logging()
    log = logging.getLogger(__name__)

    _check_db()
    log.info("Database connectivity confirmed")
    _check_schema()
    log.info("Database schema validated")

    runtime = build_runtime(with_scheduler=with_scheduler, concurrency=concurrency)
    stop = threading.Event()

    def _handle_signal(signum: int, _frame: FrameType | None) -> None:
        log.info("Received signal %s, shutting down", signum)
        stop.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    runtime.worker.start()
    if runtime.scheduler is not None:
        runtime.scheduler.start()
        log.info("Scheduler started with %d jobs", len(runtime.scheduler.get_jobs()))
    try:
        stop.wait()
    finally:
        if runtime.scheduler is not None:
            runtime.scheduler.shutdown(wait=True)
            log.info("Scheduler shut down")
        runtime.worker.stop()
        runtime.engine.close()


if __name__ == "__main__":
    run()
