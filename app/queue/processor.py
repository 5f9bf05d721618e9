"""
Job processor: scrape one source, then ingest its records into the catalog.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session, sessionmaker

from app.ingestion.normalizer import CourseNormalizer
from app.ingestion.service import CourseIngestionService
from app.ingestion.storage.sqlalchemy_store import SQLAlchemyCatalogStore
from app.queue.errors import PermanentJobError
from app.schemas.scrape_queue import ScrapeJobConfig
from app.scraping.engine import ScrapingEngine
from app.scraping.errors import EntryPointError, RobotsDisallowedError
from app.scraping.logging_utils import log_event
from app.scraping.types import SourceType

logger = logging.getLogger(__name__)

MAX_REPORTED_REJECTIONS = 20


class ScrapeJobProcessor:
    """
    Callable executed by the queue for every claimed job.

    Returns the job result payload. Raises PermanentJobError for outcomes a
    retry cannot fix; any other exception is treated as transient.
    """

    def __init__(
        self,
        *,
        engine: ScrapingEngine,
        session_factory: sessionmaker[Session],
        normalizer: CourseNormalizer | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._engine = engine
        self._session_factory = session_factory
        self._normalizer = normalizer or CourseNormalizer()
        self._clock = clock

    def __call__(self, source_type: SourceType, config: ScrapeJobConfig) -> dict[str, Any]:
        if not self._engine.is_enabled(source_type):
            raise PermanentJobError(f"Source '{source_type.value}' is disabled.")

        try:
            result = self._engine.run(
                source_type,
                url=config.url,
                search_query=config.search_query,
                job_options=config.options.model_dump(exclude_none=True),
            )
        except EntryPointError as exc:
            if isinstance(exc.__cause__, RobotsDisallowedError):
                raise PermanentJobError(str(exc)) from exc
            raise

        session = self._session_factory()
        try:
            store = SQLAlchemyCatalogStore(session=session, clock=self._clock)
            service = CourseIngestionService(store=store, normalizer=self._normalizer)
            summary = service.process_batch(result.records)
        finally:
            session.close()

        log_event(
            logger,
            logging.INFO,
            "job_ingestion_completed",
            source=source_type.value,
            processed=summary.processed,
            created=summary.created,
            updated=summary.updated,
            rejected=summary.rejected,
        )
        return {
            "source_type": source_type.value,
            "entrypoint": result.entrypoint,
            **result.counters(),
            "records_ingested": summary.ingested,
            "courses_created": summary.created,
            "courses_updated": summary.updated,
            "records_rejected": summary.rejected,
            "rejections": summary.rejections[:MAX_REPORTED_REJECTIONS],
            "errors": result.errors[:MAX_REPORTED_REJECTIONS],
        }
