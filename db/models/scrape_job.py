"""
db/models/scrape_job.py

Durable scrape job record backing the job queue.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONType, TimestampMixin


class ScrapeJobState:
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"

    ALL = (WAITING, ACTIVE, COMPLETED, FAILED)


class ScrapeJob(Base, TimestampMixin):
    __tablename__ = "scrape_jobs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    source_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="mit, stanford, harvard, wits, up, uj, uct, coursera, edx, futurelearn",
    )
    config: Mapped[dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        default=dict,
        comment="url, search_query and per-job option overrides",
    )
    state: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=ScrapeJobState.WAITING,
    )
    priority: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=10,
        comment="Lower value is dispatched first",
    )
    run_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="Earliest dispatch time; realizes enqueue delay and retry backoff",
    )
    attempts_made: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    backoff_base_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=5000)
    stalled_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    result_payload: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    heartbeat_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_scrape_jobs_state", "state"),
        Index("ix_scrape_jobs_state_priority_run_at", "state", "priority", "run_at"),
        Index("ix_scrape_jobs_source_type", "source_type"),
        Index("ix_scrape_jobs_finished_at", "finished_at"),
    )
