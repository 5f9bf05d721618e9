"""
Repository for scrape job persistence, claiming and maintenance queries.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import Select, delete, func, select, update
from sqlalchemy.orm import Session

from db.models.scrape_job import ScrapeJob, ScrapeJobState


class ScrapeJobRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_job(
        self,
        *,
        source_type: str,
        config: dict[str, Any],
        priority: int,
        run_at: datetime,
        max_attempts: int,
        backoff_base_ms: int,
        now: datetime,
    ) -> ScrapeJob:
        job = ScrapeJob(
            source_type=source_type,
            config=config,
            state=ScrapeJobState.WAITING,
            priority=priority,
            run_at=run_at,
            attempts_made=0,
            max_attempts=max_attempts,
            backoff_base_ms=backoff_base_ms,
            stalled_count=0,
            created_at=now,
            updated_at=now,
        )
        self._session.add(job)
        self._session.flush()
        return job

    def get_job(self, job_id: uuid.UUID) -> ScrapeJob | None:
        return self._session.get(ScrapeJob, job_id)

    def list_jobs(
        self,
        *,
        limit: int = 50,
        state: str | None = None,
        source_type: str | None = None,
    ) -> list[ScrapeJob]:
        stmt: Select[tuple[ScrapeJob]] = select(ScrapeJob)

        if state:
            stmt = stmt.where(ScrapeJob.state == state)
        if source_type:
            stmt = stmt.where(ScrapeJob.source_type == source_type)

        stmt = stmt.order_by(ScrapeJob.created_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def claim_next(self, *, now: datetime) -> ScrapeJob | None:
        """
        Lock and activate the next eligible waiting job.

        Ordering is priority ascending, then earliest run_at. Rows locked by
        another worker are skipped on PostgreSQL.
        """

        stmt = (
            select(ScrapeJob)
            .where(ScrapeJob.state == ScrapeJobState.WAITING)
            .where(ScrapeJob.run_at <= now)
            .order_by(ScrapeJob.priority.asc(), ScrapeJob.run_at.asc(), ScrapeJob.created_at.asc())
            .limit(1)
            .with_for_update(skip_locked=True)
        )
        job = self._session.scalars(stmt).first()
        if job is None:
            return None

        job.state = ScrapeJobState.ACTIVE
        job.attempts_made += 1
        job.started_at = now
        job.heartbeat_at = now
        job.finished_at = None
        job.updated_at = now
        self._session.flush()
        return job

    def count_by_state(self, *, now: datetime) -> dict[str, int]:
        rows = self._session.execute(
            select(ScrapeJob.state, func.count(ScrapeJob.id)).group_by(ScrapeJob.state)
        ).all()
        counts = {state: 0 for state in ScrapeJobState.ALL}
        for state, count in rows:
            counts[state] = int(count)

        delayed = self._session.scalar(
            select(func.count(ScrapeJob.id))
            .where(ScrapeJob.state == ScrapeJobState.WAITING)
            .where(ScrapeJob.run_at > now)
        )
        counts["delayed"] = int(delayed or 0)
        return counts

    def heartbeat(self, job_ids: Sequence[uuid.UUID], *, now: datetime) -> int:
        if not job_ids:
            return 0
        result = self._session.execute(
            update(ScrapeJob)
            .where(ScrapeJob.id.in_(list(job_ids)))
            .where(ScrapeJob.state == ScrapeJobState.ACTIVE)
            .values(heartbeat_at=now)
        )
        return int(result.rowcount or 0)

    def find_stalled(self, *, cutoff: datetime) -> list[ScrapeJob]:
        stmt = (
            select(ScrapeJob)
            .where(ScrapeJob.state == ScrapeJobState.ACTIVE)
            .where(ScrapeJob.heartbeat_at < cutoff)
            .with_for_update(skip_locked=True)
        )
        return list(self._session.scalars(stmt).all())

    def list_by_state(self, state: str) -> list[ScrapeJob]:
        return list(self._session.scalars(select(ScrapeJob).where(ScrapeJob.state == state)).all())

    def delete_finished_before(self, *, states: Sequence[str], cutoff: datetime) -> int:
        result = self._session.execute(
            delete(ScrapeJob)
            .where(ScrapeJob.state.in_(list(states)))
            .where(ScrapeJob.finished_at < cutoff)
        )
        return int(result.rowcount or 0)

    def delete_job(self, job_id: uuid.UUID) -> bool:
        job = self.get_job(job_id)
        if job is None:
            return False
        self._session.delete(job)
        self._session.flush()
        return True
