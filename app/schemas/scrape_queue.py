"""
Schemas for scrape job configuration and queue observability.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ScrapeJobOptions(BaseModel):
    """
    Per-job overrides applied on top of source and environment settings.
    """

    model_config = ConfigDict(extra="forbid")

    rate_limit_ms: int | None = Field(default=None, ge=0)
    retry_attempts: int | None = Field(default=None, ge=1)
    retry_delay_ms: int | None = Field(default=None, ge=0)
    timeout_ms: int | None = Field(default=None, ge=1)
    respect_robots_txt: bool | None = None
    link_limit: int | None = Field(default=None, ge=1)
    max_scrolls: int | None = Field(default=None, ge=0)


class ScrapeJobConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str | None = None
    search_query: str | None = None
    options: ScrapeJobOptions = Field(default_factory=ScrapeJobOptions)

    @field_validator("url")
    @classmethod
    def _validate_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip()
        if not stripped.startswith(("http://", "https://")):
            raise ValueError("url must be an absolute http(s) URL")
        return stripped

    @field_validator("search_query")
    @classmethod
    def _strip_query(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None


class ScrapeJobView(BaseModel):
    id: UUID
    source_type: str
    state: str
    priority: int
    attempts_made: int
    max_attempts: int
    config: dict[str, Any] = Field(default_factory=dict)
    run_at: datetime
    created_at: datetime
    started_at: datetime | None = None
    finished_at: datetime | None = None
    last_error: str | None = None
    result: dict[str, Any] | None = None


class QueueStats(BaseModel):
    waiting: int = Field(..., ge=0)
    active: int = Field(..., ge=0)
    completed: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    delayed: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    paused: bool = False
