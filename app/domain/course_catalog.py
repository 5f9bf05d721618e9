"""
app/domain/course_catalog.py

Domain models for scraped course records and their normalized catalog form.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass
class RawPricing:
    """
    Price information exactly as a site scraper extracted it.
    """

    type: str = "unknown"
    amount: float | None = None
    currency: str = "USD"
    billing_period: str | None = None
    note: str | None = None


@dataclass
class RawDuration:
    value: float
    unit: str
    display: str


@dataclass
class RawCourseRecord:
    """
    Transient per-course record produced by a site scraper.

    Identity is `source_url`; every other field is best effort.
    """

    title: str
    university: str
    source_url: str
    source: str
    description: str = ""
    pricing: RawPricing = field(default_factory=RawPricing)
    duration: RawDuration | None = None
    instructors: list[str] = field(default_factory=list)
    syllabus: list[str] = field(default_factory=list)
    level: str | None = None
    language: str | None = None
    delivery_mode: str | None = None
    course_code: str | None = None
    department: str | None = None
    prerequisites: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    certification: dict[str, Any] = field(default_factory=dict)
    accessibility: dict[str, Any] = field(default_factory=dict)
    skills: list[str] = field(default_factory=list)
    rating: float | None = None
    credits: int | None = None
    format: str | None = None
    scraped_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    raw_data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class NormalizedPricing:
    type: str
    amount: float | None
    currency: str
    original_amount: float | None = None
    original_currency: str | None = None
    billing_period: str | None = None
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "amount": self.amount,
            "currency": self.currency,
            "original_amount": self.original_amount,
            "original_currency": self.original_currency,
            "billing_period": self.billing_period,
            "description": self.description,
        }


@dataclass(frozen=True)
class NormalizedDuration:
    weeks: int
    display: str

    def to_dict(self) -> dict[str, Any]:
        return {"weeks": self.weeks, "display": self.display}


@dataclass(frozen=True)
class NormalizedCourse:
    """
    Canonical course fields ready for the catalog upsert.

    Reference ids (university, instructors, categories) are resolved separately
    by the ingestion service inside the same transaction.
    """

    source_url: str
    title: str
    course_code: str
    description: str
    university_name: str
    source: str
    pricing: NormalizedPricing
    duration: NormalizedDuration | None
    level: str
    language: str
    delivery_mode: str
    format: str | None
    instructor_names: list[tuple[str, str]]
    category_name: str | None
    syllabus: list[str]
    prerequisites: str | None
    tags: list[str]
    average_rating: float | None
    credits: int | None
    start_date: datetime | None
    end_date: datetime | None
    certification: dict[str, Any]
    accessibility: dict[str, Any]
    raw_data: dict[str, Any]
    last_scraped_at: datetime


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass
class IngestionSummary:
    """
    Outcome counters for one ingested batch of raw course records.
    """

    processed: int = 0
    created: int = 0
    updated: int = 0
    rejected: int = 0
    rejections: list[str] = field(default_factory=list)

    @property
    def ingested(self) -> int:
        return self.created + self.updated

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "created": self.created,
            "updated": self.updated,
            "rejected": self.rejected,
            "rejections": list(self.rejections),
        }
