"""
db/models/course.py

Canonical catalog course, unique per source URL.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONType, TimestampMixin


class VerificationStatus:
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class Course(Base, TimestampMixin):
    __tablename__ = "courses"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    source_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    source: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    course_code: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    university_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("universities.id", ondelete="RESTRICT"),
        nullable=False,
    )
    instructor_ids: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    category_ids: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    pricing: Mapped[dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        comment="Amount in the reference currency plus the original amount/currency",
    )
    duration: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="{weeks, display}",
    )
    level: Mapped[str] = mapped_column(String(50), nullable=False)
    language: Mapped[str] = mapped_column(String(50), nullable=False)
    delivery_mode: Mapped[str] = mapped_column(String(20), nullable=False)
    format: Mapped[str | None] = mapped_column(String(50), nullable=True)
    syllabus: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    prerequisites: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    average_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    credits: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    certification: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    accessibility: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    raw_data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    verification_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=VerificationStatus.PENDING,
    )
    last_scraped_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    rescraped_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    scrape_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint("source_url", name="uq_courses_source_url"),
        Index("ix_courses_university_id", "university_id"),
        Index("ix_courses_source", "source"),
        Index("ix_courses_level", "level"),
    )
