"""create course catalog and scrape_jobs tables

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def _jsonb(name: str, *, nullable: bool, comment: str | None = None) -> sa.Column:
    return sa.Column(name, postgresql.JSONB(astext_type=sa.Text()), nullable=nullable, comment=comment)


def upgrade() -> None:
    op.create_table(
        "universities",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column(
            "name_key",
            sa.String(length=255),
            nullable=False,
            comment="Lowercased name used for case-insensitive matching",
        ),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("is_verified", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name_key", name="uq_universities_name_key"),
    )

    op.create_table(
        "categories",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("name_key", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name_key", name="uq_categories_name_key"),
    )

    op.create_table(
        "instructors",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
        sa.Column("university_id", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["university_id"], ["universities.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "first_name",
            "last_name",
            "university_id",
            name="uq_instructors_name_university",
        ),
    )

    op.create_table(
        "courses",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("source_url", sa.String(length=2048), nullable=False),
        sa.Column("source", sa.String(length=50), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("course_code", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("university_id", postgresql.UUID(as_uuid=True), nullable=False),
        _jsonb("instructor_ids", nullable=False),
        _jsonb("category_ids", nullable=False),
        _jsonb(
            "pricing",
            nullable=False,
            comment="Amount in the reference currency plus the original amount/currency",
        ),
        _jsonb("duration", nullable=True, comment="{weeks, display}"),
        sa.Column("level", sa.String(length=50), nullable=False),
        sa.Column("language", sa.String(length=50), nullable=False),
        sa.Column("delivery_mode", sa.String(length=20), nullable=False),
        sa.Column("format", sa.String(length=50), nullable=True),
        _jsonb("syllabus", nullable=False),
        sa.Column("prerequisites", sa.Text(), nullable=True),
        _jsonb("tags", nullable=False),
        sa.Column("average_rating", sa.Float(), nullable=True),
        sa.Column("credits", sa.Integer(), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        _jsonb("certification", nullable=False),
        _jsonb("accessibility", nullable=False),
        _jsonb("raw_data", nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("verification_status", sa.String(length=20), nullable=False),
        sa.Column("last_scraped_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("rescraped_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("scrape_count", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["university_id"], ["universities.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("source_url", name="uq_courses_source_url"),
    )
    op.create_index("ix_courses_university_id", "courses", ["university_id"], unique=False)
    op.create_index("ix_courses_source", "courses", ["source"], unique=False)
    op.create_index("ix_courses_level", "courses", ["level"], unique=False)

    op.create_table(
        "scrape_jobs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "source_type",
            sa.String(length=32),
            nullable=False,
            comment="mit, stanford, harvard, wits, up, uj, uct, coursera, edx, futurelearn",
        ),
        _jsonb("config", nullable=False, comment="url, search_query and per-job option overrides"),
        sa.Column("state", sa.String(length=16), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False, comment="Lower value is dispatched first"),
        sa.Column(
            "run_at",
            sa.DateTime(timezone=True),
            nullable=False,
            comment="Earliest dispatch time; realizes enqueue delay and retry backoff",
        ),
        sa.Column("attempts_made", sa.Integer(), nullable=False),
        sa.Column("max_attempts", sa.Integer(), nullable=False),
        sa.Column("backoff_base_ms", sa.Integer(), nullable=False),
        sa.Column("stalled_count", sa.Integer(), nullable=False),
        sa.Column("last_error", sa.Text(), nullable=True),
        _jsonb("result_payload", nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("heartbeat_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_scrape_jobs_state", "scrape_jobs", ["state"], unique=False)
    op.create_index(
        "ix_scrape_jobs_state_priority_run_at",
        "scrape_jobs",
        ["state", "priority", "run_at"],
        unique=False,
    )
    op.create_index("ix_scrape_jobs_source_type", "scrape_jobs", ["source_type"], unique=False)
    op.create_index("ix_scrape_jobs_finished_at", "scrape_jobs", ["finished_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_scrape_jobs_finished_at", table_name="scrape_jobs")
    op.drop_index("ix_scrape_jobs_source_type", table_name="scrape_jobs")
    op.drop_index("ix_scrape_jobs_state_priority_run_at", table_name="scrape_jobs")
    op.drop_index("ix_scrape_jobs_state", table_name="scrape_jobs")
    op.drop_table("scrape_jobs")

    op.drop_index("ix_courses_level", table_name="courses")
    op.drop_index("ix_courses_source", table_name="courses")
    op.drop_index("ix_courses_university_id", table_name="courses")
    op.drop_table("courses")

    op.drop_table("instructors")
    op.drop_table("categories")
    op.drop_table("universities")
