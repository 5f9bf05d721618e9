"""
Ingestion service: validate, normalize, resolve references and upsert courses.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from app.domain.course_catalog import IngestionSummary, NormalizedCourse, RawCourseRecord
from app.ingestion.errors import RecordRejectedError
from app.ingestion.normalizer import CourseNormalizer
from app.ingestion.storage.base import CatalogStore, UpsertResult
from app.scraping.logging_utils import log_event
from app.scraping.types import SourceType
from db.models.university import UniversityKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedReferences:
    university_id: uuid.UUID
    instructor_ids: list[uuid.UUID] = field(default_factory=list)
    category_ids: list[uuid.UUID] = field(default_factory=list)


class CourseIngestionService:
    """
    Turn raw scraped records into canonical catalog courses.

    Every record is handled inside one store transaction: it is either
    rejected before any write or fully upserted with its references.
    """

    def __init__(
        self,
        *,
        store: CatalogStore,
        normalizer: CourseNormalizer | None = None,
    ) -> None:
        self._store = store
        self._normalizer = normalizer or CourseNormalizer()

    def process_batch(self, records: Iterable[RawCourseRecord]) -> IngestionSummary:
        summary = IngestionSummary()
        for raw in records:
            summary.processed += 1
            try:
                result = self.process_record(raw)
            except RecordRejectedError as exc:
                summary.rejected += 1
                summary.rejections.append(f"{exc.source_url or '<missing url>'}: {'; '.join(exc.errors)}")
                log_event(
                    logger,
                    logging.WARNING,
                    "course_rejected",
                    source_url=exc.source_url,
                    errors=exc.errors,
                )
                continue
            if result.created:
                summary.created += 1
            else:
                summary.updated += 1
        return summary

    def process_record(self, raw: RawCourseRecord) -> UpsertResult:
        """
        Validate, normalize and persist one record.

        Raises RecordRejectedError for invalid input; store errors propagate.
        """

        validation = self._normalizer.validate(raw)
        if not validation.is_valid:
            raise RecordRejectedError(raw.source_url, validation.errors)

        try:
            course = self._normalizer.normalize(raw)
        except (TypeError, ValueError) as exc:
            raise RecordRejectedError(raw.source_url, [f"normalization failed: {exc}"]) from exc

        cleaned = self._normalizer.validate_normalized(course)
        if not cleaned.is_valid:
            raise RecordRejectedError(raw.source_url, cleaned.errors)

        with self._store.atomic():
            references = self.resolve_references(course)
            return self.upsert(course, references)

    def resolve_references(self, course: NormalizedCourse) -> ResolvedReferences:
        university = self._store.find_or_create(
            "university",
            match_key={"name_key": course.university_name.lower()},
            defaults={
                "name": course.university_name,
                "kind": _university_kind(course.source, course.university_name),
            },
        )
        if university.created:
            log_event(
                logger,
                logging.INFO,
                "university_created",
                university=course.university_name,
                university_id=university.id,
            )

        instructor_ids: list[uuid.UUID] = []
        for first_name, last_name in course.instructor_names:
            instructor = self._store.find_or_create(
                "instructor",
                match_key={
                    "first_name": first_name,
                    "last_name": last_name,
                    "university_id": university.id,
                },
                defaults={},
            )
            if instructor.created:
                log_event(
                    logger,
                    logging.INFO,
                    "instructor_created",
                    first_name=first_name,
                    last_name=last_name,
                    university_id=university.id,
                )
            instructor_ids.append(instructor.id)

        category_ids: list[uuid.UUID] = []
        if course.category_name:
            category = self._store.find_or_create(
                "category",
                match_key={"name_key": course.category_name.lower()},
                defaults={"name": course.category_name},
            )
            if category.created:
                log_event(
                    logger,
                    logging.INFO,
                    "category_created",
                    category=course.category_name,
                    category_id=category.id,
                )
            category_ids.append(category.id)

        return ResolvedReferences(
            university_id=university.id,
            instructor_ids=instructor_ids,
            category_ids=category_ids,
        )

    def upsert(self, course: NormalizedCourse, references: ResolvedReferences) -> UpsertResult:
        result = self._store.upsert_by_key(
            "course",
            key={"source_url": course.source_url},
            fields=course_fields(course, references),
        )
        log_event(
            logger,
            logging.INFO,
            "course_upserted",
            source_url=course.source_url,
            course_id=result.id,
            created=result.created,
        )
        return result


def course_fields(course: NormalizedCourse, references: ResolvedReferences) -> dict[str, Any]:
    """
    Map a normalized course plus resolved ids onto `courses` columns.
    """

    return {
        "source": course.source,
        "title": course.title,
        "course_code": course.course_code,
        "description": course.description,
        "university_id": references.university_id,
        "instructor_ids": [str(value) for value in references.instructor_ids],
        "category_ids": [str(value) for value in references.category_ids],
        "pricing": course.pricing.to_dict(),
        "duration": course.duration.to_dict() if course.duration else None,
        "level": course.level,
        "language": course.language,
        "delivery_mode": course.delivery_mode,
        "format": course.format,
        "syllabus": list(course.syllabus),
        "prerequisites": course.prerequisites,
        "tags": list(course.tags),
        "average_rating": course.average_rating,
        "credits": course.credits,
        "start_date": course.start_date,
        "end_date": course.end_date,
        "certification": course.certification,
        "accessibility": course.accessibility,
        "raw_data": course.raw_data,
        "is_active": True,
        "last_scraped_at": course.last_scraped_at,
    }


def _university_kind(source: str, university_name: str) -> str:
    try:
        source_type = SourceType.parse(source)
    except ValueError:
        source_type = None
    if source_type is not None:
        return UniversityKind.PLATFORM if source_type.is_platform else UniversityKind.UNIVERSITY
    if "university" in university_name.lower():
        return UniversityKind.UNIVERSITY
    return UniversityKind.PLATFORM
