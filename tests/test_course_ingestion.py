"""
tests/test_course_ingestion.py

Catalog store and ingestion service against an in-memory SQLite database.

Coverage
--------
- Course upsert keyed by source_url (created vs updated, scrape_count)
- Case-insensitive find-or-create for universities and categories
- Per-record atomicity
- Batch outcome counters and rejections
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy.orm import Session

from app.domain.course_catalog import RawCourseRecord, RawPricing
from app.ingestion.errors import RecordRejectedError
from app.ingestion.normalizer import CourseNormalizer
from app.ingestion.service import CourseIngestionService, ResolvedReferences, course_fields
from app.ingestion.storage import SQLAlchemyCatalogStore
from db.base import as_utc
from db.models.university import UniversityKind
from tests.fakes import FakeClock


DESCRIPTION = "Covers sorting, graphs and dynamic programming in depth."


def _raw(source_url: str = "https://ocw.mit.edu/courses/6-006", **overrides: object) -> RawCourseRecord:
    values: dict[str, object] = {
        "title": "Introduction to Algorithms",
        "university": "Massachusetts Institute of Technology",
        "source_url": source_url,
        "source": "mit",
        "description": DESCRIPTION,
    }
    values.update(overrides)
    return RawCourseRecord(**values)  # type: ignore[arg-type]


@pytest.fixture()
def store(db_session: Session, clock: FakeClock) -> SQLAlchemyCatalogStore:
    return SQLAlchemyCatalogStore(session=db_session, clock=clock)


@pytest.fixture()
def service(store: SQLAlchemyCatalogStore) -> CourseIngestionService:
    return CourseIngestionService(store=store)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class TestCatalogStore:
    def _course_fields(self, store: SQLAlchemyCatalogStore, title: str) -> dict[str, object]:
        university = store.find_or_create(
            "university",
            match_key={"name_key": "massachusetts institute of technology"},
            defaults={"name": "Massachusetts Institute of Technology", "kind": UniversityKind.UNIVERSITY},
        )
        course = CourseNormalizer().normalize(_raw(title=title))
        return course_fields(course, ResolvedReferences(university_id=university.id))

    def test_upsert_creates_then_updates(self, store: SQLAlchemyCatalogStore, clock: FakeClock) -> None:
        with store.atomic():
            first = store.upsert_by_key(
                "course",
                key={"source_url": "https://ocw.mit.edu/courses/6-006"},
                fields=self._course_fields(store, "Algorithms"),
            )

        clock.advance(days=1)
        with store.atomic():
            second = store.upsert_by_key(
                "course",
                key={"source_url": "https://ocw.mit.edu/courses/6-006"},
                fields=self._course_fields(store, "Algorithms, Revised"),
            )

        assert first.created is True
        assert second.created is False
        assert second.id == first.id
        assert store.count("course") == 1

        row = store.get_by_key("course", {"source_url": "https://ocw.mit.edu/courses/6-006"})
        assert row is not None
        assert row["title"] == "Algorithms, Revised"
        assert row["scrape_count"] == 2
        assert as_utc(row["rescraped_at"]) == clock()
        assert as_utc(row["created_at"]) == clock() - timedelta(days=1)

    def test_find_or_create_reuses_existing_row(self, store: SQLAlchemyCatalogStore) -> None:
        with store.atomic():
            first = store.find_or_create(
                "category",
                match_key={"name_key": "computer science"},
                defaults={"name": "Computer Science"},
            )
            second = store.find_or_create(
                "category",
                match_key={"name_key": "computer science"},
                defaults={"name": "COMPUTER SCIENCE"},
            )

        assert first.created is True
        assert second.created is False
        assert second.id == first.id
        row = store.get_by_key("category", {"name_key": "computer science"})
        assert row is not None and row["name"] == "Computer Science"

    def test_atomic_rolls_back_on_error(self, store: SQLAlchemyCatalogStore) -> None:
        with pytest.raises(RuntimeError):
            with store.atomic():
                store.find_or_create(
                    "university",
                    match_key={"name_key": "ghost university"},
                    defaults={"name": "Ghost University", "kind": UniversityKind.UNIVERSITY},
                )
                raise RuntimeError("boom")

        assert store.count("university") == 0

    def test_unknown_entity_type(self, store: SQLAlchemyCatalogStore) -> None:
        with pytest.raises(ValueError):
            store.count("syllabus")

    def test_upsert_requires_course_source_url_key(self, store: SQLAlchemyCatalogStore) -> None:
        with pytest.raises(ValueError):
            store.upsert_by_key("university", key={"name_key": "x"}, fields={})
        with pytest.raises(ValueError):
            store.upsert_by_key("course", key={"title": "x"}, fields={})


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class TestCourseIngestionService:
    def test_batch_counts_created_and_rejected(
        self,
        service: CourseIngestionService,
        store: SQLAlchemyCatalogStore,
    ) -> None:
        records = [
            _raw("https://ocw.mit.edu/courses/a", instructors=["Erik Demaine"]),
            _raw("https://ocw.mit.edu/courses/b", instructors=["Erik Demaine", "Jason Ku"]),
            _raw("https://ocw.mit.edu/courses/c", title=""),
        ]

        summary = service.process_batch(records)

        assert summary.processed == 3
        assert summary.created == 2
        assert summary.updated == 0
        assert summary.rejected == 1
        assert summary.ingested == 2
        assert summary.rejections[0].startswith("https://ocw.mit.edu/courses/c: title is required")
        assert store.count("university") == 1
        assert store.count("instructor") == 2
        assert store.count("course") == 2

    def test_reingest_updates_instead_of_duplicating(
        self,
        service: CourseIngestionService,
        store: SQLAlchemyCatalogStore,
    ) -> None:
        records = [_raw("https://ocw.mit.edu/courses/a"), _raw("https://ocw.mit.edu/courses/b")]

        service.process_batch(records)
        summary = service.process_batch(records)

        assert summary.created == 0
        assert summary.updated == 2
        assert store.count("course") == 2

    def test_university_matched_case_insensitively(
        self,
        service: CourseIngestionService,
        store: SQLAlchemyCatalogStore,
    ) -> None:
        service.process_record(_raw("https://ocw.mit.edu/courses/a"))
        service.process_record(
            _raw("https://ocw.mit.edu/courses/b", university="MASSACHUSETTS INSTITUTE OF TECHNOLOGY")
        )

        assert store.count("university") == 1

    def test_category_from_department(
        self,
        service: CourseIngestionService,
        store: SQLAlchemyCatalogStore,
    ) -> None:
        first = service.process_record(_raw("https://ocw.mit.edu/courses/a", department="Computer Science"))
        service.process_record(_raw("https://ocw.mit.edu/courses/b", department="computer science"))

        assert store.count("category") == 1
        course = store.get_by_key("course", {"source_url": "https://ocw.mit.edu/courses/a"})
        category = store.get_by_key("category", {"name_key": "computer science"})
        assert course is not None and category is not None
        assert course["id"] == first.id
        assert course["category_ids"] == [str(category["id"])]

    def test_stored_fields_are_normalized(
        self,
        service: CourseIngestionService,
        store: SQLAlchemyCatalogStore,
    ) -> None:
        service.process_record(
            _raw(
                "https://www.wits.ac.za/course/bsc",
                university="University of the Witwatersrand",
                source="wits",
                pricing=RawPricing(type="paid", amount=45000.0, currency="ZAR", billing_period="annual"),
                instructors=["Jane Doe"],
                level="Bachelor's degree",
            )
        )

        course = store.get_by_key("course", {"source_url": "https://www.wits.ac.za/course/bsc"})
        university = store.get_by_key("university", {"name_key": "university of the witwatersrand"})
        instructor = store.get_by_key("instructor", {"first_name": "Jane", "last_name": "Doe"})

        assert course is not None and university is not None and instructor is not None
        assert course["pricing"]["amount"] == 2475.0
        assert course["pricing"]["currency"] == "USD"
        assert course["pricing"]["original_currency"] == "ZAR"
        assert course["instructor_ids"] == [str(instructor["id"])]
        assert course["university_id"] == university["id"]
        assert course["is_active"] is True
        assert course["verification_status"] == "pending"
        assert university["kind"] == UniversityKind.UNIVERSITY

    def test_platform_sources_create_platform_institutions(
        self,
        service: CourseIngestionService,
        store: SQLAlchemyCatalogStore,
    ) -> None:
        service.process_record(_raw("https://www.edx.org/course/x", university="edX", source="edx"))

        university = store.get_by_key("university", {"name_key": "edx"})
        assert university is not None
        assert university["kind"] == UniversityKind.PLATFORM

    def test_invalid_record_is_rejected_before_any_write(
        self,
        service: CourseIngestionService,
        store: SQLAlchemyCatalogStore,
    ) -> None:
        with pytest.raises(RecordRejectedError) as excinfo:
            service.process_record(_raw(description="short"))

        assert excinfo.value.source_url == "https://ocw.mit.edu/courses/6-006"
        assert store.count("university") == 0

    def test_title_emptied_by_cleaning_is_rejected(
        self,
        service: CourseIngestionService,
        store: SQLAlchemyCatalogStore,
    ) -> None:
        summary = service.process_batch([_raw(title="数据科学导论")])

        assert summary.created == 0
        assert summary.rejected == 1
        assert "title is empty after cleaning" in summary.rejections[0]
        assert store.count("course") == 0
        assert store.count("university") == 0

    def test_markup_only_description_is_rejected(
        self,
        service: CourseIngestionService,
        store: SQLAlchemyCatalogStore,
    ) -> None:
        summary = service.process_batch([_raw(description="<div><br/><br/><br/><br/></div>")])

        assert summary.rejected == 1
        assert "after cleaning" in summary.rejections[0]
        assert store.count("course") == 0

    def test_normalization_failure_is_a_rejection(self, store: SQLAlchemyCatalogStore) -> None:
        class BrokenNormalizer(CourseNormalizer):
            def normalize(self, raw: RawCourseRecord):  # type: ignore[override]
                raise ValueError("bad date")

        service = CourseIngestionService(store=store, normalizer=BrokenNormalizer())
        summary = service.process_batch([_raw()])

        assert summary.rejected == 1
        assert "normalization failed: bad date" in summary.rejections[0]
        assert store.count("course") == 0
