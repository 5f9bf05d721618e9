"""
Scrapers for South African university programme catalogs.

Fees are reported in ZAR and left unconverted; the ingestion normalizer
converts them to the reference currency.
"""

from __future__ import annotations

from typing import ClassVar

from app.domain.course_catalog import RawCourseRecord
from app.scraping.base import SiteScraper
from app.scraping.parsing.field_parsers import (
    extract_nqf_level,
    infer_qualification_level,
    infer_study_mode,
    nqf_level_to_qualification,
    parse_duration,
    parse_first_int,
    parse_zar_fee,
)
from app.scraping.types import SourceType


class SouthAfricanUniversityScraper(SiteScraper):
    """
    Shared programme mapping: qualification level, APS, study mode and ZAR fees.
    """

    UNIVERSITY_NAME: ClassVar[str]
    RATE_LIMIT_MS = 2000
    LINK_LIMIT = 15
    DEFAULT_SELECTORS: ClassVar[dict[str, str]] = {
        "title": "h1",
        "course_code": ".programme-code, .course-code",
        "description": ".programme-description, .description",
        "faculty": ".faculty, .faculty-name",
        "duration": ".duration",
        "qualification": ".qualification-type, .award-type",
        "requirements": ".entry-requirements, .admission-requirements",
        "aps": ".aps-score, .minimum-aps",
        "study_mode": ".study-mode, .mode-of-delivery",
        "fees": ".fees, .tuition-fees",
        "syllabus": ".module-item, .curriculum-item",
        "credits": ".credits, .credit-value",
        "closing_date": ".closing-date, .application-deadline",
    }

    def parse_details(self, url: str) -> RawCourseRecord | None:
        title = self.text("title")
        qualification = self.text("qualification")
        faculty = self.text("faculty")
        requirements = self.text("requirements")
        aps_score = parse_first_int(self.text("aps"))

        raw_data: dict[str, object] = {"qualification_type": qualification or None}
        if faculty:
            raw_data["category"] = faculty
        if requirements:
            raw_data["entry_requirements"] = requirements
        if aps_score is not None:
            raw_data["aps_score"] = aps_score

        record = self.new_record(
            url,
            title=title,
            university=self.UNIVERSITY_NAME,
            course_code=self.text("course_code") or None,
            description=self.text("description"),
            department=faculty or None,
            duration=parse_duration(self.text("duration")),
            level=self.infer_level(title=title, qualification=qualification),
            delivery_mode=infer_study_mode(self.text("study_mode")),
            pricing=parse_zar_fee(self.text("fees")),
            syllabus=self.texts("syllabus"),
            credits=parse_first_int(self.text("credits")),
            prerequisites=requirements or None,
            end_date=self.text("closing_date") or None,
            language="English",
            format="full-time",
            certification={"available": True, "type": "qualification"},
            raw_data=raw_data,
        )
        return self.enrich(record)

    def infer_level(self, *, title: str, qualification: str) -> str | None:
        return infer_qualification_level(qualification) or infer_qualification_level(title)

    def enrich(self, record: RawCourseRecord) -> RawCourseRecord:
        return record


class WitsScraper(SouthAfricanUniversityScraper):
    SOURCE_TYPE = SourceType.WITS
    SOURCE_NAME = "Wits University"
    UNIVERSITY_NAME = "University of the Witwatersrand"
    BASE_URL = "https://www.wits.ac.za"
    DEFAULT_URL = "https://www.wits.ac.za/course-finder/"
    LISTING_SELECTOR = ".course-item, .course-card, .programme-item"
    LINK_SELECTOR = 'a[href*="/course"], a[href*="/programme"], .course-link'
    LINK_PATTERNS = ("/course", "/programme")
    DEFAULT_SELECTORS = {
        **SouthAfricanUniversityScraper.DEFAULT_SELECTORS,
        "title": "h1.course-title, h1.programme-title, h1",
        "course_code": ".course-code, .programme-code",
        "description": ".course-description, .programme-description, .description",
        "faculty": ".faculty, .school",
        "duration": ".duration, .course-duration",
        "study_mode": ".delivery-mode, .study-mode",
        "fees": ".fees, .tuition-fees, .course-fees",
        "syllabus": ".module-item, .course-module li",
        "coordinator": ".coordinator, .contact-person",
    }

    def enrich(self, record: RawCourseRecord) -> RawCourseRecord:
        coordinator = self.text("coordinator")
        if coordinator:
            record.raw_data["coordinator"] = coordinator
        return record


class UPScraper(SouthAfricanUniversityScraper):
    SOURCE_TYPE = SourceType.UP
    SOURCE_NAME = "University of Pretoria"
    UNIVERSITY_NAME = "University of Pretoria"
    BASE_URL = "https://www.up.ac.za"
    DEFAULT_URL = "https://www.up.ac.za/programmes"
    LISTING_SELECTOR = ".programme-item, .course-item"
    LINK_SELECTOR = 'a[href*="/programme"], a[href*="/course"]'
    LINK_PATTERNS = ("/programme", "/course")
    DEFAULT_SELECTORS = {
        **SouthAfricanUniversityScraper.DEFAULT_SELECTORS,
        "title": "h1.programme-title, h1",
        "faculty": ".faculty-name, .faculty",
        "duration": ".duration, .study-duration",
        "qualification": ".qualification, .award",
        "admission_requirements": ".admission-requirement li, .entry-requirement li",
        "aps": ".aps, .minimum-aps",
        "fees": ".fees, .tuition, .programme-fees",
        "syllabus": ".module-name, .curriculum-item",
    }

    def enrich(self, record: RawCourseRecord) -> RawCourseRecord:
        requirements = self.texts("admission_requirements")
        if requirements:
            record.raw_data["admission_requirements"] = requirements
            if record.prerequisites is None:
                record.prerequisites = "; ".join(requirements)
        return record


class UJScraper(SouthAfricanUniversityScraper):
    SOURCE_TYPE = SourceType.UJ
    SOURCE_NAME = "University of Johannesburg"
    UNIVERSITY_NAME = "University of Johannesburg"
    BASE_URL = "https://www.uj.ac.za"
    DEFAULT_URL = "https://www.uj.ac.za/faculties/"
    LISTING_SELECTOR = ".programme-item, .qualification-item"
    LINK_SELECTOR = 'a[href*="/programme"], a[href*="/qualification"]'
    LINK_PATTERNS = ("/programme", "/qualification")
    DEFAULT_SELECTORS = {
        **SouthAfricanUniversityScraper.DEFAULT_SELECTORS,
        "title": "h1.page-title, h1",
        "course_code": ".saqa-id, .programme-code",
        "description": ".programme-overview, .description",
        "nqf_level": ".nqf-level, .saqa-level",
        "duration": ".duration, .minimum-duration",
        "requirements": ".minimum-requirements, .entry-requirements",
        "aps": ".aps-requirements, .aps-score",
        "study_mode": ".mode-of-delivery, .study-mode",
        "syllabus": ".module-list li, .subject-list li",
        "careers": ".career-opportunities li",
        "language": ".language-of-instruction",
    }

    def infer_level(self, *, title: str, qualification: str) -> str | None:
        nqf_level = extract_nqf_level(self.text("nqf_level"))
        if nqf_level is not None:
            return nqf_level_to_qualification(nqf_level)
        return super().infer_level(title=title, qualification=qualification)

    def enrich(self, record: RawCourseRecord) -> RawCourseRecord:
        careers = self.texts("careers")
        if careers:
            record.raw_data["career_opportunities"] = careers
        language = self.text("language")
        if language:
            record.language = language
        return record


class UCTScraper(SouthAfricanUniversityScraper):
    SOURCE_TYPE = SourceType.UCT
    SOURCE_NAME = "University of Cape Town"
    UNIVERSITY_NAME = "University of Cape Town"
    BASE_URL = "https://www.uct.ac.za"
    DEFAULT_URL = "https://www.uct.ac.za/study/programmes"
    LISTING_SELECTOR = ".programme-item, .course-listing"
    LINK_SELECTOR = 'a[href*="/programme"], a[href*="/course"]'
    LINK_PATTERNS = ("/programme", "/course")
    DEFAULT_SELECTORS = {
        **SouthAfricanUniversityScraper.DEFAULT_SELECTORS,
        "title": "h1.programme-name, h1",
        "course_code": ".programme-code, .saqa-id",
        "description": ".programme-description, .overview",
        "faculty": ".faculty, .department",
        "qualification": ".degree-type, .qualification",
        "duration": ".duration, .programme-duration",
        "aps": ".aps-score, .nbt-score",
        "study_mode": ".study-mode, .attendance",
        "fees": ".fees, .tuition-fees, .programme-fees",
        "syllabus": ".curriculum-item, .course-module",
        "credits": ".credits, .credit-hours",
        "closing_date": ".application-deadline, .closing-date",
        "research_focus": ".research-focus, .specialisation",
    }

    def enrich(self, record: RawCourseRecord) -> RawCourseRecord:
        research_focus = self.text("research_focus")
        if research_focus:
            record.raw_data["research_focus"] = research_focus
        return record
