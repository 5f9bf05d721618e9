"""
Scrapers for US university course catalogs.
"""

from __future__ import annotations

from typing import Any, ClassVar

from app.domain.course_catalog import RawCourseRecord, RawPricing
from app.scraping.base import SiteScraper
from app.scraping.parsing.field_parsers import parse_duration, parse_price
from app.scraping.types import SourceType


class UniversityCatalogScraper(SiteScraper):
    """
    Shared field mapping for English-language university catalogs priced in USD.
    """

    UNIVERSITY_NAME: ClassVar[str]
    LINK_LIMIT = 10
    DEFAULT_SELECTORS: ClassVar[dict[str, str]] = {
        "title": "h1",
        "course_code": ".course-code, .course-number",
        "description": ".course-description, .description",
        "instructors": ".instructor-name, .faculty-name",
        "syllabus": ".syllabus-item",
        "duration": ".duration, .course-length",
        "price": ".price, .course-price",
        "level": ".level, .difficulty",
        "department": ".department",
        "prerequisites": ".prerequisites",
        "start_date": ".start-date",
        "end_date": ".end-date",
        "format": ".format, .course-format",
    }

    def parse_details(self, url: str) -> RawCourseRecord | None:
        record = self.new_record(
            url,
            title=self.text("title"),
            university=self.UNIVERSITY_NAME,
            course_code=self.text("course_code") or None,
            description=self.text("description"),
            instructors=self.texts("instructors"),
            syllabus=self.texts("syllabus"),
            duration=parse_duration(self.text("duration")),
            pricing=self.parse_pricing(),
            level=self.text("level") or None,
            department=self.text("department") or None,
            prerequisites=self.text("prerequisites") or None,
            start_date=self.text("start_date") or None,
            end_date=self.text("end_date") or None,
            delivery_mode="online",
            format=self.parse_format(),
            certification=self.parse_certification(),
            language="English",
        )
        return self.enrich(record)

    def parse_pricing(self) -> RawPricing:
        return parse_price(self.text("price"))

    def parse_format(self) -> str | None:
        lowered = self.text("format").lower()
        if "self-paced" in lowered or "self paced" in lowered:
            return "self-paced"
        if "instructor-led" in lowered or "live" in lowered:
            return "instructor-led"
        return None

    def parse_certification(self) -> dict[str, Any]:
        return {"available": False, "type": "none"}

    def enrich(self, record: RawCourseRecord) -> RawCourseRecord:
        return record


class MITScraper(UniversityCatalogScraper):
    SOURCE_TYPE = SourceType.MIT
    SOURCE_NAME = "MIT OpenCourseWare"
    UNIVERSITY_NAME = "Massachusetts Institute of Technology"
    BASE_URL = "https://ocw.mit.edu"
    DEFAULT_URL = "https://ocw.mit.edu/search/"
    RATE_LIMIT_MS = 2000
    LINK_SELECTOR = ".course-item a.course-link"
    FALLBACK_LINK_SELECTOR = 'a[href*="/courses/"]'
    LINK_PATTERNS = ("/courses/",)
    DEFAULT_SELECTORS = {
        **UniversityCatalogScraper.DEFAULT_SELECTORS,
        "title": "h1.course-title, h1",
        "course_code": ".course-number, .course-code",
        "description": ".course-description, .description, p",
        "syllabus": ".topic-list li, .syllabus-item",
        "level": ".course-level, .level",
        "department": ".department, .subject-area",
        "materials": ".download-link, .resource-link",
        "video_lectures": '.video-lectures, [data-type="video"]',
    }

    def parse_pricing(self) -> RawPricing:
        return RawPricing(type="free", amount=0.0, currency="USD", note="OpenCourseWare")

    def parse_format(self) -> str | None:
        return "self-paced"

    def enrich(self, record: RawCourseRecord) -> RawCourseRecord:
        record.accessibility = {"video_lectures": self.exists("video_lectures")}
        materials = self.texts("materials")
        if materials:
            record.raw_data["materials"] = materials
        return record


class StanfordScraper(UniversityCatalogScraper):
    SOURCE_TYPE = SourceType.STANFORD
    SOURCE_NAME = "Stanford Online"
    UNIVERSITY_NAME = "Stanford University"
    BASE_URL = "https://online.stanford.edu"
    DEFAULT_URL = "https://online.stanford.edu/courses"
    RATE_LIMIT_MS = 2000
    LISTING_SELECTOR = ".course-card, .views-row"
    LINK_SELECTOR = ".course-card a, .views-row a.course-link"
    LINK_PATTERNS = ("/courses/",)
    DEFAULT_SELECTORS = {
        **UniversityCatalogScraper.DEFAULT_SELECTORS,
        "title": "h1.page-title, h1.course-title, h1",
        "description": ".course-description, .field--name-body, .description",
        "instructors": ".instructor, .faculty-name",
        "certificate": ".certificate, [data-certificate]",
    }

    def parse_certification(self) -> dict[str, Any]:
        available = self.exists("certificate")
        return {"available": available, "type": "certificate" if available else "none"}


class HarvardScraper(UniversityCatalogScraper):
    SOURCE_TYPE = SourceType.HARVARD
    SOURCE_NAME = "Harvard Online Learning"
    UNIVERSITY_NAME = "Harvard University"
    BASE_URL = "https://pll.harvard.edu"
    DEFAULT_URL = "https://pll.harvard.edu/catalog"
    RATE_LIMIT_MS = 2000
    LISTING_SELECTOR = ".course-block, .group-details"
    LINK_SELECTOR = '.course-block a, a[href*="/course/"]'
    LINK_PATTERNS = ("/course/",)
    DEFAULT_SELECTORS = {
        **UniversityCatalogScraper.DEFAULT_SELECTORS,
        "title": "h1.page-title, h1",
        "course_code": ".course-code",
        "description": ".course-description, .field--name-body",
        "instructors": ".instructor-name, .faculty",
        "syllabus": ".what-you-will-learn li, .syllabus-item",
        "price": ".price, .tuition",
        "dates": ".date-info, .session-dates",
        "effort": ".effort, .time-commitment",
        "certificate": ".certificate-info",
    }

    def parse_certification(self) -> dict[str, Any]:
        certificate_text = self.text("certificate")
        return {
            "available": bool(certificate_text),
            "type": "verified" if "verified" in certificate_text.lower() else "certificate",
        }

    def enrich(self, record: RawCourseRecord) -> RawCourseRecord:
        dates = self.text("dates")
        if dates and record.start_date is None:
            start, _, end = dates.partition(" - ")
            record.start_date = start.strip() or None
            record.end_date = end.strip() or record.end_date
        effort = self.text("effort")
        if effort:
            record.raw_data["effort"] = effort
        if record.format is None:
            record.format = "instructor-led"
        return record
