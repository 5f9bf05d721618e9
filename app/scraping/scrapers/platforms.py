"""
Scrapers for online learning platforms driven by a search query.
"""

from __future__ import annotations

from typing import ClassVar
from urllib.parse import quote

from app.domain.course_catalog import RawCourseRecord, RawPricing
from app.scraping.base import SiteScraper
from app.scraping.parsing.field_parsers import parse_duration, parse_first_number, parse_price
from app.scraping.types import SourceType


class PlatformScraper(SiteScraper):
    """
    Search-driven scraper where the provider institution is read from the page.
    """

    SEARCH_PATH: ClassVar[str]
    DEFAULT_QUERY: ClassVar[str] = "computer science"
    PRICE_CURRENCY: ClassVar[str] = "USD"
    LINK_LIMIT = 10
    DEFAULT_SELECTORS: ClassVar[dict[str, str]] = {
        "title": "h1",
        "provider": ".partner-name",
        "description": ".description",
        "duration": ".duration",
        "effort": ".effort",
        "level": ".level, .difficulty",
        "price": ".price",
        "instructors": ".instructor-name",
        "syllabus": ".syllabus li",
        "skills": ".skill-tag",
        "rating": ".ratings",
        "language": ".language-info",
        "start_date": ".start-date",
        "category": ".category",
        "captions": "track[kind='captions'], .closed-captions",
        "transcripts": ".transcript, [data-transcript]",
    }

    @classmethod
    def entrypoint(
        cls,
        *,
        url: str | None = None,
        search_query: str | None = None,
        default_url: str | None = None,
    ) -> str:
        if url:
            return url
        query = (search_query or "").strip() or cls.DEFAULT_QUERY
        return f"{cls.BASE_URL}{cls.SEARCH_PATH}{quote(query)}"

    def parse_details(self, url: str) -> RawCourseRecord | None:
        provider = self.text("provider") or self.SOURCE_NAME
        rating = parse_first_number(self.text("rating"))
        effort = self.text("effort")
        record = self.new_record(
            url,
            title=self.text("title"),
            university=provider,
            description=self.text("description"),
            duration=parse_duration(self.text("duration")),
            level=self.text("level") or None,
            pricing=self.parse_pricing(),
            instructors=self.texts("instructors"),
            syllabus=self.texts("syllabus"),
            skills=self.texts("skills"),
            rating=min(rating, 5.0) if rating is not None else None,
            language=self.text("language") or None,
            start_date=self.text("start_date") or None,
            department=self.text("category") or None,
            delivery_mode="online",
            format="self-paced",
            certification={"available": True, "type": "certificate"},
            accessibility={
                "closed_captions": self.exists("captions"),
                "transcripts": self.exists("transcripts"),
            },
            raw_data={"platform": self.SOURCE_NAME, "effort": effort or None},
        )
        return self.enrich(record)

    def parse_pricing(self) -> RawPricing:
        return parse_price(self.text("price"), default_currency=self.PRICE_CURRENCY)

    def enrich(self, record: RawCourseRecord) -> RawCourseRecord:
        return record


class CourseraScraper(PlatformScraper):
    SOURCE_TYPE = SourceType.COURSERA
    SOURCE_NAME = "Coursera"
    BASE_URL = "https://www.coursera.org"
    DEFAULT_URL = "https://www.coursera.org/search?query=computer%20science"
    SEARCH_PATH = "/search?query="
    DEFAULT_QUERY = "computer science"
    RATE_LIMIT_MS = 3000
    LISTING_SELECTOR = '[data-e2e="SearchResults"]'
    LINK_SELECTOR = 'a[href*="/learn/"]'
    LINK_PATTERNS = ("/learn/",)
    DEFAULT_SELECTORS = {
        **PlatformScraper.DEFAULT_SELECTORS,
        "provider": '[data-e2e="partner-name"], .partner-name',
        "description": '[data-e2e="course-description"], .description',
        "rating": '[data-e2e="ratings"], .ratings',
        "enrollment": ".enrollment-count",
        "level": '[data-e2e="level"], .difficulty',
        "duration": '[data-e2e="duration"], .duration',
        "skills": '[data-e2e="skill"], .skill-tag',
        "syllabus": ".module-name, .week-name",
        "audit": '[data-e2e="audit-option"]',
        "price": '.price, [data-e2e="price"]',
        "language": '[data-e2e="languages"], .language-info',
    }

    def parse_pricing(self) -> RawPricing:
        audit_text = self.text("audit")
        if audit_text:
            return RawPricing(type="freemium", amount=0.0, currency="USD", note=audit_text)
        pricing = super().parse_pricing()
        if pricing.type == "unknown":
            return RawPricing(type="subscription", currency="USD", billing_period="monthly")
        return pricing

    def enrich(self, record: RawCourseRecord) -> RawCourseRecord:
        enrollment = self.text("enrollment")
        if enrollment:
            record.raw_data["enrollment"] = enrollment
        return record


class EdXScraper(PlatformScraper):
    SOURCE_TYPE = SourceType.EDX
    SOURCE_NAME = "edX"
    BASE_URL = "https://www.edx.org"
    DEFAULT_URL = "https://www.edx.org/search?q=data%20science"
    SEARCH_PATH = "/search?q="
    DEFAULT_QUERY = "data science"
    RATE_LIMIT_MS = 2500
    LISTING_SELECTOR = ".discovery-card"
    LINK_SELECTOR = 'a[href*="/course/"], a[href*="/learn/"]'
    LINK_PATTERNS = ("/course/", "/learn/")
    DEFAULT_SELECTORS = {
        **PlatformScraper.DEFAULT_SELECTORS,
        "title": "h1.course-title, h1",
        "provider": ".course-org, .partner-name",
        "description": ".course-description, .about-section",
        "duration": ".course-length, .duration",
        "effort": ".course-effort, .effort",
        "level": ".course-level, .level",
        "price": ".price, .course-price",
        "audit": '.audit-track, [data-track="audit"]',
        "instructors": ".instructor-name, .staff-name",
        "syllabus": ".course-syllabus li, .what-you-learn li",
        "start_date": ".course-start-date, .start-date",
        "language": ".course-language, .languages",
        "prerequisites": ".prerequisites",
    }

    def parse_pricing(self) -> RawPricing:
        pricing = super().parse_pricing()
        if self.exists("audit"):
            pricing.type = "freemium"
            pricing.note = "Free to audit; verified certificate upgrade available"
        return pricing

    def enrich(self, record: RawCourseRecord) -> RawCourseRecord:
        prerequisites = self.text("prerequisites")
        if prerequisites:
            record.prerequisites = prerequisites
        record.certification = {"available": True, "type": "verified"}
        return record


class FutureLearnScraper(PlatformScraper):
    SOURCE_TYPE = SourceType.FUTURELEARN
    SOURCE_NAME = "FutureLearn"
    BASE_URL = "https://www.futurelearn.com"
    DEFAULT_URL = "https://www.futurelearn.com/courses?q=business"
    SEARCH_PATH = "/courses?q="
    DEFAULT_QUERY = "business"
    PRICE_CURRENCY = "GBP"
    RATE_LIMIT_MS = 2000
    LISTING_SELECTOR = ".course-card"
    LINK_SELECTOR = 'a[href*="/courses/"]'
    LINK_PATTERNS = ("/courses/",)
    DEFAULT_SELECTORS = {
        **PlatformScraper.DEFAULT_SELECTORS,
        "title": "h1.course-header__title, h1",
        "provider": ".partner-name, .course-partner",
        "description": ".course-description, .about-course",
        "duration": ".duration, .course-duration",
        "effort": ".weekly-study, .effort",
        "price": ".upgrade-info, .pricing",
        "syllabus": ".what-you-learn li, .learning-outcomes li",
        "instructors": ".educator-name, .instructor",
        "start_date": ".next-run, .start-date",
        "category": ".category, .subject",
    }

    def parse_pricing(self) -> RawPricing:
        pricing = super().parse_pricing()
        if pricing.type in {"unknown", "free"}:
            pricing.type = "freemium"
            pricing.amount = pricing.amount if pricing.amount is not None else 0.0
        return pricing
