"""
Validation and normalization of raw scraped course records.
"""

from __future__ import annotations

import hashlib
import logging
import math
import re
from datetime import datetime, timezone

from bs4 import BeautifulSoup
from dateutil import parser as date_parser

from app.domain.course_catalog import (
    NormalizedCourse,
    NormalizedDuration,
    NormalizedPricing,
    RawCourseRecord,
    RawDuration,
    RawPricing,
    ValidationResult,
)
from app.ingestion.currency import RateProvider, StaticRateProvider
from app.scraping.logging_utils import log_event

logger = logging.getLogger(__name__)

MIN_DESCRIPTION_LENGTH = 20

_WHITESPACE = re.compile(r"\s+")
_NON_ASCII = re.compile(r"[^\x00-\x7F]")
_WORD = re.compile(r"[a-z]+")

_LANGUAGES: dict[str, str] = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "zh": "Chinese",
    "ja": "Japanese",
    "pt": "Portuguese",
}

# Checked in order; "undergraduate" must precede "graduate".
_LEVEL_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("beginner", "intro"), "Beginner"),
    (("intermediate",), "Intermediate"),
    (("advanced",), "Advanced"),
    (("undergraduate",), "Undergraduate"),
    (("graduate",), "Graduate"),
)

_WEEKS_PER_UNIT: dict[str, float] = {
    "week": 1,
    "month": 4,
    "year": 52,
    "semester": 16,
}
_DAYS_PER_WEEK = 7
_HOURS_PER_WEEK = 10


class CourseNormalizer:
    """
    Convert raw scraper output into canonical course fields.

    Stateless apart from the injected rate provider; safe to share across threads.
    """

    def __init__(self, *, rate_provider: RateProvider | None = None) -> None:
        self._rate_provider = rate_provider or StaticRateProvider()

    @property
    def reference_currency(self) -> str:
        return self._rate_provider.reference_currency

    def validate(self, raw: RawCourseRecord) -> ValidationResult:
        errors: list[str] = []
        if not (raw.title or "").strip():
            errors.append("title is required")
        if not (raw.university or "").strip():
            errors.append("university is required")
        if not (raw.source_url or "").strip():
            errors.append("source_url is required")
        description = (raw.description or "").strip()
        if len(description) < MIN_DESCRIPTION_LENGTH:
            errors.append(
                f"description must be at least {MIN_DESCRIPTION_LENGTH} characters"
            )
        return ValidationResult(is_valid=not errors, errors=errors)

    def validate_normalized(self, course: NormalizedCourse) -> ValidationResult:
        """
        Re-apply the required-field rules to cleaned values.

        Cleaning drops non-ASCII text and markup, so a raw record that passed
        `validate` can still end up with an empty title or description.
        """

        errors: list[str] = []
        if not course.title:
            errors.append("title is empty after cleaning")
        if not course.university_name:
            errors.append("university is empty after cleaning")
        if len(course.description) < MIN_DESCRIPTION_LENGTH:
            errors.append(
                f"description must be at least {MIN_DESCRIPTION_LENGTH} characters after cleaning"
            )
        return ValidationResult(is_valid=not errors, errors=errors)

    def normalize(self, raw: RawCourseRecord) -> NormalizedCourse:
        university = self.clean_text(raw.university)
        scraped_at = raw.scraped_at
        if scraped_at.tzinfo is None:
            scraped_at = scraped_at.replace(tzinfo=timezone.utc)

        return NormalizedCourse(
            source_url=raw.source_url.strip(),
            title=self.clean_text(raw.title),
            course_code=self.clean_text(raw.course_code or "")
            or self.generate_course_code(university=university, source_url=raw.source_url),
            description=self.clean_html(raw.description),
            university_name=university,
            source=raw.source,
            pricing=self.normalize_pricing(raw.pricing),
            duration=self.normalize_duration(raw.duration) if raw.duration else None,
            level=self.normalize_level(raw.level),
            language=self.normalize_language(raw.language),
            delivery_mode=self.normalize_delivery_mode(raw.delivery_mode),
            format=self.clean_text(raw.format or "") or None,
            instructor_names=self.split_instructor_names(raw.instructors),
            category_name=self._category_name(raw),
            syllabus=self._clean_list(raw.syllabus),
            prerequisites=self.clean_text(raw.prerequisites or "") or None,
            tags=self._clean_list(raw.skills, unique=True),
            average_rating=self.normalize_rating(raw.rating),
            credits=raw.credits,
            start_date=self.parse_date(raw.start_date),
            end_date=self.parse_date(raw.end_date),
            certification=dict(raw.certification),
            accessibility=dict(raw.accessibility),
            raw_data=dict(raw.raw_data),
            last_scraped_at=scraped_at,
        )

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    @staticmethod
    def clean_text(text: str | None) -> str:
        """
        Collapse whitespace and drop non-ASCII characters.
        """

        if not text:
            return ""
        collapsed = _WHITESPACE.sub(" ", text)
        return _NON_ASCII.sub("", collapsed).strip()

    @classmethod
    def clean_html(cls, html: str | None) -> str:
        if not html:
            return ""
        text = BeautifulSoup(html, "html.parser").get_text(" ")
        return cls.clean_text(text)

    # ------------------------------------------------------------------
    # Vocabularies
    # ------------------------------------------------------------------

    @classmethod
    def normalize_level(cls, level: str | None) -> str:
        cleaned = cls.clean_text(level)
        if not cleaned:
            return "Beginner"
        lowered = cleaned.lower()
        for keywords, canonical in _LEVEL_KEYWORDS:
            if any(keyword in lowered for keyword in keywords):
                return canonical
        return cleaned

    @classmethod
    def normalize_language(cls, language: str | None) -> str:
        cleaned = cls.clean_text(language)
        if not cleaned:
            return "English"
        lowered = cleaned.lower()
        words = set(_WORD.findall(lowered))
        for code, name in _LANGUAGES.items():
            if code in words or name.lower() in lowered:
                return name
        return cleaned

    @staticmethod
    def normalize_delivery_mode(mode: str | None) -> str:
        if not mode:
            return "online"
        lowered = mode.lower()
        if "hybrid" in lowered or "blended" in lowered:
            return "hybrid"
        if "online" in lowered or "remote" in lowered:
            return "online"
        if "person" in lowered or "campus" in lowered:
            return "in-person"
        return "online"

    # ------------------------------------------------------------------
    # Duration and pricing
    # ------------------------------------------------------------------

    @staticmethod
    def normalize_duration(duration: RawDuration) -> NormalizedDuration:
        """
        Convert a raw duration to whole weeks, keeping the display string.

        Days convert at 7 per week and hours at 10 per week, both rounded up.
        """

        unit = duration.unit.strip().lower().rstrip("s")
        value = duration.value
        if unit == "day":
            weeks = math.ceil(value / _DAYS_PER_WEEK)
        elif unit == "hour":
            weeks = math.ceil(value / _HOURS_PER_WEEK)
        else:
            weeks = math.ceil(value * _WEEKS_PER_UNIT.get(unit, 1))

        display = (duration.display or "").strip()
        if not display:
            shown = int(value) if float(value).is_integer() else value
            display = f"{shown} {unit}{'' if shown == 1 else 's'}"
        return NormalizedDuration(weeks=int(weeks), display=display)

    def normalize_pricing(self, pricing: RawPricing | None) -> NormalizedPricing:
        reference = self.reference_currency
        if pricing is None:
            return NormalizedPricing(type="unknown", amount=None, currency=reference)

        currency = (pricing.currency or reference).strip().upper()
        common = {
            "type": pricing.type or "unknown",
            "billing_period": pricing.billing_period,
            "description": self.clean_text(pricing.note or "") or None,
        }
        if pricing.amount is None:
            return NormalizedPricing(amount=None, currency=reference, **common)
        if currency == reference:
            return NormalizedPricing(amount=round(float(pricing.amount), 2), currency=reference, **common)

        rate = self._rate_provider.rate_for(currency)
        if rate is None:
            log_event(
                logger,
                logging.WARNING,
                "currency_rate_missing",
                currency=currency,
                reference_currency=reference,
            )
            common["description"] = "unconverted"
            return NormalizedPricing(
                amount=None,
                currency=reference,
                original_amount=float(pricing.amount),
                original_currency=currency,
                **common,
            )
        return NormalizedPricing(
            amount=round(float(pricing.amount) * rate, 2),
            currency=reference,
            original_amount=float(pricing.amount),
            original_currency=currency,
            **common,
        )

    # ------------------------------------------------------------------
    # Misc fields
    # ------------------------------------------------------------------

    @classmethod
    def split_instructor_names(cls, names: list[str]) -> list[tuple[str, str]]:
        """
        Split "First Rest Of Name" on the first space into (first, last).
        """

        result: list[tuple[str, str]] = []
        seen: set[tuple[str, str]] = set()
        for name in names:
            cleaned = cls.clean_text(name)
            if not cleaned:
                continue
            first, _, last = cleaned.partition(" ")
            pair = (first, last.strip())
            if pair in seen:
                continue
            seen.add(pair)
            result.append(pair)
        return result

    @staticmethod
    def normalize_rating(rating: float | None) -> float | None:
        if rating is None:
            return None
        return round(min(5.0, max(0.0, float(rating))), 2)

    @staticmethod
    def parse_date(value: str | None) -> datetime | None:
        if not value or not value.strip():
            return None
        try:
            parsed = date_parser.parse(value.strip())
        except (ValueError, OverflowError):
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    @staticmethod
    def generate_course_code(*, university: str, source_url: str) -> str:
        """
        Derive a stable code from the university prefix and the source URL.
        """

        letters = re.sub(r"[^A-Za-z]", "", university)
        prefix = letters[:3].upper() or "CRS"
        digest = hashlib.sha1(source_url.encode("utf-8")).hexdigest()[:4].upper()
        return f"{prefix}-{digest}"

    def _category_name(self, raw: RawCourseRecord) -> str | None:
        candidate = raw.department or raw.raw_data.get("category")
        if not isinstance(candidate, str):
            return None
        return self.clean_text(candidate) or None

    def _clean_list(self, items: list[str], *, unique: bool = False) -> list[str]:
        cleaned: list[str] = []
        for item in items:
            value = self.clean_text(item)
            if not value or (unique and value in cleaned):
                continue
            cleaned.append(value)
        return cleaned
