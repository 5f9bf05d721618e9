"""
tests/test_field_parsers.py

Unit tests for the text parsers shared by the site scrapers.
"""

from __future__ import annotations

import pytest

from app.scraping.parsing.field_parsers import (
    extract_nqf_level,
    infer_qualification_level,
    infer_study_mode,
    nqf_level_to_qualification,
    parse_duration,
    parse_first_int,
    parse_price,
    parse_zar_fee,
)


class TestParseDuration:
    @pytest.mark.parametrize(
        ("text", "value", "unit"),
        [
            ("6 weeks", 6.0, "week"),
            ("3-4 months", 3.0, "month"),
            ("2 years full-time", 2.0, "year"),
            ("Approx. 12 hrs to complete", 12.0, "hour"),
            ("1 semester", 1.0, "semester"),
            ("10 days", 10.0, "day"),
        ],
    )
    def test_units(self, text: str, value: float, unit: str) -> None:
        duration = parse_duration(text)
        assert duration is not None
        assert duration.value == value
        assert duration.unit == unit

    def test_keeps_display_text(self) -> None:
        duration = parse_duration("  6   weeks ")
        assert duration is not None
        assert duration.display == "6 weeks"

    @pytest.mark.parametrize("text", [None, "", "   ", "self-paced"])
    def test_unparseable_returns_none(self, text: str | None) -> None:
        assert parse_duration(text) is None


class TestParsePrice:
    def test_free(self) -> None:
        pricing = parse_price("Free")
        assert pricing.type == "free"
        assert pricing.amount == 0.0

    def test_paid_dollars(self) -> None:
        pricing = parse_price("$1,250.00")
        assert pricing.type == "paid"
        assert pricing.amount == 1250.0
        assert pricing.currency == "USD"

    def test_pounds(self) -> None:
        pricing = parse_price("£49")
        assert pricing.currency == "GBP"
        assert pricing.amount == 49.0

    def test_monthly_subscription(self) -> None:
        pricing = parse_price("$49/month")
        assert pricing.type == "subscription"
        assert pricing.billing_period == "monthly"

    def test_free_audit_with_paid_certificate_is_freemium(self) -> None:
        pricing = parse_price("Free to audit, $99 for certificate")
        assert pricing.type == "freemium"
        assert pricing.amount == 99.0

    def test_bare_number_is_not_a_price(self) -> None:
        pricing = parse_price("4 weeks")
        assert pricing.type == "unknown"
        assert pricing.amount is None

    def test_empty_uses_default_currency(self) -> None:
        pricing = parse_price("", default_currency="GBP")
        assert pricing.currency == "GBP"
        assert pricing.type == "unknown"


class TestParseZarFee:
    def test_space_grouped_amount(self) -> None:
        pricing = parse_zar_fee("Tuition: R 45 000 per annum")
        assert pricing.amount == 45000.0
        assert pricing.currency == "ZAR"
        assert pricing.billing_period == "annual"

    def test_comma_grouped_amount(self) -> None:
        pricing = parse_zar_fee("ZAR 62,500.00")
        assert pricing.amount == 62500.0

    def test_missing_amount(self) -> None:
        pricing = parse_zar_fee("Contact the faculty")
        assert pricing.amount is None
        assert pricing.currency == "ZAR"


class TestQualificationHelpers:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Bachelor of Science", "Undergraduate"),
            ("Master of Commerce", "Graduate"),
            ("PhD in Physics", "Doctorate"),
            ("Higher Certificate", "Certificate"),
            ("Short course", None),
        ],
    )
    def test_infer_qualification_level(self, text: str, expected: str | None) -> None:
        assert infer_qualification_level(text) == expected

    def test_extract_nqf_level(self) -> None:
        assert extract_nqf_level("NQF Level 7") == 7
        assert extract_nqf_level("8") == 8
        assert extract_nqf_level("") is None

    def test_nqf_level_to_qualification(self) -> None:
        assert nqf_level_to_qualification(10) == "Doctorate"
        assert nqf_level_to_qualification(8) == "Graduate"
        assert nqf_level_to_qualification(7) == "Undergraduate"
        assert nqf_level_to_qualification(4) == "Certificate"

    def test_infer_study_mode(self) -> None:
        assert infer_study_mode("Blended learning") == "hybrid"
        assert infer_study_mode("Distance / online") == "online"
        assert infer_study_mode("Full-time contact") == "in-person"
        assert infer_study_mode(None) == "in-person"

    def test_parse_first_int(self) -> None:
        assert parse_first_int("Minimum APS: 34") == 34
        assert parse_first_int("360 credits") == 360
        assert parse_first_int("n/a") is None
