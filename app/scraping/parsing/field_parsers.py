"""
Text parsers for course detail fields shared by the site scrapers.
"""

from __future__ import annotations

import re

from app.domain.course_catalog import RawDuration, RawPricing

DURATION_REGEX = re.compile(
    r"(\d+(?:\.\d+)?)\s*(?:(?:-|to|–)\s*\d+(?:\.\d+)?\s*)?"
    r"(week|wk|month|year|yr|semester|day|hour|hr)s?\b",
    flags=re.IGNORECASE,
)
_UNIT_ALIASES = {"wk": "week", "yr": "year", "hr": "hour"}

_SYMBOL_PRICE_REGEX = re.compile(
    r"(?P<symbol>US\$|USD|GBP|EUR|CAD|AUD|\$|£|€)\s?"
    r"(?P<amount>\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d+(?:\.\d{1,2})?)",
    flags=re.IGNORECASE,
)
_CODE_SUFFIX_PRICE_REGEX = re.compile(
    r"(?P<amount>\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d+(?:\.\d{1,2})?)\s?"
    r"(?P<symbol>USD|GBP|EUR|CAD|AUD)\b",
    flags=re.IGNORECASE,
)
_CURRENCY_SYMBOLS = {
    "US$": "USD",
    "$": "USD",
    "USD": "USD",
    "£": "GBP",
    "GBP": "GBP",
    "€": "EUR",
    "EUR": "EUR",
    "CAD": "CAD",
    "AUD": "AUD",
}
_MONTHLY_REGEX = re.compile(r"/\s*mo\b|/\s*month|per month|monthly", flags=re.IGNORECASE)
_ANNUAL_REGEX = re.compile(
    r"/\s*yr\b|/\s*year|per year|per annum|p\.a\.|annually",
    flags=re.IGNORECASE,
)

ZAR_FEE_REGEX = re.compile(r"(?:\bZAR|\bR)\s*(\d{1,3}(?:[,\s]\d{3})+(?:\.\d{2})?|\d+(?:\.\d{2})?)")
NQF_LEVEL_REGEX = re.compile(r"NQF\s*(?:level)?\s*:?\s*(\d{1,2})", flags=re.IGNORECASE)
_NUMBER_REGEX = re.compile(r"\d+(?:\.\d+)?")


def parse_duration(text: str | None) -> RawDuration | None:
    """
    Parse strings like "6 weeks", "3-4 months" or "2 years" into a raw duration.

    Ranges keep their lower bound.
    """

    if not text or not text.strip():
        return None
    match = DURATION_REGEX.search(text)
    if match is None:
        return None
    unit = match.group(2).lower()
    return RawDuration(
        value=float(match.group(1)),
        unit=_UNIT_ALIASES.get(unit, unit),
        display=" ".join(text.split()),
    )


def parse_price(text: str | None, *, default_currency: str = "USD") -> RawPricing:
    """
    Parse a price label into raw pricing.

    Amounts need an explicit currency symbol or code; bare numbers are
    ignored so that "Free, 4 weeks" is not read as a price of 4.
    """

    if not text or not text.strip():
        return RawPricing(currency=default_currency)

    note = " ".join(text.split())
    lowered = note.lower()
    match = _SYMBOL_PRICE_REGEX.search(note) or _CODE_SUFFIX_PRICE_REGEX.search(note)
    if match is None:
        if "free" in lowered:
            return RawPricing(type="free", amount=0.0, currency=default_currency, note=note)
        return RawPricing(currency=default_currency, note=note)

    amount = float(match.group("amount").replace(",", ""))
    currency = _CURRENCY_SYMBOLS.get(match.group("symbol").upper(), default_currency)
    billing_period = _billing_period(lowered)
    if "audit" in lowered or "free" in lowered:
        price_type = "freemium"
    elif billing_period is not None:
        price_type = "subscription"
    else:
        price_type = "paid"
    return RawPricing(
        type=price_type,
        amount=amount,
        currency=currency,
        billing_period=billing_period,
        note=note,
    )


def parse_zar_fee(text: str | None) -> RawPricing:
    """
    Parse South African fee strings such as "R 45 000 per annum".
    """

    if not text or not text.strip():
        return RawPricing(currency="ZAR")

    note = " ".join(text.split())
    match = ZAR_FEE_REGEX.search(note)
    if match is None:
        if "free" in note.lower():
            return RawPricing(type="free", amount=0.0, currency="ZAR", note=note)
        return RawPricing(currency="ZAR", note=note)

    digits = re.sub(r"[,\s]", "", match.group(1))
    return RawPricing(
        type="paid",
        amount=float(digits),
        currency="ZAR",
        billing_period=_billing_period(note.lower()) or "annual",
        note=note,
    )


def infer_qualification_level(text: str | None) -> str | None:
    if not text:
        return None
    lowered = text.lower()
    if "phd" in lowered or "doctor" in lowered:
        return "Doctorate"
    if any(token in lowered for token in ("master", "honours", "honors", "postgraduate")):
        return "Graduate"
    if "bachelor" in lowered or "undergraduate" in lowered or "degree" in lowered:
        return "Undergraduate"
    if "diploma" in lowered or "certificate" in lowered:
        return "Certificate"
    return None


def extract_nqf_level(text: str | None) -> int | None:
    if not text:
        return None
    match = NQF_LEVEL_REGEX.search(text)
    if match is None:
        number = _NUMBER_REGEX.search(text)
        return int(float(number.group(0))) if number else None
    return int(match.group(1))


def nqf_level_to_qualification(level: int) -> str:
    if level >= 9:
        return "Doctorate"
    if level >= 8:
        return "Graduate"
    if level >= 5:
        return "Undergraduate"
    return "Certificate"


def infer_study_mode(text: str | None, *, default: str = "in-person") -> str:
    if not text:
        return default
    lowered = text.lower()
    if "blended" in lowered or "hybrid" in lowered:
        return "hybrid"
    if "online" in lowered or "distance" in lowered or "remote" in lowered:
        return "online"
    if any(token in lowered for token in ("full-time", "part-time", "contact", "campus")):
        return "in-person"
    return default


def parse_first_number(text: str | None) -> float | None:
    if not text:
        return None
    match = _NUMBER_REGEX.search(text.replace(",", ""))
    return float(match.group(0)) if match else None


def parse_first_int(text: str | None) -> int | None:
    value = parse_first_number(text)
    return int(value) if value is not None else None


def _billing_period(lowered: str) -> str | None:
    if _MONTHLY_REGEX.search(lowered):
        return "monthly"
    if _ANNUAL_REGEX.search(lowered):
        return "annual"
    return None
