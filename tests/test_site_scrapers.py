"""
tests/test_site_scrapers.py

Scraper run lifecycle and per-site field mapping against a fake browser
session. Pages are keyed by URL and their content by the scraper's own
selector strings.

Coverage
--------
- Link discovery: pattern filter, dedupe, fallback selector, link cap
- Failure isolation: per-page failures, entry-point failure, cleanup
- robots.txt skips
- Field mapping for each scraper family
"""

from __future__ import annotations

from typing import Any

import pytest

from app.scraping.base import SiteScraper
from app.scraping.errors import EntryPointError
from app.scraping.navigation import CompliantNavigator
from app.scraping.rate_limiter import RequestPacer
from app.scraping.scrapers import (
    CourseraScraper,
    EdXScraper,
    FutureLearnScraper,
    HarvardScraper,
    MITScraper,
    StanfordScraper,
    UJScraper,
    UPScraper,
    WitsScraper,
)
from tests.fakes import FakeBrowserSession, FakePage, items, links, make_options


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class _PathPolicy:
    """robots policy stand-in blocking URLs that contain any listed fragment."""

    def __init__(self, *blocked: str) -> None:
        self._blocked = blocked

    def can_fetch(self, *, url: str, user_agent: str) -> bool:
        return not any(fragment in url for fragment in self._blocked)

    def crawl_delay(self, *, url: str, user_agent: str) -> float | None:
        return None


def _build(
    scraper_cls: type[SiteScraper],
    pages: dict[str, FakePage],
    *,
    policy: Any = None,
    **kwargs: Any,
) -> tuple[SiteScraper, FakeBrowserSession]:
    options = kwargs.pop("options", None) or make_options()
    session = FakeBrowserSession(pages, **kwargs)
    navigator = CompliantNavigator(
        session=session,
        robots_policy=policy,
        pacer=RequestPacer(min_interval_ms=0),
        user_agent="TestBot/1.0",
        retry_attempts=options.retry_attempts,
        retry_delay_ms=0,
        sleep=lambda _seconds: None,
    )
    return scraper_cls(session=session, navigator=navigator, options=options), session


def _detail(
    scraper_cls: type[SiteScraper],
    texts: dict[str, str] | None = None,
    lists: dict[str, list[str]] | None = None,
) -> FakePage:
    selectors = scraper_cls.DEFAULT_SELECTORS
    return FakePage(
        texts={selectors[name]: value for name, value in (texts or {}).items()},
        elements={selectors[name]: items(*values) for name, values in (lists or {}).items()},
    )


def _listing(scraper_cls: type[SiteScraper], *hrefs: str) -> FakePage:
    return FakePage(elements={scraper_cls.LINK_SELECTOR: links(*hrefs)})


DESCRIPTION = "A thorough introduction to the subject with weekly problem sets."


# ---------------------------------------------------------------------------
# Run lifecycle
# ---------------------------------------------------------------------------


class TestRunLifecycle:
    def test_discovers_filters_and_dedupes_links(self) -> None:
        listing = _listing(
            MITScraper,
            "/courses/6-006",
            "/courses/18-01#lecture-1",
            "/about",
            "https://ocw.mit.edu/courses/6-006",
            "",
        )
        pages = {
            MITScraper.DEFAULT_URL: listing,
            "https://ocw.mit.edu/courses/6-006": _detail(MITScraper, {"title": "Algorithms", "description": DESCRIPTION}),
            "https://ocw.mit.edu/courses/18-01": _detail(MITScraper, {"title": "Calculus", "description": DESCRIPTION}),
        }
        scraper, session = _build(MITScraper, pages)

        result = scraper.run()

        assert result.links_discovered == 2
        assert [record.source_url for record in result.records] == [
            "https://ocw.mit.edu/courses/6-006",
            "https://ocw.mit.edu/courses/18-01",
        ]
        assert session.initialized and session.cleaned_up

    def test_fallback_link_selector(self) -> None:
        listing = FakePage(elements={MITScraper.FALLBACK_LINK_SELECTOR: links("/courses/8-01")})
        pages = {
            MITScraper.DEFAULT_URL: listing,
            "https://ocw.mit.edu/courses/8-01": _detail(MITScraper, {"title": "Physics I"}),
        }
        scraper, _ = _build(MITScraper, pages)

        result = scraper.run()

        assert result.links_discovered == 1
        assert result.records[0].title == "Physics I"

    def test_link_limit_caps_detail_visits(self) -> None:
        hrefs = [f"/courses/c-{index}" for index in range(5)]
        scraper, session = _build(
            MITScraper,
            {MITScraper.DEFAULT_URL: _listing(MITScraper, *hrefs)},
            options=make_options(link_limit=2),
        )

        result = scraper.run()

        assert result.links_discovered == 5
        assert result.links_attempted == 2
        assert len(session.navigations) == 3

    def test_page_failures_do_not_stop_the_run(self) -> None:
        broken = "https://ocw.mit.edu/courses/broken"
        unreachable = "https://ocw.mit.edu/courses/unreachable"
        good = "https://ocw.mit.edu/courses/good"
        pages = {
            MITScraper.DEFAULT_URL: _listing(MITScraper, broken, unreachable, good),
            good: _detail(MITScraper, {"title": "Good", "description": DESCRIPTION}),
        }
        scraper, session = _build(
            MITScraper,
            pages,
            parse_errors={broken},
            failing_urls={unreachable: 10},
        )

        result = scraper.run()

        assert [record.title for record in result.records] == ["Good"]
        assert result.failed_pages == 2
        assert result.links_attempted == 3
        assert any(broken in error for error in result.errors)
        assert session.navigations.count(unreachable) == 3
        assert session.cleaned_up

    def test_entrypoint_failure_raises_and_cleans_up(self) -> None:
        scraper, session = _build(MITScraper, {}, failing_urls={MITScraper.DEFAULT_URL: 10})

        with pytest.raises(EntryPointError) as excinfo:
            scraper.run()

        assert excinfo.value.url == MITScraper.DEFAULT_URL
        assert session.screenshots == ["mit-entrypoint-error.png"]
        assert session.cleaned_up

    def test_robots_denied_entrypoint_is_entrypoint_error(self) -> None:
        scraper, session = _build(MITScraper, {}, policy=_PathPolicy("/search"))

        with pytest.raises(EntryPointError):
            scraper.run()

        assert session.navigations == []

    def test_robots_denied_links_are_skipped(self) -> None:
        allowed = "https://ocw.mit.edu/courses/open"
        blocked = "https://ocw.mit.edu/courses/private-1"
        pages = {
            MITScraper.DEFAULT_URL: _listing(MITScraper, blocked, allowed),
            allowed: _detail(MITScraper, {"title": "Open", "description": DESCRIPTION}),
        }
        scraper, session = _build(MITScraper, pages, policy=_PathPolicy("/private"))

        result = scraper.run()

        assert result.skipped_by_robots == 1
        assert result.failed_pages == 0
        assert blocked not in session.navigations
        assert result.counters()["records_scraped"] == 1

    def test_explicit_entrypoint_used(self) -> None:
        target = "https://ocw.mit.edu/search/?d=Mathematics"
        scraper, session = _build(MITScraper, {target: _listing(MITScraper)})

        result = scraper.run(target)

        assert result.entrypoint == target
        assert session.navigations == [target]

    def test_selector_overrides_from_options(self) -> None:
        url = "https://ocw.mit.edu/courses/x"
        pages = {
            MITScraper.DEFAULT_URL: _listing(MITScraper, url),
            url: FakePage(texts={"h2.custom": "Overridden"}),
        }
        scraper, _ = _build(MITScraper, pages, options=make_options(selectors={"title": "h2.custom"}))

        assert scraper.run().records[0].title == "Overridden"


# ---------------------------------------------------------------------------
# US universities
# ---------------------------------------------------------------------------


def _run_single(scraper_cls: type[SiteScraper], url: str, page: FakePage) -> Any:
    pages = {scraper_cls.DEFAULT_URL: _listing(scraper_cls, url), url: page}
    scraper, _ = _build(scraper_cls, pages)
    result = scraper.run()
    assert len(result.records) == 1
    return result.records[0]


class TestUniversityScrapers:
    def test_mit_fields(self) -> None:
        page = _detail(
            MITScraper,
            {
                "title": "Introduction to Algorithms",
                "course_code": "6.006",
                "description": DESCRIPTION,
                "level": "Undergraduate",
                "department": "Electrical Engineering and Computer Science",
                "video_lectures": "Video lectures",
            },
            {"instructors": ["Erik Demaine", "Jason Ku"], "materials": ["Lecture notes", "Problem sets"]},
        )
        record = _run_single(MITScraper, "https://ocw.mit.edu/courses/6-006", page)

        assert record.university == "Massachusetts Institute of Technology"
        assert record.source == "mit"
        assert record.course_code == "6.006"
        assert record.instructors == ["Erik Demaine", "Jason Ku"]
        assert record.pricing.type == "free"
        assert record.format == "self-paced"
        assert record.accessibility == {"video_lectures": True}
        assert record.raw_data["materials"] == ["Lecture notes", "Problem sets"]
        assert record.raw_data["scraper"] == "mit"

    def test_stanford_certificate(self) -> None:
        page = _detail(
            StanfordScraper,
            {"title": "Machine Learning", "certificate": "Certificate of completion", "price": "$1,595"},
        )
        record = _run_single(StanfordScraper, "https://online.stanford.edu/courses/cs229", page)

        assert record.certification == {"available": True, "type": "certificate"}
        assert record.pricing.amount == 1595.0
        assert record.university == "Stanford University"

    def test_harvard_dates_effort_and_format(self) -> None:
        page = _detail(
            HarvardScraper,
            {
                "title": "CS50",
                "dates": "Jan 5, 2027 - Apr 30, 2027",
                "effort": "6-18 hours per week",
                "certificate": "Verified certificate available",
                "price": "Free",
            },
        )
        record = _run_single(HarvardScraper, "https://pll.harvard.edu/course/cs50", page)

        assert record.start_date == "Jan 5, 2027"
        assert record.end_date == "Apr 30, 2027"
        assert record.raw_data["effort"] == "6-18 hours per week"
        assert record.format == "instructor-led"
        assert record.certification == {"available": True, "type": "verified"}
        assert record.pricing.type == "free"


# ---------------------------------------------------------------------------
# South African universities
# ---------------------------------------------------------------------------


class TestSouthAfricanScrapers:
    def test_wits_programme(self) -> None:
        page = _detail(
            WitsScraper,
            {
                "title": "Bachelor of Science in Computer Science",
                "qualification": "Bachelor's Degree",
                "faculty": "Faculty of Science",
                "description": DESCRIPTION,
                "duration": "3 years",
                "fees": "R 58 000 per annum",
                "aps": "Minimum APS: 42",
                "credits": "432 credits",
                "study_mode": "Full-time contact",
                "closing_date": "30 September 2026",
                "coordinator": "Prof. Jane Doe",
            },
            {"syllabus": ["Data Structures", "Algorithms"]},
        )
        record = _run_single(WitsScraper, "https://www.wits.ac.za/course/bsc-cs", page)

        assert record.university == "University of the Witwatersrand"
        assert record.level == "Undergraduate"
        assert record.delivery_mode == "in-person"
        assert record.pricing.amount == 58000.0
        assert record.pricing.currency == "ZAR"
        assert record.credits == 432
        assert record.end_date == "30 September 2026"
        assert record.department == "Faculty of Science"
        assert record.duration is not None and record.duration.unit == "year"
        assert record.raw_data["category"] == "Faculty of Science"
        assert record.raw_data["aps_score"] == 42
        assert record.raw_data["coordinator"] == "Prof. Jane Doe"
        assert record.syllabus == ["Data Structures", "Algorithms"]

    def test_uj_nqf_level_and_language(self) -> None:
        page = _detail(
            UJScraper,
            {
                "title": "Diploma in Management",
                "nqf_level": "NQF Level 8",
                "language": "English and Afrikaans",
            },
            {"careers": ["Manager", "Consultant"]},
        )
        record = _run_single(UJScraper, "https://www.uj.ac.za/programme/mgmt", page)

        assert record.level == "Graduate"
        assert record.language == "English and Afrikaans"
        assert record.raw_data["career_opportunities"] == ["Manager", "Consultant"]

    def test_up_admission_requirements_become_prerequisites(self) -> None:
        page = _detail(
            UPScraper,
            {"title": "BCom Accounting", "qualification": "Bachelor of Commerce"},
            {"admission_requirements": ["Mathematics 60%", "English 50%"]},
        )
        record = _run_single(UPScraper, "https://www.up.ac.za/programme/bcom", page)

        assert record.prerequisites == "Mathematics 60%; English 50%"
        assert record.level == "Undergraduate"

    def test_sa_link_limit(self) -> None:
        assert WitsScraper.LINK_LIMIT == 15


# ---------------------------------------------------------------------------
# Platforms
# ---------------------------------------------------------------------------


class TestPlatformScrapers:
    def test_search_entrypoints(self) -> None:
        assert (
            CourseraScraper.entrypoint(search_query="machine learning")
            == "https://www.coursera.org/search?query=machine%20learning"
        )
        assert EdXScraper.entrypoint() == "https://www.edx.org/search?q=data%20science"
        assert FutureLearnScraper.entrypoint(search_query="  ") == "https://www.futurelearn.com/courses?q=business"
        assert CourseraScraper.entrypoint(url="https://www.coursera.org/browse") == "https://www.coursera.org/browse"

    def test_coursera_audit_and_provider(self) -> None:
        page = _detail(
            CourseraScraper,
            {
                "title": "Machine Learning",
                "provider": "Stanford University",
                "description": DESCRIPTION,
                "rating": "4.9 (12,345 ratings)",
                "audit": "Audit for free",
                "enrollment": "1,234,567 already enrolled",
            },
            {"skills": ["Regression", "Classification"]},
        )
        record = _run_single(CourseraScraper, "https://www.coursera.org/learn/machine-learning", page)

        assert record.university == "Stanford University"
        assert record.rating == 4.9
        assert record.pricing.type == "freemium"
        assert record.pricing.amount == 0.0
        assert record.skills == ["Regression", "Classification"]
        assert record.raw_data["enrollment"] == "1,234,567 already enrolled"
        assert record.delivery_mode == "online"

    def test_coursera_defaults_to_subscription(self) -> None:
        page = _detail(CourseraScraper, {"title": "Python Basics"})
        record = _run_single(CourseraScraper, "https://www.coursera.org/learn/python", page)

        assert record.university == "Coursera"
        assert record.pricing.type == "subscription"
        assert record.pricing.billing_period == "monthly"

    def test_edx_audit_track(self) -> None:
        page = _detail(
            EdXScraper,
            {"title": "CS50x", "price": "$219", "audit": "Audit track", "prerequisites": "None"},
        )
        record = _run_single(EdXScraper, "https://www.edx.org/course/cs50x", page)

        assert record.pricing.type == "freemium"
        assert record.pricing.amount == 219.0
        assert record.prerequisites == "None"
        assert record.certification == {"available": True, "type": "verified"}

    def test_futurelearn_prices_in_pounds(self) -> None:
        page = _detail(FutureLearnScraper, {"title": "Business Fundamentals", "price": "Upgrade for £64"})
        record = _run_single(FutureLearnScraper, "https://www.futurelearn.com/courses/business", page)

        assert record.pricing.currency == "GBP"
        assert record.pricing.amount == 64.0

    def test_futurelearn_without_price_is_freemium(self) -> None:
        page = _detail(FutureLearnScraper, {"title": "Business Fundamentals"})
        record = _run_single(FutureLearnScraper, "https://www.futurelearn.com/courses/business", page)

        assert record.pricing.type == "freemium"
        assert record.pricing.amount == 0.0
        assert record.pricing.currency == "GBP"

    def test_rating_capped_at_five(self) -> None:
        page = _detail(EdXScraper, {"title": "Odd Rating", "rating": "9.2"})
        record = _run_single(EdXScraper, "https://www.edx.org/course/odd", page)

        assert record.rating == 5.0
