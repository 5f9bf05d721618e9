"""
tests/test_scraping_engine.py

Registry, configuration merging and engine wiring.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from app.config import get_queue_settings
from app.scraping.config import get_scraping_settings, load_source_overrides, resolve_scrape_options
from app.scraping.config.models import ScrapeOptions, ScrapingSettings, SourceOverrides
from app.scraping.engine import ScrapingEngine
from app.scraping.registry import BUILTIN_SCRAPERS, ScraperRegistry
from app.scraping.scrapers import MITScraper
from app.scraping.types import SourceType
from tests.fakes import FakeBrowserSession, FakePage, links, make_settings


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestScraperRegistry:
    def test_every_source_type_has_a_scraper(self) -> None:
        registry = ScraperRegistry()
        assert set(registry.source_types()) == set(SourceType)
        for source_type in SourceType:
            assert registry.resolve(source_type).SOURCE_TYPE is source_type

    def test_resolve_accepts_loose_strings(self) -> None:
        assert ScraperRegistry().resolve(" MIT ") is MITScraper

    def test_unknown_source_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown source type"):
            ScraperRegistry().resolve("udemy")

    def test_register_requires_site_scraper(self) -> None:
        registry = ScraperRegistry()
        with pytest.raises(ValueError):
            registry.register(source_type=SourceType.MIT, scraper_class=dict)  # type: ignore[arg-type]

    def test_register_replaces_builtin(self) -> None:
        class CustomMIT(MITScraper):
            pass

        registry = ScraperRegistry()
        registry.register(source_type=SourceType.MIT, scraper_class=CustomMIT)

        assert registry.resolve("mit") is CustomMIT
        assert BUILTIN_SCRAPERS[SourceType.MIT] is MITScraper

    def test_source_type_groups(self) -> None:
        assert len(SourceType.universities()) == 7
        assert SourceType.platforms() == (SourceType.COURSERA, SourceType.EDX, SourceType.FUTURELEARN)
        assert SourceType.WITS.is_platform is False


# ---------------------------------------------------------------------------
# Config loading and merging
# ---------------------------------------------------------------------------


class TestSourceOverrides:
    def test_loads_overrides(self, tmp_path: Path) -> None:
        path = tmp_path / "sources.json"
        path.write_text(
            json.dumps(
                {
                    "sources": {
                        "mit": {
                            "enabled": "false",
                            "rate_limit_ms": 4000,
                            "selectors": {"Title": ["h1.a", " h1.b ", 3], "empty": " "},
                        },
                        "wits": {"default_url": " https://www.wits.ac.za/x/ ", "link_limit": "7"},
                        "udemy": {"enabled": True},
                    }
                }
            ),
            encoding="utf-8",
        )

        overrides = load_source_overrides(str(path))

        assert set(overrides) == {SourceType.MIT, SourceType.WITS}
        assert overrides[SourceType.MIT].enabled is False
        assert overrides[SourceType.MIT].rate_limit_ms == 4000
        assert overrides[SourceType.MIT].selectors == {"title": "h1.a, h1.b"}
        assert overrides[SourceType.WITS].default_url == "https://www.wits.ac.za/x/"
        assert overrides[SourceType.WITS].link_limit == 7

    def test_missing_file_means_no_overrides(self, tmp_path: Path) -> None:
        assert load_source_overrides(str(tmp_path / "absent.json")) == {}

    def test_invalid_sources_shape(self, tmp_path: Path) -> None:
        path = tmp_path / "sources.json"
        path.write_text(json.dumps({"sources": []}), encoding="utf-8")
        with pytest.raises(ValueError):
            load_source_overrides(str(path))


class TestResolveScrapeOptions:
    def test_job_options_beat_source_overrides(self) -> None:
        options = resolve_scrape_options(
            settings=make_settings(retry_attempts=3),
            default_rate_limit_ms=2000,
            default_link_limit=10,
            overrides=SourceOverrides(retry_attempts=5, link_limit=4, selectors={"title": "h2"}),
            job_options={"link_limit": 2, "respect_robots_txt": False},
        )

        assert options.retry_attempts == 5
        assert options.link_limit == 2
        assert options.respect_robots_txt is False
        assert options.selectors == {"title": "h2"}

    def test_environment_rate_limit_is_a_floor(self) -> None:
        options = resolve_scrape_options(
            settings=make_settings(rate_limit_ms=5000),
            default_rate_limit_ms=2000,
            default_link_limit=10,
            job_options={"rate_limit_ms": 100},
        )
        assert options.rate_limit_ms == 5000

    def test_scraper_default_rate_applies_above_floor(self) -> None:
        options = resolve_scrape_options(
            settings=make_settings(rate_limit_ms=1000),
            default_rate_limit_ms=3000,
            default_link_limit=10,
        )
        assert options.rate_limit_ms == 3000

    def test_link_limit_falls_back_to_scraper_default(self) -> None:
        default = resolve_scrape_options(
            settings=make_settings(link_limit=None),
            default_rate_limit_ms=0,
            default_link_limit=15,
        )
        env = resolve_scrape_options(
            settings=make_settings(link_limit=4),
            default_rate_limit_ms=0,
            default_link_limit=15,
        )
        assert default.link_limit == 15
        assert env.link_limit == 4


class TestEnvironmentSettings:
    def test_scraping_settings_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SCRAPE_RATE_LIMIT_MS", "250")
        monkeypatch.setenv("SCRAPE_LINK_LIMIT", "0")
        monkeypatch.setenv("SCRAPE_RETRY_ATTEMPTS", "not-a-number")
        monkeypatch.setenv("SCRAPE_USER_AGENT", "  ")
        get_scraping_settings.cache_clear()
        try:
            settings = get_scraping_settings()
        finally:
            get_scraping_settings.cache_clear()

        assert settings.rate_limit_ms == 250
        assert settings.link_limit == 1
        assert settings.retry_attempts == 3
        assert "CourseCompass" in settings.user_agent

    def test_queue_settings_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SCRAPE_QUEUE_CONCURRENCY", "4")
        monkeypatch.setenv("SCRAPE_QUEUE_BACKOFF_MS", "abc")
        monkeypatch.setenv("SCRAPE_QUEUE_MAX_ATTEMPTS", "0")
        get_queue_settings.cache_clear()
        try:
            settings = get_queue_settings()
        finally:
            get_queue_settings.cache_clear()

        assert settings.concurrency == 4
        assert settings.backoff_base_ms == 5000
        assert settings.max_attempts == 1


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class _AllowAll:
    def can_fetch(self, *, url: str, user_agent: str) -> bool:
        return True

    def crawl_delay(self, *, url: str, user_agent: str) -> float | None:
        return None


def _engine(
    session: FakeBrowserSession,
    *,
    settings: ScrapingSettings | None = None,
    overrides: dict[SourceType, SourceOverrides] | None = None,
) -> tuple[ScrapingEngine, list[ScrapeOptions]]:
    built: list[ScrapeOptions] = []

    def factory(_settings: ScrapingSettings, options: ScrapeOptions) -> Any:
        built.append(options)
        return session

    engine = ScrapingEngine(
        settings=settings or make_settings(),
        robots_policy=_AllowAll(),  # type: ignore[arg-type]
        session_factory=factory,
        overrides=overrides or {},
        sleep=lambda _seconds: None,
    )
    return engine, built


class TestScrapingEngine:
    def test_runs_registered_scraper(self) -> None:
        detail = "https://ocw.mit.edu/courses/6-006"
        session = FakeBrowserSession(
            {
                MITScraper.DEFAULT_URL: FakePage(elements={MITScraper.LINK_SELECTOR: links(detail)}),
                detail: FakePage(texts={MITScraper.DEFAULT_SELECTORS["title"]: "Algorithms"}),
            }
        )
        engine, built = _engine(session)

        result = engine.run("mit")

        assert result.source_type is SourceType.MIT
        assert result.counters()["records_scraped"] == 1
        assert built[0].rate_limit_ms == MITScraper.RATE_LIMIT_MS
        assert session.cleaned_up

    def test_default_url_override(self) -> None:
        target = "https://ocw.mit.edu/search/?t=Physics"
        session = FakeBrowserSession()
        engine, _ = _engine(session, overrides={SourceType.MIT: SourceOverrides(default_url=target)})

        assert engine.run("mit").entrypoint == target
        assert session.navigations == [target]

    def test_search_query_builds_platform_url(self) -> None:
        session = FakeBrowserSession()
        engine, _ = _engine(session)

        engine.run("coursera", search_query="data analysis")

        assert session.navigations == ["https://www.coursera.org/search?query=data%20analysis"]

    def test_job_options_reach_the_scraper(self) -> None:
        engine, _ = _engine(FakeBrowserSession())
        options = engine.options_for(SourceType.WITS, {"link_limit": 3, "retry_attempts": 1})
        assert options.link_limit == 3
        assert options.retry_attempts == 1

    def test_is_enabled(self) -> None:
        engine, _ = _engine(
            FakeBrowserSession(),
            overrides={SourceType.EDX: SourceOverrides(enabled=False)},
        )
        assert engine.is_enabled(SourceType.MIT)
        assert not engine.is_enabled(SourceType.EDX)

    def test_unknown_source(self) -> None:
        engine, _ = _engine(FakeBrowserSession())
        with pytest.raises(ValueError):
            engine.run("udemy")

    def test_close_clears_shared_robots_cache(self) -> None:
        class _RecordingPolicy(_AllowAll):
            cleared = 0

            def clear(self) -> None:
                self.cleared += 1

        policy = _RecordingPolicy()
        engine = ScrapingEngine(
            settings=make_settings(),
            robots_policy=policy,  # type: ignore[arg-type]
            session_factory=lambda _settings, _options: FakeBrowserSession(),
            overrides={},
        )

        engine.close()

        assert policy.cleared == 1

    def test_close_leaves_caller_http_session_open(self) -> None:
        class _Http:
            def __init__(self) -> None:
                self.headers: dict[str, str] = {}
                self.closed = False

            def close(self) -> None:
                self.closed = True

        http = _Http()
        engine = ScrapingEngine(
            settings=make_settings(),
            http_session=http,  # type: ignore[arg-type]
            overrides={},
        )

        engine.close()

        assert http.closed is False
        assert http.headers["User-Agent"] == make_settings().user_agent
