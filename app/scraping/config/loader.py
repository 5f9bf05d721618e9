"""
Environment + JSON config loader for course scraping.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any

from db.config import load_env_files

from app.scraping.config.models import ScrapeOptions, ScrapingSettings, SourceOverrides
from app.scraping.logging_utils import log_event
from app.scraping.types import SourceType

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "CourseCompass Bot/1.0 (Educational Course Aggregator)"


def _get_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_optional_int_env(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _get_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    stripped = raw.strip()
    return stripped if stripped else default


def _project_root() -> Path:
    return Path(__file__).resolve().parents[3]


def _resolve_config_path(raw_path: str) -> Path:
    candidate = Path(raw_path)
    if candidate.is_absolute():
        return candidate
    return (_project_root() / candidate).resolve()


@lru_cache(maxsize=1)
def get_scraping_settings() -> ScrapingSettings:
    """
    Return cached scraper settings from environment variables.
    """

    load_env_files()
    config_path = _get_str_env(
        "SCRAPE_SOURCES_CONFIG_PATH",
        "app/scraping/config/sources.json",
    )
    link_limit = _get_optional_int_env("SCRAPE_LINK_LIMIT")
    return ScrapingSettings(
        sources_config_path=str(_resolve_config_path(config_path)),
        user_agent=_get_str_env("SCRAPE_USER_AGENT", DEFAULT_USER_AGENT),
        headless=_get_bool_env("SCRAPE_HEADLESS", True),
        timeout_ms=max(1000, _get_int_env("SCRAPE_TIMEOUT_MS", 30000)),
        selector_timeout_ms=max(100, _get_int_env("SCRAPE_SELECTOR_TIMEOUT_MS", 5000)),
        rate_limit_ms=max(0, _get_int_env("SCRAPE_RATE_LIMIT_MS", 1000)),
        retry_attempts=max(1, _get_int_env("SCRAPE_RETRY_ATTEMPTS", 3)),
        retry_delay_ms=max(0, _get_int_env("SCRAPE_RETRY_DELAY_MS", 2000)),
        respect_robots_txt=_get_bool_env("SCRAPE_RESPECT_ROBOTS_TXT", True),
        allow_when_robots_unreachable=_get_bool_env(
            "SCRAPE_ALLOW_WHEN_ROBOTS_UNREACHABLE",
            True,
        ),
        robots_timeout_seconds=max(
            1.0,
            _get_float_env("SCRAPE_ROBOTS_TIMEOUT_SECONDS", 5.0),
        ),
        link_limit=max(1, link_limit) if link_limit is not None else None,
        max_scrolls=max(0, _get_int_env("SCRAPE_MAX_SCROLLS", 10)),
        scroll_pause_ms=max(0, _get_int_env("SCRAPE_SCROLL_PAUSE_MS", 1000)),
        screenshot_dir=str(
            _resolve_config_path(_get_str_env("SCRAPE_SCREENSHOT_DIR", "logs/screenshots"))
        ),
    )


@lru_cache(maxsize=4)
def load_source_overrides(config_path: str) -> dict[SourceType, SourceOverrides]:
    """
    Load per-source overrides from a JSON file.

    A missing file means no overrides. Unknown source keys are skipped.
    """

    path = _resolve_config_path(config_path)
    if not path.exists():
        return {}

    raw_data = json.loads(path.read_text(encoding="utf-8"))
    sources = raw_data.get("sources", {})
    if not isinstance(sources, dict):
        raise ValueError("Invalid sources config: 'sources' must be an object.")

    parsed: dict[SourceType, SourceOverrides] = {}
    for key, entry in sources.items():
        if not isinstance(entry, dict):
            continue
        try:
            source_type = SourceType.parse(key)
        except ValueError:
            log_event(
                logger,
                logging.WARNING,
                "unknown_source_override_skipped",
                source=key,
                config_path=str(path),
            )
            continue

        parsed[source_type] = SourceOverrides(
            enabled=_optional_bool(entry.get("enabled"), True),
            default_url=_optional_str(entry.get("default_url")),
            rate_limit_ms=_optional_int(entry.get("rate_limit_ms")),
            retry_attempts=_optional_int(entry.get("retry_attempts")),
            retry_delay_ms=_optional_int(entry.get("retry_delay_ms")),
            timeout_ms=_optional_int(entry.get("timeout_ms")),
            respect_robots_txt=_optional_nullable_bool(entry.get("respect_robots_txt")),
            link_limit=_optional_int(entry.get("link_limit")),
            max_scrolls=_optional_int(entry.get("max_scrolls")),
            selectors=_normalize_selectors(entry.get("selectors", {})),
        )

    return parsed


def resolve_scrape_options(
    *,
    settings: ScrapingSettings,
    default_rate_limit_ms: int,
    default_link_limit: int,
    overrides: SourceOverrides | None = None,
    job_options: Mapping[str, Any] | None = None,
) -> ScrapeOptions:
    """
    Merge job options over source overrides over settings.

    The environment rate limit acts as a floor for every source.
    """

    source = overrides or SourceOverrides()
    job = dict(job_options or {})

    def pick(name: str, fallback: Any) -> Any:
        if job.get(name) is not None:
            return job[name]
        source_value = getattr(source, name)
        if source_value is not None:
            return source_value
        return fallback

    link_fallback = settings.link_limit if settings.link_limit is not None else default_link_limit
    return ScrapeOptions(
        rate_limit_ms=max(settings.rate_limit_ms, int(pick("rate_limit_ms", default_rate_limit_ms))),
        retry_attempts=max(1, int(pick("retry_attempts", settings.retry_attempts))),
        retry_delay_ms=max(0, int(pick("retry_delay_ms", settings.retry_delay_ms))),
        timeout_ms=max(1000, int(pick("timeout_ms", settings.timeout_ms))),
        respect_robots_txt=bool(pick("respect_robots_txt", settings.respect_robots_txt)),
        link_limit=max(1, int(pick("link_limit", link_fallback))),
        max_scrolls=max(0, int(pick("max_scrolls", settings.max_scrolls))),
        selectors=dict(source.selectors),
    )


def _normalize_selectors(selectors: object) -> dict[str, str]:
    if not isinstance(selectors, dict):
        return {}

    normalized: dict[str, str] = {}
    for key, value in selectors.items():
        if not isinstance(key, str):
            continue
        if isinstance(value, str) and value.strip():
            normalized[key.strip().lower()] = value.strip()
        elif isinstance(value, list):
            joined = ", ".join(
                item.strip()
                for item in value
                if isinstance(item, str) and item.strip()
            )
            if joined:
                normalized[key.strip().lower()] = joined
    return normalized


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _optional_int(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _optional_nullable_bool(value: object) -> bool | None:
    if value is None:
        return None
    return _optional_bool(value, True)


def _optional_bool(value: object, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False
    return default
