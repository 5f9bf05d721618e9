"""
app/config.py

Application-level configuration for the scrape queue and course ingestion.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class QueueSettings:
    """
    Runtime settings for the durable scrape job queue and its workers.
    """

    concurrency: int = 2
    max_attempts: int = 3
    backoff_base_ms: int = 5000
    poll_interval_seconds: float = 2.0
    stall_timeout_seconds: float = 900.0
    completed_retention_hours: float = 168.0
    failed_retention_hours: float = 168.0


@dataclass(frozen=True)
class IngestionSettings:
    """
    Runtime settings for course normalization.
    """

    reference_currency: str = "USD"


@lru_cache(maxsize=1)
def get_queue_settings() -> QueueSettings:
    """
    Return cached queue settings from environment variables.
    """

    return QueueSettings(
        concurrency=max(1, _get_int_env("SCRAPE_QUEUE_CONCURRENCY", 2)),
        max_attempts=max(1, _get_int_env("SCRAPE_QUEUE_MAX_ATTEMPTS", 3)),
        backoff_base_ms=max(0, _get_int_env("SCRAPE_QUEUE_BACKOFF_MS", 5000)),
        poll_interval_seconds=max(0.1, _get_float_env("SCRAPE_QUEUE_POLL_INTERVAL_SECONDS", 2.0)),
        stall_timeout_seconds=max(1.0, _get_float_env("SCRAPE_QUEUE_STALL_TIMEOUT_SECONDS", 900.0)),
        completed_retention_hours=max(
            0.0, _get_float_env("SCRAPE_QUEUE_COMPLETED_RETENTION_HOURS", 168.0)
        ),
        failed_retention_hours=max(0.0, _get_float_env("SCRAPE_QUEUE_FAILED_RETENTION_HOURS", 168.0)),
    )


@lru_cache(maxsize=1)
def get_ingestion_settings() -> IngestionSettings:
    """
    Return cached ingestion settings from environment variables.
    """

    return IngestionSettings(
        reference_currency=_get_str_env("INGEST_REFERENCE_CURRENCY", "USD").upper(),
    )
