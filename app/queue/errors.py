"""
Scrape queue exceptions.
"""

from __future__ import annotations

import uuid


class QueueError(Exception):
    """Base exception for scrape queue failures."""


class PermanentJobError(QueueError):
    """Raised when a job can never succeed; it fails without retry."""


class InvalidJobError(PermanentJobError):
    """Raised when a job's configuration is malformed."""


class UnknownSourceTypeError(PermanentJobError):
    """Raised when a job names a source type with no registered scraper."""

    def __init__(self, source_type: str) -> None:
        super().__init__(f"Unknown source type '{source_type}'.")
        self.source_type = source_type


class JobNotFoundError(QueueError):
    def __init__(self, job_id: uuid.UUID | str) -> None:
        super().__init__(f"Scrape job '{job_id}' not found.")
        self.job_id = job_id
