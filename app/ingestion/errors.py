"""
Ingestion-layer exceptions.
"""

from __future__ import annotations


class IngestionError(Exception):
    """Base exception for course ingestion failures."""


class RecordRejectedError(IngestionError):
    """Raised when a raw course record fails validation or cannot be normalized."""

    def __init__(self, source_url: str, errors: list[str]) -> None:
        super().__init__(f"Rejected {source_url or '<missing source_url>'}: {'; '.join(errors)}")
        self.source_url = source_url
        self.errors = errors
