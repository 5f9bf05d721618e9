"""
Storage layer interface for the course catalog.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from collections.abc import Mapping
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class UpsertResult:
    id: uuid.UUID
    created: bool


class CatalogStore(ABC):
    """
    Keyed catalog store consumed by the ingestion service.

    Entity types are "university", "instructor", "category" and "course".
    """

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """
        Transaction scope: every write inside commits together or not at all.
        """

    @abstractmethod
    def find_or_create(
        self,
        entity_type: str,
        *,
        match_key: Mapping[str, Any],
        defaults: Mapping[str, Any],
    ) -> UpsertResult:
        """
        Return the entity matching `match_key`, creating it from `defaults` if absent.
        """

    @abstractmethod
    def upsert_by_key(
        self,
        entity_type: str,
        *,
        key: Mapping[str, Any],
        fields: Mapping[str, Any],
    ) -> UpsertResult:
        """
        Create or update the single entity identified by `key`.
        """

    @abstractmethod
    def get_by_key(self, entity_type: str, key: Mapping[str, Any]) -> dict[str, Any] | None:
        """
        Return the stored fields of one entity, or None.
        """

    @abstractmethod
    def count(self, entity_type: str) -> int:
        """
        Return how many entities of `entity_type` exist.
        """
