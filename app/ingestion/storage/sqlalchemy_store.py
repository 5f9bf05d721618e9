"""
SQLAlchemy-backed catalog store.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from app.ingestion.storage.base import CatalogStore, UpsertResult
from app.repositories.course_catalog_repository import CourseCatalogRepository


class SQLAlchemyCatalogStore(CatalogStore):
    """
    Persist catalog entities through the repository and DB session.
    """

    def __init__(
        self,
        *,
        session: Session,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._session = session
        self._repository = CourseCatalogRepository(session)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @contextmanager
    def atomic(self) -> Iterator[None]:
        if self._session.in_transaction():
            with self._session.begin_nested():
                yield
        else:
            with self._session.begin():
                yield

    def find_or_create(
        self,
        entity_type: str,
        *,
        match_key: Mapping[str, Any],
        defaults: Mapping[str, Any],
    ) -> UpsertResult:
        model = self._repository.model_for(entity_type)
        entity_id, created = self._repository.find_or_create(
            model,
            match_key=match_key,
            defaults=defaults,
        )
        return UpsertResult(id=entity_id, created=created)

    def upsert_by_key(
        self,
        entity_type: str,
        *,
        key: Mapping[str, Any],
        fields: Mapping[str, Any],
    ) -> UpsertResult:
        if entity_type != "course" or set(key) != {"source_url"}:
            raise ValueError("Upserts are keyed by course source_url only.")
        entity_id, created = self._repository.upsert_course(
            source_url=key["source_url"],
            fields=fields,
            now=self._clock(),
        )
        return UpsertResult(id=entity_id, created=created)

    def get_by_key(self, entity_type: str, key: Mapping[str, Any]) -> dict[str, Any] | None:
        return self._repository.get_by_key(self._repository.model_for(entity_type), key)

    def count(self, entity_type: str) -> int:
        return self._repository.count(self._repository.model_for(entity_type))
