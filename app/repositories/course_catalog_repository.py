"""
Repository for catalog entities: find-or-create references and course upserts.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from db.base import Base
from db.models.category import Category
from db.models.course import Course
from db.models.instructor import Instructor
from db.models.university import University

ENTITY_MODELS: dict[str, type[Base]] = {
    "university": University,
    "instructor": Instructor,
    "category": Category,
    "course": Course,
}


class CourseCatalogRepository:
    """
    Single-statement writes keyed on unique constraints so concurrent
    ingestions of the same entity never produce duplicates.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    @staticmethod
    def model_for(entity_type: str) -> type[Base]:
        model = ENTITY_MODELS.get(entity_type.strip().lower())
        if model is None:
            allowed = ", ".join(sorted(ENTITY_MODELS))
            raise ValueError(f"Unknown entity_type='{entity_type}'. Allowed types: {allowed}.")
        return model

    def find_or_create(
        self,
        model: type[Base],
        *,
        match_key: Mapping[str, Any],
        defaults: Mapping[str, Any],
    ) -> tuple[uuid.UUID, bool]:
        """
        Return (id, created). Inserts only when no row matches `match_key`.
        """

        existing_id = self._select_id(model, match_key)
        if existing_id is not None:
            return existing_id, False

        stmt = (
            self._insert(model)
            .values({"id": uuid.uuid4(), **defaults, **match_key})
            .on_conflict_do_nothing(index_elements=list(match_key))
            .returning(model.id)  # type: ignore[attr-defined]
        )
        inserted_id = self._session.scalar(stmt)
        if inserted_id is not None:
            return inserted_id, True

        # Lost an insert race; the winner's row is visible now.
        existing_id = self._select_id(model, match_key)
        if existing_id is None:
            raise RuntimeError(f"{model.__tablename__} row vanished during find-or-create.")
        return existing_id, False

    def upsert_course(
        self,
        *,
        source_url: str,
        fields: Mapping[str, Any],
        now: datetime,
    ) -> tuple[uuid.UUID, bool]:
        """
        Insert or update the course for `source_url` in one statement.

        Returns (id, created); a re-scrape bumps scrape_count and rescraped_at.
        """

        values = {
            "id": uuid.uuid4(),
            **fields,
            "source_url": source_url,
            "scrape_count": 1,
            "created_at": now,
            "updated_at": now,
        }
        stmt = self._insert(Course).values(values)
        update_values: dict[str, Any] = {name: stmt.excluded[name] for name in fields}
        update_values.update(
            scrape_count=Course.scrape_count + 1,
            rescraped_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Course.source_url],
            set_=update_values,
        ).returning(Course.id, Course.scrape_count)
        row = self._session.execute(stmt).one()
        return row.id, row.scrape_count == 1

    def get_by_key(self, model: type[Base], key: Mapping[str, Any]) -> dict[str, Any] | None:
        stmt = select(model).where(*self._criteria(model, key)).limit(1)
        row = self._session.scalars(stmt).first()
        if row is None:
            return None
        return {column.key: getattr(row, column.key) for column in model.__table__.columns}

    def count(self, model: type[Base]) -> int:
        return int(self._session.scalar(select(func.count()).select_from(model)) or 0)

    def _select_id(self, model: type[Base], match_key: Mapping[str, Any]) -> uuid.UUID | None:
        stmt = select(model.id).where(*self._criteria(model, match_key)).limit(1)  # type: ignore[attr-defined]
        return self._session.scalar(stmt)

    @staticmethod
    def _criteria(model: type[Base], key: Mapping[str, Any]) -> list[Any]:
        return [getattr(model, name) == value for name, value in key.items()]

    def _insert(self, model: type[Base]) -> Any:
        dialect = self._session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql_insert(model)
        if dialect == "sqlite":
            return sqlite_insert(model)
        raise RuntimeError(f"Catalog upserts are not supported on dialect '{dialect}'.")
