"""
db/models/university.py

Institutions that own catalog courses: universities and learning platforms.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class UniversityKind:
    UNIVERSITY = "university"
    PLATFORM = "platform"


class University(Base, TimestampMixin):
    __tablename__ = "universities"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    name_key: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Lowercased name used for case-insensitive matching",
    )
    kind: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=UniversityKind.UNIVERSITY,
    )
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (UniqueConstraint("name_key", name="uq_universities_name_key"),)
