"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.category import Category
from db.models.course import Course, VerificationStatus
from db.models.instructor import Instructor
from db.models.scrape_job import ScrapeJob, ScrapeJobState
from db.models.university import University, UniversityKind

__all__ = [
    "Category",
    "Course",
    "Instructor",
    "ScrapeJob",
    "ScrapeJobState",
    "University",
    "UniversityKind",
    "VerificationStatus",
]
