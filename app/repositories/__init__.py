"""
app/repositories package marker.
"""

from app.repositories.course_catalog_repository import CourseCatalogRepository

__all__ = ["CourseCatalogRepository"]
