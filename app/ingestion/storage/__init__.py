"""
Catalog storage exports.
"""

from app.ingestion.storage.base import CatalogStore, UpsertResult
from app.ingestion.storage.sqlalchemy_store import SQLAlchemyCatalogStore

__all__ = ["CatalogStore", "SQLAlchemyCatalogStore", "UpsertResult"]
