"""
Course ingestion: normalization, reference resolution and catalog upserts.
"""

from app.ingestion.currency import DEFAULT_RATES_TO_USD, RateProvider, StaticRateProvider
from app.ingestion.errors import IngestionError, RecordRejectedError
from app.ingestion.normalizer import CourseNormalizer
from app.ingestion.service import CourseIngestionService, ResolvedReferences

__all__ = [
    "CourseIngestionService",
    "CourseNormalizer",
    "DEFAULT_RATES_TO_USD",
    "IngestionError",
    "RateProvider",
    "RecordRejectedError",
    "ResolvedReferences",
    "StaticRateProvider",
]
