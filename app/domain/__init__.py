"""
app/domain package marker.
"""

from app.domain.course_catalog import (
    IngestionSummary,
    NormalizedCourse,
    NormalizedDuration,
    NormalizedPricing,
    RawCourseRecord,
    RawDuration,
    RawPricing,
    ValidationResult,
)

__all__ = [
    "IngestionSummary",
    "NormalizedCourse",
    "NormalizedDuration",
    "NormalizedPricing",
    "RawCourseRecord",
    "RawDuration",
    "RawPricing",
    "ValidationResult",
]
