"""
Shared scraping runtime data models.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, TypeVar

from app.domain.course_catalog import RawCourseRecord

T = TypeVar("T")


class SourceType(str, Enum):
    """
    Closed set of scrape sources. Each member maps to exactly one scraper class.
    """

    MIT = "mit"
    STANFORD = "stanford"
    HARVARD = "harvard"
    WITS = "wits"
    UP = "up"
    UJ = "uj"
    UCT = "uct"
    COURSERA = "coursera"
    EDX = "edx"
    FUTURELEARN = "futurelearn"

    @classmethod
    def parse(cls, value: "str | SourceType") -> "SourceType":
        if isinstance(value, SourceType):
            return value
        normalized = str(value).strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            allowed = ", ".join(member.value for member in cls)
            raise ValueError(
                f"Unknown source type '{value}'. Allowed types: {allowed}."
            ) from None

    @classmethod
    def universities(cls) -> tuple["SourceType", ...]:
        return tuple(member for member in cls if not member.is_platform)

    @classmethod
    def platforms(cls) -> tuple["SourceType", ...]:
        return (cls.COURSERA, cls.EDX, cls.FUTURELEARN)

    @property
    def is_platform(self) -> bool:
        return self in {SourceType.COURSERA, SourceType.EDX, SourceType.FUTURELEARN}


@dataclass(frozen=True)
class ElementData:
    """
    Snapshot of one matched DOM element.
    """

    text: str
    href: str | None = None
    html: str | None = None


class BrowserSession(Protocol):
    """
    Automation contract consumed by site scrapers.

    Extraction methods return their default when the selector never appears
    within the selector timeout. Any other page failure raises.
    """

    def initialize(self) -> None: ...

    def navigate(self, url: str) -> None: ...

    def extract_text(self, selector: str, default: str = "") -> str: ...

    def extract_attribute(
        self,
        selector: str,
        attribute: str,
        default: str | None = None,
    ) -> str | None: ...

    def extract_multiple(self, selector: str, map_fn: Callable[[ElementData], T]) -> list[T]: ...

    def element_exists(self, selector: str) -> bool: ...

    def wait_for_content(self, selector: str, timeout_ms: int | None = None) -> bool: ...

    def scroll_to_bottom(self, max_scrolls: int = 10) -> None: ...

    def screenshot(self, filename: str) -> str | None: ...

    def cleanup(self) -> None: ...

    def __enter__(self) -> "BrowserSession": ...

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None: ...


@dataclass(frozen=True)
class ScraperRunResult:
    """
    Outcome for one scraper execution.
    """

    source_type: SourceType
    entrypoint: str
    records: list[RawCourseRecord]
    links_discovered: int
    links_attempted: int
    failed_pages: int
    skipped_by_robots: int
    errors: list[str] = field(default_factory=list)

    def counters(self) -> dict[str, int]:
        return {
            "records_scraped": len(self.records),
            "links_discovered": self.links_discovered,
            "links_attempted": self.links_attempted,
            "failed_pages": self.failed_pages,
            "skipped_by_robots": self.skipped_by_robots,
        }
