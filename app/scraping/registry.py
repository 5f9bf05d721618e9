"""
Typed scraper registry and factory.
"""

from __future__ import annotations

from collections.abc import Mapping

from app.scraping.base import SiteScraper
from app.scraping.config.models import ScrapeOptions
from app.scraping.navigation import CompliantNavigator
from app.scraping.scrapers import (
    CourseraScraper,
    EdXScraper,
    FutureLearnScraper,
    HarvardScraper,
    MITScraper,
    StanfordScraper,
    UCTScraper,
    UJScraper,
    UPScraper,
    WitsScraper,
)
from app.scraping.types import BrowserSession, SourceType

BUILTIN_SCRAPERS: dict[SourceType, type[SiteScraper]] = {
    SourceType.MIT: MITScraper,
    SourceType.STANFORD: StanfordScraper,
    SourceType.HARVARD: HarvardScraper,
    SourceType.WITS: WitsScraper,
    SourceType.UP: UPScraper,
    SourceType.UJ: UJScraper,
    SourceType.UCT: UCTScraper,
    SourceType.COURSERA: CourseraScraper,
    SourceType.EDX: EdXScraper,
    SourceType.FUTURELEARN: FutureLearnScraper,
}


class ScraperRegistry:
    """
    Maps every source type to exactly one scraper class.
    """

    def __init__(
        self,
        registrations: Mapping[SourceType, type[SiteScraper]] | None = None,
    ) -> None:
        resolved = dict(BUILTIN_SCRAPERS)
        if registrations:
            resolved.update(registrations)
        self._registrations = resolved

    def register(self, *, source_type: SourceType, scraper_class: type[SiteScraper]) -> None:
        if not isinstance(scraper_class, type) or not issubclass(scraper_class, SiteScraper):
            raise ValueError(f"Scraper for '{source_type.value}' must inherit from SiteScraper.")
        self._registrations[source_type] = scraper_class

    def resolve(self, source_type: SourceType | str) -> type[SiteScraper]:
        parsed = SourceType.parse(source_type)
        resolved = self._registrations.get(parsed)
        if resolved is None:
            allowed = ", ".join(sorted(member.value for member in self._registrations))
            raise ValueError(
                f"No scraper registered for source_type='{parsed.value}'. Allowed types: {allowed}."
            )
        return resolved

    def create_scraper(
        self,
        source_type: SourceType | str,
        *,
        session: BrowserSession,
        navigator: CompliantNavigator,
        options: ScrapeOptions,
    ) -> SiteScraper:
        scraper_class = self.resolve(source_type)
        return scraper_class(session=session, navigator=navigator, options=options)

    def source_types(self) -> list[SourceType]:
        return list(self._registrations)
