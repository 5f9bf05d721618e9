"""
Scraper subclass exports.
"""

from app.scraping.scrapers.platforms import (
    CourseraScraper,
    EdXScraper,
    FutureLearnScraper,
    PlatformScraper,
)
from app.scraping.scrapers.sa_universities import (
    SouthAfricanUniversityScraper,
    UCTScraper,
    UJScraper,
    UPScraper,
    WitsScraper,
)
from app.scraping.scrapers.us_universities import (
    HarvardScraper,
    MITScraper,
    StanfordScraper,
    UniversityCatalogScraper,
)

__all__ = [
    "CourseraScraper",
    "EdXScraper",
    "FutureLearnScraper",
    "HarvardScraper",
    "MITScraper",
    "PlatformScraper",
    "SouthAfricanUniversityScraper",
    "StanfordScraper",
    "UCTScraper",
    "UJScraper",
    "UPScraper",
    "UniversityCatalogScraper",
    "WitsScraper",
]
