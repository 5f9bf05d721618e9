"""
app/schemas package marker.
"""

from app.schemas.scrape_queue import QueueStats, ScrapeJobConfig, ScrapeJobOptions, ScrapeJobView

__all__ = [
    "QueueStats",
    "ScrapeJobConfig",
    "ScrapeJobOptions",
    "ScrapeJobView",
]
