"""
Durable scrape job queue.
"""

from app.queue.errors import (
    InvalidJobError,
    JobNotFoundError,
    PermanentJobError,
    QueueError,
    UnknownSourceTypeError,
)
from app.queue.processor import ScrapeJobProcessor
from app.queue.scrape_queue import ScrapeQueue
from app.queue.worker import QueueWorker

__all__ = [
    "InvalidJobError",
    "JobNotFoundError",
    "PermanentJobError",
    "QueueError",
    "QueueWorker",
    "ScrapeJobProcessor",
    "ScrapeQueue",
    "UnknownSourceTypeError",
]
