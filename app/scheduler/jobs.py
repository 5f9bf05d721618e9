"""
app/scheduler/jobs.py

APScheduler-based batch scheduler that feeds the scrape queue.

The scheduler never scrapes itself: every job only enqueues scrape jobs (or
prunes old ones), and queue workers do the work.

Schedule (all times UTC)
--------------------------
  daily_university_sweep      02:00 every day
  platform_sweep              every 12 hours (00:00, 12:00)
  weekly_comprehensive_sweep  03:00 every Saturday
  daily_queue_cleanup         04:00 every day

Lifecycle
----------
Call ``build_scheduler(queue)`` once to get a configured ``BackgroundScheduler``.
Start it on worker boot; shut it down gracefully on worker shutdown.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from apscheduler.schedulers.background import BackgroundScheduler

from app.queue.scrape_queue import ScrapeQueue
from app.schemas.scrape_queue import ScrapeJobConfig, ScrapeJobView
from app.scraping.types import SourceType

logger = logging.getLogger(__name__)

UNIVERSITY_PRIORITY = 5
UNIVERSITY_STAGGER_MS = 10_000
PLATFORM_PRIORITY = 8
PLATFORM_STAGGER_MS = 15_000

DEFAULT_PLATFORM_QUERIES: tuple[str, ...] = (
    "computer science",
    "data science",
    "business",
    "engineering",
    "arts",
)

COMPREHENSIVE_PLATFORM_QUERIES: tuple[str, ...] = (
    "computer science",
    "data science",
    "business",
    "engineering",
    "mathematics",
    "physics",
    "biology",
    "chemistry",
    "economics",
    "psychology",
    "arts",
    "humanities",
    "medicine",
    "law",
    "education",
)


# ---------------------------------------------------------------------------
# Batch enqueueing
# ---------------------------------------------------------------------------


def schedule_university_scrapers(queue: ScrapeQueue) -> list[ScrapeJobView]:
    """
    Enqueue one job per university source, staggered by 10 seconds.
    """

    jobs: list[ScrapeJobView] = []
    for index, source_type in enumerate(SourceType.universities()):
        jobs.append(
            queue.enqueue(
                source_type,
                ScrapeJobConfig(),
                priority=UNIVERSITY_PRIORITY,
                delay_ms=index * UNIVERSITY_STAGGER_MS,
            )
        )
    return jobs


def schedule_platform_scrapers(
    queue: ScrapeQueue,
    queries: Sequence[str] = DEFAULT_PLATFORM_QUERIES,
) -> list[ScrapeJobView]:
    """
    Enqueue one job per (platform, query) pair, staggered by 15 seconds.
    """

    jobs: list[ScrapeJobView] = []
    delay_ms = 0
    for source_type in SourceType.platforms():
        for query in queries:
            jobs.append(
                queue.enqueue(
                    source_type,
                    ScrapeJobConfig(search_query=query),
                    priority=PLATFORM_PRIORITY,
                    delay_ms=delay_ms,
                )
            )
            delay_ms += PLATFORM_STAGGER_MS
    return jobs


# ---------------------------------------------------------------------------
# Scheduled jobs
# ---------------------------------------------------------------------------


def run_daily_university_sweep(queue: ScrapeQueue) -> None:
    logger.info("Scheduler: daily_university_sweep starting")
    try:
        jobs = schedule_university_scrapers(queue)
    except Exception as exc:  # noqa: BLE001
        logger.error("Scheduler: daily_university_sweep failed: %s", exc)
        return
    logger.info("Scheduler: daily_university_sweep enqueued=%d", len(jobs))


def run_platform_sweep(queue: ScrapeQueue) -> None:
    logger.info("Scheduler: platform_sweep starting")
    try:
        jobs = schedule_platform_scrapers(queue, DEFAULT_PLATFORM_QUERIES)
    except Exception as exc:  # noqa: BLE001
        logger.error("Scheduler: platform_sweep failed: %s", exc)
        return
    logger.info("Scheduler: platform_sweep enqueued=%d", len(jobs))


def run_weekly_comprehensive_sweep(queue: ScrapeQueue) -> None:
    """
    Every university plus every platform across the wider query set.
    """

    logger.info("Scheduler: weekly_comprehensive_sweep starting")
    try:
        jobs = schedule_university_scrapers(queue)
        jobs += schedule_platform_scrapers(queue, COMPREHENSIVE_PLATFORM_QUERIES)
    except Exception as exc:  # noqa: BLE001
        logger.error("Scheduler: weekly_comprehensive_sweep failed: %s", exc)
        return
    logger.info("Scheduler: weekly_comprehensive_sweep enqueued=%d", len(jobs))


def run_daily_queue_cleanup(queue: ScrapeQueue) -> None:
    try:
        removed = queue.prune()
    except Exception as exc:  # noqa: BLE001
        logger.error("Scheduler: daily_queue_cleanup failed: %s", exc)
        return
    logger.info("Scheduler: daily_queue_cleanup removed=%d", removed)


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler(queue: ScrapeQueue) -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """

    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_daily_university_sweep,
        trigger="cron",
        hour=2,
        minute=0,
        args=[queue],
        id="daily_university_sweep",
        name="Daily university scrape sweep",
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.add_job(
        run_platform_sweep,
        trigger="cron",
        hour="*/12",
        minute=0,
        args=[queue],
        id="platform_sweep",
        name="Twice-daily platform scrape sweep",
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.add_job(
        run_weekly_comprehensive_sweep,
        trigger="cron",
        day_of_week="sat",
        hour=3,
        minute=0,
        args=[queue],
        id="weekly_comprehensive_sweep",
        name="Weekly comprehensive scrape sweep",
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.add_job(
        run_daily_queue_cleanup,
        trigger="cron",
        hour=4,
        minute=0,
        args=[queue],
        id="daily_queue_cleanup",
        name="Daily scrape queue cleanup",
        replace_existing=True,
        misfire_grace_time=3600,
    )

    logger.info(
        "Scheduler: registered jobs: "
        "daily_university_sweep@02:00, platform_sweep@*/12h, "
        "weekly_comprehensive_sweep@Sat03:00, daily_queue_cleanup@04:00"
    )
    return scheduler
