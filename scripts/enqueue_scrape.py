"""
Enqueue scrape jobs from CLI.
"""

from __future__ import annotations

import argparse
import json

from app.queue.errors import PermanentJobError
from app.queue.scrape_queue import DEFAULT_PRIORITY, ScrapeQueue
from app.scheduler.jobs import (
    COMPREHENSIVE_PLATFORM_QUERIES,
    DEFAULT_PLATFORM_QUERIES,
    schedule_platform_scrapers,
    schedule_university_scrapers,
)
from app.scraping.types import SourceType
from db.session import get_session_factory


def main() -> int:
    parser = argparse.ArgumentParser(description="Enqueue course scrape jobs.")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument(
        "--source",
        dest="source",
        choices=[member.value for member in SourceType],
        help="Single source to scrape.",
    )
    target.add_argument(
        "--sweep",
        dest="sweep",
        choices=["universities", "platforms", "comprehensive"],
        help="Enqueue a whole batch the way the scheduler does.",
    )
    parser.add_argument("--url", dest="url", default=None, help="Listing URL override.")
    parser.add_argument("--query", dest="query", default=None, help="Platform search query.")
    parser.add_argument("--priority", dest="priority", type=int, default=DEFAULT_PRIORITY)
    parser.add_argument("--delay-ms", dest="delay_ms", type=int, default=0)
    parser.add_argument("--link-limit", dest="link_limit", type=int, default=None)
    args = parser.parse_args()

    queue = ScrapeQueue(session_factory=get_session_factory())

    if args.sweep == "universities":
        jobs = schedule_university_scrapers(queue)
    elif args.sweep == "platforms":
        jobs = schedule_platform_scrapers(queue, DEFAULT_PLATFORM_QUERIES)
    elif args.sweep == "comprehensive":
        jobs = schedule_university_scrapers(queue)
        jobs += schedule_platform_scrapers(queue, COMPREHENSIVE_PLATFORM_QUERIES)
    else:
        options = {"link_limit": args.link_limit} if args.link_limit is not None else {}
        config = {"url": args.url, "search_query": args.query, "options": options}
        try:
            jobs = [
                queue.enqueue(
                    args.source,
                    config,
                    priority=args.priority,
                    delay_ms=args.delay_ms,
                )
            ]
        except PermanentJobError as exc:
            print(json.dumps({"error": str(exc)}, indent=2))
            return 2

    print(json.dumps([job.model_dump(mode="json") for job in jobs], indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
