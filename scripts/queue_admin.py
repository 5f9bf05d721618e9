"""
Inspect and administer the scrape queue from CLI.
"""

from __future__ import annotations

import argparse
import json
from datetime import timedelta
from typing import Any

from app.queue.errors import JobNotFoundError
from app.queue.scrape_queue import ScrapeQueue
from db.models.scrape_job import ScrapeJobState
from db.session import get_session_factory


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scrape queue administration.")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("stats", help="Show job counts per state.")

    list_parser = commands.add_parser("list", help="List recent jobs.")
    list_parser.add_argument("--state", choices=list(ScrapeJobState.ALL), default=None)
    list_parser.add_argument("--limit", type=int, default=50)

    show_parser = commands.add_parser("show", help="Show one job.")
    show_parser.add_argument("job_id")

    clean_parser = commands.add_parser("clean", help="Delete finished jobs older than N hours.")
    clean_parser.add_argument("--hours", type=float, default=24.0)
    clean_parser.add_argument(
        "--state",
        dest="states",
        action="append",
        choices=[ScrapeJobState.COMPLETED, ScrapeJobState.FAILED],
        default=None,
    )

    commands.add_parser("prune", help="Apply configured retention windows.")
    commands.add_parser("retry-failed", help="Give every failed job one more run.")

    remove_parser = commands.add_parser("remove", help="Delete one job.")
    remove_parser.add_argument("job_id")
    return parser


def main() -> int:
    args = _build_parser().parse_args()
    queue = ScrapeQueue(session_factory=get_session_factory())

    payload: Any
    try:
        if args.command == "stats":
            payload = queue.get_stats().model_dump()
        elif args.command == "list":
            jobs = queue.list_jobs(state=args.state, limit=args.limit)
            payload = [job.model_dump(mode="json") for job in jobs]
        elif args.command == "show":
            payload = queue.get_job(args.job_id).model_dump(mode="json")
        elif args.command == "clean":
            states = tuple(args.states or (ScrapeJobState.COMPLETED, ScrapeJobState.FAILED))
            payload = {"removed": queue.clean_older_than(timedelta(hours=args.hours), states)}
        elif args.command == "prune":
            payload = {"removed": queue.prune()}
        elif args.command == "retry-failed":
            payload = {"requeued": queue.retry_all_failed()}
        else:
            queue.remove_job(args.job_id)
            payload = {"removed": args.job_id}
    except JobNotFoundError as exc:
        print(json.dumps({"error": str(exc)}, indent=2))
        return 1

    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
