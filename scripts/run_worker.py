"""
Run scrape queue workers (and the scheduler) from CLI.
"""

from __future__ import annotations

import argparse

from app.worker import run


def main() -> int:
    parser = argparse.ArgumentParser(description="Run scrape queue workers.")
    parser.add_argument(
        "--concurrency",
        dest="concurrency",
        type=int,
        default=None,
        help="Jobs run at once. Defaults to SCRAPE_QUEUE_CONCURRENCY.",
    )
    parser.add_argument(
        "--no-scheduler",
        dest="with_scheduler",
        action="store_false",
        help="Only drain the queue; do not register periodic sweeps.",
    )
    args = parser.parse_args()

    run(with_scheduler=args.with_scheduler, concurrency=args.concurrency)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
