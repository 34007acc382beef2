"""Command-line entry point for the scheduled rent collection jobs.

Usage:
    # Daily cron: generate on the 1st, then match payments, then escalate
    python -m rent_collection daily --snapshot data.json

    # Single job, on a simulated date
    python -m rent_collection remind --snapshot data.json --date=2025-01-11
"""

import argparse
import asyncio
import json
import sys
from datetime import date
from pathlib import Path
from typing import Any

import structlog

from rent_collection.clock import Clock, FixedClock, SystemClock
from rent_collection.config import configure_logging
from rent_collection.service import RentCollectionService
from rent_collection.snapshot import load_snapshot, save_snapshot

logger = structlog.get_logger(__name__)

JOBS = ("daily", "generate", "check", "remind")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="rent-collection",
        description="Rent payment tracking jobs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Jobs:
  daily     Generate (1st of month only), check payments, process reminders
  generate  Create this month's tracking rows
  check     Match bank transactions against open trackings
  remind    Advance the follow-up ladder and send notifications
        """,
    )
    parser.add_argument("job", choices=JOBS, help="Job to run")
    parser.add_argument(
        "--snapshot",
        type=Path,
        required=True,
        help="JSON file with leases, transactions, conversations and trackings",
    )
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Run as if today were this date (YYYY-MM-DD)",
    )
    return parser.parse_args(argv)


async def _run_job(service: RentCollectionService, job: str) -> dict[str, Any]:
    if job == "daily":
        return (await service.run_daily()).to_dict()
    if job == "generate":
        return service.generate_monthly_tracking().to_dict()
    if job == "check":
        return service.check_payments().to_dict()
    return (await service.process_reminders()).to_dict()


async def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = _parse_args(argv)
    clock: Clock = FixedClock(args.date) if args.date else SystemClock()

    logger.info("rent_collection_job_started", job=args.job, snapshot=str(args.snapshot))
    try:
        snapshot = load_snapshot(args.snapshot, clock=clock)
        async with RentCollectionService(
            snapshot.store,
            snapshot.leases,
            snapshot.transactions,
            snapshot.conversations,
            clock=clock,
        ) as service:
            result = await _run_job(service, args.job)
        save_snapshot(args.snapshot, snapshot)
    except Exception as e:
        logger.exception("rent_collection_job_failed", job=args.job, error=str(e))
        return 1

    print(json.dumps(result, indent=2))
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
