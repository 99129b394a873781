"""Abandoned-submission cleanup CLI — ``questionnaire-cleanup``.

Deletes incomplete submissions that have not been touched for N days.
Intended for cron jobs.  Completed submissions are never removed.

Examples::

    # Use SUBMISSION_TTL_DAYS (default 30)
    questionnaire-cleanup

    # Incomplete submissions untouched for a week
    questionnaire-cleanup --days 7

    # Every incomplete submission
    questionnaire-cleanup --days 0
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

logger = logging.getLogger(__name__)


async def run_cleanup(*, days: int) -> int:
    """Purge abandoned submissions in one transaction and return the row count."""
    # Imported lazily so --help works without DB drivers configured
    from questionnaire_db.engine import dispose_engine, get_session_factory
    from questionnaire_db.repository import SubmissionRepository

    repo = SubmissionRepository()
    factory = get_session_factory()
    try:
        async with factory() as db:
            affected = await repo.purge_abandoned(db, older_than_days=days)
            await db.commit()
        logger.info("Cleanup complete: purged=%d, days=%d", affected, days)
        return affected
    finally:
        await dispose_engine()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="questionnaire-cleanup",
        description="Delete abandoned (incomplete) questionnaire submissions.",
    )
    parser.add_argument(
        "--days",
        type=int,
        default=int(os.getenv("SUBMISSION_TTL_DAYS", "30")),
        help="Age threshold in days since last update (default: $SUBMISSION_TTL_DAYS or 30). "
        "0 removes every incomplete submission.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser


def cli() -> None:
    """Console-script entry point: ``questionnaire-cleanup``."""
    args = build_parser().parse_args()
    if args.days < 0:
        print("--days must be >= 0", file=sys.stderr)
        sys.exit(2)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    affected = asyncio.run(run_cleanup(days=args.days))
    print(f"Purged submissions: {affected}")
    sys.exit(0)
