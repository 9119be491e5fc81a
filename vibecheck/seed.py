"""
Seed the local report store with synthetic reports.

Usage:
    python -m vibecheck.seed --days 30 --seed 42
"""

import argparse
import asyncio
import random
from datetime import date
from typing import List, Optional

from vibecheck.core.database import SessionLocal, init_db
from vibecheck.core.logging import logger
from vibecheck.models.report import IssueCategory
from vibecheck.services.report_store import SqlReportStore
from vibecheck.utils.helpers import utcnow
from vibecheck.utils.synthetic import DEFAULT_MODELS, SyntheticReports


def parse_spike(value: str):
    """
    Parse a spike window of the form model:environment:category:from:to:factor.
    """
    parts = value.split(":")
    if len(parts) != 6:
        raise argparse.ArgumentTypeError(
            "spike must be model:environment:category:YYYY-MM-DD:YYYY-MM-DD:factor"
        )
    model, environment, category, first, last, factor = parts
    try:
        return (
            model,
            environment,
            IssueCategory(category),
            date.fromisoformat(first),
            date.fromisoformat(last),
            float(factor),
        )
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid spike {value!r}: {e}")


async def seed_database(
    days: int = 30,
    seed: int = 42,
    signals: int = 220,
    feedback: int = 40,
    models: Optional[List[str]] = None,
    spikes=None,
    last_day: Optional[date] = None,
) -> int:
    """
    Write synthetic reports for the days ending at last_day (default today).

    Returns:
        Number of reports written.
    """
    generator = SyntheticReports(random.Random(seed), models=models, spikes=spikes)
    last_day = last_day or utcnow().date()

    db = SessionLocal()
    store = SqlReportStore(db)
    written = 0
    try:
        batch = []
        for record in generator.days(last_day, days, signals=signals, feedback=feedback):
            batch.append(record)
            if len(batch) >= 1000:
                written += await store.append_many(batch)
                batch = []
        if batch:
            written += await store.append_many(batch)
    finally:
        db.close()

    logger.info(f"Seeded {written} reports over {days} days ending {last_day.isoformat()}")
    return written


def main():
    parser = argparse.ArgumentParser(description="Seed VibeCheck with synthetic reports")
    parser.add_argument("--days", type=int, default=30, help="Number of days to generate")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--signals", type=int, default=220, help="Implicit signals per day")
    parser.add_argument("--feedback", type=int, default=40, help="Explicit feedback reports per day")
    parser.add_argument("--models", nargs="+", default=DEFAULT_MODELS, help="Models, most popular first")
    parser.add_argument("--spike", type=parse_spike, action="append", default=[],
                        help="Incident window model:environment:category:from:to:factor")
    args = parser.parse_args()

    init_db()
    written = asyncio.run(seed_database(
        days=args.days,
        seed=args.seed,
        signals=args.signals,
        feedback=args.feedback,
        models=args.models,
        spikes=args.spike,
    ))
    print(f"Seeded {written} reports")


if __name__ == "__main__":
    main()
