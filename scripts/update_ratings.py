#!/usr/bin/env python3
"""
Recompute stored school ratings.

Selects schools whose rating is missing or older than RATING_STALENESS_DAYS,
recomputes each one from the latest Ofsted, census, absence and test-score
data, and writes the result back.  Run from the repository root:

    python -m scripts.update_ratings              # stale schools only
    python -m scripts.update_ratings --force      # every school
    python -m scripts.update_ratings --loop       # keep refreshing on an interval
    python -m scripts.update_ratings --loop --force   # full refresh first, then stale only
"""

from __future__ import annotations

import argparse
import asyncio
import datetime
import logging
import sys

from src.config import get_settings
from src.db.factory import get_school_repository
from src.services.rating_refresh import RatingRefreshDriver, RefreshStats

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Recompute stale school ratings.")
    parser.add_argument("--limit", type=int, default=None, help="Maximum number of schools to refresh")
    parser.add_argument("--force", action="store_true", help="Refresh every school, not just stale ones")
    parser.add_argument("--loop", action="store_true", help="Repeat every RATING_REFRESH_INTERVAL_HOURS")
    return parser.parse_args(argv)


def _print_summary(stats: RefreshStats) -> None:
    print("=" * 60)
    print("RATING REFRESH SUMMARY")
    print("=" * 60)
    print(f"  Selected:           {stats.selected}")
    print(f"  Refreshed:          {stats.refreshed}")
    print(f"  Insufficient data:  {stats.insufficient}")
    print(f"  Failed:             {stats.failed}")
    print(f"  Skipped:            {stats.skipped}")
    if stats.failed_urns:
        print(f"  Failed URNs:        {', '.join(stats.failed_urns)}")
    print("=" * 60)


async def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    repo = get_school_repository()
    await repo.init_db()

    driver = RatingRefreshDriver(
        repo,
        staleness=datetime.timedelta(days=settings.RATING_STALENESS_DAYS),
        concurrency=settings.RATING_REFRESH_CONCURRENCY,
    )

    if args.loop:
        interval = datetime.timedelta(hours=settings.RATING_REFRESH_INTERVAL_HOURS)
        logger.info("Refreshing ratings every %s", interval)
        await driver.run_forever(interval, limit=args.limit, force=args.force)
        return 0

    stats = await driver.run(limit=args.limit, force=args.force)
    _print_summary(stats)
    return 1 if stats.failed else 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(130)
