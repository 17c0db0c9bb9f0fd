"""Batch refresh of stored school ratings.

Ratings are recomputed out of band, never per request.  Each run selects
schools whose rating is missing or older than the staleness window,
recomputes them through the rating pipeline and replaces the stored rating
fields wholesale.  This driver is the only writer of those fields:

* a global lock stops two runs in the same process from overlapping;
* an in-flight set guarantees a school is never refreshed twice at once;
* a failure on one school is logged and counted, and the batch carries on.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
from dataclasses import dataclass, field
from typing import Any

from src.db.base import SchoolRepository
from src.services.jurisdiction import select_policy
from src.services.metrics import normalise_metrics
from src.services.rating import Rating, compute_rating, rating_to_record

logger = logging.getLogger(__name__)

DEFAULT_STALENESS = datetime.timedelta(days=30)
DEFAULT_CONCURRENCY = 8


@dataclass
class RefreshStats:
    """Outcome of one refresh run."""

    selected: int = 0
    refreshed: int = 0
    insufficient: int = 0
    failed: int = 0
    skipped: int = 0
    already_running: bool = False
    failed_urns: list[str] = field(default_factory=list)


class RatingRefreshDriver:
    """Recompute and persist ratings for stale schools.

    Parameters
    ----------
    repo:
        Repository providing the source lookups and rating persistence.
    staleness:
        Ratings older than this are recomputed.
    concurrency:
        Maximum number of schools processed at the same time.
    """

    def __init__(
        self,
        repo: SchoolRepository,
        staleness: datetime.timedelta = DEFAULT_STALENESS,
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> None:
        self._repo = repo
        self._staleness = staleness
        self._semaphore = asyncio.Semaphore(max(1, concurrency))
        self._run_lock = asyncio.Lock()
        self._in_flight: set[str] = set()

    async def select_stale(self, now: datetime.datetime, force: bool = False) -> list[str]:
        """URNs whose rating is missing or stale at *now* (every URN when *force*)."""
        stale_before = None if force else now - self._staleness
        return await self._repo.list_urns_needing_rating(stale_before)

    async def _lookup(self, name: str, urn: str, coro: Any) -> Any:
        """Await one source lookup; a failure means the metric is absent."""
        try:
            return await coro
        except Exception:
            logger.warning("%s lookup failed for URN %s: treating as absent", name, urn, exc_info=True)
            return None

    async def compute_for(self, urn: str) -> Rating | None:
        """Load a school's sources and compute its rating (``None`` if the school is unknown)."""
        school = await self._repo.get_school_by_urn(urn)
        if school is None:
            return None

        ofsted = await self._lookup("Ofsted", urn, self._repo.get_latest_ofsted(urn))
        census = await self._lookup("Census", urn, self._repo.get_latest_census(urn))
        attendance = await self._lookup("Attendance", urn, self._repo.get_latest_attendance(urn))
        scores = await self._lookup("Test scores", urn, self._repo.get_latest_test_scores(urn))

        policy = select_policy(school.country, school.is_scotland)
        metrics = normalise_metrics(school, ofsted, census, attendance, scores, policy=policy)
        return compute_rating(metrics, policy)

    async def refresh_school(self, urn: str, now: datetime.datetime) -> Rating | None:
        """Recompute and persist one school's rating."""
        rating = await self.compute_for(urn)
        if rating is None:
            logger.info("URN %s no longer in the registry, skipping", urn)
            return None
        await self._repo.save_rating(urn, rating_to_record(rating), now)
        return rating

    async def _process(self, urn: str, now: datetime.datetime, stats: RefreshStats) -> None:
        if urn in self._in_flight:
            stats.skipped += 1
            return
        self._in_flight.add(urn)
        try:
            async with self._semaphore:
                rating = await self.refresh_school(urn, now)
        except Exception:
            logger.exception("Rating refresh failed for URN %s", urn)
            stats.failed += 1
            stats.failed_urns.append(urn)
            return
        finally:
            self._in_flight.discard(urn)

        if rating is None:
            stats.skipped += 1
            return
        stats.refreshed += 1
        if not rating.is_sufficient:
            stats.insufficient += 1

    async def run(
        self,
        now: datetime.datetime | None = None,
        limit: int | None = None,
        force: bool = False,
    ) -> RefreshStats:
        """Refresh every stale school once.

        A run started while another is still going returns immediately
        with ``already_running`` set.
        """
        stats = RefreshStats()
        if self._run_lock.locked():
            logger.warning("Rating refresh already running, skipping this run")
            stats.already_running = True
            return stats

        async with self._run_lock:
            now = now or datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)
            urns = await self.select_stale(now, force=force)
            if limit is not None:
                urns = urns[:limit]
            stats.selected = len(urns)
            logger.info("Found %d schools needing a rating update", stats.selected)

            await asyncio.gather(*(self._process(urn, now, stats) for urn in urns))

        logger.info(
            "Rating refresh complete: %d refreshed (%d insufficient data), %d failed, %d skipped",
            stats.refreshed,
            stats.insufficient,
            stats.failed,
            stats.skipped,
        )
        return stats

    async def run_forever(
        self,
        interval: datetime.timedelta,
        limit: int | None = None,
        force: bool = False,
    ) -> None:
        """Run a refresh every *interval* until cancelled.

        *force* applies to the first run only; later runs pick up stale
        schools as usual.
        """
        while True:
            await self.run(limit=limit, force=force)
            force = False
            await asyncio.sleep(interval.total_seconds())
