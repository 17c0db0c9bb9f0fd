"""Fair ranking for "top N" school lists.

A school rated only on one metric can post a high number on a lucky score;
sorting by the raw ``overall_rating`` would let it outrank schools whose
lower rating rests on several datasets.  Schools are therefore bucketed
into data-completeness tiers first and only compared within a tier:

  1. ``complete``    -- stored rating backed by 100% of the policy weight
  2. ``partial``     -- stored rating backed by 40-99%
  3. ``ofsted-only`` -- no usable rating, but an Ofsted band (England only)
  4. ``unrated``     -- nothing usable

The concatenation of the tiers, not the raw rating, defines "top N".
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from src.services.jurisdiction import is_england
from src.services.metrics import coerce_band, coerce_float, field_value

COMPLETE_THRESHOLD = 100
PARTIAL_THRESHOLD = 40


class RankTier(str, enum.Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    OFSTED_ONLY = "ofsted-only"
    UNRATED = "unrated"


TIER_ORDER: tuple[RankTier, ...] = (
    RankTier.COMPLETE,
    RankTier.PARTIAL,
    RankTier.OFSTED_ONLY,
    RankTier.UNRATED,
)


@dataclass(frozen=True)
class RankedSchool:
    """A school together with its tier and 1-based position in the ranking."""

    school: Any
    tier: RankTier
    position: int


def assign_tier(school: Any) -> RankTier:
    """Return the fairness tier for one school row."""
    overall = coerce_float(field_value(school, "overall_rating"))
    completeness = coerce_float(field_value(school, "rating_data_completeness"))

    if overall is not None and completeness is not None:
        if completeness >= COMPLETE_THRESHOLD:
            return RankTier.COMPLETE
        if completeness >= PARTIAL_THRESHOLD:
            return RankTier.PARTIAL

    band = coerce_band(field_value(school, "ofsted_rating"))
    if band is not None and is_england(field_value(school, "country"), field_value(school, "is_scotland")):
        return RankTier.OFSTED_ONLY
    return RankTier.UNRATED


def _sort_key(tier: RankTier, school: Any) -> Any:
    if tier in (RankTier.COMPLETE, RankTier.PARTIAL):
        return -(coerce_float(field_value(school, "overall_rating")) or 0.0)
    if tier is RankTier.OFSTED_ONLY:
        return coerce_band(field_value(school, "ofsted_rating"))
    return (field_value(school, "name") or "").casefold()


def rank_schools(schools: Iterable[Any]) -> list[RankedSchool]:
    """Order *schools* for leaderboard display.

    Deterministic: ties keep their input order (``sorted`` is stable), so
    ranking the same collection twice gives the same sequence.
    """
    buckets: dict[RankTier, list[Any]] = {tier: [] for tier in TIER_ORDER}
    for school in schools:
        buckets[assign_tier(school)].append(school)

    ranked: list[RankedSchool] = []
    for tier in TIER_ORDER:
        for school in sorted(buckets[tier], key=lambda s, t=tier: _sort_key(t, s)):
            ranked.append(RankedSchool(school=school, tier=tier, position=len(ranked) + 1))
    return ranked


def top_n(schools: Iterable[Any], n: int) -> list[RankedSchool]:
    """The first *n* entries of :func:`rank_schools`."""
    if n <= 0:
        return []
    return rank_schools(schools)[:n]


def tier_counts(ranked: Sequence[RankedSchool]) -> dict[str, int]:
    """Number of schools per tier, keyed by tier value."""
    counts = {tier.value: 0 for tier in TIER_ORDER}
    for entry in ranked:
        counts[entry.tier.value] += 1
    return counts
