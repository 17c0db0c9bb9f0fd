"""Overall 1-10 school rating.

Combines the components present for a school under its jurisdiction's
weight table.  The blend is renormalised over the weight actually present,
so a school missing one dataset is not penalised twice (once for the
missing score and again for the diluted weight).  How much of the rating
rests on real data is reported as ``completeness``; below
:data:`MIN_DATA_COMPLETENESS` no overall rating is given at all.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from src.services.components import RatingComponent, score_academic, score_attendance, score_ofsted
from src.services.jurisdiction import (
    COMPONENT_ACADEMIC,
    COMPONENT_ATTENDANCE,
    COMPONENT_OFSTED,
    JurisdictionPolicy,
)
from src.services.metrics import SchoolMetrics, coerce_float, field_value

logger = logging.getLogger(__name__)

MIN_DATA_COMPLETENESS = 50
MIN_OVERALL_RATING = 1.0
MAX_OVERALL_RATING = 10.0


@dataclass(frozen=True)
class Rating:
    """A school's rating.  ``overall`` is ``None`` when there is too little data."""

    overall: float | None
    components: tuple[RatingComponent, ...]
    completeness: int
    percentile: int | None = None

    @property
    def is_sufficient(self) -> bool:
        return self.overall is not None

    def component(self, name: str) -> RatingComponent | None:
        for component in self.components:
            if component.name == name:
                return component
        return None


def _score_component(
    name: str, weight: int, metrics: SchoolMetrics, policy: JurisdictionPolicy
) -> RatingComponent | None:
    if name == COMPONENT_OFSTED:
        return score_ofsted(metrics.ofsted_band, weight)
    if name == COMPONENT_ACADEMIC:
        return score_academic(metrics.academic, weight, include_science=policy.includes_science)
    if name == COMPONENT_ATTENDANCE:
        return score_attendance(metrics.attendance_rate, weight)
    logger.warning("Policy %s lists unknown component %r", policy.jurisdiction.value, name)
    return None


def compute_rating(metrics: SchoolMetrics, policy: JurisdictionPolicy, percentile: int | None = None) -> Rating:
    """Compute the overall rating for one school.

    Pure function of its inputs: identical metrics always give an identical
    :class:`Rating`.  ``percentile`` is passed through untouched; it is
    computed elsewhere.
    """
    components: list[RatingComponent] = []
    for name, weight in policy.weights:
        component = _score_component(name, weight, metrics, policy)
        if component is not None:
            components.append(component)

    completeness = sum(c.weight for c in components)

    overall: float | None = None
    if completeness >= MIN_DATA_COMPLETENESS:
        blended = sum(c.score * c.weight for c in components) / completeness
        overall = max(MIN_OVERALL_RATING, min(round(blended, 1), MAX_OVERALL_RATING))

    return Rating(
        overall=overall,
        components=tuple(components),
        completeness=completeness,
        percentile=percentile,
    )


# ---------------------------------------------------------------------------
# Persistence mapping
# ---------------------------------------------------------------------------


def rating_to_record(rating: Rating) -> dict[str, Any]:
    """Return the school-row columns that store *rating* (all replaced together)."""
    return {
        "overall_rating": rating.overall,
        "rating_components": [c.to_dict() for c in rating.components],
        "rating_data_completeness": rating.completeness,
    }


def _parse_components(raw: Any) -> tuple[RatingComponent, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring malformed rating_components payload")
            return ()
    if not isinstance(raw, list):
        return ()

    components: list[RatingComponent] = []
    for item in raw:
        if not isinstance(item, dict) or "name" not in item:
            continue
        weight = coerce_float(item.get("weight"))
        score = coerce_float(item.get("score"))
        if weight is None or score is None:
            continue
        components.append(
            RatingComponent(
                name=str(item["name"]),
                weight=int(weight),
                score=score,
                label=str(item.get("label") or ""),
                details=dict(item.get("details") or {}),
            )
        )
    return tuple(components)


def rating_from_record(row: Any) -> Rating:
    """Rebuild the last committed :class:`Rating` from a stored school row."""
    completeness = coerce_float(field_value(row, "rating_data_completeness"))
    percentile = coerce_float(field_value(row, "rating_percentile"))
    return Rating(
        overall=coerce_float(field_value(row, "overall_rating")),
        components=_parse_components(field_value(row, "rating_components")),
        completeness=int(completeness) if completeness is not None else 0,
        percentile=int(percentile) if percentile is not None else None,
    )
