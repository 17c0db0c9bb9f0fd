"""Component scorers: turn one present metric into a 0-10 rating component.

Each scorer returns ``None`` when its underlying metric is absent so the
aggregator can leave the component out entirely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from src.services.jurisdiction import COMPONENT_ACADEMIC, COMPONENT_ATTENDANCE, COMPONENT_OFSTED
from src.services.metrics import AcademicMetrics, ofsted_label

# Banded proxy, not a continuous scale.
OFSTED_BAND_SCORES: dict[int, float] = {1: 9.0, 2: 7.0, 3: 5.0, 4: 3.0}

MIN_COMPONENT_SCORE = 0.0
MAX_COMPONENT_SCORE = 10.0

# Keys used in the persisted details, as the profile page reads them.
_SUBJECT_DETAIL_KEYS = {"english": "english", "maths": "math", "science": "science"}


@dataclass(frozen=True)
class RatingComponent:
    """One weighted contributor to a school's overall rating."""

    name: str
    weight: int
    score: float
    label: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "weight": self.weight,
            "score": self.score,
            "label": self.label,
            "details": dict(self.details),
        }


def _clamp_score(score: float) -> float:
    return round(max(MIN_COMPONENT_SCORE, min(score, MAX_COMPONENT_SCORE)), 2)


def score_ofsted(band: int | None, weight: int) -> RatingComponent | None:
    """Ofsted band 1-4 maps to 9/7/5/3."""
    if band is None or band not in OFSTED_BAND_SCORES:
        return None
    label = ofsted_label(band)
    return RatingComponent(
        name=COMPONENT_OFSTED,
        weight=weight,
        score=_clamp_score(OFSTED_BAND_SCORES[band]),
        label=label,
        details={"band": band, "label": label},
    )


def score_academic(academic: AcademicMetrics, weight: int, include_science: bool = True) -> RatingComponent | None:
    """Average of the present subject percentages, scaled to 0-10.

    Comparators are carried into ``details`` for display only.
    """
    subjects = academic.present_subjects(include_science=include_science)
    if not subjects:
        return None

    average_pct = sum(s.school for s in subjects.values()) / len(subjects)
    details = {
        _SUBJECT_DETAIL_KEYS[name]: {"school": s.school, "la_avg": s.comparator} for name, s in subjects.items()
    }
    return RatingComponent(
        name=COMPONENT_ACADEMIC,
        weight=weight,
        score=_clamp_score(average_pct / 10.0),
        label="Academic Performance",
        details=details,
    )


def score_attendance(attendance_rate: float | None, weight: int) -> RatingComponent | None:
    """Attendance percentage scaled to 0-10."""
    if attendance_rate is None:
        return None
    return RatingComponent(
        name=COMPONENT_ATTENDANCE,
        weight=weight,
        score=_clamp_score(attendance_rate / 10.0),
        label="Attendance",
        details={"school_rate": attendance_rate},
    )
