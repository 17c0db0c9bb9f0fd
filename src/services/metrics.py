"""Normalise raw source rows into a canonical :class:`SchoolMetrics` record.

Upstream datasets are dirty: numeric columns arrive as text, suppressed
values are published as markers like ``"SUPP"`` or ``"x"``, and whole rows
are missing for many schools.  Every metric here is either a real number or
``None`` (absent).  A missing value is never turned into zero.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from src.services.jurisdiction import JurisdictionPolicy, flag_is_set, select_policy

logger = logging.getLogger(__name__)

OFSTED_LABELS: dict[int, str] = {
    1: "Outstanding",
    2: "Good",
    3: "Requires Improvement",
    4: "Inadequate",
}

_SUBJECTS = ("english", "maths", "science")


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SubjectScore:
    """A subject's school percentage and the comparator shown beside it."""

    school: float
    comparator: float | None = None


@dataclass(frozen=True)
class AcademicMetrics:
    english: SubjectScore | None = None
    maths: SubjectScore | None = None
    science: SubjectScore | None = None

    def present_subjects(self, include_science: bool = True) -> dict[str, SubjectScore]:
        """Return the subjects that carry a score, in display order."""
        subjects = {"english": self.english, "maths": self.maths}
        if include_science:
            subjects["science"] = self.science
        return {name: score for name, score in subjects.items() if score is not None}


@dataclass(frozen=True)
class SchoolMetrics:
    """Per-school inputs to the rating engine.  ``None`` means absent."""

    urn: str
    country: str | None = None
    is_scotland: bool | None = None
    ofsted_band: int | None = None
    academic: AcademicMetrics = field(default_factory=AcademicMetrics)
    attendance_rate: float | None = None
    fsm_percentage: float | None = None


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------


def field_value(row: Any, name: str) -> Any:
    """Read *name* from an ORM row, dataclass or mapping; ``None`` when missing."""
    if row is None:
        return None
    if isinstance(row, Mapping):
        return row.get(name)
    return getattr(row, name, None)


def coerce_float(value: Any) -> float | None:
    """Convert *value* to a finite float, or ``None`` if that is not possible."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().rstrip("%").strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            logger.debug("Discarding non-numeric value %r", value)
            return None
    if not math.isfinite(number):
        return None
    return number


def coerce_percentage(value: Any) -> float | None:
    """Return *value* as a 0-100 percentage, or ``None`` if missing or out of range."""
    number = coerce_float(value)
    if number is None or number < 0.0 or number > 100.0:
        return None
    return number


def coerce_band(value: Any) -> int | None:
    """Return an Ofsted overall-effectiveness grade 1-4, or ``None``."""
    number = coerce_float(value)
    if number is None or not number.is_integer():
        return None
    band = int(number)
    return band if band in OFSTED_LABELS else None


def ofsted_label(band: int | None) -> str:
    """Human-readable label for an Ofsted band."""
    if band is None:
        return "Not Inspected"
    return OFSTED_LABELS.get(band, "Not Inspected")


def _subject_score(scores: Any, subject: str) -> SubjectScore | None:
    school_pct = coerce_percentage(field_value(scores, f"{subject}_score"))
    if school_pct is None:
        return None
    comparator = coerce_percentage(field_value(scores, f"{subject}_la_average"))
    if comparator is None:
        comparator = coerce_percentage(field_value(scores, f"{subject}_national_average"))
    return SubjectScore(school=school_pct, comparator=comparator)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def attendance_from_absence(overall_absence_rate: Any) -> float | None:
    """Attendance percentage is ``100 - overall absence rate``."""
    absence = coerce_percentage(overall_absence_rate)
    if absence is None:
        return None
    return round(100.0 - absence, 2)


def normalise_metrics(
    school: Any,
    ofsted: Any = None,
    census: Any = None,
    attendance: Any = None,
    scores: Any = None,
    policy: JurisdictionPolicy | None = None,
) -> SchoolMetrics:
    """Build :class:`SchoolMetrics` from a registry row and its latest source rows.

    Args:
        school: Registry row (needs ``urn``, ``country``, ``is_scotland``).
        ofsted: Latest Ofsted inspection row, or ``None``.
        census: Latest census row, or ``None``.
        attendance: Latest absence row, or ``None``.
        scores: Latest test-score row, or ``None``.
        policy: Jurisdiction policy; selected from the school's country when omitted.

    Science is dropped for any policy that excludes it, whatever the source says.
    """
    country = field_value(school, "country")
    is_scotland = field_value(school, "is_scotland")
    if policy is None:
        policy = select_policy(country, is_scotland)

    subjects: dict[str, SubjectScore | None] = {
        subject: _subject_score(scores, subject) if scores is not None else None for subject in _SUBJECTS
    }
    if not policy.includes_science:
        subjects["science"] = None

    return SchoolMetrics(
        urn=str(field_value(school, "urn") or ""),
        country=country,
        is_scotland=flag_is_set(is_scotland) if is_scotland is not None else None,
        ofsted_band=coerce_band(field_value(ofsted, "overall_effectiveness")),
        academic=AcademicMetrics(**subjects),
        attendance_rate=attendance_from_absence(field_value(attendance, "overall_absence_rate")),
        fsm_percentage=coerce_percentage(field_value(census, "percentage_fsm_ever6")),
    )
