"""Summary statistics for the schools of one local authority or city.

Input is whatever collection a location search returned; this module never
queries storage itself.  Phases are inferred from free-text registry fields
(phase, establishment type and group), so a school can fall into more than
one bucket -- an all-through school counts as both primary and secondary.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from src.services.jurisdiction import Jurisdiction, is_england, resolve_jurisdiction
from src.services.metrics import coerce_band, coerce_float, coerce_percentage, field_value

PHASE_PRIMARY = "primary"
PHASE_SECONDARY = "secondary"
PHASE_SIXTH_FORM = "sixth_form"
PHASE_SPECIAL = "special"
PHASES = (PHASE_PRIMARY, PHASE_SECONDARY, PHASE_SIXTH_FORM, PHASE_SPECIAL)

_ALL_THROUGH_TERMS = ("all-through", "all through", "primary and secondary", "through school")
_POST_PRIMARY_TERMS = ("post-primary", "post primary")
_PRIMARY_TERMS = (
    "primary",
    "infant",
    "junior",
    "first school",
    "nursery",
    "preparatory",
    "prep",
    "elementary",
    "lower school",
)
_SECONDARY_TERMS = (
    "secondary",
    "middle",
    "high",
    "upper",
    "senior",
    "academy",
    "grammar",
    "comprehensive",
    "college",
    "post-16",
    "post 16",
)
_SIXTH_FORM_TERMS = ("sixth", "six form", "sixthform", "post-16", "post 16", "further education")

OFSTED_BUCKETS: dict[int, str] = {
    1: "outstanding",
    2: "good",
    3: "requires_improvement",
    4: "inadequate",
}
NOT_INSPECTED = "not_inspected"

_UNKNOWN_LA_NAMES = {"unknown", "n/a", "na", "not applicable"}


@dataclass
class LocalAuthorityBreakdown:
    name: str
    total_schools: int = 0
    primary: int = 0
    secondary: int = 0
    special: int = 0
    outstanding: int = 0
    good: int = 0
    students: int = 0


@dataclass
class GeoSummary:
    """Roll-up of a school collection.  Means are ``None`` when no school has the figure."""

    name: str | None
    total_schools: int = 0
    total_students: int = 0
    phase_counts: dict[str, int] = field(default_factory=lambda: {phase: 0 for phase in PHASES})
    ofsted_distribution: dict[str, int] = field(
        default_factory=lambda: {**{bucket: 0 for bucket in OFSTED_BUCKETS.values()}, NOT_INSPECTED: 0}
    )
    avg_english: float | None = None
    avg_maths: float | None = None
    avg_attendance: float | None = None
    avg_fsm: float | None = None
    avg_rating: float | None = None
    local_authorities: dict[str, LocalAuthorityBreakdown] = field(default_factory=dict)


def _combined_text(school: Any) -> str:
    parts = (
        field_value(school, "phase_of_education"),
        field_value(school, "type_of_establishment"),
        field_value(school, "establishment_group"),
    )
    return " ".join(str(p).lower() for p in parts if p).strip()


def _contains_any(text: str, terms: Iterable[str]) -> bool:
    return any(term in text for term in terms)


def _contains_word(text: str, term: str) -> bool:
    return term in text.replace("-", " ").replace("/", " ").split()


def classify_phase(school: Any) -> set[str]:
    """Return every phase bucket *school* belongs to (possibly none)."""
    text = _combined_text(school)
    phases: set[str] = set()

    if text:
        # "sen" is an abbreviation; only match it as a whole word.
        if "special" in text or _contains_word(text, "sen"):
            phases.add(PHASE_SPECIAL)
        elif _contains_any(text, _ALL_THROUGH_TERMS):
            phases.update((PHASE_PRIMARY, PHASE_SECONDARY))
        elif _contains_any(text, _POST_PRIMARY_TERMS):
            phases.add(PHASE_SECONDARY)
        elif _contains_any(text, _PRIMARY_TERMS):
            phases.add(PHASE_PRIMARY)
        elif _contains_any(text, _SECONDARY_TERMS):
            phases.add(PHASE_SECONDARY)

    scottish = resolve_jurisdiction(field_value(school, "country"), field_value(school, "is_scotland")) is (
        Jurisdiction.SCOTLAND
    )
    if not scottish and (field_value(school, "has_sixth_form") is True or _contains_any(text, _SIXTH_FORM_TERMS)):
        phases.add(PHASE_SIXTH_FORM)
    return phases


def schools_by_phase(schools: Iterable[Any]) -> dict[str, list[Any]]:
    """Group *schools* by phase, keeping input order within each phase."""
    grouped: dict[str, list[Any]] = {phase: [] for phase in PHASES}
    for school in schools:
        for phase in classify_phase(school):
            grouped[phase].append(school)
    return grouped


def resolve_local_authority(school: Any) -> str:
    """Pick the local authority name for a school, falling back to its town."""
    for key in ("local_authority", "town"):
        value = field_value(school, key)
        if value is None:
            continue
        name = str(value).strip()
        if name and name.lower() not in _UNKNOWN_LA_NAMES:
            return name
    return "Unknown"


def _mean(values: list[float]) -> float | None:
    if not values:
        return None
    return round(sum(values) / len(values), 1)


def aggregate_geography(schools: Iterable[Any], name: str | None = None) -> GeoSummary:
    """Summarise a local authority's or city's schools.

    A school missing a figure is left out of that figure's mean rather than
    counted as zero.  The Ofsted distribution only counts English schools.
    """
    summary = GeoSummary(name=name)
    english: list[float] = []
    maths: list[float] = []
    attendance: list[float] = []
    fsm: list[float] = []
    ratings: list[float] = []

    for school in schools:
        summary.total_schools += 1

        la_name = resolve_local_authority(school)
        la = summary.local_authorities.setdefault(la_name.lower(), LocalAuthorityBreakdown(name=la_name))
        la.total_schools += 1

        phases = classify_phase(school)
        for phase in phases:
            summary.phase_counts[phase] += 1
        la.primary += int(PHASE_PRIMARY in phases)
        la.secondary += int(PHASE_SECONDARY in phases)
        la.special += int(PHASE_SPECIAL in phases)

        roll = coerce_float(field_value(school, "number_on_roll"))
        if roll is not None and roll >= 0:
            summary.total_students += int(roll)
            la.students += int(roll)

        if is_england(field_value(school, "country"), field_value(school, "is_scotland")):
            band = coerce_band(field_value(school, "ofsted_rating"))
            bucket = OFSTED_BUCKETS.get(band, NOT_INSPECTED)
            summary.ofsted_distribution[bucket] += 1
            la.outstanding += int(band == 1)
            la.good += int(band == 2)

        for values, key in (
            (english, "english_score"),
            (maths, "maths_score"),
            (attendance, "attendance_rate"),
            (fsm, "fsm_percentage"),
        ):
            value = coerce_percentage(field_value(school, key))
            if value is not None:
                values.append(value)

        rating = coerce_float(field_value(school, "overall_rating"))
        if rating is not None:
            ratings.append(rating)

    summary.avg_english = _mean(english)
    summary.avg_maths = _mean(maths)
    summary.avg_attendance = _mean(attendance)
    summary.avg_fsm = _mean(fsm)
    summary.avg_rating = _mean(ratings)
    return summary
