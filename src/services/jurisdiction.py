"""Jurisdiction policy selection for the overall school rating.

Each UK nation publishes a different set of school datasets.  England has
Ofsted inspections and science attainment; Scotland, Wales and Northern
Ireland do not.  A :class:`JurisdictionPolicy` declares which rating
components apply to a school and how much each one weighs, so the rating
aggregator consults one lookup instead of branching on country everywhere.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class Jurisdiction(str, enum.Enum):
    ENGLAND = "England"
    SCOTLAND = "Scotland"
    OTHER = "Other"


COMPONENT_OFSTED = "ofsted"
COMPONENT_ACADEMIC = "academic"
COMPONENT_ATTENDANCE = "attendance"


@dataclass(frozen=True)
class JurisdictionPolicy:
    """Component weights (percent of the total rating) for one jurisdiction.

    ``weights`` is ordered; that order is the order components appear in a
    computed rating.  Components not listed are excluded outright, which is
    different from being listed with weight zero.
    """

    jurisdiction: Jurisdiction
    weights: tuple[tuple[str, int], ...]
    includes_science: bool

    @property
    def component_names(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.weights)

    @property
    def total_weight(self) -> int:
        return sum(weight for _, weight in self.weights)

    def weight_for(self, name: str) -> int | None:
        """Return the weight of *name*, or ``None`` if this policy excludes it."""
        for component, weight in self.weights:
            if component == name:
                return weight
        return None


# Ofsted weight is fixed at 30, academic 45, attendance 25.
ENGLAND_POLICY = JurisdictionPolicy(
    jurisdiction=Jurisdiction.ENGLAND,
    weights=((COMPONENT_OFSTED, 30), (COMPONENT_ACADEMIC, 45), (COMPONENT_ATTENDANCE, 25)),
    includes_science=True,
)

SCOTLAND_POLICY = JurisdictionPolicy(
    jurisdiction=Jurisdiction.SCOTLAND,
    weights=((COMPONENT_ACADEMIC, 60), (COMPONENT_ATTENDANCE, 40)),
    includes_science=False,
)

OTHER_UK_POLICY = JurisdictionPolicy(
    jurisdiction=Jurisdiction.OTHER,
    weights=((COMPONENT_ACADEMIC, 60), (COMPONENT_ATTENDANCE, 40)),
    includes_science=False,
)

POLICIES: dict[Jurisdiction, JurisdictionPolicy] = {
    Jurisdiction.ENGLAND: ENGLAND_POLICY,
    Jurisdiction.SCOTLAND: SCOTLAND_POLICY,
    Jurisdiction.OTHER: OTHER_UK_POLICY,
}

for _policy in POLICIES.values():
    if _policy.total_weight != 100:
        raise ValueError(f"{_policy.jurisdiction.value} weights must sum to 100, got {_policy.total_weight}")

_TRUE_STRINGS = frozenset({"1", "true", "t", "yes", "y"})


def flag_is_set(value: object) -> bool:
    """Read a boolean column that may arrive as a bool, an integer or text."""
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


_COUNTRY_ALIASES: dict[str, Jurisdiction] = {
    "england": Jurisdiction.ENGLAND,
    "scotland": Jurisdiction.SCOTLAND,
    "wales": Jurisdiction.OTHER,
    "cymru": Jurisdiction.OTHER,
    "northern ireland": Jurisdiction.OTHER,
    "ni": Jurisdiction.OTHER,
}


def resolve_jurisdiction(country: str | None, is_scotland: bool | None = None) -> Jurisdiction:
    """Map a school's country (and the legacy ``is_scotland`` flag) to a jurisdiction.

    Either ``country == "Scotland"`` or a set ``is_scotland`` flag selects
    Scotland.  The flag is read leniently: ``True``, ``1`` and strings such
    as ``"1"`` or ``"true"`` all count as set.  A missing or blank country
    means England, which is where the registry rows without a country come
    from.  Any other unrecognised value also falls back to England and is
    logged.
    """
    if flag_is_set(is_scotland):
        return Jurisdiction.SCOTLAND

    key = (country or "").strip().lower()
    if not key:
        return Jurisdiction.ENGLAND

    jurisdiction = _COUNTRY_ALIASES.get(key)
    if jurisdiction is None:
        logger.warning("Unrecognised country %r: falling back to the England rating policy", country)
        return Jurisdiction.ENGLAND
    return jurisdiction


def select_policy(country: str | None, is_scotland: bool | None = None) -> JurisdictionPolicy:
    """Return the rating policy that applies to a school in *country*."""
    return POLICIES[resolve_jurisdiction(country, is_scotland)]


def is_england(country: str | None, is_scotland: bool | None = None) -> bool:
    """Shortcut used by display and aggregation code for England-only features."""
    return resolve_jurisdiction(country, is_scotland) is Jurisdiction.ENGLAND
