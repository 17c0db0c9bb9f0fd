from __future__ import annotations

import datetime
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from src.db.models import AbsenceData, CensusData, OfstedInspection, School, TestScores


@dataclass
class SchoolSearch:
    """Criteria for a name / postcode / location substring search."""

    q: str
    search_type: str = "all"  # all / name / postcode / location
    ofsted: int | None = None  # exact Ofsted band 1-4
    local_authority: str | None = None


@dataclass
class SchoolSummary:
    """Flat row for list views: registry fields, stored rating and latest source figures.

    Built by location searches so that ranking and geographic aggregation
    never need to touch the ORM.
    """

    urn: str
    name: str
    country: str | None = None
    is_scotland: bool | None = None
    phase_of_education: str | None = None
    type_of_establishment: str | None = None
    establishment_group: str | None = None
    has_sixth_form: bool | None = None
    local_authority: str | None = None
    town: str | None = None
    postcode: str | None = None

    overall_rating: float | None = None
    rating_data_completeness: int | None = None
    rating_percentile: int | None = None
    rating_components: list | None = None

    ofsted_rating: int | None = None  # latest Ofsted band
    number_on_roll: float | None = None
    fsm_percentage: float | None = None
    attendance_rate: float | None = None
    english_score: float | None = None
    maths_score: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return dict(self.__dict__)


class SchoolRepository(ABC):
    """Abstract interface for all school data access.

    Source datasets are read-only.  The only write is :meth:`save_rating`,
    used by the batch rating refresh.
    """

    @abstractmethod
    async def init_db(self) -> None:
        """Create the schema if it does not exist yet."""
        ...

    # ------------------------------------------------------------------
    # Single-school lookups
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_school_by_urn(self, urn: str) -> School | None:
        """Return the registry row for *urn*, or ``None`` if not found."""
        ...

    @abstractmethod
    async def get_latest_ofsted(self, urn: str) -> OfstedInspection | None:
        """Return the most recent Ofsted inspection for a school."""
        ...

    @abstractmethod
    async def get_latest_census(self, urn: str) -> CensusData | None:
        """Return the census row for the most recent academic year."""
        ...

    @abstractmethod
    async def get_latest_attendance(self, urn: str) -> AbsenceData | None:
        """Return the absence row for the most recent academic year."""
        ...

    @abstractmethod
    async def get_latest_test_scores(self, urn: str) -> TestScores | None:
        """Return the test-score row for the most recent academic year."""
        ...

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    @abstractmethod
    async def find_schools_by_location(self, location: str) -> list[SchoolSummary]:
        """Return summaries of schools whose local authority or town is *location*."""
        ...

    @abstractmethod
    async def find_schools_by_phase(self, phase: str | None) -> list[SchoolSummary]:
        """Return summaries of every school whose phase of education is *phase*.

        Matching is case-insensitive; ``None`` returns every school.
        """
        ...

    @abstractmethod
    async def search_schools(self, search: SchoolSearch) -> list[SchoolSummary]:
        """Return summaries matching a substring search."""
        ...

    @abstractmethod
    async def list_local_authorities(self) -> list[str]:
        """Return a sorted list of distinct local authority names."""
        ...

    # ------------------------------------------------------------------
    # Rating persistence
    # ------------------------------------------------------------------

    @abstractmethod
    async def list_urns_needing_rating(self, stale_before: datetime.datetime | None) -> list[str]:
        """Return URNs whose rating is missing or was computed before *stale_before*.

        ``stale_before=None`` selects every school.
        """
        ...

    @abstractmethod
    async def save_rating(self, urn: str, record: dict[str, Any], updated_at: datetime.datetime) -> None:
        """Replace all stored rating fields for *urn* in one write."""
        ...
