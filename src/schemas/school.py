from __future__ import annotations

import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class RatingComponentResponse(BaseModel):
    """One weighted contributor to the overall rating."""

    model_config = ConfigDict(from_attributes=True)

    name: str
    weight: int
    score: float
    label: str
    details: dict[str, Any] = {}


class RatingResponse(BaseModel):
    """The last committed rating for a school."""

    urn: str
    overall_rating: float | None = None
    rating_display: str = "N/A"
    rating_components: list[RatingComponentResponse] = []
    rating_data_completeness: int = 0
    rating_percentile: int | None = None
    percentile_text: str | None = None
    tier: str
    jurisdiction: str
    rating_updated_at: datetime.datetime | None = None


class AddressResponse(BaseModel):
    street: str | None = None
    town: str | None = None
    postcode: str | None = None
    local_authority: str | None = None


class DemographicsResponse(BaseModel):
    total_students: float | None = None
    fsm_percentage: float | None = None
    eal_percentage: float | None = None
    sen_support_percentage: float | None = None


class AttendanceResponse(BaseModel):
    overall_absence_rate: float | None = None
    persistent_absence_rate: float | None = None
    attendance_rate: float | None = None


class SubjectScoreResponse(BaseModel):
    score: float
    la_average: float | None = None


class TestScoresResponse(BaseModel):
    english: SubjectScoreResponse | None = None
    math: SubjectScoreResponse | None = None
    science: SubjectScoreResponse | None = None


class OfstedResponse(BaseModel):
    overall_effectiveness: int | None = None
    overall_label: str = "Not Inspected"
    inspection_date: datetime.date | None = None
    publication_date: datetime.date | None = None


class SchoolDetailResponse(BaseModel):
    """Full profile for a single school, including its stored rating."""

    urn: str
    name: str
    country: str | None = None
    is_scotland: bool = False
    phase: str | None = None
    type: str | None = None
    address: AddressResponse
    demographics: DemographicsResponse
    attendance: AttendanceResponse
    test_scores: TestScoresResponse
    ofsted: OfstedResponse | None = None
    rating: RatingResponse


class SchoolSummaryResponse(BaseModel):
    """Summary representation of a school for list views."""

    model_config = ConfigDict(from_attributes=True)

    urn: str
    name: str
    country: str | None = None
    phase_of_education: str | None = None
    type_of_establishment: str | None = None
    local_authority: str | None = None
    town: str | None = None
    postcode: str | None = None
    overall_rating: float | None = None
    rating_data_completeness: int | None = None
    rating_percentile: int | None = None
    ofsted_rating: int | None = None
    ofsted_label: str = "Not Inspected"
    rating_display: str = "N/A"
    number_on_roll: float | None = None
    fsm_percentage: float | None = None
    attendance_rate: float | None = None
    tier: str
    position: int


class LocalAuthorityBreakdownResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    total_schools: int
    primary: int
    secondary: int
    special: int
    outstanding: int
    good: int
    students: int


class GeoSummaryResponse(BaseModel):
    """Roll-up statistics for a local authority or city."""

    model_config = ConfigDict(from_attributes=True)

    name: str | None = None
    total_schools: int
    total_students: int
    phase_counts: dict[str, int]
    ofsted_distribution: dict[str, int]
    avg_english: float | None = None
    avg_maths: float | None = None
    avg_attendance: float | None = None
    avg_fsm: float | None = None
    avg_rating: float | None = None
    local_authorities: list[LocalAuthorityBreakdownResponse] = []


class SearchResponse(BaseModel):
    query: str
    type: str
    total: int
    limit: int
    offset: int
    schools: list[SchoolSummaryResponse]


class CitySchoolsResponse(BaseModel):
    city: str
    statistics: GeoSummaryResponse
    tier_counts: dict[str, int]
    top_schools: list[SchoolSummaryResponse]


class LocalAuthoritySummaryResponse(BaseModel):
    local_authority: str
    summary: GeoSummaryResponse
    top_schools_by_phase: dict[str, list[SchoolSummaryResponse]]


class NearbySchoolsResponse(BaseModel):
    """Same-phase schools in the school's local authority, fair-ranked."""

    urn: str
    local_authority: str | None = None
    phase: str | None = None
    schools: list[SchoolSummaryResponse]


class SchoolComparisonResponse(BaseModel):
    """A school's figures against local and national same-phase averages."""

    school: SchoolSummaryResponse
    phase: str | None = None
    local_authority_average: GeoSummaryResponse
    national_average: GeoSummaryResponse
