from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query

from src.config import get_settings
from src.db.base import SchoolRepository
from src.db.factory import get_school_repository
from src.db.models import School
from src.schemas.filters import NearbyParams
from src.schemas.school import (
    AddressResponse,
    AttendanceResponse,
    DemographicsResponse,
    GeoSummaryResponse,
    LocalAuthorityBreakdownResponse,
    NearbySchoolsResponse,
    OfstedResponse,
    RatingComponentResponse,
    RatingResponse,
    SchoolComparisonResponse,
    SchoolDetailResponse,
    SchoolSummaryResponse,
    SubjectScoreResponse,
    TestScoresResponse,
)
from src.services.geography import GeoSummary, aggregate_geography, resolve_local_authority
from src.services.jurisdiction import Jurisdiction, resolve_jurisdiction
from src.services.metrics import (
    attendance_from_absence,
    coerce_band,
    coerce_float,
    coerce_percentage,
    normalise_metrics,
    ofsted_label,
)
from src.services.ranking import RankedSchool, assign_tier, rank_schools, top_n
from src.services.rating import rating_from_record

logger = logging.getLogger(__name__)

router = APIRouter(tags=["schools"])


# ---------------------------------------------------------------------------
# Helpers shared with the search and local-authority routers
# ---------------------------------------------------------------------------


def rating_display(overall: float | None) -> str:
    """Format a rating as ``"7.5/10"``, or ``"N/A"`` when there is none."""
    return f"{overall:.1f}/10" if overall is not None else "N/A"


def percentile_text(percentile: int | None) -> str | None:
    return f"Top {100 - percentile}%" if percentile is not None else None


def summary_response(entry: RankedSchool) -> SchoolSummaryResponse:
    """Serialise one ranked school for list views."""
    school = entry.school
    data = school.to_dict() if hasattr(school, "to_dict") else dict(school)
    return SchoolSummaryResponse(
        **{k: v for k, v in data.items() if k in SchoolSummaryResponse.model_fields},
        ofsted_label=ofsted_label(coerce_band(data.get("ofsted_rating"))),
        rating_display=rating_display(coerce_float(data.get("overall_rating"))),
        tier=entry.tier.value,
        position=entry.position,
    )


def geo_summary_response(summary: GeoSummary) -> GeoSummaryResponse:
    """Serialise a :class:`GeoSummary`, listing local authorities by school count."""
    authorities = sorted(summary.local_authorities.values(), key=lambda la: (-la.total_schools, la.name))
    return GeoSummaryResponse(
        name=summary.name,
        total_schools=summary.total_schools,
        total_students=summary.total_students,
        phase_counts=summary.phase_counts,
        ofsted_distribution=summary.ofsted_distribution,
        avg_english=summary.avg_english,
        avg_maths=summary.avg_maths,
        avg_attendance=summary.avg_attendance,
        avg_fsm=summary.avg_fsm,
        avg_rating=summary.avg_rating,
        local_authorities=[LocalAuthorityBreakdownResponse.model_validate(la) for la in authorities],
    )


def _validate_urn(urn: str) -> str:
    urn = urn.strip()
    if not urn.isdigit():
        raise HTTPException(status_code=400, detail="Invalid URN provided")
    return urn


async def _load_school(urn: str, repo: SchoolRepository) -> School:
    school = await repo.get_school_by_urn(_validate_urn(urn))
    if school is None:
        raise HTTPException(status_code=404, detail="School not found")
    return school


def _rating_response(school: School, ofsted_band: int | None) -> RatingResponse:
    rating = rating_from_record(school)
    tier = assign_tier(
        {
            "overall_rating": rating.overall,
            "rating_data_completeness": school.rating_data_completeness,
            "ofsted_rating": ofsted_band,
            "country": school.country,
            "is_scotland": school.is_scotland,
            "name": school.name,
        }
    )
    return RatingResponse(
        urn=school.urn,
        overall_rating=rating.overall,
        rating_display=rating_display(rating.overall),
        rating_components=[RatingComponentResponse.model_validate(c, from_attributes=True) for c in rating.components],
        rating_data_completeness=rating.completeness,
        rating_percentile=rating.percentile,
        percentile_text=percentile_text(rating.percentile),
        tier=tier.value,
        jurisdiction=resolve_jurisdiction(school.country, school.is_scotland).value,
        rating_updated_at=school.rating_updated_at,
    )


def _test_scores_response(metrics: Any) -> TestScoresResponse:
    academic = metrics.academic

    def _subject(score: Any) -> SubjectScoreResponse | None:
        if score is None:
            return None
        return SubjectScoreResponse(score=score.school, la_average=score.comparator)

    return TestScoresResponse(
        english=_subject(academic.english),
        math=_subject(academic.maths),
        science=_subject(academic.science),
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/api/schools/{urn}", response_model=SchoolDetailResponse)
async def get_school(
    urn: str,
    repo: Annotated[SchoolRepository, Depends(get_school_repository)],
) -> SchoolDetailResponse:
    """Get the full profile for one school, including its stored rating."""
    school = await _load_school(urn, repo)

    ofsted = await repo.get_latest_ofsted(school.urn)
    census = await repo.get_latest_census(school.urn)
    absence = await repo.get_latest_attendance(school.urn)
    scores = await repo.get_latest_test_scores(school.urn)

    metrics = normalise_metrics(school, ofsted, census, absence, scores)
    scottish = resolve_jurisdiction(school.country, school.is_scotland) is Jurisdiction.SCOTLAND

    ofsted_response = None
    if ofsted is not None and not scottish:
        ofsted_response = OfstedResponse(
            overall_effectiveness=metrics.ofsted_band,
            overall_label=ofsted_label(metrics.ofsted_band),
            inspection_date=ofsted.inspection_date,
            publication_date=ofsted.publication_date,
        )

    return SchoolDetailResponse(
        urn=school.urn,
        name=school.name,
        country=school.country,
        is_scotland=scottish,
        phase=school.phase_of_education,
        type=school.type_of_establishment,
        address=AddressResponse(
            street=school.street,
            town=school.town,
            postcode=school.postcode,
            local_authority=school.local_authority,
        ),
        demographics=DemographicsResponse(
            total_students=coerce_float(census.number_on_roll) if census else None,
            fsm_percentage=metrics.fsm_percentage,
            eal_percentage=coerce_percentage(census.percentage_eal) if census else None,
            sen_support_percentage=coerce_percentage(census.percentage_sen_support) if census else None,
        ),
        attendance=AttendanceResponse(
            overall_absence_rate=coerce_percentage(absence.overall_absence_rate) if absence else None,
            persistent_absence_rate=coerce_percentage(absence.persistent_absence_rate) if absence else None,
            attendance_rate=attendance_from_absence(absence.overall_absence_rate) if absence else None,
        ),
        test_scores=_test_scores_response(metrics),
        ofsted=ofsted_response,
        rating=_rating_response(school, metrics.ofsted_band),
    )


@router.get("/api/schools/{urn}/rating", response_model=RatingResponse)
async def get_school_rating(
    urn: str,
    repo: Annotated[SchoolRepository, Depends(get_school_repository)],
) -> RatingResponse:
    """Return the last committed rating for a school (never recomputed per request)."""
    school = await _load_school(urn, repo)
    ofsted = await repo.get_latest_ofsted(school.urn)
    band = coerce_band(ofsted.overall_effectiveness) if ofsted is not None else None
    return _rating_response(school, band)


def _same_phase(row: Any, phase: str | None) -> bool:
    """True when *row* shares *phase* (every row matches a missing phase)."""
    if phase is None:
        return True
    return (row.phase_of_education or "").strip().lower() == phase.strip().lower()


async def _local_peers(school: School, repo: SchoolRepository) -> list[Any]:
    """Schools in *school*'s local authority with the same phase of education, itself included."""
    location = resolve_local_authority(school)
    if location == "Unknown":
        return []
    schools = await repo.find_schools_by_location(location)
    return [s for s in schools if _same_phase(s, school.phase_of_education)]


@router.get("/api/schools/{urn}/nearby", response_model=NearbySchoolsResponse)
async def get_nearby_schools(
    urn: str,
    params: Annotated[NearbyParams, Query()],
    repo: Annotated[SchoolRepository, Depends(get_school_repository)],
) -> NearbySchoolsResponse:
    """Other same-phase schools in the school's local authority, fair-ranked."""
    school = await _load_school(urn, repo)
    limit = params.limit or get_settings().TOP_SCHOOLS_LIMIT
    peers = [s for s in await _local_peers(school, repo) if s.urn != school.urn]
    logger.debug("URN %s: %d same-phase schools nearby", school.urn, len(peers))

    return NearbySchoolsResponse(
        urn=school.urn,
        local_authority=school.local_authority,
        phase=school.phase_of_education,
        schools=[summary_response(entry) for entry in top_n(peers, limit)],
    )


@router.get("/api/schools/{urn}/comparison", response_model=SchoolComparisonResponse)
async def get_school_comparison(
    urn: str,
    repo: Annotated[SchoolRepository, Depends(get_school_repository)],
) -> SchoolComparisonResponse:
    """Compare a school with the same-phase averages for its local authority and nationally.

    The school's own summary carries its position in the local ranking.
    """
    school = await _load_school(urn, repo)
    local = await _local_peers(school, repo)
    national = await repo.find_schools_by_phase(school.phase_of_education)

    ranked = rank_schools(local) or rank_schools(national)
    entry = next((e for e in ranked if e.school.urn == school.urn), None)
    if entry is None:
        raise HTTPException(status_code=404, detail="School not found")

    return SchoolComparisonResponse(
        school=summary_response(entry),
        phase=school.phase_of_education,
        local_authority_average=geo_summary_response(aggregate_geography(local, name=school.local_authority)),
        national_average=geo_summary_response(aggregate_geography(national, name="National")),
    )
