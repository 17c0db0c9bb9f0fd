from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query

from src.api.schools import geo_summary_response, summary_response
from src.config import get_settings
from src.db.base import SchoolRepository, SchoolSearch
from src.db.factory import get_school_repository
from src.schemas.filters import CityParams, SearchParams
from src.schemas.school import CitySchoolsResponse, SearchResponse
from src.services.geography import PHASES, aggregate_geography, classify_phase
from src.services.ranking import rank_schools, tier_counts, top_n

logger = logging.getLogger(__name__)

router = APIRouter(tags=["search"])

MIN_QUERY_LENGTH = 2


def filter_by_phase(schools: list[Any], phase: str | None) -> list[Any]:
    """Keep schools classified into *phase* (no-op when *phase* is empty)."""
    if not phase:
        return schools
    key = phase.strip().lower().replace(" ", "_").replace("-", "_")
    if key not in PHASES:
        raise HTTPException(status_code=400, detail=f"Unknown phase {phase!r}. Expected one of: {', '.join(PHASES)}")
    return [s for s in schools if key in classify_phase(s)]


@router.get("/api/search", response_model=SearchResponse)
async def search_schools(
    params: Annotated[SearchParams, Query()],
    repo: Annotated[SchoolRepository, Depends(get_school_repository)],
) -> SearchResponse:
    """Search schools by name, postcode or location, ordered by the fair ranking."""
    query = params.q.strip()
    if len(query) < MIN_QUERY_LENGTH:
        raise HTTPException(status_code=400, detail="Search query must be at least 2 characters")

    matches = await repo.search_schools(
        SchoolSearch(q=query, search_type=params.type, ofsted=params.ofsted, local_authority=params.la)
    )
    ranked = rank_schools(filter_by_phase(matches, params.phase))
    page = ranked[params.offset : params.offset + params.limit]

    return SearchResponse(
        query=query,
        type=params.type,
        total=len(ranked),
        limit=params.limit,
        offset=params.offset,
        schools=[summary_response(entry) for entry in page],
    )


@router.get("/api/search/city/{city}", response_model=CitySchoolsResponse)
async def city_schools(
    city: str,
    params: Annotated[CityParams, Query()],
    repo: Annotated[SchoolRepository, Depends(get_school_repository)],
) -> CitySchoolsResponse:
    """Statistics and the fair-ranked top schools for a city or local authority."""
    schools = filter_by_phase(await repo.find_schools_by_location(city), params.phase)
    limit = params.limit or get_settings().TOP_SCHOOLS_LIMIT
    logger.debug("City %r: %d schools after phase filter", city, len(schools))

    return CitySchoolsResponse(
        city=city,
        statistics=geo_summary_response(aggregate_geography(schools, name=city)),
        tier_counts=tier_counts(rank_schools(schools)),
        top_schools=[summary_response(entry) for entry in top_n(schools, limit)],
    )
