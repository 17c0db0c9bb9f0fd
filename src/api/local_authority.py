from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from src.api.schools import geo_summary_response, summary_response
from src.config import get_settings
from src.db.base import SchoolRepository
from src.db.factory import get_school_repository
from src.schemas.school import LocalAuthoritySummaryResponse
from src.services.geography import aggregate_geography, schools_by_phase
from src.services.ranking import top_n

router = APIRouter(tags=["local-authorities"])


@router.get("/api/local-authorities", response_model=list[str])
async def list_local_authorities(
    repo: Annotated[SchoolRepository, Depends(get_school_repository)],
) -> list[str]:
    """List all local authority names."""
    return await repo.list_local_authorities()


@router.get("/api/local-authority/{name}/summary", response_model=LocalAuthoritySummaryResponse)
async def local_authority_summary(
    name: str,
    repo: Annotated[SchoolRepository, Depends(get_school_repository)],
) -> LocalAuthoritySummaryResponse:
    """Roll-up statistics and the top schools in each phase for one local authority."""
    schools = await repo.find_schools_by_location(name)
    if not schools:
        raise HTTPException(status_code=404, detail=f"No schools found for local authority {name!r}")

    limit = get_settings().TOP_SCHOOLS_LIMIT
    by_phase = schools_by_phase(schools)
    return LocalAuthoritySummaryResponse(
        local_authority=name,
        summary=geo_summary_response(aggregate_geography(schools, name=name)),
        top_schools_by_phase={
            phase: [summary_response(entry) for entry in top_n(members, limit)] for phase, members in by_phase.items()
        },
    )
