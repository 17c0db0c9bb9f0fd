from __future__ import annotations

import datetime
from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.db.base import SchoolRepository, SchoolSearch, SchoolSummary
from src.db.models import AbsenceData, Base, CensusData, OfstedInspection, School, TestScores
from src.services.metrics import attendance_from_absence, coerce_band, coerce_float, coerce_percentage

_RATING_FIELDS = ("overall_rating", "rating_components", "rating_data_completeness")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class SQLiteSchoolRepository(SchoolRepository):
    """SQLite-backed implementation of :class:`SchoolRepository`.

    Uses *aiosqlite* via SQLAlchemy's async engine.  "Latest" source rows
    are chosen by most recent academic year (or inspection date); ties go to
    the first row inserted, so the choice is deterministic.
    """

    def __init__(self, sqlite_path: str = "./data/schools.db") -> None:
        url = f"sqlite+aiosqlite:///{sqlite_path}"
        self._engine = create_async_engine(url, echo=False)
        self._session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self._engine, expire_on_commit=False
        )

    async def init_db(self) -> None:
        """Create all tables if they do not already exist."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    # ------------------------------------------------------------------
    # Single-school lookups
    # ------------------------------------------------------------------

    async def get_school_by_urn(self, urn: str) -> School | None:
        stmt = select(School).where(School.urn == urn)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.scalars().first()

    async def get_latest_ofsted(self, urn: str) -> OfstedInspection | None:
        stmt = (
            select(OfstedInspection)
            .where(OfstedInspection.urn == urn)
            .order_by(OfstedInspection.inspection_date.desc().nulls_last(), OfstedInspection.id)
            .limit(1)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.scalars().first()

    async def get_latest_census(self, urn: str) -> CensusData | None:
        stmt = (
            select(CensusData)
            .where(CensusData.urn == urn)
            .order_by(CensusData.academic_year.desc(), CensusData.id)
            .limit(1)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.scalars().first()

    async def get_latest_attendance(self, urn: str) -> AbsenceData | None:
        stmt = (
            select(AbsenceData)
            .where(AbsenceData.urn == urn)
            .order_by(AbsenceData.academic_year.desc(), AbsenceData.id)
            .limit(1)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.scalars().first()

    async def get_latest_test_scores(self, urn: str) -> TestScores | None:
        stmt = (
            select(TestScores)
            .where(TestScores.urn == urn)
            .order_by(TestScores.academic_year.desc(), TestScores.id)
            .limit(1)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.scalars().first()

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    async def _summarise(self, session: AsyncSession, schools: list[School]) -> list[SchoolSummary]:
        """Attach the latest source figures to each school in a handful of queries."""
        urns = [s.urn for s in schools]
        if not urns:
            return []

        ofsted: dict[str, OfstedInspection] = {}
        result = await session.execute(
            select(OfstedInspection)
            .where(OfstedInspection.urn.in_(urns))
            .order_by(OfstedInspection.inspection_date.desc().nulls_last(), OfstedInspection.id)
        )
        for row in result.scalars():
            ofsted.setdefault(row.urn, row)

        latest: dict[type, dict[str, Any]] = {}
        for model in (CensusData, AbsenceData, TestScores):
            rows: dict[str, Any] = {}
            result = await session.execute(
                select(model).where(model.urn.in_(urns)).order_by(model.academic_year.desc(), model.id)
            )
            for row in result.scalars():
                rows.setdefault(row.urn, row)
            latest[model] = rows

        summaries: list[SchoolSummary] = []
        for school in schools:
            inspection = ofsted.get(school.urn)
            census = latest[CensusData].get(school.urn)
            absence = latest[AbsenceData].get(school.urn)
            scores = latest[TestScores].get(school.urn)
            summaries.append(
                SchoolSummary(
                    urn=school.urn,
                    name=school.name,
                    country=school.country,
                    is_scotland=school.is_scotland,
                    phase_of_education=school.phase_of_education,
                    type_of_establishment=school.type_of_establishment,
                    establishment_group=school.establishment_group,
                    has_sixth_form=school.has_sixth_form,
                    local_authority=school.local_authority,
                    town=school.town,
                    postcode=school.postcode,
                    overall_rating=school.overall_rating,
                    rating_data_completeness=school.rating_data_completeness,
                    rating_percentile=school.rating_percentile,
                    rating_components=school.rating_components,
                    ofsted_rating=coerce_band(inspection.overall_effectiveness) if inspection else None,
                    number_on_roll=coerce_float(census.number_on_roll) if census else None,
                    fsm_percentage=coerce_percentage(census.percentage_fsm_ever6) if census else None,
                    attendance_rate=attendance_from_absence(absence.overall_absence_rate) if absence else None,
                    english_score=coerce_percentage(scores.english_score) if scores else None,
                    maths_score=coerce_percentage(scores.maths_score) if scores else None,
                )
            )
        return summaries

    async def find_schools_by_location(self, location: str) -> list[SchoolSummary]:
        key = location.strip().lower()
        stmt = select(School).where(
            or_(func.lower(School.local_authority) == key, func.lower(School.town) == key)
        )
        stmt = stmt.order_by(School.name, School.id)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return await self._summarise(session, list(result.scalars().all()))

    async def find_schools_by_phase(self, phase: str | None) -> list[SchoolSummary]:
        stmt = select(School)
        if phase is not None:
            stmt = stmt.where(func.lower(School.phase_of_education) == phase.strip().lower())
        stmt = stmt.order_by(School.name, School.id)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return await self._summarise(session, list(result.scalars().all()))

    async def search_schools(self, search: SchoolSearch) -> list[SchoolSummary]:
        pattern = f"%{search.q.strip().lower()}%"
        name = func.lower(School.name).like(pattern)
        postcode = func.lower(School.postcode).like(pattern)
        location = or_(func.lower(School.town).like(pattern), func.lower(School.local_authority).like(pattern))

        if search.search_type == "name":
            stmt = select(School).where(name)
        elif search.search_type == "postcode":
            stmt = select(School).where(postcode)
        elif search.search_type == "location":
            stmt = select(School).where(location)
        else:
            stmt = select(School).where(or_(name, postcode, location))

        if search.local_authority is not None:
            stmt = stmt.where(func.lower(School.local_authority) == search.local_authority.strip().lower())
        stmt = stmt.order_by(School.name, School.id)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            summaries = await self._summarise(session, list(result.scalars().all()))

        # Ofsted band is only known after summarising (raw grades are text).
        if search.ofsted is not None:
            summaries = [s for s in summaries if s.ofsted_rating == search.ofsted]
        return summaries

    async def list_local_authorities(self) -> list[str]:
        stmt = (
            select(School.local_authority)
            .where(School.local_authority.is_not(None))
            .distinct()
            .order_by(School.local_authority)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Rating persistence
    # ------------------------------------------------------------------

    async def list_urns_needing_rating(self, stale_before: datetime.datetime | None) -> list[str]:
        stmt = select(School.urn)
        if stale_before is not None:
            stmt = stmt.where(
                or_(
                    School.overall_rating.is_(None),
                    School.rating_updated_at.is_(None),
                    School.rating_updated_at < stale_before,
                )
            )
        stmt = stmt.order_by(School.urn)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def save_rating(self, urn: str, record: dict[str, Any], updated_at: datetime.datetime) -> None:
        values = {field: record.get(field) for field in _RATING_FIELDS}
        values["rating_updated_at"] = updated_at
        async with self._session_factory() as session:
            await session.execute(update(School).where(School.urn == urn).values(**values))
            await session.commit()
