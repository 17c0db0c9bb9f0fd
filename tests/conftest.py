"""Shared pytest fixtures for the school-ratings test suite."""

from __future__ import annotations

import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from src.db.base import SchoolRepository
from src.db.factory import get_school_repository
from src.db.models import AbsenceData, Base, CensusData, OfstedInspection, School, TestScores
from src.db.sqlite_repo import SQLiteSchoolRepository
from src.main import app

# ---------------------------------------------------------------------------
# Test data helpers
# ---------------------------------------------------------------------------


def _oakfield_components() -> list[dict]:
    return [
        {"name": "ofsted", "weight": 30, "score": 9.0, "label": "Outstanding", "details": {"band": 1, "label": "Outstanding"}},
        {
            "name": "academic",
            "weight": 45,
            "score": 7.2,
            "label": "Academic Performance",
            "details": {
                "english": {"school": 70.0, "la_avg": 68.0},
                "math": {"school": 72.0, "la_avg": 70.0},
                "science": {"school": 74.0, "la_avg": 71.0},
            },
        },
        {"name": "attendance", "weight": 25, "score": 9.5, "label": "Attendance", "details": {"school_rate": 95.0}},
    ]


def _create_test_schools() -> list[School]:
    """Five Camden schools (one per ranking tier), one Scottish and one Welsh school."""
    return [
        School(
            id=1,
            urn="100001",
            name="Oakfield Primary School",
            country="England",
            phase_of_education="Primary",
            type_of_establishment="Academy converter",
            local_authority="Camden",
            town="London",
            street="1 Oak Lane",
            postcode="NW1 1AA",
            overall_rating=8.3,
            rating_components=_oakfield_components(),
            rating_data_completeness=100,
            rating_percentile=85,
            rating_updated_at=datetime.datetime(2024, 9, 1, 3, 0, 0),
        ),
        School(
            id=2,
            urn="100002",
            name="Hillside Academy",
            country="England",
            phase_of_education="Secondary",
            type_of_establishment="Academy sponsor led",
            has_sixth_form=True,
            local_authority="Camden",
            town="London",
            postcode="NW3 2BB",
            overall_rating=6.7,
            rating_components=[],
            rating_data_completeness=75,
            rating_updated_at=datetime.datetime(2024, 9, 10, 3, 0, 0),
        ),
        School(
            id=3,
            urn="100003",
            name="St Mary's Special School",
            country="England",
            phase_of_education="Not applicable",
            type_of_establishment="Community special school",
            local_authority="Camden",
            town="London",
            postcode="NW5 3CC",
        ),
        School(
            id=4,
            urn="100004",
            name="Riverside Infant School",
            country=None,
            phase_of_education="Primary",
            type_of_establishment="Community school",
            local_authority="Camden",
            town="London",
            postcode="NW1 4DD",
        ),
        School(
            id=5,
            urn="100005",
            name="Brookside Primary School",
            country="England",
            phase_of_education="Primary",
            type_of_establishment="Voluntary aided school",
            local_authority="Camden",
            town="London",
            postcode="NW6 5EE",
            overall_rating=4.2,
            rating_components=[],
            rating_data_completeness=100,
            rating_updated_at=datetime.datetime(2024, 6, 1, 3, 0, 0),
        ),
        School(
            id=6,
            urn="200001",
            name="Glasgow High School",
            country="Scotland",
            is_scotland=True,
            phase_of_education="Secondary",
            local_authority="Glasgow City",
            town="Glasgow",
            postcode="G1 1XX",
        ),
        School(
            id=7,
            urn="300001",
            name="Ysgol Gymraeg Caerdydd",
            country="Wales",
            phase_of_education="Primary",
            local_authority="Cardiff",
            town="Cardiff",
            postcode="CF10 1AA",
        ),
    ]


def _create_test_ofsted() -> list[OfstedInspection]:
    return [
        OfstedInspection(urn="100001", overall_effectiveness="3", inspection_date=datetime.date(2015, 5, 1)),
        OfstedInspection(
            urn="100001",
            overall_effectiveness="1",
            inspection_date=datetime.date(2022, 3, 1),
            publication_date=datetime.date(2022, 4, 2),
        ),
        OfstedInspection(urn="100002", overall_effectiveness="2", inspection_date=datetime.date(2021, 6, 1)),
        OfstedInspection(urn="100003", overall_effectiveness="3", inspection_date=datetime.date(2019, 1, 15)),
        OfstedInspection(urn="100005", overall_effectiveness="4", inspection_date=datetime.date(2023, 11, 20)),
    ]


def _create_test_census() -> list[CensusData]:
    return [
        CensusData(urn="100001", academic_year="2022/2023", number_on_roll="400", percentage_fsm_ever6="20.0"),
        CensusData(
            urn="100001",
            academic_year="2023/2024",
            number_on_roll="420",
            percentage_fsm_ever6="18.5",
            percentage_eal="30.1",
            percentage_sen_support="12.0",
        ),
        CensusData(urn="100002", academic_year="2023/2024", number_on_roll="1100", percentage_fsm_ever6="x"),
        CensusData(urn="100005", academic_year="2023/2024", number_on_roll="SUPP", percentage_fsm_ever6="30.0"),
    ]


def _create_test_absence() -> list[AbsenceData]:
    return [
        AbsenceData(urn="100001", academic_year="2023/2024", overall_absence_rate="5.0", persistent_absence_rate="9.8"),
        AbsenceData(urn="100005", academic_year="2023/2024", overall_absence_rate="40.0"),
    ]


def _create_test_scores() -> list[TestScores]:
    return [
        TestScores(
            urn="100001",
            academic_year="2023/2024",
            english_score="70",
            english_la_average="68",
            maths_score="72",
            maths_la_average="70",
            science_score="74",
            science_national_average="71",
        ),
        TestScores(urn="100002", academic_year="2023/2024", english_score="SUPP", maths_score="65"),
        TestScores(
            urn="100005", academic_year="2023/2024", english_score="40", maths_score="40", science_score="40"
        ),
        TestScores(urn="200001", academic_year="2023/2024", english_score="60", science_score="80"),
    ]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def db_path(tmp_path) -> str:
    """Create a temporary SQLite database seeded with test data and return its path."""
    path = str(tmp_path / "test_schools.db")
    sync_engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(sync_engine)

    with Session(sync_engine) as session:
        session.add_all(_create_test_schools())
        session.add_all(_create_test_ofsted())
        session.add_all(_create_test_census())
        session.add_all(_create_test_absence())
        session.add_all(_create_test_scores())
        session.commit()

    sync_engine.dispose()
    return path


@pytest.fixture()
def test_repo(db_path) -> SQLiteSchoolRepository:
    """Return an async :class:`SQLiteSchoolRepository` backed by the test database."""
    return SQLiteSchoolRepository(db_path)


@pytest.fixture()
def test_client(db_path) -> TestClient:
    """Return a FastAPI ``TestClient`` wired to the test database."""
    repo = SQLiteSchoolRepository(db_path)

    def _override() -> SchoolRepository:
        return repo

    app.dependency_overrides[get_school_repository] = _override

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
