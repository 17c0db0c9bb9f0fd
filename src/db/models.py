from __future__ import annotations

import datetime

from sqlalchemy import JSON, Boolean, Date, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Async-compatible declarative base for all ORM models."""


class School(Base):
    """Registry row for a school, carrying the last committed rating.

    The ``overall_rating`` / ``rating_*`` columns are written only by the
    batch rating refresh and are always replaced together.
    """

    __tablename__ = "uk_schools"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    urn: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    country: Mapped[str | None] = mapped_column(String(50), nullable=True)  # England / Scotland / Wales / ...
    is_scotland: Mapped[bool | None] = mapped_column(Boolean, nullable=True)  # legacy flag

    phase_of_education: Mapped[str | None] = mapped_column(String(100), nullable=True)
    type_of_establishment: Mapped[str | None] = mapped_column(String(100), nullable=True)
    establishment_group: Mapped[str | None] = mapped_column(String(100), nullable=True)
    has_sixth_form: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    local_authority: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    town: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    street: Mapped[str | None] = mapped_column(Text, nullable=True)
    postcode: Mapped[str | None] = mapped_column(String(10), nullable=True)
    lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    lng: Mapped[float | None] = mapped_column(Float, nullable=True)

    overall_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    rating_components: Mapped[list | None] = mapped_column(JSON, nullable=True)
    rating_data_completeness: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rating_percentile: Mapped[int | None] = mapped_column(Integer, nullable=True)  # supplied externally
    rating_updated_at: Mapped[datetime.datetime | None] = mapped_column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<School(urn={self.urn!r}, name={self.name!r}, la={self.local_authority!r})>"


class OfstedInspection(Base):
    __tablename__ = "uk_ofsted_inspections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    urn: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    # Raw grade as published: "1".."4", but upstream files also carry "NULL", "9", etc.
    overall_effectiveness: Mapped[str | None] = mapped_column(String(20), nullable=True)
    inspection_date: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)
    publication_date: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)

    def __repr__(self) -> str:
        return f"<OfstedInspection(urn={self.urn!r}, grade={self.overall_effectiveness!r})>"


class CensusData(Base):
    __tablename__ = "uk_census_data"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    urn: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False)  # e.g. "2023/2024"

    number_on_roll: Mapped[str | None] = mapped_column(String(20), nullable=True)
    percentage_fsm_ever6: Mapped[str | None] = mapped_column(String(20), nullable=True)
    percentage_eal: Mapped[str | None] = mapped_column(String(20), nullable=True)
    percentage_sen_support: Mapped[str | None] = mapped_column(String(20), nullable=True)

    def __repr__(self) -> str:
        return f"<CensusData(urn={self.urn!r}, year={self.academic_year!r})>"


class AbsenceData(Base):
    __tablename__ = "uk_absence_data"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    urn: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False)

    overall_absence_rate: Mapped[str | None] = mapped_column(String(20), nullable=True)
    persistent_absence_rate: Mapped[str | None] = mapped_column(String(20), nullable=True)

    def __repr__(self) -> str:
        return f"<AbsenceData(urn={self.urn!r}, year={self.academic_year!r})>"


class TestScores(Base):
    """Headline attainment per subject, with local-authority and national comparators."""

    __tablename__ = "uk_test_scores"
    __test__ = False  # not a pytest test class

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    urn: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False)

    english_score: Mapped[str | None] = mapped_column(String(20), nullable=True)
    english_la_average: Mapped[str | None] = mapped_column(String(20), nullable=True)
    english_national_average: Mapped[str | None] = mapped_column(String(20), nullable=True)

    maths_score: Mapped[str | None] = mapped_column(String(20), nullable=True)
    maths_la_average: Mapped[str | None] = mapped_column(String(20), nullable=True)
    maths_national_average: Mapped[str | None] = mapped_column(String(20), nullable=True)

    science_score: Mapped[str | None] = mapped_column(String(20), nullable=True)
    science_la_average: Mapped[str | None] = mapped_column(String(20), nullable=True)
    science_national_average: Mapped[str | None] = mapped_column(String(20), nullable=True)

    def __repr__(self) -> str:
        return f"<TestScores(urn={self.urn!r}, year={self.academic_year!r})>"
