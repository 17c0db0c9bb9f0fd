from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class SearchParams(BaseModel):
    """Query parameters for the school search endpoint."""

    q: str = ""
    type: Literal["all", "name", "postcode", "location"] = "all"
    phase: str | None = None
    ofsted: int | None = Field(default=None, ge=1, le=4)
    la: str | None = None
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class CityParams(BaseModel):
    """Query parameters for the city top-schools endpoint."""

    phase: str | None = None
    limit: int | None = Field(default=None, ge=1, le=100)


class NearbyParams(BaseModel):
    """Query parameters for the nearby-schools endpoint."""

    limit: int | None = Field(default=None, ge=1, le=100)
