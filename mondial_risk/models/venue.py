from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from mondial_risk.models.ticket import as_naive_utc

MatchPhase = Literal["GROUP_STAGE", "ROUND_OF_16", "QUARTER_FINAL", "SEMI_FINAL", "THIRD_PLACE", "FINAL"]


class StadiumCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    city: str = Field(min_length=1, max_length=100)
    country: str = Field(min_length=1, max_length=100)
    capacity: int = Field(gt=0)
    year_built: Optional[int] = Field(default=None, ge=1800, le=2100)
    is_main_venue: bool = False


class Stadium(StadiumCreate):
    id: int


class StadiumStats(BaseModel):
    total_stadiums: int
    total_capacity: int
    average_capacity: float
    largest_stadium: Optional[str] = None
    host_countries: list[str]
    host_cities: list[str]


class MatchCreate(BaseModel):
    home_team: str = Field(min_length=1, max_length=100)
    away_team: str = Field(min_length=1, max_length=100)
    match_date: datetime
    stadium_id: int
    phase: MatchPhase = "GROUP_STAGE"
    base_price: Optional[float] = Field(default=None, gt=0)
    total_seats: Optional[int] = Field(default=None, gt=0)

    @field_validator("match_date")
    @classmethod
    def _normalize_dates(cls, v: datetime) -> datetime:
        return as_naive_utc(v)


class Match(MatchCreate):
    id: int
    stadium_name: str
    city: str


class MatchSales(BaseModel):
    """Ticket sales for one match. Cancelled tickets are not counted."""

    match_id: int
    tickets_sold: int
    revenue: float
    total_seats: Optional[int] = None
    available_seats: Optional[int] = None
