from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query

from mondial_risk.models.venue import (
    Match,
    MatchCreate,
    MatchPhase,
    MatchSales,
    Stadium,
    StadiumCreate,
    StadiumStats,
)
from mondial_risk.services import venue_service
from mondial_risk.services.venue_service import (
    DuplicateStadiumError,
    MatchNotFoundError,
    StadiumNotFoundError,
)

router = APIRouter(tags=["venues"])


@router.post("/stadiums", status_code=201, response_model=Stadium)
async def create_stadium(request: StadiumCreate) -> Stadium:
    try:
        return venue_service.create_stadium(request)
    except DuplicateStadiumError as exc:
        raise HTTPException(status_code=409, detail=str(exc))


@router.get("/stadiums", response_model=List[Stadium])
async def list_stadiums(
    country: Optional[str] = Query(None, description="Host country, case-insensitive"),
    city: Optional[str] = Query(None, description="Host city, case-insensitive"),
    main_venue: Optional[bool] = Query(None, description="Only main venues (or only secondary ones)"),
) -> List[Stadium]:
    return venue_service.list_stadiums(country=country, city=city, main_venue=main_venue)


@router.get("/stadiums/stats", response_model=StadiumStats)
async def get_stadium_stats() -> StadiumStats:
    """Capacity totals and host countries/cities across all stadiums."""
    return venue_service.stadium_stats()


@router.get("/stadiums/{stadium_id}", response_model=Stadium)
async def get_stadium(stadium_id: int) -> Stadium:
    try:
        return venue_service.get_stadium(stadium_id)
    except StadiumNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.post("/matches", status_code=201, response_model=Match)
async def create_match(request: MatchCreate) -> Match:
    try:
        return venue_service.create_match(request)
    except StadiumNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.get("/matches", response_model=List[Match])
async def list_matches(
    team: Optional[str] = Query(None, description="Home or away team, partial match"),
    city: Optional[str] = Query(None, description="Host city of the stadium"),
    phase: Optional[MatchPhase] = Query(None),
    date_from: Optional[datetime] = Query(None, description="Kick-off at or after"),
    date_to: Optional[datetime] = Query(None, description="Kick-off at or before"),
) -> List[Match]:
    return venue_service.list_matches(
        team=team,
        city=city,
        phase=phase,
        date_from=date_from,
        date_to=date_to,
    )


@router.get("/matches/{match_id}", response_model=Match)
async def get_match(match_id: int) -> Match:
    try:
        return venue_service.get_match(match_id)
    except MatchNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.get("/matches/{match_id}/sales", response_model=MatchSales)
async def get_match_sales(match_id: int) -> MatchSales:
    """Tickets sold and face-value revenue for a match."""
    try:
        return venue_service.match_sales(match_id)
    except MatchNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
