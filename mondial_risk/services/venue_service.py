"""Host stadiums and the matches tickets are issued for."""
import logging
import sqlite3
from datetime import datetime
from typing import List, Optional

from mondial_risk.database import get_connection
from mondial_risk.models.ticket import as_naive_utc
from mondial_risk.models.venue import (
    Match,
    MatchCreate,
    MatchPhase,
    MatchSales,
    Stadium,
    StadiumCreate,
    StadiumStats,
)

logger = logging.getLogger(__name__)


class StadiumNotFoundError(Exception):
    pass


class DuplicateStadiumError(Exception):
    pass


class MatchNotFoundError(Exception):
    pass


_MATCH_SELECT = """
    SELECT m.*, s.name AS stadium_name, s.city AS city
    FROM matches m
    JOIN stadiums s ON s.id = m.stadium_id
"""


def _row_to_stadium(row: sqlite3.Row) -> Stadium:
    return Stadium(
        id=row["id"],
        name=row["name"],
        city=row["city"],
        country=row["country"],
        capacity=row["capacity"],
        year_built=row["year_built"],
        is_main_venue=bool(row["is_main_venue"]),
    )


def _row_to_match(row: sqlite3.Row) -> Match:
    return Match(
        id=row["id"],
        home_team=row["home_team"],
        away_team=row["away_team"],
        match_date=datetime.fromisoformat(row["match_date"]),
        stadium_id=row["stadium_id"],
        stadium_name=row["stadium_name"],
        city=row["city"],
        phase=row["phase"],
        base_price=row["base_price"],
        total_seats=row["total_seats"],
    )


# ---------------------------------------------------------------------------
# Stadiums
# ---------------------------------------------------------------------------


def create_stadium(data: StadiumCreate) -> Stadium:
    conn = get_connection()
    try:
        with conn:
            cur = conn.execute(
                """INSERT INTO stadiums
                   (name, city, country, capacity, year_built, is_main_venue)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    data.name,
                    data.city,
                    data.country,
                    data.capacity,
                    data.year_built,
                    int(data.is_main_venue),
                ),
            )
    except sqlite3.IntegrityError as exc:
        raise DuplicateStadiumError(f"Stadium '{data.name}' already exists") from exc
    logger.info("Registered stadium %s (%s, %s)", data.name, data.city, data.country)
    return Stadium(id=cur.lastrowid, **data.model_dump())


def get_stadium(stadium_id: int) -> Stadium:
    row = get_connection().execute("SELECT * FROM stadiums WHERE id = ?", (stadium_id,)).fetchone()
    if row is None:
        raise StadiumNotFoundError(f"Stadium {stadium_id} not found")
    return _row_to_stadium(row)


def list_stadiums(
    country: Optional[str] = None,
    city: Optional[str] = None,
    main_venue: Optional[bool] = None,
) -> List[Stadium]:
    clauses = []
    params: list = []
    if country:
        clauses.append("country = ? COLLATE NOCASE")
        params.append(country)
    if city:
        clauses.append("city = ? COLLATE NOCASE")
        params.append(city)
    if main_venue is not None:
        clauses.append("is_main_venue = ?")
        params.append(int(main_venue))
    where = " AND ".join(clauses) if clauses else "1=1"

    rows = get_connection().execute(
        f"SELECT * FROM stadiums WHERE {where} ORDER BY country, city, name",
        params,
    ).fetchall()
    return [_row_to_stadium(r) for r in rows]


def stadium_stats() -> StadiumStats:
    stadiums = list_stadiums()
    total_capacity = sum(s.capacity for s in stadiums)
    largest = max(stadiums, key=lambda s: s.capacity, default=None)
    return StadiumStats(
        total_stadiums=len(stadiums),
        total_capacity=total_capacity,
        average_capacity=round(total_capacity / len(stadiums), 1) if stadiums else 0.0,
        largest_stadium=largest.name if largest else None,
        host_countries=sorted({s.country for s in stadiums}),
        host_cities=sorted({s.city for s in stadiums}),
    )


# ---------------------------------------------------------------------------
# Matches
# ---------------------------------------------------------------------------


def create_match(data: MatchCreate) -> Match:
    get_stadium(data.stadium_id)
    conn = get_connection()
    with conn:
        cur = conn.execute(
            """INSERT INTO matches
               (home_team, away_team, match_date, stadium_id, phase,
                base_price, total_seats)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                data.home_team,
                data.away_team,
                data.match_date.isoformat(),
                data.stadium_id,
                data.phase,
                data.base_price,
                data.total_seats,
            ),
        )
    match = get_match(cur.lastrowid)
    logger.info("Scheduled match %s: %s vs %s at %s", match.id, match.home_team, match.away_team, match.stadium_name)
    return match


def get_match(match_id: int) -> Match:
    row = get_connection().execute(f"{_MATCH_SELECT} WHERE m.id = ?", (match_id,)).fetchone()
    if row is None:
        raise MatchNotFoundError(f"Match {match_id} not found")
    return _row_to_match(row)


def match_exists(conn: sqlite3.Connection, match_id: int) -> bool:
    return conn.execute("SELECT 1 FROM matches WHERE id = ?", (match_id,)).fetchone() is not None


def list_matches(
    team: Optional[str] = None,
    city: Optional[str] = None,
    phase: Optional[MatchPhase] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> List[Match]:
    """Matches ordered by kick-off. ``team`` matches either side, case-insensitively."""
    clauses = []
    params: list = []
    if team:
        clauses.append("(m.home_team LIKE ? OR m.away_team LIKE ?)")
        params.extend([f"%{team}%", f"%{team}%"])
    if city:
        clauses.append("s.city = ? COLLATE NOCASE")
        params.append(city)
    if phase is not None:
        clauses.append("m.phase = ?")
        params.append(phase)
    if date_from is not None:
        clauses.append("m.match_date >= ?")
        params.append(as_naive_utc(date_from).isoformat())
    if date_to is not None:
        clauses.append("m.match_date <= ?")
        params.append(as_naive_utc(date_to).isoformat())
    where = " AND ".join(clauses) if clauses else "1=1"

    rows = get_connection().execute(
        f"{_MATCH_SELECT} WHERE {where} ORDER BY m.match_date, m.id",
        params,
    ).fetchall()
    return [_row_to_match(r) for r in rows]


def match_sales(match_id: int) -> MatchSales:
    match = get_match(match_id)
    row = get_connection().execute(
        """SELECT COUNT(*) AS sold, COALESCE(SUM(price), 0) AS revenue
           FROM tickets
           WHERE match_id = ? AND status != 'CANCELLED'""",
        (match_id,),
    ).fetchone()

    available = None
    if match.total_seats is not None:
        available = max(match.total_seats - row["sold"], 0)
    return MatchSales(
        match_id=match_id,
        tickets_sold=row["sold"],
        revenue=round(row["revenue"], 2),
        total_seats=match.total_seats,
        available_seats=available,
    )
