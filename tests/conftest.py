"""
Shared test fixtures for the Mondial 2030 ticket fraud risk API.

Provides:
- async test client (httpx.AsyncClient against the FastAPI app)
- test database setup/teardown (fresh in-memory SQLite per test)
- ticket, transfer and API payload factories
"""
import os
import pytest
import pytest_asyncio
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

# Force test database before importing app
os.environ["DATABASE_PATH"] = ":memory:"
os.environ["SEED_DEMO_DATA"] = "0"

from httpx import AsyncClient, ASGITransport

from mondial_risk.models.ticket import Ticket, TransferRecord


BASE_DATE = datetime(2030, 6, 13, 18, 0, 0)


# ---------------------------------------------------------------------------
# Scorer input factories
# ---------------------------------------------------------------------------

def make_ticket(**overrides) -> Ticket:
    """A persisted, never-transferred ticket bought at BASE_DATE for 100.0."""
    base = {
        "id": 1,
        "price": 100.0,
        "transfer_count": 0,
        "purchase_date": BASE_DATE,
        "last_transfer_date": None,
    }
    base.update(overrides)
    return Ticket(**base)


def make_transfer(
    to_user_id: int,
    hours_after: float = 0,
    price: Optional[float] = None,
    from_user_id: Optional[int] = None,
) -> TransferRecord:
    """A transfer record dated ``hours_after`` hours past BASE_DATE."""
    return TransferRecord(
        ticket_id=1,
        from_user_id=from_user_id,
        to_user_id=to_user_id,
        transfer_date=BASE_DATE + timedelta(hours=hours_after),
        transfer_price=price,
    )


def make_priced_history(*prices: Optional[float]) -> List[TransferRecord]:
    """Transfers to distinct users, three days apart, at the given prices."""
    return [
        make_transfer(to_user_id=100 + i, hours_after=72 * (i + 1), price=p)
        for i, p in enumerate(prices)
    ]


class StubLoader:
    """Transfer-history loader double that records how it was called."""

    def __init__(self, transfers: Optional[List[TransferRecord]] = None, error: Optional[Exception] = None):
        self.transfers = transfers or []
        self.error = error
        self.calls: List[int] = []

    def __call__(self, ticket_id: int) -> List[TransferRecord]:
        self.calls.append(ticket_id)
        if self.error is not None:
            raise self.error
        return self.transfers


# ---------------------------------------------------------------------------
# API payload factories
# ---------------------------------------------------------------------------

def make_ticket_payload(owner_id: int, **overrides) -> Dict[str, Any]:
    base = {
        "seat_number": "B12",
        "seat_zone": "North Stand",
        "price": 100.0,
        "category": "STANDARD",
        "owner_id": owner_id,
    }
    base.update(overrides)
    return base


def make_snapshot_payload(ticket: Optional[Dict[str, Any]] = None, transfers: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    """Body for the ad-hoc scoring endpoints."""
    base_ticket = {
        "id": 1,
        "price": 100.0,
        "transfer_count": 0,
        "purchase_date": BASE_DATE.isoformat(),
        "last_transfer_date": None,
    }
    base_ticket.update(ticket or {})
    return {"ticket": base_ticket, "transfers": transfers or []}


def make_stadium_payload(**overrides) -> Dict[str, Any]:
    base = {
        "name": "Grand Stade Hassan II",
        "city": "Casablanca",
        "country": "Morocco",
        "capacity": 115000,
        "year_built": 2028,
        "is_main_venue": True,
    }
    base.update(overrides)
    return base


def make_match_payload(stadium_id: int, **overrides) -> Dict[str, Any]:
    base = {
        "home_team": "Morocco",
        "away_team": "Brazil",
        "match_date": (BASE_DATE + timedelta(hours=2)).isoformat(),
        "stadium_id": stadium_id,
        "phase": "GROUP_STAGE",
        "base_price": 85.0,
        "total_seats": 115000,
    }
    base.update(overrides)
    return base


async def create_users(client: AsyncClient, count: int) -> List[int]:
    ids = []
    for i in range(count):
        resp = await client.post(
            "/api/v1/users",
            json={"username": f"fan_{i:03d}", "name": f"Fan {i}"},
        )
        assert resp.status_code == 201
        ids.append(resp.json()["id"])
    return ids


# ---------------------------------------------------------------------------
# App / client fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def client():
    """Async test client that talks to the FastAPI app with a fresh in-memory DB.

    Each test gets an isolated database: we close any existing connection,
    then re-initialize the schema so tables exist in the new :memory: DB.
    """
    from mondial_risk import database
    from mondial_risk.main import app

    # Reset the connection so a fresh :memory: DB is created
    database.close_connection()
    database.init_db()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    # Teardown: drop overrides and close connection so next test starts fresh
    app.dependency_overrides.clear()
    database.close_connection()
