"""
Tests for ticket issuance and transfer workflows.

Tests cover:
- Issuance (initial fraud score is always 0.0)
- Transfer bookkeeping (owner, count, last transfer date, history log)
- Fraud score recomputed and stored on every transfer
- Rejected transfers (unknown ticket/user, inactive ticket, same owner)
- History loader failures never block a transfer
- Users and ticket listing endpoints
"""
import pytest
from datetime import timedelta

from mondial_risk.dependencies import get_fraud_service
from mondial_risk.main import app
from mondial_risk.services.fraud_detection import FraudDetectionService
from tests.conftest import BASE_DATE, StubLoader, create_users, make_ticket_payload


USERS_URL = "/api/v1/users"
TICKETS_URL = "/api/v1/tickets"


async def _issue(client, owner_id, **overrides):
    payload = make_ticket_payload(owner_id, purchase_date=BASE_DATE.isoformat(), **overrides)
    resp = await client.post(TICKETS_URL, json=payload)
    assert resp.status_code == 201
    return resp.json()


async def _transfer(client, ticket_id, to_user_id, hours_after, price=None):
    body = {
        "to_user_id": to_user_id,
        "transfer_date": (BASE_DATE + timedelta(hours=hours_after)).isoformat(),
    }
    if price is not None:
        body["transfer_price"] = price
    return await client.post(f"{TICKETS_URL}/{ticket_id}/transfer", json=body)


# ===========================================================================
# Users
# ===========================================================================


class TestUsers:
    @pytest.mark.asyncio
    async def test_create_and_list_users(self, client):
        ids = await create_users(client, 3)
        resp = await client.get(USERS_URL)
        assert resp.status_code == 200
        assert [u["id"] for u in resp.json()] == ids

    @pytest.mark.asyncio
    async def test_get_user(self, client):
        (uid,) = await create_users(client, 1)
        resp = await client.get(f"{USERS_URL}/{uid}")
        assert resp.status_code == 200
        assert resp.json()["username"] == "fan_000"
        assert (await client.get(f"{USERS_URL}/999")).status_code == 404

    @pytest.mark.asyncio
    async def test_duplicate_username_returns_409(self, client):
        await client.post(USERS_URL, json={"username": "ultras_mar", "name": "Karim"})
        resp = await client.post(USERS_URL, json={"username": "ultras_mar", "name": "Other"})
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_short_username_returns_422(self, client):
        resp = await client.post(USERS_URL, json={"username": "ab", "name": "Too Short"})
        assert resp.status_code == 422


# ===========================================================================
# Issuance
# ===========================================================================


class TestIssuance:
    @pytest.mark.asyncio
    async def test_new_ticket_scores_zero(self, client):
        (owner,) = await create_users(client, 1)
        ticket = await _issue(client, owner, price=480.0, category="VIP")

        assert ticket["fraud_score"] == 0.0
        assert ticket["transfer_count"] == 0
        assert ticket["last_transfer_date"] is None
        assert ticket["status"] == "ACTIVE"
        assert ticket["owner_id"] == owner

    @pytest.mark.asyncio
    async def test_purchase_date_defaults_to_now(self, client):
        (owner,) = await create_users(client, 1)
        resp = await client.post(TICKETS_URL, json=make_ticket_payload(owner))
        assert resp.status_code == 201
        assert resp.json()["purchase_date"] is not None

    @pytest.mark.asyncio
    async def test_aware_purchase_date_stored_as_utc(self, client):
        (owner,) = await create_users(client, 1)
        resp = await client.post(
            TICKETS_URL,
            json=make_ticket_payload(owner, purchase_date="2030-06-13T20:00:00+02:00"),
        )
        assert resp.json()["purchase_date"] == "2030-06-13T18:00:00"

    @pytest.mark.asyncio
    async def test_unknown_owner_returns_404(self, client):
        resp = await client.post(TICKETS_URL, json=make_ticket_payload(999))
        assert resp.status_code == 404

    @pytest.mark.asyncio
    @pytest.mark.parametrize("price", [0, -20.0])
    async def test_non_positive_price_returns_422(self, client, price):
        (owner,) = await create_users(client, 1)
        resp = await client.post(TICKETS_URL, json=make_ticket_payload(owner, price=price))
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_invalid_category_returns_422(self, client):
        (owner,) = await create_users(client, 1)
        resp = await client.post(TICKETS_URL, json=make_ticket_payload(owner, category="BOX"))
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_get_unknown_ticket_returns_404(self, client):
        resp = await client.get(f"{TICKETS_URL}/12345")
        assert resp.status_code == 404


# ===========================================================================
# Transfers
# ===========================================================================


class TestTransfers:
    @pytest.mark.asyncio
    async def test_transfer_updates_ticket(self, client):
        a, b = await create_users(client, 2)
        ticket = await _issue(client, a)

        resp = await _transfer(client, ticket["id"], b, hours_after=0.5, price=250.0)
        assert resp.status_code == 200
        data = resp.json()

        assert data["owner_id"] == b
        assert data["transfer_count"] == 1
        assert data["last_transfer_date"] == "2030-06-13T18:30:00"
        # 0.4*0.2 + 0.3*1.0 + 0.2*0.7 + 0.1*0.0
        assert data["fraud_score"] == pytest.approx(0.52)

    @pytest.mark.asyncio
    async def test_score_stored_after_each_transfer(self, client):
        a, b, c, d = await create_users(client, 4)
        ticket = await _issue(client, a)
        tid = ticket["id"]

        r1 = await _transfer(client, tid, b, hours_after=0.5, price=250.0)
        r2 = await _transfer(client, tid, c, hours_after=2)
        r3 = await _transfer(client, tid, b, hours_after=3)
        r4 = await _transfer(client, tid, d, hours_after=4)

        assert r1.json()["fraud_score"] == pytest.approx(0.52)
        # two records, one rapid gap: no pattern yet
        assert r2.json()["fraud_score"] == pytest.approx(0.46)
        # b received the ticket twice: circular
        assert r3.json()["fraud_score"] == pytest.approx(0.66)
        assert r4.json()["fraud_score"] == pytest.approx(0.78)

        stored = (await client.get(f"{TICKETS_URL}/{tid}")).json()
        assert stored["fraud_score"] == pytest.approx(0.78)
        assert stored["transfer_count"] == 4
        assert stored["owner_id"] == d

    @pytest.mark.asyncio
    async def test_transfer_history_is_logged_in_order(self, client):
        a, b, c = await create_users(client, 3)
        ticket = await _issue(client, a)
        await _transfer(client, ticket["id"], b, hours_after=1, price=120.0)
        await _transfer(client, ticket["id"], c, hours_after=30)

        resp = await client.get(f"{TICKETS_URL}/{ticket['id']}/transfers")
        assert resp.status_code == 200
        history = resp.json()

        assert [(t["from_user_id"], t["to_user_id"]) for t in history] == [(a, b), (b, c)]
        assert history[0]["transfer_price"] == 120.0
        assert history[1]["transfer_price"] is None
        assert history[0]["transfer_date"] < history[1]["transfer_date"]

    @pytest.mark.asyncio
    async def test_transfer_unknown_ticket_returns_404(self, client):
        (a,) = await create_users(client, 1)
        resp = await _transfer(client, 777, a, hours_after=1)
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_transfer_to_unknown_user_returns_404(self, client):
        (a,) = await create_users(client, 1)
        ticket = await _issue(client, a)
        resp = await _transfer(client, ticket["id"], 999, hours_after=1)
        assert resp.status_code == 404

        history = (await client.get(f"{TICKETS_URL}/{ticket['id']}/transfers")).json()
        assert history == []

    @pytest.mark.asyncio
    async def test_transfer_to_current_owner_returns_409(self, client):
        (a,) = await create_users(client, 1)
        ticket = await _issue(client, a)
        resp = await _transfer(client, ticket["id"], a, hours_after=1)
        assert resp.status_code == 409

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["USED", "CANCELLED", "SUSPENDED"])
    async def test_inactive_ticket_cannot_be_transferred(self, client, status):
        a, b = await create_users(client, 2)
        ticket = await _issue(client, a)

        resp = await client.patch(f"{TICKETS_URL}/{ticket['id']}/status", json={"status": status})
        assert resp.status_code == 200
        assert resp.json()["status"] == status

        resp = await _transfer(client, ticket["id"], b, hours_after=1)
        assert resp.status_code == 409

        stored = (await client.get(f"{TICKETS_URL}/{ticket['id']}")).json()
        assert stored["owner_id"] == a
        assert stored["transfer_count"] == 0

    @pytest.mark.asyncio
    async def test_backdated_transfer_returns_409(self, client):
        a, b, c = await create_users(client, 3)
        ticket = await _issue(client, a)
        assert (await _transfer(client, ticket["id"], b, hours_after=100)).status_code == 200

        resp = await _transfer(client, ticket["id"], c, hours_after=2)
        assert resp.status_code == 409

        stored = (await client.get(f"{TICKETS_URL}/{ticket['id']}")).json()
        assert stored["owner_id"] == b
        assert stored["transfer_count"] == 1
        assert stored["last_transfer_date"] == "2030-06-17T22:00:00"

        history = (await client.get(f"{TICKETS_URL}/{ticket['id']}/transfers")).json()
        assert [(t["from_user_id"], t["to_user_id"]) for t in history] == [(a, b)]

    @pytest.mark.asyncio
    async def test_transfer_before_purchase_returns_409(self, client):
        a, b = await create_users(client, 2)
        ticket = await _issue(client, a)
        resp = await _transfer(client, ticket["id"], b, hours_after=-1)
        assert resp.status_code == 409
        assert (await client.get(f"{TICKETS_URL}/{ticket['id']}/transfers")).json() == []

    @pytest.mark.asyncio
    async def test_transfer_at_same_instant_as_previous_is_accepted(self, client):
        a, b, c = await create_users(client, 3)
        ticket = await _issue(client, a)
        await _transfer(client, ticket["id"], b, hours_after=5)
        resp = await _transfer(client, ticket["id"], c, hours_after=5)
        assert resp.status_code == 200
        assert resp.json()["transfer_count"] == 2

    @pytest.mark.asyncio
    async def test_negative_transfer_price_returns_422(self, client):
        a, b = await create_users(client, 2)
        ticket = await _issue(client, a)
        resp = await _transfer(client, ticket["id"], b, hours_after=1, price=-5.0)
        assert resp.status_code == 422


# ===========================================================================
# History Loader Failure During Transfer
# ===========================================================================


class TestTransferWithHistoryFailure:
    @pytest.mark.asyncio
    async def test_transfer_completes_when_history_unavailable(self, client):
        a, b = await create_users(client, 2)
        ticket = await _issue(client, a)

        failures = []
        app.dependency_overrides[get_fraud_service] = lambda: FraudDetectionService(
            StubLoader(error=RuntimeError("history store offline")),
            on_history_error=lambda tid, exc: failures.append(tid),
        )

        resp = await _transfer(client, ticket["id"], b, hours_after=0.5, price=900.0)

        assert resp.status_code == 200
        # price anomaly ignored: 0.4*0.2 + 0.3*1.0
        assert resp.json()["fraud_score"] == pytest.approx(0.38)
        assert failures == [ticket["id"]]

        history = (await client.get(f"{TICKETS_URL}/{ticket['id']}/transfers")).json()
        assert len(history) == 1


# ===========================================================================
# Listing
# ===========================================================================


class TestListing:
    @pytest.mark.asyncio
    async def test_filter_by_owner(self, client):
        a, b = await create_users(client, 2)
        t1 = await _issue(client, a, seat_number="A1")
        await _issue(client, a, seat_number="A2")
        await _issue(client, b, seat_number="C7")
        await _transfer(client, t1["id"], b, hours_after=100)

        owned_by_b = (await client.get(TICKETS_URL, params={"owner_id": b})).json()
        assert sorted(t["seat_number"] for t in owned_by_b) == ["A1", "C7"]

    @pytest.mark.asyncio
    async def test_filter_by_status(self, client):
        (a,) = await create_users(client, 1)
        t1 = await _issue(client, a)
        await _issue(client, a)
        await client.patch(f"{TICKETS_URL}/{t1['id']}/status", json={"status": "USED"})

        used = (await client.get(TICKETS_URL, params={"status": "USED"})).json()
        assert [t["id"] for t in used] == [t1["id"]]

    @pytest.mark.asyncio
    async def test_invalid_status_update_returns_422(self, client):
        (a,) = await create_users(client, 1)
        ticket = await _issue(client, a)
        resp = await client.patch(f"{TICKETS_URL}/{ticket['id']}/status", json={"status": "LOST"})
        assert resp.status_code == 422
