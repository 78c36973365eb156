"""Ticket issuance and transfer workflows.

Both workflows store the fraud score computed by the scorer inside their own
write transaction. A transfer's read of the history, the new transfer record
and the score update commit or roll back together.
"""
import logging
import sqlite3
from typing import List, Optional

from mondial_risk.database import get_connection
from mondial_risk.models.fraud import BatchSummary, RiskSummaryResponse
from mondial_risk.models.ticket import (
    Ticket,
    TicketCreate,
    TicketRecord,
    TicketStatus,
    TransferRecord,
    TransferRequest,
    User,
    UserCreate,
    utcnow,
)
from mondial_risk.services.fraud_detection import FraudDetectionService, map_risk_level
from mondial_risk.services.transfer_history import load_transfer_history, row_to_ticket
from mondial_risk.services.venue_service import MatchNotFoundError, match_exists

logger = logging.getLogger(__name__)


class TicketNotFoundError(Exception):
    pass


class UserNotFoundError(Exception):
    pass


class DuplicateUserError(Exception):
    pass


class TicketNotTransferableError(Exception):
    pass


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        username=row["username"],
        name=row["name"],
        created_at=row["created_at"],
    )


def _fetch_user(conn: sqlite3.Connection, user_id: int) -> Optional[sqlite3.Row]:
    return conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()


def _fetch_ticket(conn: sqlite3.Connection, ticket_id: int) -> sqlite3.Row:
    row = conn.execute("SELECT * FROM tickets WHERE id = ?", (ticket_id,)).fetchone()
    if row is None:
        raise TicketNotFoundError(f"Ticket {ticket_id} not found")
    return row


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


def create_user(data: UserCreate) -> User:
    conn = get_connection()
    now = utcnow().isoformat()
    try:
        with conn:
            cur = conn.execute(
                "INSERT INTO users (username, name, created_at) VALUES (?, ?, ?)",
                (data.username, data.name, now),
            )
    except sqlite3.IntegrityError as exc:
        raise DuplicateUserError(f"Username '{data.username}' is already taken") from exc
    return User(id=cur.lastrowid, username=data.username, name=data.name, created_at=now)


def get_user(user_id: int) -> User:
    row = _fetch_user(get_connection(), user_id)
    if row is None:
        raise UserNotFoundError(f"User {user_id} not found")
    return _row_to_user(row)


def list_users() -> List[User]:
    rows = get_connection().execute("SELECT * FROM users ORDER BY id").fetchall()
    return [_row_to_user(r) for r in rows]


# ---------------------------------------------------------------------------
# Tickets
# ---------------------------------------------------------------------------


def issue_ticket(data: TicketCreate, fraud_service: FraudDetectionService) -> TicketRecord:
    """Issue a new ACTIVE ticket to ``data.owner_id``.

    A fresh ticket has no id, no transfers and no last transfer date, so its
    initial fraud score is always 0.0.
    """
    conn = get_connection()
    if _fetch_user(conn, data.owner_id) is None:
        raise UserNotFoundError(f"User {data.owner_id} not found")
    if data.match_id is not None and not match_exists(conn, data.match_id):
        raise MatchNotFoundError(f"Match {data.match_id} not found")

    purchase_date = data.purchase_date or utcnow()
    fraud_score = fraud_service.calculate_fraud_score(
        Ticket(price=data.price, transfer_count=0, purchase_date=purchase_date)
    )

    with conn:
        cur = conn.execute(
            """INSERT INTO tickets
               (seat_number, seat_zone, price, category, status, fraud_score,
                transfer_count, purchase_date, last_transfer_date,
                owner_id, match_id)
               VALUES (?, ?, ?, ?, 'ACTIVE', ?, 0, ?, NULL, ?, ?)""",
            (
                data.seat_number,
                data.seat_zone,
                data.price,
                data.category,
                fraud_score,
                purchase_date.isoformat(),
                data.owner_id,
                data.match_id,
            ),
        )

    ticket = get_ticket(cur.lastrowid)
    logger.info("Issued ticket %s (seat %s) to user %s", ticket.id, ticket.seat_number, ticket.owner_id)
    return ticket


def get_ticket(ticket_id: int) -> TicketRecord:
    return row_to_ticket(_fetch_ticket(get_connection(), ticket_id))


def list_tickets(
    owner_id: Optional[int] = None,
    status: Optional[TicketStatus] = None,
    match_id: Optional[int] = None,
) -> List[TicketRecord]:
    clauses = []
    params: list = []
    if match_id is not None:
        clauses.append("match_id = ?")
        params.append(match_id)
    if owner_id is not None:
        clauses.append("owner_id = ?")
        params.append(owner_id)
    if status is not None:
        clauses.append("status = ?")
        params.append(status)
    where = " AND ".join(clauses) if clauses else "1=1"

    rows = get_connection().execute(
        f"SELECT * FROM tickets WHERE {where} ORDER BY purchase_date DESC, id DESC",
        params,
    ).fetchall()
    return [row_to_ticket(r) for r in rows]


def get_transfer_history(ticket_id: int) -> List[TransferRecord]:
    conn = get_connection()
    _fetch_ticket(conn, ticket_id)
    return load_transfer_history(conn, ticket_id)


def transfer_ticket(
    ticket_id: int,
    request: TransferRequest,
    fraud_service: FraudDetectionService,
) -> TicketRecord:
    """Move a ticket to a new owner and re-score it.

    The fraud service must read history through the same connection so the
    record appended here is part of the snapshot it scores.
    """
    conn = get_connection()

    with conn:
        row = _fetch_ticket(conn, ticket_id)
        if row["status"] != "ACTIVE":
            raise TicketNotTransferableError(
                f"Ticket {ticket_id} is {row['status']} and cannot be transferred"
            )
        if _fetch_user(conn, request.to_user_id) is None:
            raise UserNotFoundError(f"User {request.to_user_id} not found")
        if row["owner_id"] == request.to_user_id:
            raise TicketNotTransferableError(
                f"Ticket {ticket_id} is already owned by user {request.to_user_id}"
            )

        ticket = row_to_ticket(row)
        transfer_date = request.transfer_date or utcnow()
        # last_transfer_date must stay the most recent ownership change
        latest = max(d for d in (ticket.purchase_date, ticket.last_transfer_date) if d is not None)
        if transfer_date < latest:
            raise TicketNotTransferableError(
                f"Transfer date {transfer_date.isoformat()} is before the ticket's "
                f"latest ownership change at {latest.isoformat()}"
            )

        conn.execute(
            """INSERT INTO ticket_transfers
               (ticket_id, from_user_id, to_user_id, transfer_date,
                transfer_price, notes)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                ticket_id,
                row["owner_id"],
                request.to_user_id,
                transfer_date.isoformat(),
                request.transfer_price,
                request.notes,
            ),
        )

        ticket.owner_id = request.to_user_id
        ticket.transfer_count = (ticket.transfer_count or 0) + 1
        ticket.last_transfer_date = transfer_date
        ticket.fraud_score = fraud_service.calculate_fraud_score(ticket)

        conn.execute(
            """UPDATE tickets
               SET owner_id = ?, transfer_count = ?, last_transfer_date = ?,
                   fraud_score = ?
               WHERE id = ?""",
            (
                ticket.owner_id,
                ticket.transfer_count,
                transfer_date.isoformat(),
                ticket.fraud_score,
                ticket_id,
            ),
        )

    logger.info(
        "Transferred ticket %s to user %s (transfers=%d, fraud_score=%.2f, risk=%s)",
        ticket_id,
        ticket.owner_id,
        ticket.transfer_count,
        ticket.fraud_score,
        map_risk_level(ticket.fraud_score),
    )
    return ticket


def update_ticket_status(ticket_id: int, status: TicketStatus) -> TicketRecord:
    conn = get_connection()
    with conn:
        _fetch_ticket(conn, ticket_id)
        conn.execute("UPDATE tickets SET status = ? WHERE id = ?", (status, ticket_id))
    logger.info("Ticket %s status set to %s", ticket_id, status)
    return get_ticket(ticket_id)


# ---------------------------------------------------------------------------
# Fraud views over stored tickets
# ---------------------------------------------------------------------------


def rescore_ticket(ticket_id: int, fraud_service: FraudDetectionService) -> TicketRecord:
    """Recompute a stored ticket's fraud score from its current history."""
    conn = get_connection()
    with conn:
        ticket = row_to_ticket(_fetch_ticket(conn, ticket_id))
        ticket.fraud_score = fraud_service.calculate_fraud_score(ticket)
        conn.execute(
            "UPDATE tickets SET fraud_score = ? WHERE id = ?",
            (ticket.fraud_score, ticket_id),
        )
    return ticket


def list_high_risk_tickets(threshold: float) -> List[TicketRecord]:
    rows = get_connection().execute(
        "SELECT * FROM tickets WHERE fraud_score > ? ORDER BY fraud_score DESC, id ASC",
        (threshold,),
    ).fetchall()
    return [row_to_ticket(r) for r in rows]


def risk_summary() -> RiskSummaryResponse:
    """Distribution of stored fraud scores across risk levels."""
    rows = get_connection().execute("SELECT fraud_score FROM tickets").fetchall()
    counts = {"LOW": 0, "MEDIUM": 0, "HIGH": 0, "CRITICAL": 0}
    for r in rows:
        counts[map_risk_level(r["fraud_score"])] += 1

    total = len(rows)
    average = round(sum(r["fraud_score"] for r in rows) / total, 4) if total > 0 else 0.0
    return RiskSummaryResponse(
        total_tickets=total,
        by_risk_level=BatchSummary(
            low=counts["LOW"],
            medium=counts["MEDIUM"],
            high=counts["HIGH"],
            critical=counts["CRITICAL"],
        ),
        average_score=average,
    )
