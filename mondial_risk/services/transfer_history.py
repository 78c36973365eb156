"""Read side of the ticket transfer log, plus row mappers shared by the services."""
import sqlite3
from datetime import datetime
from typing import List, Optional

from mondial_risk.models.ticket import TicketRecord, TransferRecord
from mondial_risk.services.fraud_detection import TransferHistoryLoader


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def row_to_ticket(row: sqlite3.Row) -> TicketRecord:
    return TicketRecord(
        id=row["id"],
        seat_number=row["seat_number"],
        seat_zone=row["seat_zone"],
        price=row["price"],
        category=row["category"],
        status=row["status"],
        fraud_score=row["fraud_score"],
        transfer_count=row["transfer_count"],
        purchase_date=_parse_ts(row["purchase_date"]),
        last_transfer_date=_parse_ts(row["last_transfer_date"]),
        owner_id=row["owner_id"],
        match_id=row["match_id"],
    )


def row_to_transfer(row: sqlite3.Row) -> TransferRecord:
    return TransferRecord(
        id=row["id"],
        ticket_id=row["ticket_id"],
        from_user_id=row["from_user_id"],
        to_user_id=row["to_user_id"],
        transfer_date=_parse_ts(row["transfer_date"]),
        transfer_price=row["transfer_price"],
        notes=row["notes"],
    )


def load_transfer_history(conn: sqlite3.Connection, ticket_id: int) -> List[TransferRecord]:
    """All transfers of a ticket, oldest first."""
    rows = conn.execute(
        """SELECT * FROM ticket_transfers
           WHERE ticket_id = ?
           ORDER BY transfer_date ASC, id ASC""",
        (ticket_id,),
    ).fetchall()
    return [row_to_transfer(r) for r in rows]


def sqlite_history_loader(conn: sqlite3.Connection) -> TransferHistoryLoader:
    def _load(ticket_id: int) -> List[TransferRecord]:
        return load_transfer_history(conn, ticket_id)

    return _load
