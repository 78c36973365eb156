import logging
import sqlite3
from typing import Optional

from mondial_risk.config import settings

logger = logging.getLogger(__name__)

_connection: Optional[sqlite3.Connection] = None


def get_connection() -> sqlite3.Connection:
    global _connection
    if _connection is None:
        _connection = sqlite3.connect(settings.DATABASE_PATH, check_same_thread=False)
        _connection.row_factory = sqlite3.Row
        if settings.DATABASE_PATH != ":memory:":
            _connection.execute("PRAGMA journal_mode=WAL")
        _connection.execute("PRAGMA foreign_keys=ON")
    return _connection


def close_connection() -> None:
    global _connection
    if _connection is not None:
        _connection.close()
        _connection = None


def init_schema() -> None:
    conn = get_connection()
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS stadiums (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE,
            city TEXT NOT NULL,
            country TEXT NOT NULL,
            capacity INTEGER NOT NULL,
            year_built INTEGER,
            is_main_venue INTEGER NOT NULL DEFAULT 0
        );

        CREATE TABLE IF NOT EXISTS matches (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            home_team TEXT NOT NULL,
            away_team TEXT NOT NULL,
            match_date TEXT NOT NULL,
            stadium_id INTEGER NOT NULL REFERENCES stadiums(id),
            phase TEXT NOT NULL DEFAULT 'GROUP_STAGE',
            base_price REAL,
            total_seats INTEGER
        );

        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT NOT NULL UNIQUE,
            name TEXT NOT NULL,
            created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS tickets (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            seat_number TEXT NOT NULL,
            seat_zone TEXT,
            price REAL NOT NULL,
            category TEXT NOT NULL DEFAULT 'STANDARD',
            status TEXT NOT NULL DEFAULT 'ACTIVE',
            fraud_score REAL NOT NULL DEFAULT 0.0,
            transfer_count INTEGER NOT NULL DEFAULT 0,
            purchase_date TEXT NOT NULL,
            last_transfer_date TEXT,
            owner_id INTEGER REFERENCES users(id),
            match_id INTEGER REFERENCES matches(id)
        );

        CREATE TABLE IF NOT EXISTS ticket_transfers (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            ticket_id INTEGER NOT NULL REFERENCES tickets(id) ON DELETE CASCADE,
            from_user_id INTEGER REFERENCES users(id),
            to_user_id INTEGER NOT NULL REFERENCES users(id),
            transfer_date TEXT NOT NULL,
            transfer_price REAL,
            notes TEXT
        );

        CREATE INDEX IF NOT EXISTS idx_transfers_ticket_date
            ON ticket_transfers (ticket_id, transfer_date);
        CREATE INDEX IF NOT EXISTS idx_tickets_fraud_score
            ON tickets (fraud_score);
        CREATE INDEX IF NOT EXISTS idx_tickets_match
            ON tickets (match_id);
    """)
    conn.commit()


def load_seed_data() -> None:
    """Insert the demo data set and score every seeded ticket."""
    conn = get_connection()

    # Only seed if tables are empty
    row = conn.execute("SELECT COUNT(*) as cnt FROM tickets").fetchone()
    if row["cnt"] > 0:
        return

    from mondial_risk.seed.demo_data import generate_demo_data
    from mondial_risk.services.fraud_detection import FraudDetectionService
    from mondial_risk.services.transfer_history import row_to_ticket, sqlite_history_loader

    data = generate_demo_data()

    with conn:
        for stadium in data["stadiums"]:
            conn.execute(
                """INSERT OR IGNORE INTO stadiums
                   (id, name, city, country, capacity, year_built, is_main_venue)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    stadium["id"],
                    stadium["name"],
                    stadium["city"],
                    stadium["country"],
                    stadium["capacity"],
                    stadium["year_built"],
                    int(stadium["is_main_venue"]),
                ),
            )
        for match in data["matches"]:
            conn.execute(
                """INSERT OR IGNORE INTO matches
                   (id, home_team, away_team, match_date, stadium_id, phase,
                    base_price, total_seats)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    match["id"],
                    match["home_team"],
                    match["away_team"],
                    match["match_date"],
                    match["stadium_id"],
                    match["phase"],
                    match["base_price"],
                    match["total_seats"],
                ),
            )
        for user in data["users"]:
            conn.execute(
                "INSERT OR IGNORE INTO users (id, username, name, created_at) VALUES (?, ?, ?, ?)",
                (user["id"], user["username"], user["name"], user["created_at"]),
            )
        for ticket in data["tickets"]:
            conn.execute(
                """INSERT INTO tickets
                   (id, seat_number, seat_zone, price, category, status,
                    transfer_count, purchase_date, last_transfer_date,
                    owner_id, match_id)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    ticket["id"],
                    ticket["seat_number"],
                    ticket["seat_zone"],
                    ticket["price"],
                    ticket["category"],
                    ticket["status"],
                    ticket["transfer_count"],
                    ticket["purchase_date"],
                    ticket["last_transfer_date"],
                    ticket["owner_id"],
                    ticket["match_id"],
                ),
            )
        for transfer in data["transfers"]:
            conn.execute(
                """INSERT INTO ticket_transfers
                   (ticket_id, from_user_id, to_user_id, transfer_date,
                    transfer_price, notes)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    transfer["ticket_id"],
                    transfer["from_user_id"],
                    transfer["to_user_id"],
                    transfer["transfer_date"],
                    transfer["transfer_price"],
                    transfer["notes"],
                ),
            )

        fraud_service = FraudDetectionService(sqlite_history_loader(conn))
        for row in conn.execute("SELECT * FROM tickets").fetchall():
            score = fraud_service.calculate_fraud_score(row_to_ticket(row))
            conn.execute("UPDATE tickets SET fraud_score = ? WHERE id = ?", (score, row["id"]))

    logger.info(
        "Seeded %d stadiums, %d matches, %d users, %d tickets, %d transfers",
        len(data["stadiums"]),
        len(data["matches"]),
        len(data["users"]),
        len(data["tickets"]),
        len(data["transfers"]),
    )


def init_db() -> None:
    """Initialize database: create schema, then load demo data if enabled."""
    init_schema()
    if settings.SEED_DEMO_DATA:
        load_seed_data()
