import logging

from mondial_risk.database import get_connection
from mondial_risk.services.fraud_detection import FraudDetectionService
from mondial_risk.services.transfer_history import sqlite_history_loader

logger = logging.getLogger("mondial_risk.fraud")


def _report_history_failure(ticket_id: int, exc: Exception) -> None:
    logger.error("Could not load transfer history for ticket %s: %r", ticket_id, exc)


def get_fraud_service() -> FraudDetectionService:
    """FastAPI dependency: a scorer reading history from the shared connection."""
    return FraudDetectionService(
        loader=sqlite_history_loader(get_connection()),
        on_history_error=_report_history_failure,
    )
