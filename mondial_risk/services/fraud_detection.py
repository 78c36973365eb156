"""Fraud risk scoring for ticket ownership transfers.

A ticket's score is a weighted sum of four sub-scores, each in [0.0, 1.0]:

- transfer count (40%): how many times the ticket changed hands
- rapid transfer (30%): how soon after purchase it was last transferred
- price anomaly (20%): first resale markup over the base price
- suspicious pattern (10%): circular ownership or bursts of transfers

The scorer is deterministic and side-effect free apart from one call to the
injected transfer-history loader. A loader failure degrades the history-based
sub-scores to 0.0 instead of failing the score, so scoring never blocks ticket
issuance or transfer.
"""
import logging
from datetime import datetime
from itertools import combinations
from typing import Callable, List, Optional, Sequence, Tuple

from mondial_risk.models.fraud import FraudFactor, FraudReport, RiskLevel
from mondial_risk.models.ticket import Ticket, TransferRecord, as_naive_utc

logger = logging.getLogger(__name__)

TransferHistoryLoader = Callable[[int], Sequence[TransferRecord]]
HistoryErrorHook = Callable[[int, Exception], None]

HIGH_TRANSFER_COUNT = 3
VERY_HIGH_TRANSFER_COUNT = 5
RAPID_TRANSFER_HOURS = 24

TRANSFER_COUNT_WEIGHT = 0.4
RAPID_TRANSFER_WEIGHT = 0.3
PRICE_ANOMALY_WEIGHT = 0.2
PATTERN_WEIGHT = 0.1

# Reports above this score carry a manual review warning.
WARNING_THRESHOLD = 0.7


def hours_between(start: datetime, end: datetime) -> int:
    """Whole hours from ``start`` to ``end``, truncated toward zero."""
    delta = as_naive_utc(end) - as_naive_utc(start)
    return int(delta.total_seconds() / 3600)


def transfer_count_score(ticket: Ticket) -> float:
    count = ticket.transfer_count or 0

    if count <= 0:
        return 0.0
    elif count <= 2:
        return 0.2
    elif count <= HIGH_TRANSFER_COUNT:
        return 0.5
    elif count <= VERY_HIGH_TRANSFER_COUNT:
        return 0.8
    return 1.0


def rapid_transfer_score(ticket: Ticket) -> float:
    if ticket.purchase_date is None or ticket.last_transfer_date is None:
        return 0.0

    # A transfer stamped before the purchase lands in the first bucket.
    hours = hours_between(ticket.purchase_date, ticket.last_transfer_date)

    if hours <= 1:
        return 1.0
    elif hours <= 6:
        return 0.8
    elif hours <= RAPID_TRANSFER_HOURS:
        return 0.5
    elif hours <= 72:
        return 0.2
    return 0.0


def price_anomaly_score(ticket: Ticket, transfers: Sequence[TransferRecord]) -> float:
    """Score the first transfer whose price ratio crosses a threshold.

    Records are inspected in list order and the scan stops at the first hit,
    so an early 1.6x resale masks a later 4x one.
    """
    if ticket.id is None or not transfers:
        return 0.0
    if ticket.price is None or ticket.price <= 0:
        return 0.0

    for transfer in transfers:
        if transfer.transfer_price is None:
            continue
        ratio = transfer.transfer_price / ticket.price
        if ratio > 3.0:
            return 1.0
        elif ratio > 2.0:
            return 0.7
        elif ratio > 1.5:
            return 0.4

    return 0.0


def _has_circular_ownership(transfers: Sequence[TransferRecord]) -> bool:
    return any(
        a.to_user_id is not None and a.to_user_id == b.to_user_id
        for a, b in combinations(transfers, 2)
    )


def _count_rapid_gaps(transfers: Sequence[TransferRecord]) -> int:
    rapid = 0
    for prev, cur in zip(transfers, transfers[1:]):
        if hours_between(prev.transfer_date, cur.transfer_date) < RAPID_TRANSFER_HOURS:
            rapid += 1
    return rapid


def pattern_score(ticket: Ticket, transfers: Sequence[TransferRecord]) -> float:
    if ticket.id is None or len(transfers) < 2:
        return 0.0

    if _has_circular_ownership(transfers):
        return 0.8
    if _count_rapid_gaps(transfers) >= 2:
        return 0.6
    return 0.0


def map_risk_level(score: float) -> RiskLevel:
    if score < 0.2:
        return "LOW"
    elif score < 0.5:
        return "MEDIUM"
    elif score < 0.7:
        return "HIGH"
    return "CRITICAL"


def build_details(ticket: Optional[Ticket], score: float) -> str:
    count = (ticket.transfer_count or 0) if ticket is not None else 0
    lines = [f"Transfer Count: {count}"]

    if ticket is not None and ticket.last_transfer_date is not None:
        lines.append(f"Last Transfer: {ticket.last_transfer_date.isoformat()}")

    if score > WARNING_THRESHOLD:
        lines.append("WARNING: High fraud risk detected!")
        lines.append("Recommendation: Manual review required.")

    return "\n".join(lines) + "\n"


def _describe(ticket: Ticket, transfers: Sequence[TransferRecord], scores: Tuple[float, ...]) -> List[FraudFactor]:
    count_score, rapid_score, price_score, pat_score = scores

    if ticket.purchase_date is not None and ticket.last_transfer_date is not None:
        hours = hours_between(ticket.purchase_date, ticket.last_transfer_date)
        rapid_desc = f"Last transfer {hours}h after purchase"
    else:
        rapid_desc = "Never transferred"

    if pat_score == 0.8:
        pattern_desc = "Ticket returned to a previous recipient"
    elif pat_score == 0.6:
        pattern_desc = "Multiple transfers within 24h of each other"
    else:
        pattern_desc = "No suspicious ownership pattern"

    return [
        FraudFactor(
            signal="transfer_count",
            score=count_score,
            weight=TRANSFER_COUNT_WEIGHT,
            description=f"{ticket.transfer_count or 0} ownership transfers since purchase",
        ),
        FraudFactor(
            signal="rapid_transfer",
            score=rapid_score,
            weight=RAPID_TRANSFER_WEIGHT,
            description=rapid_desc,
        ),
        FraudFactor(
            signal="price_anomaly",
            score=price_score,
            weight=PRICE_ANOMALY_WEIGHT,
            description=f"Resale markup checked across {len(transfers)} transfer records",
        ),
        FraudFactor(
            signal="suspicious_pattern",
            score=pat_score,
            weight=PATTERN_WEIGHT,
            description=pattern_desc,
        ),
    ]


def _log_history_failure(ticket_id: int, exc: Exception) -> None:
    logger.warning(
        "Transfer history unavailable for ticket %s, scoring without it: %s",
        ticket_id,
        exc,
    )


class FraudDetectionService:
    """Score tickets against their transfer history.

    ``loader`` returns a ticket's transfer records oldest first; the order is
    trusted as given. ``on_history_error`` is called with the ticket id and
    the exception whenever the loader raises.
    """

    def __init__(
        self,
        loader: TransferHistoryLoader,
        on_history_error: Optional[HistoryErrorHook] = None,
    ) -> None:
        self.loader = loader
        self.on_history_error = on_history_error or _log_history_failure

    def load_history(self, ticket: Ticket) -> List[TransferRecord]:
        if ticket.id is None:
            return []
        try:
            return list(self.loader(ticket.id))
        except Exception as exc:
            self.on_history_error(ticket.id, exc)
            return []

    def score_breakdown(self, ticket: Optional[Ticket]) -> Tuple[float, List[FraudFactor]]:
        """Composite score and the four weighted factors behind it."""
        if ticket is None:
            return 0.0, []

        transfers = self.load_history(ticket)
        scores = (
            transfer_count_score(ticket),
            rapid_transfer_score(ticket),
            price_anomaly_score(ticket, transfers),
            pattern_score(ticket, transfers),
        )
        weights = (TRANSFER_COUNT_WEIGHT, RAPID_TRANSFER_WEIGHT, PRICE_ANOMALY_WEIGHT, PATTERN_WEIGHT)

        total = sum(s * w for s, w in zip(scores, weights))
        total = min(1.0, max(0.0, total))
        return total, _describe(ticket, transfers, scores)

    def calculate_fraud_score(self, ticket: Optional[Ticket]) -> float:
        score, _ = self.score_breakdown(ticket)
        return score

    def risk_level(self, score: float) -> RiskLevel:
        return map_risk_level(score)

    def analyze_ticket(self, ticket: Optional[Ticket]) -> FraudReport:
        score, factors = self.score_breakdown(ticket)
        return FraudReport(
            ticket_id=ticket.id if ticket is not None else None,
            score=score,
            risk_level=map_risk_level(score),
            details=build_details(ticket, score),
            factors=factors,
        )


def score_ticket(ticket: Optional[Ticket], loader: TransferHistoryLoader) -> float:
    """Fraud score in [0.0, 1.0] for ``ticket`` using ``loader`` for its history."""
    return FraudDetectionService(loader).calculate_fraud_score(ticket)


def static_history_loader(transfers: Sequence[TransferRecord]) -> TransferHistoryLoader:
    """Loader that serves a fixed transfer list, for scoring ad-hoc snapshots."""
    records = list(transfers)

    def _load(ticket_id: int) -> List[TransferRecord]:
        return records

    return _load
