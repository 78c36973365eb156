from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from mondial_risk.config import settings
from mondial_risk.dependencies import get_fraud_service
from mondial_risk.models.fraud import (
    BatchScoreRequest,
    BatchScoreResponse,
    BatchSummary,
    FraudReport,
    FraudScoreResponse,
    HighRiskTicketsResponse,
    RiskSummaryResponse,
    ScoreRequest,
)
from mondial_risk.models.ticket import TicketRecord
from mondial_risk.services import ticket_service
from mondial_risk.services.fraud_detection import FraudDetectionService, static_history_loader
from mondial_risk.services.ticket_service import TicketNotFoundError

router = APIRouter(prefix="/fraud", tags=["fraud"])


def _score_snapshot(item: ScoreRequest) -> FraudReport:
    return FraudDetectionService(static_history_loader(item.transfers)).analyze_ticket(item.ticket)


@router.get("/tickets/{ticket_id}/score", response_model=FraudScoreResponse)
async def get_ticket_score(
    ticket_id: int,
    fraud_service: FraudDetectionService = Depends(get_fraud_service),
) -> FraudScoreResponse:
    """Live fraud score of a stored ticket. Nothing is written back."""
    try:
        ticket = ticket_service.get_ticket(ticket_id)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))

    score = fraud_service.calculate_fraud_score(ticket)
    return FraudScoreResponse(
        ticket_id=ticket_id,
        score=score,
        risk_level=fraud_service.risk_level(score),
    )


@router.get("/tickets/{ticket_id}/report", response_model=FraudReport)
async def get_ticket_report(
    ticket_id: int,
    fraud_service: FraudDetectionService = Depends(get_fraud_service),
) -> FraudReport:
    """Analyst report: score, risk level, narrative and per-factor breakdown."""
    try:
        ticket = ticket_service.get_ticket(ticket_id)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return fraud_service.analyze_ticket(ticket)


@router.post("/tickets/{ticket_id}/rescore", response_model=TicketRecord)
async def rescore_ticket(
    ticket_id: int,
    fraud_service: FraudDetectionService = Depends(get_fraud_service),
) -> TicketRecord:
    try:
        return ticket_service.rescore_ticket(ticket_id, fraud_service)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.get("/high-risk", response_model=HighRiskTicketsResponse)
async def list_high_risk_tickets(
    threshold: Optional[float] = Query(None, ge=0.0, le=1.0, description="Stored score cutoff (exclusive)"),
) -> HighRiskTicketsResponse:
    cutoff = settings.HIGH_RISK_THRESHOLD if threshold is None else threshold
    tickets = ticket_service.list_high_risk_tickets(cutoff)
    return HighRiskTicketsResponse(threshold=cutoff, total=len(tickets), tickets=tickets)


@router.get("/summary", response_model=RiskSummaryResponse)
async def get_risk_summary() -> RiskSummaryResponse:
    return ticket_service.risk_summary()


@router.post("/score", response_model=FraudReport)
async def score_snapshot(request: ScoreRequest) -> FraudReport:
    """Score a ticket snapshot and transfer log supplied by the caller."""
    return _score_snapshot(request)


@router.post("/batch-score", response_model=BatchScoreResponse)
async def batch_score(request: BatchScoreRequest) -> BatchScoreResponse:
    results = []
    counts = {"LOW": 0, "MEDIUM": 0, "HIGH": 0, "CRITICAL": 0}

    for item in request.items:
        report = _score_snapshot(item)
        results.append(report)
        counts[report.risk_level] += 1

    return BatchScoreResponse(
        total=len(results),
        scored_at=datetime.now(timezone.utc),
        summary=BatchSummary(
            low=counts["LOW"],
            medium=counts["MEDIUM"],
            high=counts["HIGH"],
            critical=counts["CRITICAL"],
        ),
        results=results,
    )
