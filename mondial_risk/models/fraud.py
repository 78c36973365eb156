from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from mondial_risk.config import settings
from mondial_risk.models.ticket import Ticket, TicketRecord, TransferRecord

RiskLevel = Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]


class FraudFactor(BaseModel):
    signal: Literal["transfer_count", "rapid_transfer", "price_anomaly", "suspicious_pattern"]
    score: float = Field(ge=0.0, le=1.0)
    weight: float
    description: str


class FraudReport(BaseModel):
    ticket_id: Optional[int] = None
    score: float = Field(ge=0.0, le=1.0)
    risk_level: RiskLevel
    details: str
    factors: list[FraudFactor] = []


class FraudScoreResponse(BaseModel):
    ticket_id: int
    score: float = Field(ge=0.0, le=1.0)
    risk_level: RiskLevel


class ScoreRequest(BaseModel):
    """An ad-hoc ticket snapshot with its transfer log, oldest first."""

    ticket: Ticket
    transfers: list[TransferRecord] = []


class BatchScoreRequest(BaseModel):
    items: list[ScoreRequest] = Field(min_length=1, max_length=settings.MAX_BATCH_SIZE)


class BatchSummary(BaseModel):
    low: int
    medium: int
    high: int
    critical: int


class BatchScoreResponse(BaseModel):
    total: int
    scored_at: datetime
    summary: BatchSummary
    results: list[FraudReport]


class HighRiskTicketsResponse(BaseModel):
    threshold: float
    total: int
    tickets: list[TicketRecord]


class RiskSummaryResponse(BaseModel):
    total_tickets: int
    by_risk_level: BatchSummary
    average_score: float
