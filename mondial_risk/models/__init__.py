from mondial_risk.models.ticket import (
    Ticket,
    TicketCreate,
    TicketRecord,
    TicketStatusUpdate,
    TransferRecord,
    TransferRequest,
    User,
    UserCreate,
)
from mondial_risk.models.fraud import (
    BatchScoreRequest,
    BatchScoreResponse,
    BatchSummary,
    FraudFactor,
    FraudReport,
    FraudScoreResponse,
    HighRiskTicketsResponse,
    RiskSummaryResponse,
    ScoreRequest,
)
from mondial_risk.models.venue import (
    Match,
    MatchCreate,
    MatchSales,
    Stadium,
    StadiumCreate,
    StadiumStats,
)
