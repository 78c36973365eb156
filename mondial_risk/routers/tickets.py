from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from mondial_risk.dependencies import get_fraud_service
from mondial_risk.models.ticket import (
    TicketCreate,
    TicketRecord,
    TicketStatus,
    TicketStatusUpdate,
    TransferRecord,
    TransferRequest,
    User,
    UserCreate,
)
from mondial_risk.services import ticket_service
from mondial_risk.services.fraud_detection import FraudDetectionService
from mondial_risk.services.ticket_service import (
    DuplicateUserError,
    TicketNotFoundError,
    TicketNotTransferableError,
    UserNotFoundError,
)
from mondial_risk.services.venue_service import MatchNotFoundError

router = APIRouter(tags=["tickets"])


@router.post("/users", status_code=201, response_model=User)
async def create_user(request: UserCreate) -> User:
    try:
        return ticket_service.create_user(request)
    except DuplicateUserError as exc:
        raise HTTPException(status_code=409, detail=str(exc))


@router.get("/users", response_model=List[User])
async def list_users() -> List[User]:
    return ticket_service.list_users()


@router.get("/users/{user_id}", response_model=User)
async def get_user(user_id: int) -> User:
    try:
        return ticket_service.get_user(user_id)
    except UserNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.post("/tickets", status_code=201, response_model=TicketRecord)
async def issue_ticket(
    request: TicketCreate,
    fraud_service: FraudDetectionService = Depends(get_fraud_service),
) -> TicketRecord:
    """Issue a ticket. Its initial fraud score is computed and stored with it."""
    try:
        return ticket_service.issue_ticket(request, fraud_service)
    except (UserNotFoundError, MatchNotFoundError) as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.get("/tickets", response_model=List[TicketRecord])
async def list_tickets(
    owner_id: Optional[int] = Query(None, description="Only tickets owned by this user"),
    status: Optional[TicketStatus] = Query(None, description="Only tickets in this status"),
    match_id: Optional[int] = Query(None, description="Only tickets for this match"),
) -> List[TicketRecord]:
    return ticket_service.list_tickets(owner_id=owner_id, status=status, match_id=match_id)


@router.get("/tickets/{ticket_id}", response_model=TicketRecord)
async def get_ticket(ticket_id: int) -> TicketRecord:
    try:
        return ticket_service.get_ticket(ticket_id)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.post("/tickets/{ticket_id}/transfer", response_model=TicketRecord)
async def transfer_ticket(
    ticket_id: int,
    request: TransferRequest,
    fraud_service: FraudDetectionService = Depends(get_fraud_service),
) -> TicketRecord:
    """Transfer an ACTIVE ticket to another user and store its new fraud score."""
    try:
        return ticket_service.transfer_ticket(ticket_id, request, fraud_service)
    except (TicketNotFoundError, UserNotFoundError) as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except TicketNotTransferableError as exc:
        raise HTTPException(status_code=409, detail=str(exc))


@router.get("/tickets/{ticket_id}/transfers", response_model=List[TransferRecord])
async def get_transfer_history(ticket_id: int) -> List[TransferRecord]:
    try:
        return ticket_service.get_transfer_history(ticket_id)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.patch("/tickets/{ticket_id}/status", response_model=TicketRecord)
async def update_ticket_status(ticket_id: int, request: TicketStatusUpdate) -> TicketRecord:
    try:
        return ticket_service.update_ticket_status(ticket_id, request.status)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
