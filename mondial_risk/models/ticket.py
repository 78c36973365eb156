from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

TicketStatus = Literal["ACTIVE", "USED", "CANCELLED", "SUSPENDED"]
TicketCategory = Literal["STANDARD", "VIP", "PREMIUM", "HOSPITALITY"]


def utcnow() -> datetime:
    """Current time as naive UTC, the form every stored timestamp takes."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    try:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    except OverflowError as exc:
        raise ValueError(f"{value.isoformat()} is out of range once converted to UTC") from exc


class Ticket(BaseModel):
    """The ticket attributes the fraud scorer reads."""

    id: Optional[int] = None
    price: Optional[float] = None
    transfer_count: Optional[int] = Field(default=0, ge=0)
    purchase_date: Optional[datetime] = None
    last_transfer_date: Optional[datetime] = None

    @field_validator("purchase_date", "last_transfer_date")
    @classmethod
    def _normalize_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_naive_utc(v)


class TicketRecord(Ticket):
    id: int
    seat_number: str
    seat_zone: Optional[str] = None
    category: TicketCategory = "STANDARD"
    status: TicketStatus = "ACTIVE"
    fraud_score: float = Field(default=0.0, ge=0.0, le=1.0)
    owner_id: Optional[int] = None
    match_id: Optional[int] = None


class TicketCreate(BaseModel):
    seat_number: str = Field(min_length=1, max_length=16)
    seat_zone: Optional[str] = Field(default=None, max_length=32)
    price: float = Field(gt=0)
    category: TicketCategory = "STANDARD"
    owner_id: int
    match_id: Optional[int] = None
    purchase_date: Optional[datetime] = None

    @field_validator("purchase_date")
    @classmethod
    def _normalize_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_naive_utc(v)


class TicketStatusUpdate(BaseModel):
    status: TicketStatus


class TransferRecord(BaseModel):
    """One ownership change. ``from_user_id`` is None for the initial allocation."""

    id: Optional[int] = None
    ticket_id: Optional[int] = None
    from_user_id: Optional[int] = None
    to_user_id: int
    transfer_date: datetime
    transfer_price: Optional[float] = None
    notes: Optional[str] = None

    @field_validator("transfer_date")
    @classmethod
    def _normalize_dates(cls, v: datetime) -> datetime:
        return as_naive_utc(v)


class TransferRequest(BaseModel):
    to_user_id: int
    transfer_price: Optional[float] = Field(default=None, gt=0)
    transfer_date: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=255)

    @field_validator("transfer_date")
    @classmethod
    def _normalize_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_naive_utc(v)


class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=32)
    name: str = Field(min_length=1, max_length=128)


class User(UserCreate):
    id: int
    created_at: datetime
