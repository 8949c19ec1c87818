"""Host payout Pydantic schemas."""

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PayoutCreate(BaseModel):
    """Schema for recording a payout."""

    model_config = ConfigDict(extra="forbid")

    owner_id: UUID
    amount: int = Field(..., gt=0)
    currency: str | None = Field(None, min_length=3, max_length=10)
    period_start: date | None = None
    period_end: date | None = None
    note: str | None = Field(None, max_length=1000)


class PayoutStatusUpdate(BaseModel):
    """Schema for settling a payout."""

    model_config = ConfigDict(extra="forbid")

    status: Literal["pending", "paid", "failed"]


class PayoutResponse(BaseModel):
    """Schema for payout response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    amount: int
    currency: str
    status: str
    period_start: date | None
    period_end: date | None
    note: str | None
    created_by: UUID | None
    processed_at: datetime | None
    created_at: datetime


class PayoutListResponse(BaseModel):
    """Schema for paginated payout list."""

    payouts: list[PayoutResponse]
    total: int
    page: int
    page_size: int
