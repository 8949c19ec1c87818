"""Listing snapshot schemas for catalog sync."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ListingSnapshot(BaseModel):
    """Listing fields pushed by the catalog service."""

    model_config = ConfigDict(extra="forbid")

    owner_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    daily_rate: int = Field(..., ge=0)  # in cents
    currency: str = Field(default="ZAR", min_length=3, max_length=3)
    is_active: bool = True
    is_approved: bool = False


class ListingResponse(BaseModel):
    """Schema for listing response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    title: str
    daily_rate: int
    currency: str
    is_active: bool
    is_approved: bool
    updated_at: datetime
