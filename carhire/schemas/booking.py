"""Booking and checkout Pydantic schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class RequestModel(BaseModel):
    """Base for request bodies: unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")


class ChauffeurAddon(RequestModel):
    """Optional driver, charged per kilometre."""

    enabled: bool = False
    kilometers: int = Field(default=0, ge=0)


class CheckoutRequest(RequestModel):
    """Schema for pricing or creating a booking.

    Range checks live in the pricing rules so every entry point reports
    them the same way.
    """

    listing_id: UUID
    start_date: date
    end_date: date


class ManualCheckoutRequest(CheckoutRequest):
    """Schema for a booking paid by bank transfer or cash."""

    chauffeur: ChauffeurAddon | None = None


class QuoteRequest(ManualCheckoutRequest):
    """Schema for a price preview."""


class PriceBreakdownResponse(BaseModel):
    """Schema for a price breakdown."""

    days: int
    daily_rate: int
    base_amount: int
    addon_units: int
    addon_rate: int
    addon_amount: int
    total_amount: int
    currency: str


class QuoteResponse(BaseModel):
    """Schema for a price preview response."""

    listing_id: UUID
    start_date: date
    end_date: date
    available: bool
    unavailable_reason: str | None = None
    price: PriceBreakdownResponse


class BookingResponse(BaseModel):
    """Schema for booking response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_number: str
    listing_id: UUID
    renter_id: UUID
    owner_id: UUID

    # Dates
    start_date: date
    end_date: date
    days: int

    # Pricing
    daily_rate: int
    addon_units: int
    addon_rate: int
    addon_amount: int
    total_amount: int
    currency: str

    # Status & payment
    status: str
    payment_method: str
    card_session_id: str | None = None
    payment_reference: str | None = None
    payment_proof_ref: str | None = None
    paid_at: datetime | None = None

    # Approval & cancellation
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    cancelled_by: str | None = None
    cancellation_reason: str | None = None
    cancelled_at: datetime | None = None

    # Timestamps
    created_at: datetime
    updated_at: datetime


class CardCheckoutResponse(BaseModel):
    """Schema for a started card checkout."""

    booking: BookingResponse
    session_id: str
    redirect_url: str | None = None


class ManualCheckoutResponse(BaseModel):
    """Schema for a created manual booking with payment instructions."""

    booking: BookingResponse
    instructions: dict


class BookingListResponse(BaseModel):
    """Schema for paginated booking list."""

    bookings: list[BookingResponse]
    total: int
    page: int
    page_size: int


class PaymentProofRequest(RequestModel):
    """Schema for submitting proof of an offline payment."""

    proof_reference: str = Field(..., min_length=1, max_length=500)


class MarkPaidRequest(RequestModel):
    """Schema for an operator confirming an offline payment."""

    payment_reference: str | None = Field(None, max_length=255)


class CancelRequest(RequestModel):
    """Schema for cancelling a booking."""

    reason: str | None = Field(None, max_length=1000)


class StatusChangeResponse(BaseModel):
    """Schema for a booking status-change fact."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_id: UUID
    from_status: str | None
    to_status: str
    actor_id: UUID | None
    actor_role: str
    reason: str | None
    created_at: datetime


class WebhookAckResponse(BaseModel):
    """Schema for the webhook acknowledgement body."""

    received: bool = True
    outcome: str
