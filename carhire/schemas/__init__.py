"""Pydantic schemas for API validation."""

from carhire.schemas.booking import (
    BookingListResponse,
    BookingResponse,
    CancelRequest,
    CardCheckoutResponse,
    ChauffeurAddon,
    CheckoutRequest,
    ManualCheckoutRequest,
    ManualCheckoutResponse,
    MarkPaidRequest,
    PaymentProofRequest,
    QuoteRequest,
    QuoteResponse,
    StatusChangeResponse,
    WebhookAckResponse,
)
from carhire.schemas.listing import ListingResponse, ListingSnapshot
from carhire.schemas.payout import (
    PayoutCreate,
    PayoutListResponse,
    PayoutResponse,
    PayoutStatusUpdate,
)

__all__ = [
    "BookingListResponse",
    "BookingResponse",
    "CancelRequest",
    "CardCheckoutResponse",
    "ChauffeurAddon",
    "CheckoutRequest",
    "ManualCheckoutRequest",
    "ManualCheckoutResponse",
    "MarkPaidRequest",
    "PaymentProofRequest",
    "QuoteRequest",
    "QuoteResponse",
    "StatusChangeResponse",
    "WebhookAckResponse",
    "ListingResponse",
    "ListingSnapshot",
    "PayoutCreate",
    "PayoutListResponse",
    "PayoutResponse",
    "PayoutStatusUpdate",
]
