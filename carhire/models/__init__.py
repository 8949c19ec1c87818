"""Database models."""

from carhire.models.admin import AuditLog
from carhire.models.booking import Booking, BookingDayHold, BookingStatusChange
from carhire.models.listing import Listing
from carhire.models.payout import HostPayout
from carhire.models.webhook import ProcessedWebhookEvent

__all__ = [
    # Listing
    "Listing",
    # Booking
    "Booking",
    "BookingDayHold",
    "BookingStatusChange",
    # Payout
    "HostPayout",
    # Webhooks
    "ProcessedWebhookEvent",
    # Admin
    "AuditLog",
]
