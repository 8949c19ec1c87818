"""Booking state machine.

States: awaiting_payment → awaiting_approval → confirmed, with cancellation
allowed from either non-terminal state.
"""

import enum

from carhire.core.exceptions import InvalidTransition


class BookingStatus(str, enum.Enum):
    """Booking lifecycle states."""

    AWAITING_PAYMENT = "awaiting_payment"
    AWAITING_APPROVAL = "awaiting_approval"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


BOOKING_TRANSITIONS: dict[str, set[str]] = {
    BookingStatus.AWAITING_PAYMENT.value: {
        BookingStatus.AWAITING_APPROVAL.value,
        BookingStatus.CANCELLED.value,
    },
    BookingStatus.AWAITING_APPROVAL.value: {
        BookingStatus.CONFIRMED.value,
        BookingStatus.CANCELLED.value,
    },
    BookingStatus.CONFIRMED.value: set(),  # Cancellation after confirmation is a support workflow
    BookingStatus.CANCELLED.value: set(),
}

# Statuses whose date range blocks other reservations on the same listing
HOLDING_STATUSES: frozenset[str] = frozenset(
    {BookingStatus.AWAITING_APPROVAL.value, BookingStatus.CONFIRMED.value}
)

TERMINAL_STATUSES: frozenset[str] = frozenset(
    status for status, targets in BOOKING_TRANSITIONS.items() if not targets
)


def can_transition(current: str, target: str) -> bool:
    return target in BOOKING_TRANSITIONS.get(current, set())


def assert_booking_transition(current: str, target: str) -> None:
    """Validate booking state transition.

    Raises:
        InvalidTransition: If the transition is not in the table
    """
    if not can_transition(current, target):
        raise InvalidTransition("booking", current, target)
