"""Listing availability.

Holding bookings own their calendar days through ``booking_day_holds``. The
unique (listing_id, day) index is what prevents double-booking; the range
query in ``is_available`` is only a fast pre-check.
"""

import logging
from datetime import date, timedelta
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from carhire.core.exceptions import DatesNotAvailable
from carhire.domain.booking_state import HOLDING_STATUSES
from carhire.models.booking import Booking, BookingDayHold

logger = logging.getLogger(__name__)


def days_in_range(start: date, end: date) -> list[date]:
    """Calendar days covered by the half-open range [start, end)."""
    return [start + timedelta(days=offset) for offset in range((end - start).days)]


async def is_available(
    db: AsyncSession,
    listing_id: UUID,
    start: date,
    end: date,
) -> bool:
    """Check that no holding booking overlaps [start, end).

    Back-to-back ranges do not overlap: a booking ending on the 4th leaves the
    4th free for the next renter.
    """
    query = select(Booking.id).where(
        Booking.listing_id == listing_id,
        Booking.status.in_(HOLDING_STATUSES),
        Booking.start_date < end,
        Booking.end_date > start,
    )
    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none() is None


async def reserve(db: AsyncSession, booking: Booking) -> None:
    """Take day holds for a booking inside the caller's transaction.

    On conflict the whole transaction is rolled back (objects loaded in this
    session are expired) and ``DatesNotAvailable`` is raised.

    Raises:
        DatesNotAvailable: If any day is already held by another booking
    """
    booking_id = booking.id
    listing_id = booking.listing_id
    days = days_in_range(booking.start_date, booking.end_date)

    db.add_all(
        BookingDayHold(listing_id=listing_id, booking_id=booking_id, day=day) for day in days
    )
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        logger.info(f"Reservation conflict for booking {booking_id} on listing {listing_id}")
        raise DatesNotAvailable()


async def release(db: AsyncSession, booking_id: UUID) -> int:
    """Delete a booking's day holds. Returns the number of days released."""
    result = await db.execute(
        delete(BookingDayHold).where(BookingDayHold.booking_id == booking_id)
    )
    return result.rowcount or 0
