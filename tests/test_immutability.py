"""
Append-only Record Tests.
"""

from datetime import date

import pytest
from sqlalchemy import select

from carhire.core.immutability import ImmutabilityViolationError, register_immutability_enforcement
from carhire.models.booking import BookingStatusChange
from carhire.services.booking_service import PAYMENT_METHOD_MANUAL, booking_service


@pytest.fixture(autouse=True)
def immutability():
    register_immutability_enforcement()


async def test_status_history_cannot_be_rewritten(db_session, renter, listing):
    booking = await booking_service.create_booking(
        db_session, renter, listing.id, date(2024, 3, 1), date(2024, 3, 3), PAYMENT_METHOD_MANUAL
    )
    await db_session.commit()

    result = await db_session.execute(
        select(BookingStatusChange).where(BookingStatusChange.booking_id == booking.id)
    )
    change = result.scalar_one()
    change.to_status = "confirmed"

    with pytest.raises(ImmutabilityViolationError):
        await db_session.flush()
    await db_session.rollback()


async def test_status_history_cannot_be_deleted(db_session, renter, listing):
    booking = await booking_service.create_booking(
        db_session, renter, listing.id, date(2024, 3, 1), date(2024, 3, 3), PAYMENT_METHOD_MANUAL
    )
    await db_session.commit()

    result = await db_session.execute(
        select(BookingStatusChange).where(BookingStatusChange.booking_id == booking.id)
    )
    await db_session.delete(result.scalar_one())

    with pytest.raises(ImmutabilityViolationError):
        await db_session.flush()
    await db_session.rollback()
