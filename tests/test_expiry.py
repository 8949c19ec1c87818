"""
Unpaid Booking Expiry Tests.
"""

from datetime import date, timedelta

from sqlalchemy import update

from carhire.database import utcnow
from carhire.models.booking import Booking
from carhire.services.booking_service import PAYMENT_METHOD_MANUAL, booking_service


async def _backdate(db, booking, hours):
    await db.execute(
        update(Booking)
        .where(Booking.id == booking.id)
        .values(created_at=utcnow() - timedelta(hours=hours))
    )
    await db.commit()


async def test_sweep_cancels_stale_unpaid_bookings(db_session, renter, admin, listing):
    stale = await booking_service.create_booking(
        db_session, renter, listing.id, date(2024, 3, 1), date(2024, 3, 3), PAYMENT_METHOD_MANUAL
    )
    fresh = await booking_service.create_booking(
        db_session, renter, listing.id, date(2024, 3, 5), date(2024, 3, 7), PAYMENT_METHOD_MANUAL
    )
    paid = await booking_service.create_booking(
        db_session, renter, listing.id, date(2024, 3, 10), date(2024, 3, 12), PAYMENT_METHOD_MANUAL
    )
    await db_session.commit()
    await booking_service.mark_manual_paid(db_session, paid, admin)
    await db_session.commit()

    await _backdate(db_session, stale, hours=72)
    await _backdate(db_session, paid, hours=72)

    cutoff = utcnow() - timedelta(hours=48)
    expired = await booking_service.expire_unpaid_bookings(db_session, cutoff)
    await db_session.commit()

    assert expired == 1

    stale = await booking_service.get_booking(db_session, stale.id)
    assert stale.status == "cancelled"
    assert stale.cancellation_reason == "payment_timeout"
    assert stale.cancelled_by == "system"

    assert (await booking_service.get_booking(db_session, fresh.id)).status == "awaiting_payment"
    assert (await booking_service.get_booking(db_session, paid.id)).status == "awaiting_approval"

    again = await booking_service.expire_unpaid_bookings(db_session, cutoff)
    assert again == 0
