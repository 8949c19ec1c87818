"""Booking lifecycle service.

Every status change is a compare-and-set UPDATE guarded by the status the
caller observed, so two actors racing on one booking cannot both win. Each
change appends a ``BookingStatusChange`` row in the same transaction.
Methods never commit; the caller owns the transaction.
"""

import logging
from datetime import date, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from carhire.config import settings
from carhire.core.exceptions import (
    AuthorizationError,
    DatesNotAvailable,
    InvalidTransition,
    ListingNotAvailable,
    NotFoundError,
    PaymentError,
    ValidationError,
)
from carhire.core.permissions import (
    SYSTEM_ACTOR_ROLE,
    STRIPE_ACTOR_ROLE,
    Actor,
    Permission,
    UserRole,
)
from carhire.database import utcnow
from carhire.domain.booking_state import (
    HOLDING_STATUSES,
    BookingStatus,
    assert_booking_transition,
)
from carhire.domain.pricing import Addon, PriceBreakdown, calculate_price
from carhire.gateways.base import CheckoutLineItem, CheckoutResult, GatewayType
from carhire.models.booking import Booking, BookingStatusChange
from carhire.models.listing import Listing
from carhire.services import availability_service
from carhire.services.audit_service import audit_service
from carhire.services.gateway_service import GatewayService
from carhire.utils.booking_number import generate_booking_number

logger = logging.getLogger(__name__)

PAYMENT_METHOD_CARD = "card"
PAYMENT_METHOD_MANUAL = "manual"


def day_label(days: int) -> str:
    return f"{days} day" if days == 1 else f"{days} days"


class BookingService:
    """Service for creating bookings and moving them through their lifecycle."""

    async def get_booking(self, db: AsyncSession, booking_id: UUID) -> Booking:
        result = await db.execute(select(Booking).where(Booking.id == booking_id))
        booking = result.scalar_one_or_none()
        if booking is None:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    async def get_bookable_listing(self, db: AsyncSession, listing_id: UUID) -> Listing:
        """Load a listing that can currently be booked.

        Raises:
            ListingNotAvailable: If the listing is unknown, inactive or unapproved
        """
        result = await db.execute(select(Listing).where(Listing.id == listing_id))
        listing = result.scalar_one_or_none()
        if listing is None or not listing.is_bookable:
            raise ListingNotAvailable()
        return listing

    async def quote(
        self,
        db: AsyncSession,
        listing_id: UUID,
        start: date,
        end: date,
        addon: Addon | None = None,
    ) -> tuple[Listing, PriceBreakdown, bool]:
        """Price a range and check availability without creating anything."""
        listing = await self.get_bookable_listing(db, listing_id)
        breakdown = calculate_price(listing.daily_rate, start, end, addon)
        available = await availability_service.is_available(db, listing.id, start, end)
        return listing, breakdown, available

    async def create_booking(
        self,
        db: AsyncSession,
        actor: Actor,
        listing_id: UUID,
        start: date,
        end: date,
        payment_method: str,
        addon: Addon | None = None,
    ) -> Booking:
        """Create a booking in ``awaiting_payment``.

        Creation takes no day holds, so overlapping unpaid bookings may
        coexist. The first one to be paid wins the dates.

        Raises:
            AuthorizationError: If the actor cannot book
            ListingNotAvailable: If the listing is not bookable
            InvalidDateRange: If the range is empty or too long
            InvalidAddon: If the addon is out of bounds
            DatesNotAvailable: If a paid booking already holds part of the range
        """
        if not actor.can(Permission.CREATE_BOOKING):
            raise AuthorizationError("Only renters can create bookings")

        listing = await self.get_bookable_listing(db, listing_id)
        if listing.owner_id == actor.id:
            raise ValidationError("You cannot book your own listing")

        breakdown = calculate_price(listing.daily_rate, start, end, addon)

        if not await availability_service.is_available(db, listing.id, start, end):
            raise DatesNotAvailable()

        booking = Booking(
            booking_number=await generate_booking_number(db),
            listing_id=listing.id,
            renter_id=actor.id,
            owner_id=listing.owner_id,
            start_date=start,
            end_date=end,
            days=breakdown.days,
            daily_rate=breakdown.daily_rate,
            addon_units=breakdown.addon_units,
            addon_rate=breakdown.addon_rate,
            addon_amount=breakdown.addon_amount,
            total_amount=breakdown.total,
            currency=listing.currency or settings.default_currency,
            status=BookingStatus.AWAITING_PAYMENT.value,
            payment_method=payment_method,
        )
        db.add(booking)
        await db.flush()

        self._record_change(
            db,
            booking.id,
            None,
            BookingStatus.AWAITING_PAYMENT.value,
            actor.id,
            actor.role.value,
        )
        logger.info(
            f"Booking {booking.booking_number} created for listing {listing.id} "
            f"[{start}, {end}) total={booking.total_amount} method={payment_method}"
        )
        return booking

    async def start_card_checkout(
        self,
        db: AsyncSession,
        actor: Actor,
        listing_id: UUID,
        start: date,
        end: date,
        gateway_service: GatewayService,
    ) -> tuple[Booking, CheckoutResult]:
        """Create a card booking and its hosted checkout session.

        The booking is committed before the gateway is called so the session
        metadata can carry its id. If the session cannot be created the
        booking is cancelled.

        Raises:
            PaymentError: If the gateway could not create a session
        """
        booking = await self.create_booking(
            db, actor, listing_id, start, end, payment_method=PAYMENT_METHOD_CARD
        )
        await db.commit()

        try:
            result = await gateway_service.create_checkout_session(
                GatewayType.STRIPE,
                currency=booking.currency,
                line_items=[
                    CheckoutLineItem(
                        description=f"Car booking ({day_label(booking.days)})",
                        unit_amount=booking.daily_rate,
                        quantity=booking.days,
                    )
                ],
                success_url=(
                    f"{settings.app_url}/bookings/{booking.id}"
                    "?checkout=success&session_id={CHECKOUT_SESSION_ID}"
                ),
                cancel_url=f"{settings.app_url}/checkout/{booking.listing_id}?checkout=cancelled",
                metadata={
                    "booking_id": str(booking.id),
                    "listing_id": str(booking.listing_id),
                    "renter_id": str(booking.renter_id),
                    "booking_number": booking.booking_number,
                },
                idempotency_key=f"booking-{booking.id}",
            )
        except RuntimeError as e:
            logger.error(f"Checkout blocked for booking {booking.booking_number}: {e}")
            result = CheckoutResult(success=False, error_message=str(e))

        if not result.success or not result.session_id:
            await self._cancel(
                db,
                booking,
                actor_id=None,
                actor_role=SYSTEM_ACTOR_ROLE,
                reason="payment_session_failed",
            )
            await db.commit()
            raise PaymentError(
                f"Could not start card payment: {result.error_message or 'no session returned'}"
            )

        await self.attach_card_session(db, booking, result.session_id)
        await db.commit()
        return booking, result

    async def attach_card_session(
        self, db: AsyncSession, booking: Booking, session_id: str
    ) -> None:
        """Record the checkout session on an unpaid booking that has none yet."""
        result = await db.execute(
            update(Booking)
            .where(
                Booking.id == booking.id,
                Booking.status == BookingStatus.AWAITING_PAYMENT.value,
                Booking.card_session_id.is_(None),
            )
            .values(card_session_id=session_id, updated_at=utcnow())
        )
        if result.rowcount == 0:
            await db.refresh(booking)
            raise InvalidTransition("booking", booking.status, "card_session_attached")

    async def submit_payment_proof(
        self,
        db: AsyncSession,
        booking: Booking,
        actor: Actor,
        proof_reference: str,
    ) -> Booking:
        """Move a manual booking to ``awaiting_approval`` on proof of payment.

        The dates are held from this point on.
        """
        if not actor.can(Permission.SUBMIT_PAYMENT_PROOF):
            raise AuthorizationError("Only the renter or an operator can submit payment proof")
        if not actor.is_admin and booking.renter_id != actor.id:
            raise AuthorizationError("You can only submit payment proof for your own bookings")
        self._assert_manual(booking)

        await self._transition(
            db,
            booking,
            BookingStatus.AWAITING_APPROVAL,
            actor_id=actor.id,
            actor_role=actor.role.value,
            reason="payment_proof_submitted",
            paid_at=utcnow(),
            payment_proof_ref=proof_reference,
        )
        await availability_service.reserve(db, booking)
        return booking

    async def mark_manual_paid(
        self,
        db: AsyncSession,
        booking: Booking,
        actor: Actor,
        payment_reference: str | None = None,
    ) -> Booking:
        """Operator confirms an offline payment was received."""
        if not actor.can(Permission.MARK_BOOKING_PAID):
            raise AuthorizationError("Admin access required")
        self._assert_manual(booking)

        previous = booking.status
        await self._transition(
            db,
            booking,
            BookingStatus.AWAITING_APPROVAL,
            actor_id=actor.id,
            actor_role=actor.role.value,
            reason="marked_paid",
            paid_at=utcnow(),
            payment_reference=payment_reference,
        )
        await availability_service.reserve(db, booking)
        await audit_service.log_booking_action(
            db, actor.id, "booking_mark_paid", booking.id, previous, booking.status
        )
        return booking

    async def settle_card_payment(
        self,
        db: AsyncSession,
        booking: Booking,
        session_id: str | None,
        payment_reference: str | None,
        event_id: str,
    ) -> Booking:
        """Apply a verified card settlement event.

        Raises:
            InvalidTransition: If the booking is no longer awaiting payment
            DatesNotAvailable: If another paid booking took the dates first
                (the transaction has been rolled back)
        """
        values: dict[str, Any] = {
            "paid_at": utcnow(),
            "payment_reference": payment_reference,
        }
        if session_id and booking.card_session_id is None:
            values["card_session_id"] = session_id

        await self._transition(
            db,
            booking,
            BookingStatus.AWAITING_APPROVAL,
            actor_id=None,
            actor_role=STRIPE_ACTOR_ROLE,
            reason=f"stripe:{event_id}",
            **values,
        )
        await availability_service.reserve(db, booking)
        return booking

    async def approve_booking(self, db: AsyncSession, booking: Booking, actor: Actor) -> Booking:
        """Operator confirms a paid booking."""
        if not actor.can(Permission.APPROVE_BOOKING):
            raise AuthorizationError("Admin access required")
        assert_booking_transition(booking.status, BookingStatus.CONFIRMED.value)
        if booking.paid_at is None:
            raise ValidationError("Booking cannot be approved before payment is recorded")

        previous = booking.status
        now = utcnow()
        await self._transition(
            db,
            booking,
            BookingStatus.CONFIRMED,
            actor_id=actor.id,
            actor_role=actor.role.value,
            approved_by=actor.id,
            approved_at=now,
        )
        await audit_service.log_booking_action(
            db, actor.id, "booking_approve", booking.id, previous, booking.status
        )
        return booking

    async def cancel_booking(
        self,
        db: AsyncSession,
        booking: Booking,
        actor: Actor,
        reason: str | None = None,
    ) -> Booking:
        """Cancel a booking on behalf of its renter or an operator.

        Renters may only cancel their own unpaid bookings. Confirmed bookings
        cannot be cancelled here.
        """
        assert_booking_transition(booking.status, BookingStatus.CANCELLED.value)

        if actor.can(Permission.CANCEL_ANY_BOOKING):
            cancelled_by = "admin"
        elif actor.can(Permission.CANCEL_OWN_BOOKING) and booking.renter_id == actor.id:
            if booking.status != BookingStatus.AWAITING_PAYMENT.value:
                raise AuthorizationError(
                    "Paid bookings can only be cancelled by an operator"
                )
            cancelled_by = "renter"
        else:
            raise AuthorizationError("You don't have permission to cancel this booking")

        previous = booking.status
        await self._cancel(
            db,
            booking,
            actor_id=actor.id,
            actor_role=actor.role.value,
            reason=reason,
            cancelled_by=cancelled_by,
        )
        if cancelled_by == "admin":
            await audit_service.log_booking_action(
                db, actor.id, "booking_cancel", booking.id, previous, booking.status, reason
            )
        return booking

    async def cancel_for_conflict(
        self,
        db: AsyncSession,
        booking: Booking,
        payment_reference: str | None,
        event_id: str,
    ) -> Booking:
        """Cancel a booking that was paid after its dates were taken.

        The payment reference is kept so an operator can refund it.
        """
        return await self._cancel(
            db,
            booking,
            actor_id=None,
            actor_role=SYSTEM_ACTOR_ROLE,
            reason="dates_taken",
            change_reason=f"dates_taken:stripe:{event_id}",
            paid_at=utcnow(),
            payment_reference=payment_reference,
        )

    async def record_payment_after_cancel(
        self,
        db: AsyncSession,
        booking: Booking,
        payment_reference: str | None,
        event_id: str,
    ) -> bool:
        """Keep the reference of a card payment that settled after cancellation.

        The status stays ``cancelled``; the money has to be refunded by an
        operator. Only the first such payment is recorded.

        Returns:
            True if the payment was recorded on the booking
        """
        result = await db.execute(
            update(Booking)
            .where(
                Booking.id == booking.id,
                Booking.status == BookingStatus.CANCELLED.value,
                Booking.paid_at.is_(None),
            )
            .values(paid_at=utcnow(), payment_reference=payment_reference, updated_at=utcnow())
        )
        if result.rowcount == 0:
            return False

        logger.warning(
            f"Booking {booking.booking_number} was paid via {payment_reference} "
            f"(stripe:{event_id}) after being cancelled; refund required"
        )
        return True

    async def expire_unpaid_bookings(self, db: AsyncSession, older_than: datetime) -> int:
        """Cancel ``awaiting_payment`` bookings created before ``older_than``.

        Each booking is cancelled by its own compare-and-set, so a booking
        paid concurrently is skipped and running the sweep twice is harmless.

        Returns:
            Number of bookings cancelled
        """
        result = await db.execute(
            select(Booking).where(
                Booking.status == BookingStatus.AWAITING_PAYMENT.value,
                Booking.created_at < older_than,
            )
        )
        expired = 0
        for booking in result.scalars().all():
            try:
                await self._cancel(
                    db,
                    booking,
                    actor_id=None,
                    actor_role=SYSTEM_ACTOR_ROLE,
                    reason="payment_timeout",
                )
            except InvalidTransition:
                continue
            expired += 1

        if expired:
            logger.info(f"Expired {expired} unpaid bookings created before {older_than}")
        return expired

    async def list_bookings(
        self,
        db: AsyncSession,
        actor: Actor,
        status: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Booking], int]:
        """Bookings visible to the actor, newest first."""
        query = select(Booking)
        if actor.is_admin:
            pass
        elif actor.role == UserRole.HOST:
            query = query.where(Booking.owner_id == actor.id)
        else:
            query = query.where(Booking.renter_id == actor.id)

        if status:
            query = query.where(Booking.status == status)

        count_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        offset = (page - 1) * page_size
        result = await db.execute(
            query.order_by(Booking.created_at.desc()).offset(offset).limit(page_size)
        )
        return list(result.scalars().all()), total

    async def list_status_changes(
        self,
        db: AsyncSession,
        to_status: str | None = None,
        since: datetime | None = None,
        limit: int = 100,
    ) -> list[BookingStatusChange]:
        """Status-change facts, oldest first, for reporting consumers."""
        query = select(BookingStatusChange)
        if to_status:
            query = query.where(BookingStatusChange.to_status == to_status)
        if since:
            query = query.where(BookingStatusChange.created_at >= since)
        result = await db.execute(query.order_by(BookingStatusChange.created_at).limit(limit))
        return list(result.scalars().all())

    def ensure_can_view(self, booking: Booking, actor: Actor) -> None:
        is_party = actor.is_admin or actor.id in (booking.renter_id, booking.owner_id)
        if is_party and actor.can(Permission.VIEW_BOOKING):
            return
        raise AuthorizationError("You don't have permission to access this booking")

    @staticmethod
    def _assert_manual(booking: Booking) -> None:
        if not booking.is_manual:
            raise ValidationError("This booking is paid by card and settles automatically")

    async def _cancel(
        self,
        db: AsyncSession,
        booking: Booking,
        actor_id: UUID | None,
        actor_role: str,
        reason: str | None,
        cancelled_by: str = SYSTEM_ACTOR_ROLE,
        change_reason: str | None = None,
        **values: Any,
    ) -> Booking:
        was_holding = booking.status in HOLDING_STATUSES
        await self._transition(
            db,
            booking,
            BookingStatus.CANCELLED,
            actor_id=actor_id,
            actor_role=actor_role,
            reason=change_reason or reason,
            cancelled_by=cancelled_by,
            cancellation_reason=reason,
            cancelled_at=utcnow(),
            **values,
        )
        if was_holding:
            released = await availability_service.release(db, booking.id)
            logger.info(f"Released {released} held days for booking {booking.booking_number}")
        return booking

    async def _transition(
        self,
        db: AsyncSession,
        booking: Booking,
        target: BookingStatus,
        actor_id: UUID | None,
        actor_role: str,
        reason: str | None = None,
        **values: Any,
    ) -> None:
        """Compare-and-set the booking's status and append the change record.

        Raises:
            InvalidTransition: If the table forbids the move, or another actor
                changed the status first (carries the status actually stored)
        """
        current = booking.status
        try:
            assert_booking_transition(current, target.value)
        except InvalidTransition:
            logger.warning(
                f"Rejected transition of booking {booking.booking_number}: "
                f"{current} -> {target.value}"
            )
            raise

        result = await db.execute(
            update(Booking)
            .where(Booking.id == booking.id, Booking.status == current)
            .values(status=target.value, updated_at=utcnow(), **values)
        )
        if result.rowcount == 0:
            await db.refresh(booking)
            logger.warning(
                f"Lost transition race on booking {booking.booking_number}: "
                f"expected {current}, found {booking.status}"
            )
            raise InvalidTransition("booking", booking.status, target.value)

        self._record_change(db, booking.id, current, target.value, actor_id, actor_role, reason)
        logger.info(
            f"Booking {booking.booking_number} {current} -> {target.value} "
            f"by {actor_role}{f' ({reason})' if reason else ''}"
        )

    @staticmethod
    def _record_change(
        db: AsyncSession,
        booking_id: UUID,
        from_status: str | None,
        to_status: str,
        actor_id: UUID | None,
        actor_role: str,
        reason: str | None = None,
    ) -> None:
        db.add(
            BookingStatusChange(
                booking_id=booking_id,
                from_status=from_status,
                to_status=to_status,
                actor_id=actor_id,
                actor_role=actor_role,
                reason=reason,
            )
        )


booking_service = BookingService()
