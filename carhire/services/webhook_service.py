"""Card payment webhook ingestion.

Stripe delivers events at least once and in no particular order. An event
is applied at most once: its id is stored in ``processed_webhook_events`` in
the same transaction as the booking transition it causes.
"""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from carhire.core.exceptions import (
    DatesNotAvailable,
    ExternalServiceError,
    InvalidSignature,
    InvalidTransition,
)
from carhire.domain.booking_state import BookingStatus
from carhire.gateways.base import GatewayType
from carhire.models.booking import Booking
from carhire.models.webhook import ProcessedWebhookEvent
from carhire.services.booking_service import PAYMENT_METHOD_CARD, booking_service
from carhire.services.gateway_service import GatewayService

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
ASYNC_PAYMENT_SUCCEEDED = "checkout.session.async_payment_succeeded"
HANDLED_EVENT_TYPES = frozenset({CHECKOUT_COMPLETED, ASYNC_PAYMENT_SUCCEEDED})

# A completed session with payment_status "unpaid" settles later through
# checkout.session.async_payment_succeeded.
SETTLED_PAYMENT_STATUSES = frozenset({"paid", "no_payment_required"})


class WebhookOutcome:
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    UNMATCHED = "unmatched"
    STALE = "stale"
    CONFLICT = "conflict"
    REFUND_REQUIRED = "refund_required"


@dataclass
class WebhookResult:
    """Acknowledgement returned to the provider. Every outcome is a success."""

    outcome: str
    event_id: str | None = None
    booking_id: UUID | None = None


class WebhookService:
    """Service for verifying and applying Stripe checkout events."""

    async def ingest(
        self,
        db: AsyncSession,
        gateway_service: GatewayService,
        payload: bytes,
        signature: str | None,
    ) -> WebhookResult:
        """Verify, deduplicate and apply one webhook delivery.

        Raises:
            ExternalServiceError: If no webhook secret is configured
            InvalidSignature: If the request is not authentically from Stripe
        """
        if not gateway_service.webhook_configured(GatewayType.STRIPE):
            raise ExternalServiceError("stripe", "webhook secret not configured")

        if not signature:
            logger.warning("Rejected Stripe webhook without a signature header")
            raise InvalidSignature()

        event = gateway_service.verify_webhook(GatewayType.STRIPE, payload, signature)
        if event is None or not event.get("id"):
            logger.warning("Rejected Stripe webhook with an invalid signature")
            raise InvalidSignature()

        event_id: str = event["id"]
        event_type: str = event.get("type", "")
        session: dict[str, Any] = (event.get("data") or {}).get("object") or {}

        if event_type not in HANDLED_EVENT_TYPES:
            logger.info(f"Ignoring Stripe event {event_id} of type {event_type}")
            return WebhookResult(WebhookOutcome.IGNORED, event_id)

        if (
            event_type == CHECKOUT_COMPLETED
            and session.get("payment_status") not in SETTLED_PAYMENT_STATUSES
        ):
            logger.info(
                f"Ignoring Stripe event {event_id}: payment_status="
                f"{session.get('payment_status')}"
            )
            return WebhookResult(WebhookOutcome.IGNORED, event_id)

        if await self._already_processed(db, event_id):
            logger.info(f"Duplicate Stripe event {event_id} acknowledged")
            return WebhookResult(WebhookOutcome.DUPLICATE, event_id)

        booking = await self._resolve_booking(db, session)
        if booking is None:
            logger.info(
                f"Stripe event {event_id} matched no booking (session {session.get('id')})"
            )
            return await self._finish(db, event_id, event_type, None, WebhookOutcome.UNMATCHED)

        booking_id = booking.id
        if not self._session_matches(booking, session):
            logger.warning(
                f"Stripe event {event_id} names booking {booking.booking_number} but its "
                f"session {session.get('id')} does not belong to it"
            )
            return await self._finish(db, event_id, event_type, None, WebhookOutcome.UNMATCHED)

        payment_reference = session.get("payment_intent")
        if booking.status != BookingStatus.AWAITING_PAYMENT.value:
            return await self._not_payable(db, event_id, event_type, booking, payment_reference)

        try:
            await booking_service.settle_card_payment(
                db,
                booking,
                session_id=session.get("id"),
                payment_reference=payment_reference,
                event_id=event_id,
            )
        except InvalidTransition:
            return await self._not_payable(db, event_id, event_type, booking, payment_reference)
        except DatesNotAvailable:
            return await self._handle_conflict(
                db, event_id, event_type, booking_id, payment_reference
            )

        return await self._finish(db, event_id, event_type, booking_id, WebhookOutcome.APPLIED)

    async def _handle_conflict(
        self,
        db: AsyncSession,
        event_id: str,
        event_type: str,
        booking_id: UUID,
        payment_reference: str | None,
    ) -> WebhookResult:
        """The renter paid, but another booking already holds the dates.

        The settlement has been rolled back. The booking is cancelled with the
        payment reference kept so an operator can refund it.
        """
        booking = await booking_service.get_booking(db, booking_id)
        logger.warning(
            f"Booking {booking.booking_number} paid via {payment_reference} but its dates "
            "were taken; cancelling for refund"
        )
        try:
            await booking_service.cancel_for_conflict(db, booking, payment_reference, event_id)
        except InvalidTransition:
            return await self._not_payable(db, event_id, event_type, booking, payment_reference)
        return await self._finish(db, event_id, event_type, booking_id, WebhookOutcome.CONFLICT)

    async def _not_payable(
        self,
        db: AsyncSession,
        event_id: str,
        event_type: str,
        booking: Booking,
        payment_reference: str | None,
    ) -> WebhookResult:
        """The booking left ``awaiting_payment`` before this payment arrived.

        A payment for a cancelled booking that was never paid is kept on the
        booking for refund; anything else is stale.
        """
        if booking.status == BookingStatus.CANCELLED.value and booking.paid_at is None:
            recorded = await booking_service.record_payment_after_cancel(
                db, booking, payment_reference, event_id
            )
            if recorded:
                return await self._finish(
                    db, event_id, event_type, booking.id, WebhookOutcome.REFUND_REQUIRED
                )

        logger.info(
            f"Stripe event {event_id} for booking {booking.booking_number} "
            f"already in {booking.status}"
        )
        return await self._finish(db, event_id, event_type, booking.id, WebhookOutcome.STALE)

    async def _finish(
        self,
        db: AsyncSession,
        event_id: str,
        event_type: str,
        booking_id: UUID | None,
        outcome: str,
    ) -> WebhookResult:
        """Record the event id with whatever the transaction holds and commit.

        Losing the primary-key race to a concurrent copy of the same event
        rolls everything back and reports a duplicate.
        """
        db.add(
            ProcessedWebhookEvent(
                event_id=event_id,
                provider=GatewayType.STRIPE.value,
                event_type=event_type,
                booking_id=booking_id,
                outcome=outcome,
            )
        )
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.info(f"Concurrent duplicate of Stripe event {event_id} discarded")
            return WebhookResult(WebhookOutcome.DUPLICATE, event_id, booking_id)

        if outcome == WebhookOutcome.APPLIED:
            logger.info(f"Stripe event {event_id} settled booking {booking_id}")
        return WebhookResult(outcome, event_id, booking_id)

    @staticmethod
    async def _already_processed(db: AsyncSession, event_id: str) -> bool:
        result = await db.execute(
            select(ProcessedWebhookEvent.event_id).where(
                ProcessedWebhookEvent.event_id == event_id
            )
        )
        return result.scalar_one_or_none() is not None

    @staticmethod
    def _session_matches(booking: Booking, session: dict[str, Any]) -> bool:
        """Only card bookings settle by webhook, and only through their own session."""
        if booking.payment_method != PAYMENT_METHOD_CARD:
            return False
        return booking.card_session_id is None or booking.card_session_id == session.get("id")

    @staticmethod
    async def _resolve_booking(db: AsyncSession, session: dict[str, Any]) -> Booking | None:
        """Find the booking by metadata.booking_id, then by checkout session id."""
        raw_id = (session.get("metadata") or {}).get("booking_id")
        if raw_id:
            try:
                booking_id = UUID(str(raw_id))
            except ValueError:
                logger.warning(f"Malformed booking_id in checkout metadata: {raw_id!r}")
            else:
                result = await db.execute(select(Booking).where(Booking.id == booking_id))
                booking = result.scalar_one_or_none()
                if booking is not None:
                    return booking

        session_id = session.get("id")
        if session_id:
            result = await db.execute(
                select(Booking).where(Booking.card_session_id == session_id)
            )
            return result.scalar_one_or_none()
        return None


webhook_service = WebhookService()
