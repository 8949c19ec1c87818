"""Host payout ledger.

Payouts are entered by an operator after reconciling bookings offline. The
ledger only records what is owed and whether the transfer went out.
"""

import logging
from datetime import date
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from carhire.config import settings
from carhire.core.exceptions import (
    AuthorizationError,
    InvalidTransition,
    NotFoundError,
    ValidationError,
)
from carhire.core.permissions import Actor, Permission
from carhire.database import utcnow
from carhire.domain.payout_state import PayoutStatus, assert_payout_transition
from carhire.models.payout import HostPayout
from carhire.services.audit_service import audit_service

logger = logging.getLogger(__name__)


def normalize_currency(currency: str | None) -> str:
    """Upper-case three-letter code, defaulting to the platform currency."""
    code = (currency or settings.default_currency).strip().upper()[:3]
    if len(code) != 3 or not code.isalpha():
        raise ValidationError(f"Invalid currency code: {currency!r}")
    return code


class PayoutService:
    """Service for recording and settling host payouts."""

    async def create_payout(
        self,
        db: AsyncSession,
        actor: Actor,
        owner_id: UUID,
        amount: int,
        currency: str | None = None,
        period_start: date | None = None,
        period_end: date | None = None,
        note: str | None = None,
    ) -> HostPayout:
        """Record a pending payout for a listing owner.

        Raises:
            AuthorizationError: If the actor is not an operator
            ValidationError: If the amount, currency or period is invalid
        """
        if not actor.can(Permission.MANAGE_PAYOUTS):
            raise AuthorizationError("Admin access required")
        if amount <= 0:
            raise ValidationError(f"Payout amount must be positive, got {amount}")
        if period_start and period_end and period_start > period_end:
            raise ValidationError("Payout period start must not be after its end")

        payout = HostPayout(
            owner_id=owner_id,
            amount=amount,
            currency=normalize_currency(currency),
            status=PayoutStatus.PENDING.value,
            period_start=period_start,
            period_end=period_end,
            note=note,
            created_by=actor.id,
        )
        db.add(payout)
        await db.flush()

        await audit_service.log_payout_action(
            db,
            actor.id,
            "payout_create",
            payout.id,
            None,
            payout.status,
            payout.amount,
            payout.owner_id,
        )
        logger.info(
            f"Payout {payout.id} of {payout.amount} {payout.currency} recorded for owner {owner_id}"
        )
        return payout

    async def get_payout(self, db: AsyncSession, actor: Actor, payout_id: UUID) -> HostPayout:
        if not actor.can(Permission.VIEW_PAYOUTS):
            raise AuthorizationError("Host access required")

        result = await db.execute(select(HostPayout).where(HostPayout.id == payout_id))
        payout = result.scalar_one_or_none()
        # Hosts cannot tell other owners' payouts apart from missing ones
        if payout is None or (not actor.is_admin and payout.owner_id != actor.id):
            raise NotFoundError("Payout", str(payout_id))
        return payout

    async def set_status(
        self,
        db: AsyncSession,
        actor: Actor,
        payout_id: UUID,
        status: PayoutStatus | str,
    ) -> HostPayout:
        """Move a pending payout to paid or failed.

        Raises:
            InvalidTransition: If the payout is already paid or failed
        """
        if not actor.can(Permission.MANAGE_PAYOUTS):
            raise AuthorizationError("Admin access required")

        target = PayoutStatus(status).value
        payout = await self.get_payout(db, actor, payout_id)
        current = payout.status
        assert_payout_transition(current, target)

        result = await db.execute(
            update(HostPayout)
            .where(HostPayout.id == payout.id, HostPayout.status == current)
            .values(status=target, processed_at=utcnow())
        )
        if result.rowcount == 0:
            await db.refresh(payout)
            raise InvalidTransition("payout", payout.status, target)

        await audit_service.log_payout_action(
            db,
            actor.id,
            f"payout_mark_{target}",
            payout.id,
            current,
            target,
            payout.amount,
            payout.owner_id,
        )
        logger.info(f"Payout {payout.id} {current} -> {target}")
        return payout

    async def list_payouts(
        self,
        db: AsyncSession,
        actor: Actor,
        owner_id: UUID | None = None,
        status: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[HostPayout], int]:
        """Payouts visible to the actor, newest first.

        Hosts always see only their own; operators may filter by owner.
        """
        if not actor.can(Permission.VIEW_PAYOUTS):
            raise AuthorizationError("Host access required")

        query = select(HostPayout)
        if not actor.is_admin:
            query = query.where(HostPayout.owner_id == actor.id)
        elif owner_id is not None:
            query = query.where(HostPayout.owner_id == owner_id)
        if status:
            query = query.where(HostPayout.status == status)

        count_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        offset = (page - 1) * page_size
        result = await db.execute(
            query.order_by(HostPayout.created_at.desc()).offset(offset).limit(page_size)
        )
        return list(result.scalars().all()), total


payout_service = PayoutService()
