"""Operator audit trail service."""

from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from carhire.models.admin import AuditLog


class AuditService:
    """Service for immutable audit logging of operator actions."""

    async def log_action(
        self,
        db: AsyncSession,
        user_id: UUID | None,
        action: str,
        resource_type: str,
        resource_id: UUID | None,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
    ) -> AuditLog:
        """Add an audit entry to the current transaction.

        Args:
            db: Database session
            user_id: Operator performing the action
            action: Action name (e.g., "payout_mark_paid")
            resource_type: Resource type (e.g., "booking", "payout")
            resource_id: Resource ID
            old_values: Previous state
            new_values: New state

        Returns:
            Created audit log entry
        """
        audit = AuditLog(
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            old_values=old_values,
            new_values=new_values,
        )
        db.add(audit)
        return audit

    async def log_booking_action(
        self,
        db: AsyncSession,
        user_id: UUID | None,
        action: str,
        booking_id: UUID,
        old_status: str,
        new_status: str,
        reason: str | None = None,
    ) -> AuditLog:
        """Log an operator-driven booking status change."""
        new_values: dict[str, Any] = {"status": new_status}
        if reason:
            new_values["reason"] = reason
        return await self.log_action(
            db=db,
            user_id=user_id,
            action=action,
            resource_type="booking",
            resource_id=booking_id,
            old_values={"status": old_status},
            new_values=new_values,
        )

    async def log_payout_action(
        self,
        db: AsyncSession,
        user_id: UUID | None,
        action: str,
        payout_id: UUID,
        old_status: str | None,
        new_status: str,
        amount: int,
        owner_id: UUID,
    ) -> AuditLog:
        """Log payout creation or status change."""
        return await self.log_action(
            db=db,
            user_id=user_id,
            action=action,
            resource_type="payout",
            resource_id=payout_id,
            old_values={"status": old_status} if old_status else None,
            new_values={
                "status": new_status,
                "amount": amount,
                "owner_id": str(owner_id),
            },
        )


audit_service = AuditService()
