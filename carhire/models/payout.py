"""Host payout model."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import CheckConstraint, Date, DateTime, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from carhire.database import Base, utcnow
from carhire.domain.payout_state import PayoutStatus


class HostPayout(Base):
    """Amount owed to a listing owner, entered and settled by an operator.

    Not linked to individual bookings: aggregation, fee deduction and
    adjustments are done by the operator before the record is created.
    """

    __tablename__ = "host_payouts"
    __table_args__ = (CheckConstraint("amount > 0", name="ck_host_payouts_amount_positive"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    # Payout Details
    amount: Mapped[int] = mapped_column(Integer, nullable=False)  # in cents
    currency: Mapped[str] = mapped_column(String(3), default="ZAR")

    # Status (state machine: pending → paid | failed)
    status: Mapped[str] = mapped_column(
        String(20), default=PayoutStatus.PENDING.value, index=True
    )

    # Period (informational only)
    period_start: Mapped[date | None] = mapped_column(Date)
    period_end: Mapped[date | None] = mapped_column(Date)
    note: Mapped[str | None] = mapped_column(Text)

    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)

    # Timestamps
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, index=True
    )
