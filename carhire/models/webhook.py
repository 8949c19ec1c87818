"""Processed webhook event log, used for at-most-once application."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from carhire.database import Base, utcnow


class ProcessedWebhookEvent(Base):
    """A provider event that has already been handled.

    The provider delivers at least once; the primary key on ``event_id`` makes
    a second delivery a no-op even when two copies race.
    """

    __tablename__ = "processed_webhook_events"

    event_id: Mapped[str] = mapped_column(String(255), primary_key=True)  # evt_xxx
    provider: Mapped[str] = mapped_column(String(30), default="stripe")
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    booking_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, index=True)
    outcome: Mapped[str] = mapped_column(
        String(20), nullable=False
    )  # applied, ignored, unmatched, stale, conflict, refund_required
    processed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
