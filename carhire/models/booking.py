"""Booking-related database models."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from carhire.database import Base, utcnow
from carhire.domain.booking_state import BookingStatus

if TYPE_CHECKING:
    from carhire.models.listing import Listing


class Booking(Base):
    """Booking model."""

    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("end_date > start_date", name="ck_bookings_range_not_empty"),
        CheckConstraint("total_amount >= 0", name="ck_bookings_total_non_negative"),
        Index("ix_bookings_listing_dates", "listing_id", "start_date", "end_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_number: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False, index=True
    )  # CAR-XXXXXX
    listing_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("listings.id"), nullable=False, index=True
    )
    renter_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    # Dates, half open: [start_date, end_date)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    days: Mapped[int] = mapped_column(Integer, nullable=False)

    # Pricing snapshot (in cents); total never recomputed after creation
    daily_rate: Mapped[int] = mapped_column(Integer, nullable=False)
    addon_units: Mapped[int] = mapped_column(Integer, default=0)  # chauffeur km
    addon_rate: Mapped[int] = mapped_column(Integer, default=0)
    addon_amount: Mapped[int] = mapped_column(Integer, default=0)
    total_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="ZAR")

    # Status
    status: Mapped[str] = mapped_column(
        String(20), default=BookingStatus.AWAITING_PAYMENT.value, index=True
    )  # awaiting_payment, awaiting_approval, confirmed, cancelled

    # Payment
    payment_method: Mapped[str] = mapped_column(String(10), nullable=False)  # card, manual
    card_session_id: Mapped[str | None] = mapped_column(String(255), unique=True)
    payment_reference: Mapped[str | None] = mapped_column(String(255))
    payment_proof_ref: Mapped[str | None] = mapped_column(String(500))
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Approval
    approved_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Cancellation
    cancelled_by: Mapped[str | None] = mapped_column(String(10))  # renter, admin, system
    cancellation_reason: Mapped[str | None] = mapped_column(Text)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # Relationships
    listing: Mapped["Listing"] = relationship("Listing", back_populates="bookings")
    holds: Mapped[list["BookingDayHold"]] = relationship(
        "BookingDayHold", back_populates="booking", cascade="all, delete-orphan"
    )

    @property
    def is_manual(self) -> bool:
        return self.payment_method == "manual" and self.card_session_id is None


class BookingDayHold(Base):
    """One held calendar day of a booking in a holding status.

    The unique (listing_id, day) index is the authoritative guard against
    double-booking: two bookings can never hold the same day of one car.
    """

    __tablename__ = "booking_day_holds"
    __table_args__ = (
        UniqueConstraint("listing_id", "day", name="uq_booking_day_holds_listing_day"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    listing_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("listings.id"), nullable=False
    )
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    # Relationships
    booking: Mapped["Booking"] = relationship("Booking", back_populates="holds")


class BookingStatusChange(Base):
    """Append-only record of every booking transition.

    Reporting reads "booking confirmed" facts from here.
    """

    __tablename__ = "booking_status_changes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bookings.id"), nullable=False, index=True
    )
    from_status: Mapped[str | None] = mapped_column(String(20))  # None on creation
    to_status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    actor_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    actor_role: Mapped[str] = mapped_column(String(20), nullable=False)  # renter, admin, stripe, system
    reason: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, index=True
    )
