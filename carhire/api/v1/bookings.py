"""Booking endpoints."""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from carhire.api.deps import get_current_actor, get_current_admin, get_db, require_event_reader
from carhire.core.permissions import Actor
from carhire.models.booking import Booking
from carhire.schemas.booking import (
    BookingListResponse,
    BookingResponse,
    CancelRequest,
    MarkPaidRequest,
    PaymentProofRequest,
    StatusChangeResponse,
)
from carhire.services.booking_service import booking_service

router = APIRouter()


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    current_actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
    status_filter: str | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> BookingListResponse:
    """List the caller's bookings (as renter or owner); operators see all."""
    bookings, total = await booking_service.list_bookings(
        db, current_actor, status_filter, page, page_size
    )
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/events", response_model=list[StatusChangeResponse])
async def list_booking_events(
    current_actor: Annotated[Actor, Depends(require_event_reader)],
    db: Annotated[AsyncSession, Depends(get_db)],
    to_status: str | None = Query(default=None),
    since: datetime | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000),
) -> list[StatusChangeResponse]:
    """Status-change facts for reporting, e.g. ``?to_status=confirmed``."""
    changes = await booking_service.list_status_changes(db, to_status, since, limit)
    return [StatusChangeResponse.model_validate(c) for c in changes]


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    current_actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Get a booking by ID."""
    booking = await booking_service.get_booking(db, booking_id)
    booking_service.ensure_can_view(booking, current_actor)
    return booking


@router.post("/{booking_id}/payment-proof", response_model=BookingResponse)
async def submit_payment_proof(
    booking_id: UUID,
    request: PaymentProofRequest,
    current_actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Submit proof of an offline payment (renter or operator)."""
    booking = await booking_service.get_booking(db, booking_id)
    await booking_service.submit_payment_proof(
        db, booking, current_actor, request.proof_reference
    )
    await db.commit()
    return booking


@router.post("/{booking_id}/mark-paid", response_model=BookingResponse)
async def mark_booking_paid(
    booking_id: UUID,
    request: MarkPaidRequest,
    current_actor: Annotated[Actor, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Record an offline payment as received (operator only)."""
    booking = await booking_service.get_booking(db, booking_id)
    await booking_service.mark_manual_paid(
        db, booking, current_actor, request.payment_reference
    )
    await db.commit()
    return booking


@router.post("/{booking_id}/approve", response_model=BookingResponse)
async def approve_booking(
    booking_id: UUID,
    current_actor: Annotated[Actor, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Confirm a paid booking (operator only)."""
    booking = await booking_service.get_booking(db, booking_id)
    await booking_service.approve_booking(db, booking, current_actor)
    await db.commit()
    return booking


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: UUID,
    request: CancelRequest,
    current_actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Cancel a booking."""
    booking = await booking_service.get_booking(db, booking_id)
    await booking_service.cancel_booking(db, booking, current_actor, request.reason)
    await db.commit()
    return booking
