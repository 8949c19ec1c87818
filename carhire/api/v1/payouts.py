"""Host payout endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from carhire.api.deps import get_current_admin, get_db, require_payout_viewer
from carhire.core.permissions import Actor
from carhire.models.payout import HostPayout
from carhire.schemas.payout import (
    PayoutCreate,
    PayoutListResponse,
    PayoutResponse,
    PayoutStatusUpdate,
)
from carhire.services.payout_service import payout_service

router = APIRouter()


@router.post("", response_model=PayoutResponse, status_code=status.HTTP_201_CREATED)
async def create_payout(
    request: PayoutCreate,
    current_actor: Annotated[Actor, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> HostPayout:
    """Record a pending payout for a listing owner (operator only)."""
    payout = await payout_service.create_payout(
        db,
        current_actor,
        owner_id=request.owner_id,
        amount=request.amount,
        currency=request.currency,
        period_start=request.period_start,
        period_end=request.period_end,
        note=request.note,
    )
    await db.commit()
    return payout


@router.get("", response_model=PayoutListResponse)
async def list_payouts(
    current_actor: Annotated[Actor, Depends(require_payout_viewer)],
    db: Annotated[AsyncSession, Depends(get_db)],
    owner_id: UUID | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> PayoutListResponse:
    """List payouts. Hosts see their own; operators may filter by owner."""
    payouts, total = await payout_service.list_payouts(
        db, current_actor, owner_id, status_filter, page, page_size
    )
    return PayoutListResponse(
        payouts=[PayoutResponse.model_validate(p) for p in payouts],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{payout_id}", response_model=PayoutResponse)
async def get_payout(
    payout_id: UUID,
    current_actor: Annotated[Actor, Depends(require_payout_viewer)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> HostPayout:
    """Get a payout by ID."""
    return await payout_service.get_payout(db, current_actor, payout_id)


@router.post("/{payout_id}/status", response_model=PayoutResponse)
async def set_payout_status(
    payout_id: UUID,
    request: PayoutStatusUpdate,
    current_actor: Annotated[Actor, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> HostPayout:
    """Mark a pending payout as paid or failed (operator only)."""
    payout = await payout_service.set_status(db, current_actor, payout_id, request.status)
    await db.commit()
    return payout
