"""Checkout endpoints: price preview, card checkout and manual checkout."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from carhire.api.deps import get_current_actor, get_current_renter, get_db, get_gateway_service
from carhire.config import settings
from carhire.core.exceptions import InvalidAddon
from carhire.core.permissions import Actor
from carhire.domain.pricing import Addon
from carhire.gateways.base import CheckoutLineItem, GatewayType
from carhire.schemas.booking import (
    BookingResponse,
    CardCheckoutResponse,
    ChauffeurAddon,
    CheckoutRequest,
    ManualCheckoutRequest,
    ManualCheckoutResponse,
    PriceBreakdownResponse,
    QuoteRequest,
    QuoteResponse,
)
from carhire.services.booking_service import PAYMENT_METHOD_MANUAL, booking_service, day_label
from carhire.services.gateway_service import GatewayService

router = APIRouter()


def chauffeur_addon(chauffeur: ChauffeurAddon | None) -> Addon | None:
    """Turn the checkout form's chauffeur option into a priced addon."""
    if chauffeur is None or not chauffeur.enabled:
        return None
    if chauffeur.kilometers <= 0:
        raise InvalidAddon("Enter the chauffeur distance in kilometres")
    return Addon(units=chauffeur.kilometers, rate_per_unit=settings.chauffeur_rate_per_km)


@router.post("/quote", response_model=QuoteResponse)
async def quote_booking(
    request: QuoteRequest,
    current_actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> QuoteResponse:
    """Price a rental and check availability without creating a booking."""
    listing, breakdown, available = await booking_service.quote(
        db,
        request.listing_id,
        request.start_date,
        request.end_date,
        chauffeur_addon(request.chauffeur),
    )
    return QuoteResponse(
        listing_id=listing.id,
        start_date=request.start_date,
        end_date=request.end_date,
        available=available,
        unavailable_reason=None if available else "Selected dates are not available",
        price=PriceBreakdownResponse(
            days=breakdown.days,
            daily_rate=breakdown.daily_rate,
            base_amount=breakdown.base_amount,
            addon_units=breakdown.addon_units,
            addon_rate=breakdown.addon_rate,
            addon_amount=breakdown.addon_amount,
            total_amount=breakdown.total,
            currency=listing.currency,
        ),
    )


@router.post(
    "/session", response_model=CardCheckoutResponse, status_code=status.HTTP_201_CREATED
)
async def create_card_checkout(
    request: CheckoutRequest,
    current_actor: Annotated[Actor, Depends(get_current_renter)],
    db: Annotated[AsyncSession, Depends(get_db)],
    gateway_service: Annotated[GatewayService, Depends(get_gateway_service)],
) -> CardCheckoutResponse:
    """Create a card booking and a hosted checkout session to pay for it."""
    booking, result = await booking_service.start_card_checkout(
        db,
        current_actor,
        request.listing_id,
        request.start_date,
        request.end_date,
        gateway_service,
    )
    return CardCheckoutResponse(
        booking=BookingResponse.model_validate(booking),
        session_id=result.session_id,
        redirect_url=result.redirect_url,
    )


@router.post(
    "/manual", response_model=ManualCheckoutResponse, status_code=status.HTTP_201_CREATED
)
async def create_manual_checkout(
    request: ManualCheckoutRequest,
    current_actor: Annotated[Actor, Depends(get_current_renter)],
    db: Annotated[AsyncSession, Depends(get_db)],
    gateway_service: Annotated[GatewayService, Depends(get_gateway_service)],
) -> ManualCheckoutResponse:
    """Create a booking paid offline, optionally with a chauffeur."""
    booking = await booking_service.create_booking(
        db,
        current_actor,
        request.listing_id,
        request.start_date,
        request.end_date,
        payment_method=PAYMENT_METHOD_MANUAL,
        addon=chauffeur_addon(request.chauffeur),
    )
    await db.commit()

    line_items = [
        CheckoutLineItem(
            description=f"Car booking ({day_label(booking.days)})",
            unit_amount=booking.daily_rate,
            quantity=booking.days,
        )
    ]
    if booking.addon_units:
        line_items.append(
            CheckoutLineItem(
                description=f"Chauffeur ({booking.addon_units} km)",
                unit_amount=booking.addon_rate,
                quantity=booking.addon_units,
            )
        )
    instructions = await gateway_service.create_checkout_session(
        GatewayType.MANUAL,
        currency=booking.currency,
        line_items=line_items,
        success_url=f"{settings.app_url}/bookings/{booking.id}",
        cancel_url=f"{settings.app_url}/checkout/{booking.listing_id}",
        metadata={"booking_id": str(booking.id), "booking_number": booking.booking_number},
        idempotency_key=f"booking-{booking.id}",
    )
    return ManualCheckoutResponse(
        booking=BookingResponse.model_validate(booking),
        instructions=instructions.raw_response,
    )
