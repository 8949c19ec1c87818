"""Webhook endpoints for payment gateways."""

from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from carhire.api.deps import get_db, get_gateway_service
from carhire.schemas.booking import WebhookAckResponse
from carhire.services.gateway_service import GatewayService
from carhire.services.webhook_service import webhook_service

router = APIRouter()


@router.post("/stripe", response_model=WebhookAckResponse, status_code=status.HTTP_200_OK)
async def stripe_webhook(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    gateway_service: Annotated[GatewayService, Depends(get_gateway_service)],
    stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
) -> WebhookAckResponse:
    """Handle Stripe checkout events.

    Every authentic delivery is acknowledged with 200, including duplicates
    and event types this service does not act on.
    """
    # Raw body is required for signature verification
    payload = await request.body()
    result = await webhook_service.ingest(db, gateway_service, payload, stripe_signature)
    return WebhookAckResponse(outcome=result.outcome)
