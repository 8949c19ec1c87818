"""Stripe payment gateway adapter."""

import json
import logging

import stripe

from carhire.config import settings
from carhire.gateways.base import (
    CheckoutLineItem,
    CheckoutResult,
    GatewayType,
    PaymentGateway,
)

logger = logging.getLogger(__name__)


class StripeGateway(PaymentGateway):
    """Stripe Checkout implementation."""

    def __init__(
        self,
        secret_key: str | None = None,
        webhook_secret: str | None = None,
        webhook_tolerance: int | None = None,
    ):
        self.secret_key = secret_key if secret_key is not None else settings.stripe_secret_key
        self.webhook_secret = (
            webhook_secret if webhook_secret is not None else settings.stripe_webhook_secret
        )
        self.webhook_tolerance = (
            webhook_tolerance
            if webhook_tolerance is not None
            else settings.stripe_webhook_tolerance
        )

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.STRIPE

    @property
    def is_live(self) -> bool:
        return bool(self.secret_key and self.secret_key.startswith("sk_live_"))

    @property
    def webhook_configured(self) -> bool:
        return bool(self.webhook_secret)

    async def create_checkout_session(
        self,
        currency: str,
        line_items: list[CheckoutLineItem],
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> CheckoutResult:
        """Create a Stripe Checkout Session in payment mode."""
        if not self.secret_key:
            return CheckoutResult(
                success=False,
                error_message="Stripe not configured",
            )

        try:
            stripe.api_key = self.secret_key

            session = stripe.checkout.Session.create(
                mode="payment",
                line_items=[
                    {
                        "quantity": item.quantity,
                        "price_data": {
                            "currency": currency.lower(),
                            "unit_amount": item.unit_amount,
                            "product_data": {"name": item.description},
                        },
                    }
                    for item in line_items
                ],
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata,
                payment_intent_data={"metadata": metadata},
                idempotency_key=idempotency_key,
            )

            return CheckoutResult(
                success=True,
                session_id=session.id,
                redirect_url=session.url,
                raw_response={"id": session.id, "url": session.url},
            )

        except stripe.StripeError as e:
            logger.error(f"Stripe checkout session failed: {e}")
            return CheckoutResult(
                success=False,
                error_message=str(e),
            )

    def verify_webhook(
        self,
        payload: bytes,
        signature: str,
    ) -> dict | None:
        """Verify the Stripe-Signature header and return the event as a dict."""
        if not self.webhook_secret:
            return None

        try:
            stripe.Webhook.construct_event(
                payload,
                signature,
                self.webhook_secret,
                tolerance=self.webhook_tolerance,
            )
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning(f"Stripe webhook verification failed: {e}")
            return None

        return json.loads(payload)
