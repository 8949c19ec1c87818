"""Payment gateway service.

Routes payment operations to the appropriate gateway adapter.
No business logic here - only gateway coordination.
"""

from carhire.config import settings
from carhire.gateways.base import (
    CheckoutLineItem,
    CheckoutResult,
    GatewayType,
    PaymentGateway,
)
from carhire.gateways.manual import ManualGateway
from carhire.gateways.stripe_gateway import StripeGateway


def _is_production() -> bool:
    """Check if running in production environment."""
    return settings.environment == "production"


def _assert_live_keys_only_in_production(gateway: PaymentGateway) -> None:
    """Block live-mode card operations in non-production environments.

    Raises:
        RuntimeError: If a live Stripe key is used outside production
    """
    if getattr(gateway, "is_live", False) and not _is_production():
        raise RuntimeError(
            f"Cannot execute live {gateway.gateway_type.value} gateway operations "
            f"in {settings.environment} environment. Use a test-mode key."
        )


class GatewayService:
    """Service for managing payment gateway operations."""

    def __init__(self, gateways: dict[GatewayType, PaymentGateway] | None = None):
        self._gateways: dict[GatewayType, PaymentGateway] = dict(gateways or {})

    def get_gateway(self, gateway_type: str | GatewayType) -> PaymentGateway:
        """Get or create gateway instance."""
        gateway_type = GatewayType(gateway_type)

        if gateway_type not in self._gateways:
            if gateway_type == GatewayType.STRIPE:
                self._gateways[gateway_type] = StripeGateway()
            else:
                self._gateways[gateway_type] = ManualGateway()

        return self._gateways[gateway_type]

    async def create_checkout_session(
        self,
        gateway_type: str | GatewayType,
        currency: str,
        line_items: list[CheckoutLineItem],
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> CheckoutResult:
        """Create a checkout session via the specified gateway."""
        gateway = self.get_gateway(gateway_type)
        _assert_live_keys_only_in_production(gateway)
        return await gateway.create_checkout_session(
            currency=currency,
            line_items=line_items,
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
            idempotency_key=idempotency_key,
        )

    def webhook_configured(self, gateway_type: str | GatewayType) -> bool:
        return self.get_gateway(gateway_type).webhook_configured

    def verify_webhook(
        self,
        gateway_type: str | GatewayType,
        payload: bytes,
        signature: str,
    ) -> dict | None:
        """Verify webhook from gateway."""
        gateway = self.get_gateway(gateway_type)
        return gateway.verify_webhook(payload, signature)


def build_gateway_service() -> GatewayService:
    """Construct the gateway service with adapters configured from settings."""
    return GatewayService(
        gateways={
            GatewayType.STRIPE: StripeGateway(),
            GatewayType.MANUAL: ManualGateway(),
        }
    )
