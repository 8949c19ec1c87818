"""Base payment gateway interface.

All gateway adapters must implement this interface.
Business logic should NOT live in adapters - only gateway communication.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum


class GatewayType(str, Enum):
    """Supported payment gateways."""

    STRIPE = "stripe"
    MANUAL = "manual"


@dataclass
class CheckoutLineItem:
    """A single priced line on a hosted checkout page."""

    description: str
    unit_amount: int  # smallest currency unit
    quantity: int = 1


@dataclass
class CheckoutResult:
    """Result of creating a checkout session."""

    success: bool
    session_id: str | None = None
    redirect_url: str | None = None
    error_message: str | None = None
    raw_response: dict = field(default_factory=dict)


class PaymentGateway(ABC):
    """Abstract base class for payment gateways."""

    @property
    @abstractmethod
    def gateway_type(self) -> GatewayType:
        """Return the gateway type."""

    @abstractmethod
    async def create_checkout_session(
        self,
        currency: str,
        line_items: list[CheckoutLineItem],
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> CheckoutResult:
        """Create a hosted checkout session.

        Args:
            currency: ISO currency code
            line_items: Priced lines, amounts in the smallest currency unit
            success_url: Where the payer lands after paying
            cancel_url: Where the payer lands after abandoning checkout
            metadata: Echoed back on webhook events (carries booking_id)
            idempotency_key: Repeating a request with the same key returns
                the original session

        Returns:
            CheckoutResult with the session id and redirect URL
        """

    @property
    def webhook_configured(self) -> bool:
        return False

    @abstractmethod
    def verify_webhook(
        self,
        payload: bytes,
        signature: str,
    ) -> dict | None:
        """Verify webhook signature and parse payload.

        Args:
            payload: Raw request body
            signature: Webhook signature header

        Returns:
            Parsed event dict if valid, None if invalid
        """
