"""Manual payment gateway adapter for bank transfers."""

from carhire.gateways.base import (
    CheckoutLineItem,
    CheckoutResult,
    GatewayType,
    PaymentGateway,
)


class ManualGateway(PaymentGateway):
    """Manual payment gateway for bank transfers and cash.

    No money moves through this adapter. The renter pays offline, submits a
    proof reference, and an operator confirms receipt.
    """

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.MANUAL

    async def create_checkout_session(
        self,
        currency: str,
        line_items: list[CheckoutLineItem],
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> CheckoutResult:
        """Return payment instructions (always succeeds)."""
        amount = sum(item.unit_amount * item.quantity for item in line_items)
        return CheckoutResult(
            success=True,
            session_id=None,
            redirect_url=None,
            raw_response={
                "type": "bank_transfer",
                "status": "awaiting_proof",
                "amount": amount,
                "currency": currency,
                "reference": metadata.get("booking_number") or idempotency_key,
                "instructions": (
                    "Transfer the total using the booking number as reference, "
                    "then submit your proof of payment."
                ),
            },
        )

    def verify_webhook(
        self,
        payload: bytes,
        signature: str,
    ) -> dict | None:
        """Manual gateway doesn't have webhooks."""
        return None
