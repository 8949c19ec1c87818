"""Host payout state machine.

States:
- pending: Recorded by an operator, money not yet sent
- paid: Operator confirmed the transfer went out
- failed: Operator marked the transfer as failed
"""

import enum

from carhire.core.exceptions import InvalidTransition


class PayoutStatus(str, enum.Enum):
    """Payout lifecycle states."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


PAYOUT_TRANSITIONS: dict[str, set[str]] = {
    PayoutStatus.PENDING.value: {PayoutStatus.PAID.value, PayoutStatus.FAILED.value},
    PayoutStatus.PAID.value: set(),
    PayoutStatus.FAILED.value: set(),
}


def assert_payout_transition(current: str, target: str) -> None:
    """Validate payout state transition.

    Args:
        current: Current payout status
        target: Target payout status

    Raises:
        InvalidTransition: If transition is not allowed
    """
    allowed = PAYOUT_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise InvalidTransition("payout", current, target)
