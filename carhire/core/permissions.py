"""Roles, actors and role-based permissions."""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class UserRole(str, Enum):
    """Roles asserted by the identity provider."""

    RENTER = "renter"
    HOST = "host"
    ADMIN = "admin"


class Permission(str, Enum):
    """System permissions."""

    # Booking permissions
    CREATE_BOOKING = "create_booking"
    VIEW_BOOKING = "view_booking"
    SUBMIT_PAYMENT_PROOF = "submit_payment_proof"
    CANCEL_OWN_BOOKING = "cancel_own_booking"

    # Operator booking permissions
    MARK_BOOKING_PAID = "mark_booking_paid"
    APPROVE_BOOKING = "approve_booking"
    CANCEL_ANY_BOOKING = "cancel_any_booking"
    VIEW_BOOKING_EVENTS = "view_booking_events"

    # Payout permissions
    VIEW_PAYOUTS = "view_payouts"
    MANAGE_PAYOUTS = "manage_payouts"


ROLE_PERMISSIONS: dict[UserRole, set[Permission]] = {
    UserRole.RENTER: {
        Permission.CREATE_BOOKING,
        Permission.VIEW_BOOKING,
        Permission.SUBMIT_PAYMENT_PROOF,
        Permission.CANCEL_OWN_BOOKING,
    },
    UserRole.HOST: {
        Permission.VIEW_BOOKING,
        Permission.VIEW_PAYOUTS,
    },
    UserRole.ADMIN: {
        # Admins can do everything except book as a renter
        perm
        for perm in Permission
        if perm not in (Permission.CREATE_BOOKING, Permission.CANCEL_OWN_BOOKING)
    },
}


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, as asserted by a verified token."""

    id: UUID
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def can(self, permission: Permission) -> bool:
        return has_permission(self.role, permission)


# Non-human actors recorded on status changes
SYSTEM_ACTOR_ROLE = "system"
STRIPE_ACTOR_ROLE = "stripe"


def has_permission(role: UserRole, permission: Permission) -> bool:
    """Check if a role has a specific permission."""
    return permission in ROLE_PERMISSIONS.get(role, set())
