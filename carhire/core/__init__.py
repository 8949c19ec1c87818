"""Core utilities and security modules."""

from carhire.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    DatesNotAvailable,
    InvalidAddon,
    InvalidDateRange,
    InvalidSignature,
    InvalidTransition,
    ListingNotAvailable,
    NotFoundError,
    PaymentError,
    ValidationError,
)
from carhire.core.security import (
    create_access_token,
    create_actor_token,
    verify_token,
)

__all__ = [
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "DatesNotAvailable",
    "InvalidAddon",
    "InvalidDateRange",
    "InvalidSignature",
    "InvalidTransition",
    "ListingNotAvailable",
    "NotFoundError",
    "PaymentError",
    "ValidationError",
    "create_access_token",
    "create_actor_token",
    "verify_token",
]
