"""API dependencies for authentication and common operations."""

import hmac
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from carhire.config import settings
from carhire.core.exceptions import AuthenticationError, AuthorizationError
from carhire.core.permissions import Actor, Permission, UserRole, has_permission
from carhire.core.security import verify_token
from carhire.database import get_db
from carhire.services.gateway_service import GatewayService

__all__ = [
    "get_current_actor",
    "get_current_admin",
    "get_current_renter",
    "get_db",
    "get_gateway_service",
    "require_permission",
    "verify_internal_key",
]

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Actor:
    """Get the calling actor from a verified bearer token.

    The identity provider is trusted: ``sub`` and ``role`` are taken as given.
    """
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    payload = verify_token(credentials.credentials, token_type="access")
    subject = payload.get("sub")
    role = payload.get("role")
    if not subject or not role:
        raise AuthenticationError("Invalid token payload")

    try:
        return Actor(id=UUID(str(subject)), role=UserRole(role))
    except ValueError:
        raise AuthenticationError("Invalid token payload")


async def get_current_renter(
    current_actor: Annotated[Actor, Depends(get_current_actor)],
) -> Actor:
    """Get current actor and verify they can book."""
    if current_actor.role != UserRole.RENTER:
        raise AuthorizationError("Renter access required")
    return current_actor


async def get_current_admin(
    current_actor: Annotated[Actor, Depends(get_current_actor)],
) -> Actor:
    """Get current actor and verify they are an operator."""
    if current_actor.role != UserRole.ADMIN:
        raise AuthorizationError("Admin access required")
    return current_actor


def require_permission(permission: Permission):
    """Dependency to require a specific permission."""

    async def permission_checker(
        current_actor: Annotated[Actor, Depends(get_current_actor)],
    ) -> Actor:
        if not has_permission(current_actor.role, permission):
            raise AuthorizationError(
                f"Permission '{permission.value}' is required for this action"
            )
        return current_actor

    return permission_checker


async def verify_internal_key(
    x_internal_key: Annotated[str | None, Header()] = None,
) -> None:
    """Authenticate service-to-service calls from the catalog."""
    if not x_internal_key or not hmac.compare_digest(
        x_internal_key.encode(), settings.internal_api_key.encode()
    ):
        raise AuthenticationError("Invalid internal API key")


def get_gateway_service(request: Request) -> GatewayService:
    """Gateway service built by the application factory."""
    return request.app.state.gateway_service


# Convenience dependencies
require_payout_viewer = require_permission(Permission.VIEW_PAYOUTS)
require_event_reader = require_permission(Permission.VIEW_BOOKING_EVENTS)
