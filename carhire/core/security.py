"""Token utilities.

Tokens are issued by the identity provider and shared-secret signed; this
service only verifies them. ``create_access_token`` exists for scripts and
tests that need to act as a given user.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from carhire.config import settings
from carhire.core.exceptions import AuthenticationError


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(UTC) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str, token_type: str = "access") -> dict[str, Any]:
    """Verify and decode a JWT token."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        raise AuthenticationError(f"Token validation failed: {str(e)}")
    if payload.get("type") != token_type:
        raise AuthenticationError("Invalid token type")
    return payload


def create_actor_token(actor_id: str, role: str, expires_delta: timedelta | None = None) -> str:
    """Create an access token for an actor id and role."""
    return create_access_token({"sub": actor_id, "role": role}, expires_delta)
