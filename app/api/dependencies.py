"""API dependencies for authentication and service access."""

from __future__ import annotations

from fastapi import Depends, Header, Request

from app.core.exceptions import AuthenticationError, AuthorizationError
from app.core.security import TokenData, decode_access_token
from app.simulation.service import DayService


__all__ = [
    "get_day_service",
    "require_admin",
    "require_user",
]


def _extract_token(authorization: str | None) -> str | None:
    """Extract JWT token from the Authorization header."""
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token:
            return token
    return None


def get_day_service(request: Request) -> DayService:
    """The process-wide day service created at startup."""
    return request.app.state.day_service


async def require_user(
    authorization: str | None = Header(default=None),
) -> TokenData:
    """
    Require a valid bearer token.

    Raises AuthenticationError if the token is missing, expired or invalid.
    """
    token = _extract_token(authorization)
    if not token:
        raise AuthenticationError(
            message="Authentication required",
            error_code="MISSING_CREDENTIALS",
        )
    return decode_access_token(token)


async def require_admin(
    user: TokenData = Depends(require_user),
) -> TokenData:
    """
    Require admin user.

    Raises AuthorizationError if not admin.
    """
    if not user.is_admin:
        raise AuthorizationError(
            message="Admin privileges required",
            error_code="ADMIN_REQUIRED",
        )
    return user
