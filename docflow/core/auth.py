"""Authentication dependencies for FastAPI routes.

This module provides FastAPI dependency injection functions for
JWT bearer authentication, role checks and the internal API key used by
the processing pipeline.
"""

import hmac
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from docflow.core.jwt import JWTVerifier
from docflow.models.enums import UserRole
from docflow.schemas.auth import CurrentUser
from docflow.utils.logging import get_logger

LOGGER = get_logger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)

INTERNAL_API_KEY_HEADERS = ("x-api-key", "x-internal-api-key", "internal-api-key")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """Get the current authenticated user from JWT token.

    Args:
        request: Incoming request (the verifier lives on ``app.state``)
        credentials: HTTP Authorization credentials (automatically injected)

    Returns:
        CurrentUser: Authenticated user information

    Raises:
        HTTPException: If token is missing, invalid, or expired
    """
    if not credentials:
        LOGGER.warning("No authorization credentials provided")
        raise _unauthorized("Authorization header missing")

    verifier: JWTVerifier = request.app.state.jwt_verifier
    try:
        claims = verifier.verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        LOGGER.warning(f"Invalid token: {e}")
        raise _unauthorized("Invalid authentication token") from e

    user = CurrentUser(
        id=claims.sub,
        email=claims.email,
        role=claims.role,
        company_id=claims.company_id,
    )
    LOGGER.debug(f"Authenticated user: {user.id} ({user.role.value})")
    return user


def has_valid_internal_api_key(request: Request) -> bool:
    """Whether the request carries the configured internal API key."""
    expected = request.app.state.settings.auth.internal_api_key
    if not expected:
        return False
    for header in INTERNAL_API_KEY_HEADERS:
        provided = request.headers.get(header)
        if provided and hmac.compare_digest(provided, expected):
            return True
    return False


async def get_user_or_internal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[CurrentUser]:
    """Authenticate either a pipeline service (internal API key) or a user.

    Returns:
        None for internal callers, otherwise the authenticated user
    """
    if has_valid_internal_api_key(request):
        LOGGER.debug("Request authenticated with internal API key")
        return None
    return await get_current_user(request, credentials)


def require_any_role(*required_roles: UserRole):
    """Create a dependency that requires any of the specified roles.

    Args:
        required_roles: Roles that are allowed access

    Returns:
        Dependency function that checks if user has any required role
    """
    async def role_checker(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in required_roles:
            LOGGER.warning(
                f"Access denied for user {user.id}: role '{user.role.value}' not in allowed roles "
                f"{[role.value for role in required_roles]}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required roles: {', '.join(r.value for r in required_roles)}",
            )
        return user

    return role_checker
