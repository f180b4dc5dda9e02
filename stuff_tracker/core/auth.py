"""
Authentication

Provides FastAPI dependencies that resolve the current owner from a bearer
JWT. All location and item operations are scoped to ``UserPrincipal.user_id``.
"""

import logging
from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from stuff_tracker.core.security import decode_token

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class UserPrincipal:
    """
    Authenticated user principal.

    All user info is extracted from JWT claims (no database lookup required).
    """

    user_id: UUID
    name: str = ""


async def get_current_user_optional(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> UserPrincipal | None:
    """
    Get the current user from a JWT token (optional).

    Checks the Authorization: Bearer header first, then the access_token
    cookie. Returns None if no token is provided or the token is invalid.

    Args:
        request: FastAPI request object
        credentials: HTTP Bearer credentials from request

    Returns:
        UserPrincipal if authenticated, None otherwise
    """
    token = None

    if credentials:
        token = credentials.credentials
    elif "access_token" in request.cookies:
        token = request.cookies["access_token"]

    if not token:
        return None

    payload = decode_token(token, expected_type="access")

    if payload is None:
        return None

    user_id_str = payload.get("sub")
    if not user_id_str:
        return None

    try:
        user_id = UUID(user_id_str)
    except ValueError:
        logger.warning(f"Token subject is not a UUID: {user_id_str!r}")
        return None

    return UserPrincipal(user_id=user_id, name=payload.get("name", ""))


async def get_current_user(
    user: Annotated[UserPrincipal | None, Depends(get_current_user_optional)],
) -> UserPrincipal:
    """
    Get the current user from a JWT token (required).

    Raises:
        HTTPException: If not authenticated or token is invalid
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


# Type alias for dependency injection
CurrentUser = Annotated[UserPrincipal, Depends(get_current_user)]
