"""Authentication dependencies for FastAPI."""

import time
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.config import Settings, get_settings
from core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ErrorCode,
    InvalidTimestampError,
)
from infrastructure.auth.jwt_provider import JWTAuthProvider
from infrastructure.auth.provider import IAuthProvider, TokenUser

# Security scheme for OpenAPI docs
security = HTTPBearer(auto_error=False)

# Singleton auth provider
_auth_provider: JWTAuthProvider | None = None

_FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


def get_auth_provider() -> JWTAuthProvider:
    """Get or create the auth provider singleton."""
    global _auth_provider
    if _auth_provider is None:
        _auth_provider = JWTAuthProvider()
    return _auth_provider


async def get_current_user(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None,
        Depends(security),
    ],
    auth_provider: IAuthProvider = Depends(get_auth_provider),
) -> TokenUser:
    """
    Dependency to get the authenticated caller.

    Raises:
        AuthenticationError: If no token provided or token is invalid
    """
    if not credentials:
        raise AuthenticationError(
            message="Authorization header required",
            error_code=ErrorCode.UNAUTHORIZED,
        )

    user = await auth_provider.validate_token(credentials.credentials)

    if not user:
        raise AuthenticationError(
            message="Invalid or expired token",
            error_code=ErrorCode.INVALID_TOKEN,
        )

    return user


async def get_profile_owner(uuid: str, user: Annotated[TokenUser, Depends(get_current_user)]) -> TokenUser:
    """
    Dependency ensuring the caller acts on its own profile.

    Raises:
        AuthorizationError: If the token subject differs from the path identifier
    """
    if user.uuid != uuid:
        raise AuthorizationError("You can only access your own profile")
    return user


async def verify_request_timestamp(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> int:
    """
    Reject requests whose ``timestamp`` is stale or from the future.

    The timestamp (milliseconds since the epoch) is read from the query
    string, or from the form body for multipart/urlencoded requests.

    Raises:
        InvalidTimestampError: If missing, malformed or outside the allowed window
    """
    raw = request.query_params.get("timestamp")
    if raw is None and request.headers.get("content-type", "").startswith(_FORM_CONTENT_TYPES):
        form = await request.form()
        value = form.get("timestamp")
        raw = value if isinstance(value, str) else None

    try:
        timestamp = int(raw) if raw is not None else None
    except ValueError:
        timestamp = None

    if timestamp is None:
        raise InvalidTimestampError("Request timestamp is required")

    now_ms = int(time.time() * 1000)
    if abs(now_ms - timestamp) > settings.allowed_time_difference_ms:
        raise InvalidTimestampError()

    return timestamp


# Type aliases for convenience in route handlers
CurrentUser = Annotated[TokenUser, Depends(get_current_user)]
ProfileOwner = Annotated[TokenUser, Depends(get_profile_owner)]
RequestTimestamp = Annotated[int, Depends(verify_request_timestamp)]
