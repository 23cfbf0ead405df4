"""Per-client request throttling with slowapi."""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from core.config import settings
from core.exceptions import ErrorCode

# Clients are keyed by remote address; the profile uuid is not trusted
# until the token is verified.
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)

READ_LIMIT = settings.rate_limit_read
WRITE_LIMIT = settings.rate_limit_write


async def rate_limit_exceeded_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render a limit breach in the shared error envelope."""
    breached = exc.detail if isinstance(exc, RateLimitExceeded) else str(exc)
    return JSONResponse(
        status_code=429,
        content={
            "error_code": ErrorCode.RATE_LIMIT_EXCEEDED.value,
            "message": "Too many requests",
            "details": {"limit": str(breached)},
        },
    )
