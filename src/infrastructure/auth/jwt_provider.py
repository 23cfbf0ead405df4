"""JWT request authentication provider.

Callers sign a short-lived HS256 token whose ``sub`` claim is their
profile identifier:

    {
        "sub": "profile-uuid",
        "email": "user@example.com",
        "exp": 1234567890
    }

The service trusts the verified ``sub`` and never inspects the profile
payload for identity.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import structlog
from jose import JWTError, jwt

from core.config import settings
from infrastructure.auth.provider import TokenUser

logger = structlog.get_logger()


class JWTAuthProvider:
    """HS256 JWT authentication provider."""

    def __init__(
        self,
        secret_key: str = settings.jwt_secret_key,
        algorithm: str = settings.jwt_algorithm,
        expire_minutes: int = settings.jwt_expire_minutes,
    ) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._expire_minutes = expire_minutes

    async def validate_token(self, token: str) -> Optional[TokenUser]:
        """
        Verify a token signature and expiry and extract the caller.

        Args:
            token: The JWT to validate

        Returns:
            TokenUser if valid, None if invalid or expired
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"verify_aud": False},
            )
        except JWTError as exc:
            logger.info("token_rejected", error=str(exc))
            return None

        subject = payload.get("sub")
        if not subject:
            return None

        return TokenUser(uuid=str(subject), email=payload.get("email"))

    def create_token(self, user: TokenUser) -> str:
        """
        Create a signed token for a caller (used by clients and tests).

        Args:
            user: The caller to create a token for

        Returns:
            The generated JWT string
        """
        expire = datetime.now(timezone.utc) + timedelta(minutes=self._expire_minutes)

        payload: dict[str, Any] = {
            "sub": user.uuid,
            "exp": expire,
        }
        if user.email:
            payload["email"] = user.email

        return str(jwt.encode(payload, self._secret_key, algorithm=self._algorithm))
