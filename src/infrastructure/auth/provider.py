"""Request authentication provider protocol."""

from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass
class TokenUser:
    """Caller identity extracted from a request token."""

    uuid: str
    email: Optional[str] = None


class IAuthProvider(Protocol):
    """Protocol for request authentication providers."""

    async def validate_token(self, token: str) -> Optional[TokenUser]:
        """
        Validate a request token.

        Args:
            token: The bearer token to validate

        Returns:
            TokenUser if valid, None if invalid
        """
        ...

    def create_token(self, user: TokenUser) -> str:
        """
        Create a request token for a caller.

        Args:
            user: The caller to sign a token for

        Returns:
            The generated token string
        """
        ...
