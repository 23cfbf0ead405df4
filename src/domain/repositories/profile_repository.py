"""Profile repository protocol."""

from typing import Protocol

from domain.entities.profile import Profile


class IProfileRepository(Protocol):
    """Repository interface for Profile records."""

    async def get(self, uuid: str) -> Profile | None:
        """Get a profile by identifier."""
        ...

    async def exists(self, uuid: str) -> bool:
        """Check whether a record exists for the identifier."""
        ...

    async def put(self, profile: Profile) -> Profile:
        """Write the full record, replacing any previous version."""
        ...

    async def delete(self, uuid: str) -> bool:
        """Delete a record and return whether one was removed."""
        ...

    async def list_all(self) -> list[Profile]:
        """Read every stored profile (full scan)."""
        ...
