"""Image repository protocol."""

from typing import Protocol


class IImageRepository(Protocol):
    """Repository interface for stored image bytes."""

    async def save(self, filename: str, data: bytes) -> None:
        """Write image bytes under ``filename``."""
        ...

    async def get(self, filename: str) -> bytes | None:
        """Read image bytes, or None if the file is missing."""
        ...

    async def delete(self, filename: str) -> bool:
        """Delete an image and return whether one was removed."""
        ...
