"""Tag index repository protocol."""

from typing import Any, Protocol


class ITagIndexRepository(Protocol):
    """Repository interface for per-tag profile snapshot maps."""

    async def get(self, tag: str) -> dict[str, dict[str, Any]]:
        """Get the identifier -> snapshot map for a tag (empty if unknown)."""
        ...

    async def put(self, tag: str, entries: dict[str, dict[str, Any]]) -> None:
        """Replace the map for a tag; an empty map removes the tag."""
        ...

    async def list_tags(self) -> list[str]:
        """List every tag that currently has a backing entry."""
        ...

    async def drop(self, tag: str) -> None:
        """Remove a tag's backing entry if present."""
        ...
