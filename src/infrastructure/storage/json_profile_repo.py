"""JSON file implementation of the Profile repository."""

import asyncio
from pathlib import Path

import orjson
import structlog

from domain.entities.profile import Profile
from infrastructure.storage.files import encode_name, read_bytes, remove_file, write_atomic

logger = structlog.get_logger()


class JsonProfileRepository:
    """File-per-profile implementation of IProfileRepository.

    Each record lives at ``<root>/<encoded uuid>.json``.
    """

    def __init__(self, root: Path) -> None:
        self._root = root

    def _path(self, uuid: str) -> Path:
        return self._root / f"{encode_name(uuid)}.json"

    async def get(self, uuid: str) -> Profile | None:
        """Get a profile by identifier."""
        raw = await asyncio.to_thread(read_bytes, self._path(uuid))
        if raw is None:
            return None
        return Profile.from_record(orjson.loads(raw))

    async def exists(self, uuid: str) -> bool:
        """Check whether a record exists for the identifier."""
        return await asyncio.to_thread(self._path(uuid).is_file)

    async def put(self, profile: Profile) -> Profile:
        """Write the full record atomically."""
        body = orjson.dumps(profile.to_record(), option=orjson.OPT_INDENT_2)
        await asyncio.to_thread(write_atomic, self._path(profile.uuid), body)
        return profile

    async def delete(self, uuid: str) -> bool:
        """Delete a record and return whether one was removed."""
        return await asyncio.to_thread(remove_file, self._path(uuid))

    async def list_all(self) -> list[Profile]:
        """Read every stored profile, skipping unreadable files."""
        return await asyncio.to_thread(self._scan)

    def _scan(self) -> list[Profile]:
        profiles: list[Profile] = []
        for path in sorted(self._root.glob("*.json")):
            try:
                profiles.append(Profile.from_record(orjson.loads(path.read_bytes())))
            except (OSError, ValueError, KeyError) as exc:
                logger.warning("profile_record_unreadable", path=str(path), error=str(exc))
        return profiles
