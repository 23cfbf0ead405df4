"""JSON file implementation of the tag index repository."""

import asyncio
from pathlib import Path
from typing import Any

import orjson
import structlog

from infrastructure.storage.files import encode_name, read_bytes, remove_file, write_atomic

logger = structlog.get_logger()


class JsonTagIndexRepository:
    """One JSON file per tag: ``{"tag": <tag>, "entries": {uuid: snapshot}}``.

    The tag itself is stored in the file because long tags are hashed into
    their file name. A tag with no entries has no file.
    """

    def __init__(self, root: Path) -> None:
        self._root = root

    def _path(self, tag: str) -> Path:
        return self._root / f"{encode_name(tag)}.json"

    async def get(self, tag: str) -> dict[str, dict[str, Any]]:
        raw = await asyncio.to_thread(read_bytes, self._path(tag))
        if raw is None:
            return {}
        document = orjson.loads(raw)
        entries = document.get("entries") if isinstance(document, dict) else None
        return entries if isinstance(entries, dict) else {}

    async def put(self, tag: str, entries: dict[str, dict[str, Any]]) -> None:
        if not entries:
            await self.drop(tag)
            return
        body = orjson.dumps({"tag": tag, "entries": entries}, option=orjson.OPT_INDENT_2)
        await asyncio.to_thread(write_atomic, self._path(tag), body)

    async def list_tags(self) -> list[str]:
        return await asyncio.to_thread(self._scan_tags)

    async def drop(self, tag: str) -> None:
        await asyncio.to_thread(remove_file, self._path(tag))

    def _scan_tags(self) -> list[str]:
        tags: list[str] = []
        for path in sorted(self._root.glob("*.json")):
            try:
                document = orjson.loads(path.read_bytes())
                tags.append(str(document["tag"]))
            except (OSError, ValueError, KeyError, TypeError) as exc:
                logger.warning("tag_file_unreadable", path=str(path), error=str(exc))
        return tags
