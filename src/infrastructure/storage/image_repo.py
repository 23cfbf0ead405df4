"""File implementation of the Image repository."""

import asyncio
from pathlib import Path

from infrastructure.storage.files import encode_name, read_bytes, remove_file, write_atomic


class FileImageRepository:
    """Stores image bytes as plain files under one directory."""

    def __init__(self, root: Path) -> None:
        self._root = root

    def _path(self, filename: str) -> Path:
        return self._root / encode_name(filename)

    async def save(self, filename: str, data: bytes) -> None:
        await asyncio.to_thread(write_atomic, self._path(filename), data)

    async def get(self, filename: str) -> bytes | None:
        return await asyncio.to_thread(read_bytes, self._path(filename))

    async def delete(self, filename: str) -> bool:
        return await asyncio.to_thread(remove_file, self._path(filename))
