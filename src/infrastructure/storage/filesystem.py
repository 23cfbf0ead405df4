"""File-system storage handle for the profile store."""

import os
from dataclasses import dataclass
from pathlib import Path

from core.config import Settings
from infrastructure.storage.image_repo import FileImageRepository
from infrastructure.storage.json_profile_repo import JsonProfileRepository
from infrastructure.storage.json_tag_repo import JsonTagIndexRepository


@dataclass
class FileSystemStorage:
    """Profile, image and tag repositories rooted in three directories.

    Construct with :meth:`open`, which creates the directories; whoever
    builds the handle owns its lifetime.
    """

    data_path: Path
    image_path: Path
    tag_path: Path
    profiles: JsonProfileRepository
    images: FileImageRepository
    tags: JsonTagIndexRepository

    @classmethod
    def open(cls, data_path: Path, image_path: Path, tag_path: Path) -> "FileSystemStorage":
        """Create the storage directories and return the handle."""
        for directory in (data_path, image_path, tag_path):
            directory.mkdir(parents=True, exist_ok=True)
        return cls(
            data_path=data_path,
            image_path=image_path,
            tag_path=tag_path,
            profiles=JsonProfileRepository(data_path),
            images=FileImageRepository(image_path),
            tags=JsonTagIndexRepository(tag_path),
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "FileSystemStorage":
        return cls.open(settings.data_path, settings.image_path, settings.tag_path)

    def check(self) -> str:
        """Report whether every storage directory is present and writable."""
        for directory in (self.data_path, self.image_path, self.tag_path):
            if not directory.is_dir():
                return f"unhealthy: missing {directory}"
            if not os.access(directory, os.W_OK):
                return f"unhealthy: read-only {directory}"
        return "healthy"
