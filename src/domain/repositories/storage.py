"""Storage handle protocol."""

from typing import Protocol

from domain.repositories.image_repository import IImageRepository
from domain.repositories.profile_repository import IProfileRepository
from domain.repositories.tag_repository import ITagIndexRepository


class IProfileStorage(Protocol):
    """Bundle of the repositories backing the profile store."""

    profiles: IProfileRepository
    images: IImageRepository
    tags: ITagIndexRepository
