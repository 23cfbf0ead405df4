"""Dependency injection factories for API v1."""

from functools import lru_cache

from core.config import settings
from domain.services.image_normalizer import ImageNormalizer
from domain.services.profile_service import ProfileService
from domain.services.profile_validator import ProfileValidator
from infrastructure.storage.filesystem import FileSystemStorage


@lru_cache
def get_storage() -> FileSystemStorage:
    """Open the file-system storage handle once per process."""
    return FileSystemStorage.from_settings(settings)


@lru_cache
def get_profile_service() -> ProfileService:
    """Get Profile service instance."""
    return ProfileService(
        get_storage(),
        validator=ProfileValidator(settings.profile_limits),
        normalizer=ImageNormalizer(
            max_width=settings.image_max_width,
            max_height=settings.image_max_height,
            quality=settings.image_quality,
        ),
    )
