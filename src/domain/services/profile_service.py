"""Profile service layer: persistence and consistency for profile records."""

import asyncio
import weakref
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any, Optional

import structlog

from core.exceptions import (
    ImageNotFoundError,
    PersistError,
    ProfileAlreadyExistsError,
    ProfileNotFoundError,
    ProfileValidationError,
)
from domain.entities.profile import (
    ImageUpload,
    NormalizedImage,
    Profile,
    ProfileFields,
    StoredImage,
    user_data,
    utc_now,
)
from domain.repositories.storage import IProfileStorage
from domain.services.image_normalizer import CANONICAL_CONTENT_TYPE, ImageNormalizer
from domain.services.profile_validator import ProfileValidator
from domain.services.tag_index import TagIndex

logger = structlog.get_logger()

_TICK = timedelta(microseconds=1)


class ProfileService:
    """Service layer for profile create/update/delete/get.

    Each mutation either completes or raises one typed error. Images follow
    acquire-commit-release ordering: a new image is written before the record
    that references it, and an image the record no longer references is
    removed only after the record is committed. Mutations of one identifier
    are serialized by a per-identifier lock.
    """

    def __init__(
        self,
        storage: IProfileStorage,
        validator: ProfileValidator | None = None,
        normalizer: ImageNormalizer | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._storage = storage
        self._validator = validator or ProfileValidator()
        self._normalizer = normalizer or ImageNormalizer()
        self._clock = clock
        self._tag_index = TagIndex(storage.tags)
        # Entries vanish once no coroutine holds or awaits the lock.
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @property
    def tag_index(self) -> TagIndex:
        return self._tag_index

    def _lock_for(self, uuid: str) -> asyncio.Lock:
        lock = self._locks.get(uuid)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[uuid] = lock
        return lock

    # --- Commands ---

    async def create(
        self,
        uuid: str,
        data: ProfileFields,
        image: Optional[ImageUpload] = None,
    ) -> Profile:
        """Create a profile. Fails if one already exists for ``uuid``."""
        async with self._lock_for(uuid):
            if await self._storage.profiles.exists(uuid):
                raise ProfileAlreadyExistsError(uuid)

            incoming = user_data(data)
            self._validate(incoming)

            normalized = await self._normalize(image)

            now = self._clock()
            profile = Profile.from_user_data(
                uuid,
                incoming,
                created_at=now,
                updated_at=now,
                image_filename=normalized.filename if normalized else None,
            )

            saved = await self._persist(profile, normalized, failure_message="Failed to save profile")
            logger.info("profile_created", uuid=uuid, has_image=normalized is not None)

            await self._tag_index.reconcile(uuid, [], saved.tag_set, saved.to_record())
            return saved

    async def update(
        self,
        uuid: str,
        data: ProfileFields,
        image: Optional[ImageUpload] = None,
    ) -> Profile:
        """Merge ``data`` into an existing profile, optionally replacing its image."""
        async with self._lock_for(uuid):
            existing = await self._storage.profiles.get(uuid)
            if not existing:
                raise ProfileNotFoundError(uuid)

            merged = existing.user_data()
            merged.update(user_data(data))
            self._validate(merged)

            # Normalize before touching the current image.
            normalized = await self._normalize(image)

            profile = Profile.from_user_data(
                uuid,
                merged,
                created_at=existing.created_at,
                updated_at=self._next_timestamp(existing.updated_at),
                image_filename=normalized.filename if normalized else existing.image_filename,
            )

            saved = await self._persist(profile, normalized, failure_message="Failed to update profile")

            if normalized and existing.image_filename:
                await self._discard_image(existing.image_filename, uuid)

            logger.info("profile_updated", uuid=uuid, image_replaced=normalized is not None)

            await self._tag_index.reconcile(uuid, existing.tag_set, saved.tag_set, saved.to_record())
            return saved

    async def delete(self, uuid: str) -> None:
        """Delete a profile, its image and its tag-index entries."""
        async with self._lock_for(uuid):
            existing = await self._storage.profiles.get(uuid)
            if not existing:
                raise ProfileNotFoundError(uuid)

            try:
                await self._storage.profiles.delete(uuid)
            except OSError as exc:
                logger.error("profile_delete_failed", uuid=uuid, error=str(exc))
                raise PersistError(uuid, "Failed to delete profile") from exc

            # The record is gone; anything below is cleanup only.
            if existing.image_filename:
                await self._discard_image(existing.image_filename, uuid)
            await self._tag_index.reconcile(uuid, existing.tag_set, [], None)

            logger.info("profile_deleted", uuid=uuid)

    async def rebuild_tag_index(self) -> int:
        """Re-derive the whole tag index from the stored profile records."""
        profiles = await self._storage.profiles.list_all()
        return await self._tag_index.rebuild(profile.to_record() for profile in profiles)

    # --- Queries ---

    async def get(self, uuid: str) -> Profile:
        """Get a profile by identifier."""
        profile = await self._storage.profiles.get(uuid)
        if not profile:
            raise ProfileNotFoundError(uuid)
        return profile

    async def get_image(self, uuid: str) -> StoredImage:
        """Get the stored image bytes of a profile."""
        profile = await self._storage.profiles.get(uuid)
        if not profile or not profile.image_filename:
            raise ImageNotFoundError(uuid, "Image not found")

        data = await self._storage.images.get(profile.image_filename)
        if data is None:
            logger.warning(
                "profile_image_missing",
                uuid=uuid,
                image_filename=profile.image_filename,
            )
            raise ImageNotFoundError(uuid, "Image file not found")

        return StoredImage(
            filename=profile.image_filename,
            data=data,
            content_type=CANONICAL_CONTENT_TYPE,
        )

    async def list_profiles(self, tags: Optional[list[str]] = None) -> list[dict[str, Any]]:
        """List profile records, filtered by tags when given.

        With tags, results come from the tag index (snapshots, first-seen
        order). Without tags, every record is read from storage, which is
        the slow path.
        """
        if tags:
            return await self._tag_index.list_by_tags(tags)
        profiles = await self._storage.profiles.list_all()
        return [profile.to_record() for profile in profiles]

    # --- Helpers ---

    def _validate(self, record: ProfileFields) -> None:
        violations = self._validator.validate(record)
        if violations:
            raise ProfileValidationError(violations)

    async def _normalize(self, image: Optional[ImageUpload]) -> Optional[NormalizedImage]:
        if image is None or not image.data:
            return None
        return await asyncio.to_thread(self._normalizer.normalize, image.data, image.filename)

    async def _persist(
        self,
        profile: Profile,
        normalized: Optional[NormalizedImage],
        failure_message: str,
    ) -> Profile:
        """Write the new image (if any), then the record.

        On failure the image written in this attempt is removed before
        ``PersistError`` is raised.
        """
        try:
            if normalized:
                await self._storage.images.save(normalized.filename, normalized.data)
            return await self._storage.profiles.put(profile)
        except OSError as exc:
            logger.error("profile_persist_failed", uuid=profile.uuid, error=str(exc))
            if normalized:
                await self._discard_image(normalized.filename, profile.uuid)
            raise PersistError(profile.uuid, failure_message) from exc
        except Exception:
            if normalized:
                await self._discard_image(normalized.filename, profile.uuid)
            raise

    async def _discard_image(self, filename: str, uuid: str) -> None:
        """Remove an image file; failures are logged, never raised."""
        try:
            await self._storage.images.delete(filename)
        except OSError as exc:
            logger.warning(
                "image_cleanup_failed",
                uuid=uuid,
                image_filename=filename,
                error=str(exc),
            )

    def _next_timestamp(self, previous: datetime) -> datetime:
        now = self._clock()
        if now <= previous:
            now = previous + _TICK
        return now
