"""Unit tests for ProfileService."""

import asyncio
import gc
from datetime import datetime, timedelta, timezone

import pytest

from core.exceptions import (
    ErrorCode,
    ImageNotFoundError,
    ImageProcessingError,
    PersistError,
    ProfileAlreadyExistsError,
    ProfileNotFoundError,
    ProfileValidationError,
)
from domain.entities.profile import ImageUpload, Profile
from domain.services.profile_service import ProfileService
from infrastructure.storage.filesystem import FileSystemStorage
from tests.helpers import FrozenClock, image_size, make_image
from tests.unit.conftest import FakeStorage

BASE = {"name": "Ada Lovelace", "email": "ada@example.com"}


def _image_files(storage: FileSystemStorage) -> list[str]:
    return sorted(path.name for path in storage.image_path.iterdir() if path.is_file())


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_stamps_store_owned_fields(self, service: ProfileService):
        profile = await service.create("u1", {**BASE, "bio": "mathematician"})

        record = profile.to_record()
        assert record["uuid"] == "u1"
        assert record["bio"] == "mathematician"
        assert record["imageFilename"] is None
        assert record["createdAt"] == record["updatedAt"]

    @pytest.mark.asyncio
    async def test_create_persists_record(self, service: ProfileService):
        await service.create("u1", BASE)

        fetched = await service.get("u1")

        assert fetched.name == "Ada Lovelace"
        assert fetched.email == "ada@example.com"

    @pytest.mark.asyncio
    async def test_caller_cannot_set_system_keys(self, service: ProfileService):
        data = {
            **BASE,
            "uuid": "someone-else",
            "createdAt": "1999-01-01T00:00:00Z",
            "imageFilename": "../../etc/passwd",
        }

        profile = await service.create("u1", data)

        assert profile.uuid == "u1"
        assert profile.image_filename is None
        assert profile.created_at.year == 2024

    @pytest.mark.asyncio
    async def test_create_twice_fails(self, service: ProfileService):
        await service.create("u1", BASE)

        with pytest.raises(ProfileAlreadyExistsError) as exc_info:
            await service.create("u1", {**BASE, "name": "Other"})

        assert exc_info.value.status_code == 409
        assert (await service.get("u1")).name == "Ada Lovelace"

    @pytest.mark.asyncio
    async def test_invalid_data_writes_nothing(
        self, service: ProfileService, storage: FileSystemStorage
    ):
        with pytest.raises(ProfileValidationError) as exc_info:
            await service.create("u1", {"email": "bad"}, ImageUpload(make_image()))

        assert exc_info.value.violations == [
            "Name is required and must be a string",
            "Email must be in valid format",
        ]
        assert exc_info.value.error_code == ErrorCode.VALIDATION_ERROR
        assert not await storage.profiles.exists("u1")
        assert _image_files(storage) == []

    @pytest.mark.asyncio
    async def test_create_with_image_stores_normalized_jpeg(
        self, service: ProfileService, storage: FileSystemStorage
    ):
        profile = await service.create("u1", BASE, ImageUpload(make_image(2000, 1000), "me.png"))

        assert profile.image_filename is not None
        assert profile.image_filename.endswith(".jpg")
        assert _image_files(storage) == [profile.image_filename]

        stored = await service.get_image("u1")
        assert stored.content_type == "image/jpeg"
        assert image_size(stored.data) == (1024, 512)

    @pytest.mark.asyncio
    async def test_undecodable_image_writes_nothing(
        self, service: ProfileService, storage: FileSystemStorage
    ):
        with pytest.raises(ImageProcessingError):
            await service.create("u1", BASE, ImageUpload(b"garbage"))

        assert not await storage.profiles.exists("u1")
        assert _image_files(storage) == []

    @pytest.mark.asyncio
    async def test_empty_upload_is_ignored(self, service: ProfileService):
        profile = await service.create("u1", BASE, ImageUpload(b""))

        assert profile.image_filename is None


class TestUpdate:
    @pytest.mark.asyncio
    async def test_update_overwrites_sent_keys_only(self, service: ProfileService):
        created = await service.create("u1", {"name": "A", "email": "a@x.com", "bio": "hi"})

        updated = await service.update("u1", {"name": "B"})

        assert (updated.name, updated.email, updated.fields) == ("B", "a@x.com", {"bio": "hi"})
        assert updated.created_at == created.created_at
        assert updated.updated_at > created.updated_at

    @pytest.mark.asyncio
    async def test_update_merges_fields(self, service: ProfileService):
        await service.create("u1", {**BASE, "bio": "old", "city": "London"})

        updated = await service.update("u1", {"bio": "new"})

        assert updated.fields == {"bio": "new", "city": "London"}
        assert updated.name == "Ada Lovelace"

    @pytest.mark.asyncio
    async def test_update_keeps_created_at_and_advances_updated_at(self, service: ProfileService):
        created = await service.create("u1", BASE)

        updated = await service.update("u1", {"bio": "x"})

        assert updated.created_at == created.created_at
        assert updated.updated_at > created.updated_at

    @pytest.mark.asyncio
    async def test_updated_at_increases_even_when_clock_stalls(self, storage: FileSystemStorage):
        service = ProfileService(storage, clock=FrozenClock())
        created = await service.create("u1", BASE)

        first = await service.update("u1", {"bio": "a"})
        second = await service.update("u1", {"bio": "b"})

        assert created.updated_at < first.updated_at < second.updated_at
        assert second.updated_at - created.updated_at == timedelta(microseconds=2)

    @pytest.mark.asyncio
    async def test_updated_at_survives_clock_going_backwards(self, storage: FileSystemStorage):
        clock = FrozenClock(datetime(2024, 6, 1, tzinfo=timezone.utc))
        service = ProfileService(storage, clock=clock)
        created = await service.create("u1", BASE)

        clock.instant = datetime(2020, 1, 1, tzinfo=timezone.utc)
        updated = await service.update("u1", {"bio": "x"})

        assert updated.updated_at > created.updated_at
        assert updated.updated_at >= updated.created_at

    @pytest.mark.asyncio
    async def test_update_missing_profile(self, service: ProfileService):
        with pytest.raises(ProfileNotFoundError) as exc_info:
            await service.update("nobody", {"bio": "x"})

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_merged_record_is_validated(self, service: ProfileService):
        await service.create("u1", BASE)

        with pytest.raises(ProfileValidationError) as exc_info:
            await service.update("u1", {"name": ""})

        assert exc_info.value.violations == ["Name is required and must be a string"]
        assert (await service.get("u1")).name == "Ada Lovelace"

    @pytest.mark.asyncio
    async def test_field_limit_counts_merged_fields(self, service: ProfileService):
        await service.create("u1", {**BASE, **{f"f{i}": "x" for i in range(20)}})

        with pytest.raises(ProfileValidationError):
            await service.update("u1", {"one_more": "x"})

    @pytest.mark.asyncio
    async def test_new_image_replaces_old_file(
        self, service: ProfileService, storage: FileSystemStorage
    ):
        created = await service.create("u1", BASE, ImageUpload(make_image()))

        updated = await service.update("u1", {}, ImageUpload(make_image(30, 30)))

        assert updated.image_filename != created.image_filename
        assert _image_files(storage) == [updated.image_filename]

    @pytest.mark.asyncio
    async def test_update_without_image_keeps_image(self, service: ProfileService):
        created = await service.create("u1", BASE, ImageUpload(make_image()))

        updated = await service.update("u1", {"bio": "x"})

        assert updated.image_filename == created.image_filename

    @pytest.mark.asyncio
    async def test_failed_image_keeps_old_image_and_record(
        self, service: ProfileService, storage: FileSystemStorage
    ):
        created = await service.create("u1", BASE, ImageUpload(make_image()))

        with pytest.raises(ImageProcessingError):
            await service.update("u1", {"bio": "x"}, ImageUpload(b"garbage"))

        current = await service.get("u1")
        assert current.image_filename == created.image_filename
        assert "bio" not in current.fields
        assert _image_files(storage) == [created.image_filename]

    @pytest.mark.asyncio
    async def test_concurrent_updates_are_serialized(self, service: ProfileService):
        await service.create("u1", BASE)

        await asyncio.gather(*(service.update("u1", {f"k{i}": str(i)}) for i in range(5)))

        current = await service.get("u1")
        assert set(current.fields) == {f"k{i}" for i in range(5)}

    @pytest.mark.asyncio
    async def test_idle_locks_are_released(self, service: ProfileService):
        for i in range(20):
            await service.create(f"u{i}", BASE)
            await service.update(f"u{i}", {"bio": "x"})
        await service.delete("u0")
        gc.collect()

        assert len(service._locks) == 0

    @pytest.mark.asyncio
    async def test_held_lock_is_shared(self, service: ProfileService):
        async with service._lock_for("u1"):
            assert service._lock_for("u1") is service._lock_for("u1")
            assert service._lock_for("u1").locked()


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_removes_record_image_and_tags(
        self, service: ProfileService, storage: FileSystemStorage
    ):
        await service.create("u1", {**BASE, "tags": ["dev"]}, ImageUpload(make_image()))

        await service.delete("u1")

        with pytest.raises(ProfileNotFoundError):
            await service.get("u1")
        assert _image_files(storage) == []
        assert await service.list_profiles(["dev"]) == []

    @pytest.mark.asyncio
    async def test_delete_missing_profile(self, service: ProfileService):
        with pytest.raises(ProfileNotFoundError):
            await service.delete("nobody")

    @pytest.mark.asyncio
    async def test_identifier_reused_after_delete_gets_new_created_at_with_ticking_clock(
        self, service: ProfileService
    ):
        """The `service` fixture clock advances one second per call, so the two
        creates get distinct stamps. A coarse real clock could repeat one."""
        first = await service.create("u1", BASE)
        await service.delete("u1")

        recreated = await service.create("u1", {**BASE, "name": "Again"})

        assert recreated.name == "Again"
        assert recreated.created_at != first.created_at


class TestQueries:
    @pytest.mark.asyncio
    async def test_get_missing_profile(self, service: ProfileService):
        with pytest.raises(ProfileNotFoundError) as exc_info:
            await service.get("nobody")

        assert exc_info.value.details == {"uuid": "nobody"}

    @pytest.mark.asyncio
    async def test_get_image_without_image(self, service: ProfileService):
        await service.create("u1", BASE)

        with pytest.raises(ImageNotFoundError) as exc_info:
            await service.get_image("u1")

        assert exc_info.value.message == "Image not found"

    @pytest.mark.asyncio
    async def test_get_image_with_missing_file(
        self, service: ProfileService, storage: FileSystemStorage
    ):
        created = await service.create("u1", BASE, ImageUpload(make_image()))
        assert created.image_filename is not None
        (storage.image_path / created.image_filename).unlink()

        with pytest.raises(ImageNotFoundError) as exc_info:
            await service.get_image("u1")

        assert exc_info.value.message == "Image file not found"

    @pytest.mark.asyncio
    async def test_list_without_tags_returns_every_record(self, service: ProfileService):
        await service.create("u1", BASE)
        await service.create("u2", {**BASE, "name": "Grace"})

        records = await service.list_profiles()

        assert sorted(record["uuid"] for record in records) == ["u1", "u2"]


class TestTagIndexConsistency:
    @pytest.mark.asyncio
    async def test_tags_follow_the_record(self, service: ProfileService):
        await service.create("u1", {**BASE, "tags": ["a", "b"]})
        await service.update("u1", {"tags": ["b", "c"], "bio": "updated"})

        assert await service.list_profiles(["a"]) == []
        by_b = await service.list_profiles(["b"])
        assert [record["uuid"] for record in by_b] == ["u1"]
        assert by_b[0]["bio"] == "updated"
        assert [record["uuid"] for record in await service.list_profiles(["c"])] == ["u1"]

    @pytest.mark.asyncio
    async def test_duplicate_tags_index_once(self, service: ProfileService):
        await service.create("u1", {**BASE, "tags": ["a", "a"]})

        assert len(await service.list_profiles(["a"])) == 1

    @pytest.mark.asyncio
    async def test_rebuild_restores_lost_index(
        self, service: ProfileService, storage: FileSystemStorage
    ):
        await service.create("u1", {**BASE, "tags": ["a"]})
        await service.create("u2", {**BASE, "tags": ["a", "b"]})
        for tag in await storage.tags.list_tags():
            await storage.tags.drop(tag)

        written = await service.rebuild_tag_index()

        assert written == 3
        assert [r["uuid"] for r in await service.list_profiles(["b"])] == ["u2"]


class TestStorageFailures:
    @pytest.mark.asyncio
    async def test_record_write_failure_removes_new_image(self, fake_storage: FakeStorage):
        fake_storage.profiles.put.side_effect = OSError("disk full")
        service = ProfileService(fake_storage)  # type: ignore[arg-type]

        with pytest.raises(PersistError) as exc_info:
            await service.create("u1", BASE, ImageUpload(make_image()))

        assert exc_info.value.status_code == 500
        saved_name = fake_storage.images.save.await_args.args[0]
        fake_storage.images.delete.assert_awaited_once_with(saved_name)
        fake_storage.tags.put.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_image_write_failure_skips_record(self, fake_storage: FakeStorage):
        fake_storage.images.save.side_effect = OSError("read-only")
        service = ProfileService(fake_storage)  # type: ignore[arg-type]

        with pytest.raises(PersistError):
            await service.create("u1", BASE, ImageUpload(make_image()))

        fake_storage.profiles.put.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_failure_keeps_old_image(self, fake_storage: FakeStorage):
        existing = Profile(uuid="u1", image_filename="old.jpg", **BASE)
        fake_storage.profiles.get.return_value = existing
        fake_storage.profiles.put.side_effect = OSError("disk full")
        service = ProfileService(fake_storage)  # type: ignore[arg-type]

        with pytest.raises(PersistError) as exc_info:
            await service.update("u1", {"bio": "x"}, ImageUpload(make_image()))

        assert exc_info.value.message == "Failed to update profile"
        deleted = [call.args[0] for call in fake_storage.images.delete.await_args_list]
        assert "old.jpg" not in deleted
        assert len(deleted) == 1

    @pytest.mark.asyncio
    async def test_delete_succeeds_when_image_cleanup_fails(self, fake_storage: FakeStorage):
        fake_storage.profiles.get.return_value = Profile(
            uuid="u1", image_filename="old.jpg", tags=["a"], **BASE
        )
        fake_storage.images.delete.side_effect = OSError("busy")
        fake_storage.tags.get.return_value = {"u1": {"uuid": "u1"}}
        service = ProfileService(fake_storage)  # type: ignore[arg-type]

        await service.delete("u1")

        fake_storage.profiles.delete.assert_awaited_once_with("u1")
        fake_storage.tags.put.assert_awaited_once_with("a", {})

    @pytest.mark.asyncio
    async def test_record_delete_failure_raises(self, fake_storage: FakeStorage):
        fake_storage.profiles.get.return_value = Profile(uuid="u1", image_filename="old.jpg", **BASE)
        fake_storage.profiles.delete.side_effect = OSError("read-only")
        service = ProfileService(fake_storage)  # type: ignore[arg-type]

        with pytest.raises(PersistError) as exc_info:
            await service.delete("u1")

        assert exc_info.value.message == "Failed to delete profile"
        fake_storage.images.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_tag_index_failure_does_not_fail_create(self, fake_storage: FakeStorage):
        fake_storage.tags.put.side_effect = OSError("disk full")
        service = ProfileService(fake_storage)  # type: ignore[arg-type]

        profile = await service.create("u1", {**BASE, "tags": ["a"]})

        assert profile.tags == ["a"]


class TestLongNames:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("tag", ["t" * 300, "日本語" * 30])
    async def test_long_tag_is_indexed_and_listed(self, service: ProfileService, tag: str):
        await service.create("u1", {**BASE, "tags": [tag, "short"]})

        by_tag = await service.list_profiles([tag])

        assert [record["uuid"] for record in by_tag] == ["u1"]

    @pytest.mark.asyncio
    async def test_long_tag_survives_update_delete_and_rebuild(self, service: ProfileService):
        tag = "日本語" * 30
        await service.create("u1", {**BASE, "tags": [tag]})
        await service.create("u2", {**BASE, "tags": [tag]})
        await service.update("u1", {"tags": []})

        assert [r["uuid"] for r in await service.list_profiles([tag])] == ["u2"]

        assert await service.rebuild_tag_index() == 1
        assert [r["uuid"] for r in await service.list_profiles([tag])] == ["u2"]

        await service.delete("u2")
        assert await service.list_profiles([tag]) == []

    @pytest.mark.asyncio
    async def test_unknown_long_tag_is_empty(self, service: ProfileService):
        assert await service.list_profiles(["x" * 300]) == []

    @pytest.mark.asyncio
    async def test_long_identifier(self, service: ProfileService):
        uuid = "u" * 300

        with pytest.raises(ProfileNotFoundError):
            await service.get(uuid)

        created = await service.create(uuid, BASE)

        assert (await service.get(uuid)).uuid == created.uuid
