"""Profile domain entity."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Union

FieldValue = Union[str, int, float, bool, None, list["FieldValue"], dict[str, "FieldValue"]]
ProfileFields = dict[str, FieldValue]

# Keys owned by the store; callers cannot set them through profile data.
SYSTEM_KEYS = frozenset({"uuid", "image", "imageFilename", "createdAt", "updatedAt"})

_CORE_KEYS = frozenset({"uuid", "name", "email", "imageFilename", "tags", "createdAt", "updatedAt"})


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def user_data(record: dict[str, Any]) -> ProfileFields:
    """Return a copy of ``record`` without the store-owned keys."""
    return {key: value for key, value in record.items() if key not in SYSTEM_KEYS}


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


@dataclass
class Profile:
    """Domain entity for a user profile.

    ``fields`` holds every caller-defined key beyond the core attributes.
    The wire/storage form is the flat camelCase record produced by
    :meth:`to_record`.
    """

    uuid: str
    name: str
    email: str
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    image_filename: Optional[str] = None
    tags: Optional[list[str]] = None
    fields: ProfileFields = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Ensure updated_at is always at least as recent as created_at."""
        if self.updated_at < self.created_at:
            self.updated_at = self.created_at

    @property
    def tag_set(self) -> list[str]:
        """Tags in first-seen order with duplicates removed."""
        return list(dict.fromkeys(self.tags or []))

    def user_data(self) -> ProfileFields:
        """Caller-owned view of the profile, as submitted in profile data."""
        data: ProfileFields = {"name": self.name, "email": self.email}
        if self.tags is not None:
            data["tags"] = list(self.tags)
        data.update(self.fields)
        return data

    def to_record(self) -> ProfileFields:
        """Serialize to the flat record stored on disk and returned to callers."""
        record: ProfileFields = dict(self.fields)
        record.update(
            {
                "uuid": self.uuid,
                "name": self.name,
                "email": self.email,
                "imageFilename": self.image_filename,
                "createdAt": _format_timestamp(self.created_at),
                "updatedAt": _format_timestamp(self.updated_at),
            }
        )
        if self.tags is not None:
            record["tags"] = list(self.tags)
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Profile":
        """Build a profile from a stored record."""
        tags = record.get("tags")
        return cls(
            uuid=str(record["uuid"]),
            name=record["name"],
            email=record["email"],
            created_at=_parse_timestamp(record["createdAt"]),
            updated_at=_parse_timestamp(record["updatedAt"]),
            image_filename=record.get("imageFilename"),
            tags=list(tags) if tags is not None else None,
            fields={key: value for key, value in record.items() if key not in _CORE_KEYS},
        )

    @classmethod
    def from_user_data(
        cls,
        uuid: str,
        data: ProfileFields,
        created_at: datetime,
        updated_at: datetime,
        image_filename: Optional[str] = None,
    ) -> "Profile":
        """Build a profile from validated caller data plus store-owned values."""
        tags = data.get("tags")
        return cls(
            uuid=uuid,
            name=str(data["name"]),
            email=str(data["email"]),
            created_at=created_at,
            updated_at=updated_at,
            image_filename=image_filename,
            tags=[str(tag) for tag in tags] if isinstance(tags, list) else None,
            fields={key: value for key, value in data.items() if key not in _CORE_KEYS},
        )


@dataclass(frozen=True, slots=True)
class ImageUpload:
    """Raw image bytes received from a caller."""

    data: bytes
    filename: Optional[str] = None


@dataclass(frozen=True, slots=True)
class NormalizedImage:
    """Image re-encoded into the canonical storage format."""

    filename: str
    data: bytes
    width: int
    height: int


@dataclass(frozen=True, slots=True)
class StoredImage:
    """Image bytes read back from storage."""

    filename: str
    data: bytes
    content_type: str = "image/jpeg"
