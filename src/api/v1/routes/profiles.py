"""Profile API routes."""

from typing import Any

import orjson
from fastapi import APIRouter, Depends, File, Form, Query, Request, Response, UploadFile, status

from api.dependencies.auth import CurrentUser, ProfileOwner, RequestTimestamp
from api.v1.dependencies import get_profile_service
from api.v1.schemas.profile import (
    ProfileDeletedResponse,
    ProfileDetailResponse,
    ProfileErrorResponse,
    ProfileListResponse,
    ProfileResponse,
)
from core.config import Settings, get_settings
from core.exceptions import (
    ImageTooLargeError,
    InvalidProfileDataError,
    UnsupportedImageTypeError,
    UUIDMismatchError,
)
from core.rate_limit import READ_LIMIT, WRITE_LIMIT, limiter
from domain.entities.profile import ImageUpload, Profile
from domain.services.profile_service import ProfileService

router = APIRouter(prefix="/user/{uuid}/profile", tags=["profiles"])

IMAGE_CACHE_CONTROL = "public, max-age=31536000"

_ERRORS: dict[int | str, dict[str, Any]] = {
    400: {"model": ProfileErrorResponse, "description": "Invalid request or profile data"},
    401: {"model": ProfileErrorResponse, "description": "Missing or invalid token"},
    403: {"model": ProfileErrorResponse, "description": "Token does not match the profile"},
}


def _to_response(profile: Profile) -> ProfileDetailResponse:
    return ProfileDetailResponse(data=ProfileResponse.model_validate(profile.to_record()))


def _parse_profile_data(raw: str, uuid: str) -> dict[str, Any]:
    """Decode the ``profileData`` form field into a JSON object."""
    try:
        data = orjson.loads(raw or "{}")
    except orjson.JSONDecodeError as exc:
        raise InvalidProfileDataError("profileData must be valid JSON") from exc
    if not isinstance(data, dict):
        raise InvalidProfileDataError()

    body_uuid = data.get("uuid")
    if body_uuid is not None and str(body_uuid) != uuid:
        raise UUIDMismatchError(uuid, str(body_uuid))
    return data


async def _read_upload(image: UploadFile | None, settings: Settings) -> ImageUpload | None:
    """Enforce the upload type and size limits and read the bytes."""
    if image is None:
        return None

    content_type = (image.content_type or "").lower()
    if content_type not in settings.allowed_image_types_list:
        raise UnsupportedImageTypeError(image.content_type, settings.allowed_image_types_list)

    data = await image.read(settings.max_image_size + 1)
    if len(data) > settings.max_image_size:
        raise ImageTooLargeError(settings.max_image_size)
    if not data:
        return None

    return ImageUpload(data=data, filename=image.filename)


@router.post(
    "",
    response_model=ProfileDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a profile",
    responses={
        **_ERRORS,
        201: {"description": "Profile created successfully"},
        409: {"model": ProfileErrorResponse, "description": "Profile already exists"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def create_profile(
    request: Request,
    uuid: str,
    user: ProfileOwner,
    timestamp: RequestTimestamp,
    profile_data: str = Form("{}", alias="profileData"),
    image: UploadFile | None = File(None),
    settings: Settings = Depends(get_settings),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileDetailResponse:
    """Create a profile from a ``profileData`` JSON field and an optional image."""
    data = _parse_profile_data(profile_data, uuid)
    upload = await _read_upload(image, settings)
    profile = await service.create(uuid, data, upload)
    return _to_response(profile)


@router.put(
    "",
    response_model=ProfileDetailResponse,
    summary="Update a profile",
    responses={
        **_ERRORS,
        200: {"description": "Profile updated successfully"},
        404: {"model": ProfileErrorResponse, "description": "Profile not found"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def update_profile(
    request: Request,
    uuid: str,
    user: ProfileOwner,
    timestamp: RequestTimestamp,
    profile_data: str = Form("{}", alias="profileData"),
    image: UploadFile | None = File(None),
    settings: Settings = Depends(get_settings),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileDetailResponse:
    """Merge submitted fields into the profile; keys not sent are kept."""
    data = _parse_profile_data(profile_data, uuid)
    upload = await _read_upload(image, settings)
    profile = await service.update(uuid, data, upload)
    return _to_response(profile)


@router.get(
    "",
    response_model=ProfileDetailResponse,
    summary="Get a profile",
    responses={
        **_ERRORS,
        404: {"model": ProfileErrorResponse, "description": "Profile not found"},
    },
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def get_profile(
    request: Request,
    uuid: str,
    user: ProfileOwner,
    timestamp: RequestTimestamp,
    service: ProfileService = Depends(get_profile_service),
) -> ProfileDetailResponse:
    """Get the caller's profile."""
    profile = await service.get(uuid)
    return _to_response(profile)


@router.delete(
    "",
    response_model=ProfileDeletedResponse,
    summary="Delete a profile",
    responses={
        **_ERRORS,
        404: {"model": ProfileErrorResponse, "description": "Profile not found"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def delete_profile(
    request: Request,
    uuid: str,
    user: ProfileOwner,
    timestamp: RequestTimestamp,
    service: ProfileService = Depends(get_profile_service),
) -> ProfileDeletedResponse:
    """Delete the profile together with its image and tag entries."""
    await service.delete(uuid)
    return ProfileDeletedResponse()


@router.get(
    "/image",
    response_class=Response,
    summary="Get a profile image",
    responses={
        **_ERRORS,
        200: {"content": {"image/jpeg": {}}, "description": "Normalized JPEG image"},
        404: {"model": ProfileErrorResponse, "description": "Image not found"},
    },
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def get_profile_image(
    request: Request,
    uuid: str,
    user: ProfileOwner,
    timestamp: RequestTimestamp,
    service: ProfileService = Depends(get_profile_service),
) -> Response:
    """Return the stored image bytes."""
    stored = await service.get_image(uuid)
    return Response(
        content=stored.data,
        media_type=stored.content_type,
        headers={"Cache-Control": IMAGE_CACHE_CONTROL},
    )


# Profile listing
profiles_router = APIRouter(prefix="/profiles", tags=["profiles"])


@profiles_router.get(
    "",
    response_model=ProfileListResponse,
    summary="List profiles",
    responses={401: _ERRORS[401], 400: _ERRORS[400]},
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def list_profiles(
    request: Request,
    user: CurrentUser,
    timestamp: RequestTimestamp,
    tags: str | None = Query(None, description="Comma-separated tags to filter by"),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileListResponse:
    """List profiles carrying any of ``tags``, or every profile when omitted."""
    tag_list = [tag.strip() for tag in (tags or "").split(",") if tag.strip()]
    records = await service.list_profiles(tag_list or None)
    return ProfileListResponse(data=[ProfileResponse.model_validate(record) for record in records])
