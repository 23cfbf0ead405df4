"""Pydantic schemas for Profile API."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProfileResponse(BaseModel):
    """Schema for a stored profile record.

    Caller-defined fields beyond the core attributes are passed through
    unchanged.
    """

    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "uuid": "2f1c5c1e-6a55-4c7c-9a0e-3c1f0d1f5b77",
                "name": "Ada Lovelace",
                "email": "ada@example.com",
                "imageFilename": "9b2d7c0e4f8a4b7e9a51d3c0e8f1a2b3.jpg",
                "tags": ["math", "engines"],
                "bio": "Analyst of engines",
                "createdAt": "2026-01-28T10:00:00.000000Z",
                "updatedAt": "2026-01-28T10:05:00.000000Z",
            }
        },
    )

    uuid: str
    name: str
    email: str
    image_filename: str | None = Field(None, alias="imageFilename")
    tags: list[str] | None = None
    created_at: str = Field(..., alias="createdAt")
    updated_at: str = Field(..., alias="updatedAt")


class ProfileDetailResponse(BaseModel):
    """Schema for single Profile."""

    data: ProfileResponse


class ProfileListResponse(BaseModel):
    """Schema for list of Profiles."""

    data: list[ProfileResponse]


class ProfileErrorResponse(BaseModel):
    """Error body returned for any failed profile operation."""

    error_code: str
    message: str
    details: Any | None = None


class ProfileDeletedResponse(BaseModel):
    """Confirmation body for a deleted profile."""

    message: str = "Profile deleted"
