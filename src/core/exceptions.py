"""Custom exceptions and error codes."""

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standardized error codes for the API."""

    # Authentication errors (401)
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TOKEN = "INVALID_TOKEN"

    # Authorization errors (403)
    FORBIDDEN = "FORBIDDEN"

    # Not found errors (404)
    PROFILE_NOT_FOUND = "PROFILE_NOT_FOUND"
    IMAGE_NOT_FOUND = "IMAGE_NOT_FOUND"

    # Validation errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_TIMESTAMP = "INVALID_TIMESTAMP"
    INVALID_PROFILE_DATA = "INVALID_PROFILE_DATA"
    UUID_MISMATCH = "UUID_MISMATCH"
    IMAGE_PROCESSING_FAILED = "IMAGE_PROCESSING_FAILED"
    IMAGE_TOO_LARGE = "IMAGE_TOO_LARGE"
    UNSUPPORTED_IMAGE_TYPE = "UNSUPPORTED_IMAGE_TYPE"

    # Conflict errors (409)
    PROFILE_ALREADY_EXISTS = "PROFILE_ALREADY_EXISTS"

    # Rate limiting (429)
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Server errors (500)
    PERSIST_FAILED = "PERSIST_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Any | None = None,
    ) -> None:
        self.error_code = error_code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class AuthenticationError(AppException):
    """Authentication failed."""

    def __init__(
        self,
        message: str = "Authentication required",
        error_code: ErrorCode = ErrorCode.UNAUTHORIZED,
    ) -> None:
        super().__init__(
            error_code=error_code,
            message=message,
            status_code=401,
        )


class AuthorizationError(AppException):
    """Authorization failed."""

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(
            error_code=ErrorCode.FORBIDDEN,
            message=message,
            status_code=403,
        )


class InvalidTimestampError(AppException):
    """Request timestamp is missing or outside the allowed window."""

    def __init__(
        self, message: str = "Request timestamp too old or too far in future"
    ) -> None:
        super().__init__(
            error_code=ErrorCode.INVALID_TIMESTAMP,
            message=message,
            status_code=400,
        )


class ProfileNotFoundError(AppException):
    """Profile not found."""

    def __init__(self, uuid: str) -> None:
        super().__init__(
            error_code=ErrorCode.PROFILE_NOT_FOUND,
            message="Profile not found",
            status_code=404,
            details={"uuid": uuid},
        )


class ImageNotFoundError(AppException):
    """Profile has no image, or its image file is missing."""

    def __init__(self, uuid: str, message: str = "Image not found") -> None:
        super().__init__(
            error_code=ErrorCode.IMAGE_NOT_FOUND,
            message=message,
            status_code=404,
            details={"uuid": uuid},
        )


class ProfileAlreadyExistsError(AppException):
    """A profile already exists for the identifier."""

    def __init__(self, uuid: str) -> None:
        super().__init__(
            error_code=ErrorCode.PROFILE_ALREADY_EXISTS,
            message="Profile already exists",
            status_code=409,
            details={"uuid": uuid},
        )


class ProfileValidationError(AppException):
    """One or more profile validation rules failed."""

    def __init__(self, violations: list[str]) -> None:
        self.violations = list(violations)
        super().__init__(
            error_code=ErrorCode.VALIDATION_ERROR,
            message="Validation failed",
            status_code=400,
            details=self.violations,
        )


class InvalidProfileDataError(AppException):
    """Submitted profile data is not a JSON object."""

    def __init__(self, message: str = "profileData must be a JSON object") -> None:
        super().__init__(
            error_code=ErrorCode.INVALID_PROFILE_DATA,
            message=message,
            status_code=400,
        )


class UUIDMismatchError(AppException):
    """Identifier in the body disagrees with the identifier in the path."""

    def __init__(self, path_uuid: str, body_uuid: str) -> None:
        super().__init__(
            error_code=ErrorCode.UUID_MISMATCH,
            message="UUID mismatch",
            status_code=400,
            details={"path_uuid": path_uuid, "body_uuid": body_uuid},
        )


class ImageProcessingError(AppException):
    """Uploaded image could not be decoded or re-encoded."""

    def __init__(self, message: str = "Failed to process image") -> None:
        super().__init__(
            error_code=ErrorCode.IMAGE_PROCESSING_FAILED,
            message=message,
            status_code=400,
        )


class ImageTooLargeError(AppException):
    """Uploaded image exceeds the byte cap."""

    def __init__(self, max_bytes: int) -> None:
        super().__init__(
            error_code=ErrorCode.IMAGE_TOO_LARGE,
            message="File too large",
            status_code=400,
            details={"max_bytes": max_bytes},
        )


class UnsupportedImageTypeError(AppException):
    """Uploaded image has a content type outside the allow-list."""

    def __init__(self, content_type: str | None, allowed: list[str]) -> None:
        super().__init__(
            error_code=ErrorCode.UNSUPPORTED_IMAGE_TYPE,
            message="Invalid file type. Only JPEG, JPG, PNG, and WebP are allowed.",
            status_code=400,
            details={"content_type": content_type, "allowed": allowed},
        )


class PersistError(AppException):
    """The durable write of a profile record failed."""

    def __init__(self, uuid: str, message: str = "Failed to save profile") -> None:
        super().__init__(
            error_code=ErrorCode.PERSIST_FAILED,
            message=message,
            status_code=500,
            details={"uuid": uuid},
        )
