"""Profile record validation rules."""

import re
from typing import Any

from core.config import ProfileLimits

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

# Keys that never count as additional fields.
NON_ADDITIONAL_KEYS = frozenset({"name", "email", "image", "imageFilename"})


class ProfileValidator:
    """Checks a profile record against presence, length, format and count limits.

    Violations are reported in a fixed order: name, email, field count,
    per-field length, tags. Callers reject the whole operation when the
    returned list is non-empty.
    """

    def __init__(self, limits: ProfileLimits | None = None) -> None:
        self._limits = limits or ProfileLimits()

    @property
    def limits(self) -> ProfileLimits:
        return self._limits

    def validate(self, record: dict[str, Any]) -> list[str]:
        """Return every violation found in ``record`` (empty when valid)."""
        errors: list[str] = []
        limits = self._limits

        name = record.get("name")
        if not name or not isinstance(name, str):
            errors.append("Name is required and must be a string")
        elif len(name) > limits.max_name_length:
            errors.append(f"Name must be less than {limits.max_name_length} characters")

        email = record.get("email")
        if not email or not isinstance(email, str):
            errors.append("Email is required and must be a string")
        elif len(email) > limits.max_email_length:
            errors.append(f"Email must be less than {limits.max_email_length} characters")

        if email and not EMAIL_PATTERN.fullmatch(str(email)):
            errors.append("Email must be in valid format")

        additional = [key for key in record if key not in NON_ADDITIONAL_KEYS]
        if len(additional) > limits.max_fields:
            errors.append(
                f"Too many additional fields. Maximum {limits.max_fields} allowed"
            )

        for key in additional:
            value = record[key]
            if isinstance(value, str) and len(value) > limits.max_field_length:
                errors.append(
                    f"Field '{key}' exceeds maximum length of "
                    f"{limits.max_field_length} characters"
                )

        if "tags" in record and not _is_tag_list(record["tags"]):
            errors.append("Tags must be a list of non-empty strings")

        return errors


def _is_tag_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(tag, str) and tag for tag in value)
