"""Input validation with strong typing."""

import base64
import binascii
import re
from typing import Any

from pydantic import BaseModel, Field, field_validator, ConfigDict


# Validation limits
MAX_PROJECT_NAME_LENGTH = 64
MAX_ENCODED_UPLOAD = 72 * 1024 * 1024  # base64 of a 50MB archive, with slack

_PROJECT_NAME = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")


class ValidationError(Exception):
    """Validation failed."""

    pass


class RequestValidator(BaseModel):
    """Base validator with strict configuration."""

    model_config = ConfigDict(
        strict=True,
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )


class ConvertRequest(RequestValidator):
    """Validated conversion upload: a base64 encoded .aia and a project name."""

    file: str = Field(min_length=1, max_length=MAX_ENCODED_UPLOAD)
    project_name: str = Field(
        default="ConvertedApp", alias="projectName", max_length=MAX_PROJECT_NAME_LENGTH
    )

    @field_validator("project_name")
    @classmethod
    def validate_project_name(cls, v: str) -> str:
        """Project names become directory and package segments."""
        stripped = v.strip()
        if not _PROJECT_NAME.match(stripped):
            raise ValueError(
                "projectName must start with a letter and contain only letters, digits or '_'"
            )
        return stripped

    def archive_bytes(self) -> bytes:
        """Decode the uploaded archive; a data-URL prefix and whitespace are tolerated."""
        payload = self.file
        if payload.startswith("data:") and "," in payload:
            payload = payload.split(",", 1)[1]
        try:
            return base64.b64decode("".join(payload.split()), validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValidationError(f"file is not valid base64: {e}") from e


def validate_descriptor_size(data: str, max_size: int, name: str = "descriptor") -> None:
    """
    Validate descriptor size before parsing.

    Args:
        data: Descriptor text
        max_size: Maximum allowed size in bytes (UTF-8 encoded)
        name: Name for error messages

    Raises:
        ValidationError: If size exceeds limit
    """
    size = len(data.encode("utf-8"))
    if size > max_size:
        raise ValidationError(f"{name} size {size} bytes exceeds maximum {max_size} bytes")


def validate_depth(obj: Any, max_depth: int, current_depth: int = 0) -> None:
    """
    Validate nesting depth of a decoded descriptor.

    Raises:
        ValidationError: If depth exceeds limit
    """
    if current_depth > max_depth:
        raise ValidationError(f"nesting depth {current_depth} exceeds maximum {max_depth}")

    if isinstance(obj, dict):
        for value in obj.values():
            validate_depth(value, max_depth, current_depth + 1)
    elif isinstance(obj, list):
        for item in obj:
            validate_depth(item, max_depth, current_depth + 1)
