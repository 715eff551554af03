"""Validation tests."""

import base64

import pytest
from hypothesis import given, strategies as st
from pydantic import ValidationError as PydanticValidationError

from aiaconvert.core import (
    ConvertRequest,
    ValidationError,
    validate_depth,
    validate_descriptor_size,
)


def _encoded(data: bytes = b"PK\x03\x04archive") -> str:
    return base64.b64encode(data).decode("ascii")


@pytest.mark.unit
def test_convert_request_valid():
    """Valid conversion request."""
    req = ConvertRequest.model_validate({"file": _encoded(), "projectName": "MyApp"})
    assert req.project_name == "MyApp"
    assert req.archive_bytes() == b"PK\x03\x04archive"


@pytest.mark.unit
def test_convert_request_default_name():
    """projectName is optional."""
    req = ConvertRequest.model_validate({"file": _encoded()})
    assert req.project_name == "ConvertedApp"


@pytest.mark.unit
def test_convert_request_missing_file():
    """The file field is required."""
    with pytest.raises(PydanticValidationError) as exc_info:
        ConvertRequest.model_validate({"projectName": "MyApp"})
    assert exc_info.value.errors()[0]["loc"] == ("file",)


@pytest.mark.unit
@pytest.mark.parametrize("name", ["", "   ", "1App", "my app", "../evil", "a-b"])
def test_convert_request_bad_project_name(name):
    """Project names must be identifier-like."""
    with pytest.raises(PydanticValidationError):
        ConvertRequest.model_validate({"file": _encoded(), "projectName": name})


@pytest.mark.unit
def test_project_name_stripped():
    """Surrounding whitespace is dropped from project names."""
    req = ConvertRequest.model_validate({"file": _encoded(), "projectName": "  Demo  "})
    assert req.project_name == "Demo"


@pytest.mark.unit
def test_archive_bytes_tolerates_data_url_and_whitespace():
    """Data-URL prefixes and line breaks are ignored."""
    encoded = _encoded(b"hello world")
    payload = f"data:application/zip;base64,{encoded[:4]}\n{encoded[4:]}"
    req = ConvertRequest.model_validate({"file": payload})
    assert req.archive_bytes() == b"hello world"


@pytest.mark.unit
def test_archive_bytes_invalid_base64():
    """Non-base64 uploads raise ValidationError."""
    req = ConvertRequest.model_validate({"file": "not base64!!"})
    with pytest.raises(ValidationError):
        req.archive_bytes()


@pytest.mark.unit
def test_validate_descriptor_size():
    """Descriptor size validation counts UTF-8 bytes."""
    validate_descriptor_size("small", 100)

    with pytest.raises(ValidationError):
        validate_descriptor_size("x" * 101, 100)

    # two bytes per character once encoded
    with pytest.raises(ValidationError):
        validate_descriptor_size("é" * 60, 100)


@pytest.mark.unit
def test_validate_depth():
    """Nesting depth validation."""
    shallow = {"a": [{"b": 1}]}
    validate_depth(shallow, max_depth=5)

    deep: dict = {"level": 0}
    current = deep
    for i in range(25):
        current["nested"] = {"level": i + 1}
        current = current["nested"]

    with pytest.raises(ValidationError):
        validate_depth(deep, max_depth=20)


@pytest.mark.unit
@given(st.binary(min_size=1, max_size=512))
def test_archive_bytes_property(data):
    """Property test: any payload survives base64 transport."""
    req = ConvertRequest.model_validate({"file": _encoded(data), "projectName": "App"})
    assert req.archive_bytes() == data
