"""Core utilities and infrastructure."""

from .config import Settings, get_settings
from .validate import (
    ValidationError,
    ConvertRequest,
    validate_descriptor_size,
    validate_depth,
)
from .logging_config import configure_logging, get_logger, LogContext
from .json import extract_json, safe_json_dumps, JSONParseError
from .errors import (
    ConversionError,
    MalformedLayoutDescriptor,
    MalformedBlockDescriptor,
    UnmappedComponentType,
    UnresolvedReferenceError,
    OpaqueBlockEncountered,
    IdentifierCollision,
    ConversionTimeout,
    ArchiveError,
)
from .diagnostics import Diagnostic, DiagnosticCode, Diagnostics, Severity
from .deadline import Deadline
from .ids import IdentifierAllocator, to_kotlin_identifier


def create_container(settings: Settings | None = None, metrics=None):
    """Create dependency injection container (lazy import to avoid circular deps)."""
    from .container import create_container as _create_container

    return _create_container(settings, metrics)


__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Validation
    "ValidationError",
    "ConvertRequest",
    "validate_descriptor_size",
    "validate_depth",
    # Logging
    "configure_logging",
    "get_logger",
    "LogContext",
    # JSON
    "extract_json",
    "safe_json_dumps",
    "JSONParseError",
    # Errors
    "ConversionError",
    "MalformedLayoutDescriptor",
    "MalformedBlockDescriptor",
    "UnmappedComponentType",
    "UnresolvedReferenceError",
    "OpaqueBlockEncountered",
    "IdentifierCollision",
    "ConversionTimeout",
    "ArchiveError",
    # Diagnostics
    "Diagnostic",
    "DiagnosticCode",
    "Diagnostics",
    "Severity",
    # Runs
    "Deadline",
    "IdentifierAllocator",
    "to_kotlin_identifier",
    # DI
    "create_container",
]
