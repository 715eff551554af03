"""Structured diagnostics for recoverable conversion defects."""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Iterator

from .logging_config import get_logger

logger = get_logger(__name__)


class DiagnosticCode(str, Enum):
    """Recoverable defect categories."""

    UNMAPPED_COMPONENT_TYPE = "unmapped_component_type"
    MALFORMED_COMPONENT = "malformed_component"
    INVALID_PROPERTY = "invalid_property"
    UNRESOLVED_REFERENCE = "unresolved_reference"
    OPAQUE_BLOCK = "opaque_block"
    MISSING_VALUE = "missing_value"
    UNSUPPORTED_EVENT = "unsupported_event"
    UNMAPPED_MEMBER = "unmapped_member"
    ORPHAN_BLOCK = "orphan_block"
    DISABLED_BLOCK = "disabled_block"
    DUPLICATE_DECLARATION = "duplicate_declaration"
    REPAIRED_DESCRIPTOR = "repaired_descriptor"


class Severity(str, Enum):
    """Diagnostic severity."""

    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Diagnostic:
    """One skip/placeholder event, reported alongside the artifacts."""

    code: DiagnosticCode
    message: str
    subject: str | None = None
    severity: Severity = Severity.WARNING

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["code"] = self.code.value
        data["severity"] = self.severity.value
        return data


class Diagnostics:
    """Ordered diagnostic collector for one conversion stage."""

    def __init__(self, screen: str | None = None) -> None:
        self.screen = screen
        self._items: list[Diagnostic] = []

    def report(
        self,
        code: DiagnosticCode,
        message: str,
        subject: str | None = None,
        severity: Severity = Severity.WARNING,
    ) -> Diagnostic:
        """Record a diagnostic and log it."""
        diagnostic = Diagnostic(code=code, message=message, subject=subject, severity=severity)
        self._items.append(diagnostic)
        logger.warning(code.value, message=message, subject=subject, screen=self.screen)
        return diagnostic

    def extend(self, other: "Diagnostics") -> None:
        self._items.extend(other)

    def count(self, code: DiagnosticCode) -> int:
        return sum(1 for d in self._items if d.code is code)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)
