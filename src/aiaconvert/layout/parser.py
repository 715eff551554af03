"""Layout Parser - App Inventor .scm descriptor to ComponentNode tree."""

from typing import Any

from ..core import (
    Deadline,
    DiagnosticCode,
    Diagnostics,
    JSONParseError,
    MalformedLayoutDescriptor,
    ValidationError,
    extract_json,
    get_logger,
    validate_depth,
    validate_descriptor_size,
)
from .models import ComponentNode, LayoutParseResult

logger = get_logger(__name__)

# Component keys that describe the tree rather than a property value
STRUCTURAL_KEYS = frozenset({"$Name", "$Type", "$Components", "$Version", "Uuid"})


class LayoutParser:
    """Parses one screen's .scm descriptor into a ComponentNode tree."""

    def __init__(
        self,
        max_size: int = 4 * 1024 * 1024,
        max_depth: int = 64,
        deadline: Deadline | None = None,
        screen: str | None = None,
        repair: bool = False,
    ) -> None:
        self.max_size = max_size
        self.max_depth = max_depth
        self.deadline = deadline or Deadline.unlimited()
        self.screen = screen
        self.repair = repair
        self.diagnostics = Diagnostics(screen)

    def parse(self, scm_content: str) -> LayoutParseResult:
        """
        Parse a .scm descriptor.

        Args:
            scm_content: ``#|\\n$JSON\\n{...}\\n|#`` text (bare JSON accepted)

        Returns:
            Root ComponentNode (the Form) and the diagnostics gathered

        Raises:
            MalformedLayoutDescriptor: If the framing, JSON or Form structure is invalid
        """
        self.diagnostics = Diagnostics(self.screen)

        try:
            validate_descriptor_size(scm_content, self.max_size, "layout descriptor")
            document = extract_json(scm_content, repair=self.repair, on_repair=self._report_repair)
            # each component level nests an object inside a list
            validate_depth(document, self.max_depth * 2 + 4)
        except (ValidationError, JSONParseError) as e:
            logger.error("layout_descriptor_invalid", error=str(e))
            raise MalformedLayoutDescriptor(str(e)) from e

        form = document.get("Properties")
        if not isinstance(form, dict):
            logger.error("missing_form_properties")
            raise MalformedLayoutDescriptor("Layout descriptor has no 'Properties' object")
        if not isinstance(form.get("$Type"), str) or not form["$Type"]:
            raise MalformedLayoutDescriptor("Root component has no $Type")

        root = self._parse_component(form)
        if root is None:
            raise MalformedLayoutDescriptor("Root component could not be parsed")

        logger.info(
            "layout_parsed",
            components=sum(1 for _ in root.walk()),
            diagnostics=len(self.diagnostics),
        )
        return LayoutParseResult(root=root, diagnostics=self.diagnostics)

    def _report_repair(self, error: str) -> None:
        self.diagnostics.report(
            DiagnosticCode.REPAIRED_DESCRIPTOR,
            f"Layout descriptor is not valid JSON ({error}); parsed a repaired copy",
            subject=self.screen,
        )

    def _parse_component(self, entry: dict[str, Any]) -> ComponentNode | None:
        """Parse one component object; None (with a diagnostic) if it is unusable."""
        self.deadline.check("layout parsing")

        comp_type = entry.get("$Type")
        name = entry.get("$Name")
        if not isinstance(comp_type, str) or not comp_type:
            self.diagnostics.report(
                DiagnosticCode.MALFORMED_COMPONENT,
                "Component without $Type skipped",
                subject=name if isinstance(name, str) else None,
            )
            return None

        if not isinstance(name, str) or not name:
            self.diagnostics.report(
                DiagnosticCode.MALFORMED_COMPONENT,
                f"{comp_type} component has no $Name; blocks cannot refer to it",
                subject=comp_type,
            )
            name = ""

        properties, invalid = self._split_properties(entry)
        if invalid:
            self.diagnostics.report(
                DiagnosticCode.INVALID_PROPERTY,
                f"Dropped non-scalar properties {', '.join(invalid)}",
                subject=name or comp_type,
            )

        return ComponentNode(
            type=comp_type,
            name=name,
            properties=properties,
            children=tuple(self._parse_children(entry, name or comp_type)),
        )

    def _parse_children(self, entry: dict[str, Any], owner: str) -> list[ComponentNode]:
        raw = entry.get("$Components")
        if raw is None:
            return []
        if not isinstance(raw, list):
            self.diagnostics.report(
                DiagnosticCode.MALFORMED_COMPONENT,
                "$Components is not a list; children dropped",
                subject=owner,
            )
            return []

        children = []
        for child in raw:
            if not isinstance(child, dict):
                self.diagnostics.report(
                    DiagnosticCode.MALFORMED_COMPONENT,
                    f"Child entry of type {type(child).__name__} skipped",
                    subject=owner,
                )
                continue
            node = self._parse_component(child)
            if node is not None:
                children.append(node)
        return children

    @staticmethod
    def _split_properties(entry: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
        """Scalar properties, plus the names of values that are not scalars."""
        properties: dict[str, Any] = {}
        invalid: list[str] = []
        for key, value in entry.items():
            if key in STRUCTURAL_KEYS or key.startswith("$"):
                continue
            if isinstance(value, (str, int, float, bool)):
                properties[key] = value
            else:
                invalid.append(key)
        return properties, invalid


def parse_layout(scm_content: str, **kwargs: Any) -> LayoutParseResult:
    """Parse a .scm descriptor with a one-off LayoutParser."""
    return LayoutParser(**kwargs).parse(scm_content)
