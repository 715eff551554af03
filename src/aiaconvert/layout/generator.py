"""Layout Generator - ComponentNode tree to Android layout XML."""

from xml.sax.saxutils import escape

from ..core import (
    Deadline,
    DiagnosticCode,
    Diagnostics,
    IdentifierAllocator,
    get_logger,
)
from ..mapping import MappingRule, MappingTable
from .models import ComponentNode, ComponentRef, LayoutResult

logger = get_logger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>'
ROOT_NAMESPACES = (
    ("xmlns:android", "http://schemas.android.com/apk/res/android"),
    ("xmlns:tools", "http://schemas.android.com/tools"),
)
INDENT = "    "

# Used when the table has no rule for the screen's own type
FALLBACK_ROOT_RULE = MappingRule(
    target_tag="LinearLayout",
    id_prefix="screen",
    default_properties={"Width": "-2", "Height": "-2", "Orientation": "vertical"},
    property_to_attribute={
        "Width": "android:layout_width",
        "Height": "android:layout_height",
        "Orientation": "android:orientation",
    },
    value_formats={"Width": "dimension", "Height": "dimension"},
)


def _quote(value: str) -> str:
    return escape(value, {'"': "&quot;", "\n": "&#10;", "\r": "&#13;", "\t": "&#9;"})


class LayoutGenerator:
    """Emits one layout document per screen and indexes the emitted components."""

    def __init__(
        self,
        table: MappingTable,
        allocator: IdentifierAllocator | None = None,
        deadline: Deadline | None = None,
        screen: str | None = None,
        activity: str = "MainActivity",
    ) -> None:
        self.table = table
        self.allocator = allocator or IdentifierAllocator()
        self.deadline = deadline or Deadline.unlimited()
        self.activity = activity
        self.diagnostics = Diagnostics(screen)
        self._components: dict[str, ComponentRef] = {}

    def generate(self, root: ComponentNode) -> LayoutResult:
        """
        Generate the layout document for a component tree.

        The root always produces the single document element; an unmapped root
        type falls back to a vertical LinearLayout.

        Returns:
            LayoutResult with the markup, component index and diagnostics
        """
        rule = self.table.get(root.type)
        if rule is None:
            self._unmapped(root)
            rule = FALLBACK_ROOT_RULE

        lines = [XML_DECLARATION]
        lines.extend(
            self._emit(
                root,
                rule,
                depth=0,
                extra=list(ROOT_NAMESPACES),
                trailing=[("tools:context", f".{self.activity}")],
            )
        )

        logger.info(
            "layout_generated",
            elements=len(self._components),
            diagnostics=len(self.diagnostics),
        )
        return LayoutResult(
            markup="\n".join(lines) + "\n",
            components=dict(self._components),
            diagnostics=self.diagnostics,
        )

    def _emit(
        self,
        node: ComponentNode,
        rule: MappingRule,
        depth: int,
        extra: list[tuple[str, str]] | None = None,
        trailing: list[tuple[str, str]] | None = None,
    ) -> list[str]:
        """Emit ``node`` (already known to be mapped) and its subtree."""
        self.deadline.check("layout generation")

        view_id = self.allocator.next_id(rule.id_prefix)
        self._index(node, view_id, rule)

        attributes = list(extra or [])
        attributes.append(("android:id", f"@+id/{view_id}"))
        attributes.extend(rule.attributes(rule.merged_properties(node.properties)))
        attributes.extend(trailing or [])

        pad = INDENT * depth
        attr_pad = INDENT * (depth + 1)
        lines = [f"{pad}<{rule.target_tag}"]
        lines.extend(f'{attr_pad}{name}="{_quote(value)}"' for name, value in attributes)

        children = self._emit_children(node, depth + 1)
        if children:
            lines[-1] += ">"
            lines.extend(children)
            lines.append(f"{pad}</{rule.target_tag}>")
        else:
            lines[-1] += " />"
        return lines

    def _emit_children(self, node: ComponentNode, depth: int) -> list[str]:
        lines: list[str] = []
        for child in node.children:
            rule = self.table.get(child.type)
            if rule is None:
                self._unmapped(child)
                # hoist the subtree so mapped descendants survive
                lines.extend(self._emit_children(child, depth))
                continue
            lines.extend(self._emit(child, rule, depth))
        return lines

    def _unmapped(self, node: ComponentNode) -> None:
        self.diagnostics.report(
            DiagnosticCode.UNMAPPED_COMPONENT_TYPE,
            f"No mapping rule for component type '{node.type}'",
            subject=node.name or node.type,
        )

    def _index(self, node: ComponentNode, view_id: str, rule: MappingRule) -> None:
        if not node.name:
            return
        if node.name in self._components:
            self.diagnostics.report(
                DiagnosticCode.DUPLICATE_DECLARATION,
                f"Duplicate component name '{node.name}'; blocks bind to the first",
                subject=node.name,
            )
            return
        self._components[node.name] = ComponentRef(
            name=node.name,
            component_type=node.type,
            view_id=view_id,
            rule=rule,
        )


def generate_layout(root: ComponentNode, table: MappingTable, **kwargs) -> LayoutResult:
    """Generate layout markup with a one-off LayoutGenerator."""
    return LayoutGenerator(table, **kwargs).generate(root)
