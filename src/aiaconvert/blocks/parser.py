"""Block Parser - Blockly XML (.bky) to a BlockProgram."""

from typing import Any
from xml.etree import ElementTree as ET

from ..core import (
    Deadline,
    DiagnosticCode,
    Diagnostics,
    MalformedBlockDescriptor,
    ValidationError,
    get_logger,
    validate_descriptor_size,
)
from .models import (
    BLOCK_KINDS,
    EVENT_BLOCK,
    GLOBAL_DECLARATION,
    PROCEDURE_BLOCKS,
    BlockKind,
    BlockNode,
    BlockProgram,
    EventHandlerRoot,
    GlobalDeclaration,
    ProcedureDefinition,
)

logger = get_logger(__name__)


def _local(tag: str) -> str:
    """Strip an XML namespace: '{http://www.w3.org/1999/xhtml}block' -> 'block'."""
    return tag.rsplit("}", 1)[-1]


def _children(elem: ET.Element, tag: str) -> list[ET.Element]:
    return [child for child in elem if _local(child.tag) == tag]


def _first_block(elem: ET.Element) -> ET.Element | None:
    """The block inside a value/statement/next element; a shadow block counts if alone."""
    blocks = _children(elem, "block")
    if blocks:
        return blocks[0]
    shadows = _children(elem, "shadow")
    return shadows[0] if shadows else None


def _is_disabled(elem: ET.Element) -> bool:
    return elem.get("disabled", "").lower() == "true"


class BlockParser:
    """Parses one screen's block descriptor into handler roots, globals and procedures."""

    def __init__(
        self,
        max_size: int = 4 * 1024 * 1024,
        max_depth: int = 64,
        deadline: Deadline | None = None,
        screen: str | None = None,
    ) -> None:
        self.max_size = max_size
        self.max_depth = max_depth
        self.deadline = deadline or Deadline.unlimited()
        self.screen = screen
        self.diagnostics = Diagnostics(screen)

    def parse(self, bky_content: str) -> BlockProgram:
        """
        Parse a .bky descriptor.

        An empty descriptor is a screen without blocks.

        Raises:
            MalformedBlockDescriptor: If the text is not well-formed block XML
        """
        self.diagnostics = Diagnostics(self.screen)
        if not bky_content.strip():
            return BlockProgram(diagnostics=self.diagnostics)

        try:
            validate_descriptor_size(bky_content, self.max_size, "block descriptor")
            root = ET.fromstring(bky_content)
        except ValidationError as e:
            raise MalformedBlockDescriptor(str(e)) from e
        except ET.ParseError as e:
            logger.error("block_descriptor_invalid", error=str(e))
            raise MalformedBlockDescriptor(f"Block descriptor is not well-formed XML: {e}") from e

        if _local(root.tag) != "xml":
            raise MalformedBlockDescriptor(f"Expected <xml> root, found <{_local(root.tag)}>")

        handlers: list[EventHandlerRoot] = []
        globals_: list[GlobalDeclaration] = []
        procedures: list[ProcedureDefinition] = []

        for elem in _children(root, "block"):
            block_type = elem.get("type", "")
            if _is_disabled(elem):
                self.diagnostics.report(
                    DiagnosticCode.DISABLED_BLOCK,
                    "Disabled top-level block skipped",
                    subject=block_type,
                )
                continue

            if block_type == EVENT_BLOCK:
                handler = self._parse_event(elem)
                if handler is not None:
                    handlers.append(handler)
            elif block_type == GLOBAL_DECLARATION:
                globals_.append(self._parse_global(elem))
            elif block_type in PROCEDURE_BLOCKS:
                procedures.append(self._parse_procedure(elem))
            else:
                self.diagnostics.report(
                    DiagnosticCode.ORPHAN_BLOCK,
                    "Top-level block outside any event handler ignored",
                    subject=block_type,
                )

        logger.info(
            "blocks_parsed",
            handlers=len(handlers),
            globals=len(globals_),
            procedures=len(procedures),
        )
        return BlockProgram(
            handlers=tuple(handlers),
            globals=tuple(globals_),
            procedures=tuple(procedures),
            diagnostics=self.diagnostics,
        )

    def _parse_event(self, elem: ET.Element) -> EventHandlerRoot | None:
        mutation = self._mutation(elem)
        fields = self._fields(elem)
        component = mutation.get("instance_name") or fields.get("COMPONENT_SELECTOR", "")
        event = mutation.get("event_name", "")

        if mutation.get("is_generic", "false").lower() == "true":
            self.diagnostics.report(
                DiagnosticCode.UNSUPPORTED_EVENT,
                f"Generic 'any {mutation.get('component_type', '')}' event handlers are not supported",
                subject=event or None,
            )
            return None
        if not event:
            self.diagnostics.report(
                DiagnosticCode.UNSUPPORTED_EVENT,
                "Event block without an event name ignored",
                subject=component or None,
            )
            return None

        return EventHandlerRoot(
            component=component,
            component_type=mutation.get("component_type", ""),
            event=event,
            body=self._statement_slot(elem, "DO", depth=1),
            block_id=elem.get("id"),
        )

    def _parse_global(self, elem: ET.Element) -> GlobalDeclaration:
        return GlobalDeclaration(
            name=self._fields(elem).get("NAME", ""),
            value=self._value_slot(elem, "VALUE", depth=1),
        )

    def _parse_procedure(self, elem: ET.Element) -> ProcedureDefinition:
        mutation_elem = self._mutation_element(elem)
        returns_value = elem.get("type") == "procedures_defreturn"
        return ProcedureDefinition(
            name=self._fields(elem).get("NAME", ""),
            params=self._arg_names(mutation_elem),
            body=self._statement_slot(elem, "STACK", depth=1),
            result=self._value_slot(elem, "RETURN", depth=1) if returns_value else None,
            returns_value=returns_value,
        )

    def _parse_block(self, elem: ET.Element, depth: int) -> BlockNode:
        """Classify one block and parse its slots recursively."""
        self.deadline.check("block parsing")
        if depth > self.max_depth:
            raise MalformedBlockDescriptor(f"Block nesting exceeds maximum depth {self.max_depth}")

        block_type = elem.get("type", "")
        mutation_elem = self._mutation_element(elem)
        mutation = dict(mutation_elem.attrib) if mutation_elem is not None else {}

        kind = BLOCK_KINDS.get(block_type, BlockKind.OPAQUE)
        if kind is BlockKind.PROPERTY_GET and mutation.get("set_or_get") == "set":
            kind = BlockKind.PROPERTY_SET

        values: dict[str, BlockNode | None] = {}
        statements: dict[str, tuple[BlockNode, ...]] = {}
        for child in elem:
            tag = _local(child.tag)
            name = child.get("name", "")
            if tag == "value":
                values[name] = self._slot_block(child, depth + 1)
            elif tag == "statement":
                statements[name] = self._sequence(_first_block(child), depth + 1)

        return BlockNode(
            kind=kind,
            block_type=block_type,
            fields=self._fields(elem),
            values=values,
            statements=statements,
            mutation=mutation,
            arg_names=self._arg_names(mutation_elem),
            block_id=elem.get("id"),
        )

    def _sequence(self, first: ET.Element | None, depth: int) -> tuple[BlockNode, ...]:
        """Flatten a <next> chain into an ordered tuple."""
        nodes: list[BlockNode] = []
        current = first
        while current is not None:
            if _is_disabled(current):
                self.diagnostics.report(
                    DiagnosticCode.DISABLED_BLOCK,
                    "Disabled block skipped",
                    subject=current.get("type", ""),
                )
            else:
                nodes.append(self._parse_block(current, depth))
            next_elems = _children(current, "next")
            current = _first_block(next_elems[0]) if next_elems else None
        return tuple(nodes)

    def _slot_block(self, slot: ET.Element, depth: int) -> BlockNode | None:
        block = _first_block(slot)
        if block is None:
            return None
        return self._parse_block(block, depth)

    def _value_slot(self, elem: ET.Element, name: str, depth: int) -> BlockNode | None:
        for slot in _children(elem, "value"):
            if slot.get("name") == name:
                return self._slot_block(slot, depth)
        return None

    def _statement_slot(self, elem: ET.Element, name: str, depth: int) -> tuple[BlockNode, ...]:
        for slot in _children(elem, "statement"):
            if slot.get("name") == name:
                return self._sequence(_first_block(slot), depth)
        return ()

    @staticmethod
    def _fields(elem: ET.Element) -> dict[str, str]:
        return {f.get("name", ""): (f.text or "") for f in _children(elem, "field")}

    @staticmethod
    def _mutation_element(elem: ET.Element) -> ET.Element | None:
        mutations = _children(elem, "mutation")
        return mutations[0] if mutations else None

    def _mutation(self, elem: ET.Element) -> dict[str, str]:
        mutation_elem = self._mutation_element(elem)
        return dict(mutation_elem.attrib) if mutation_elem is not None else {}

    @staticmethod
    def _arg_names(mutation_elem: ET.Element | None) -> tuple[str, ...]:
        """Names declared by <arg name=..>/<localname name=..> mutation children."""
        if mutation_elem is None:
            return ()
        return tuple(child.get("name", "") for child in mutation_elem if child.get("name") is not None)


def parse_blocks(bky_content: str, **kwargs: Any) -> BlockProgram:
    """Parse a .bky descriptor with a one-off BlockParser."""
    return BlockParser(**kwargs).parse(bky_content)
