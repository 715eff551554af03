"""Block program data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

from ..core import Diagnostics


class BlockKind(str, Enum):
    """Closed vocabulary of block kinds the compiler understands."""

    # control statements
    IF = "if"
    WHILE = "while"
    FOR_RANGE = "for_range"
    FOR_EACH = "for_each"
    BREAK = "break"
    # literals
    NUMBER = "number"
    TEXT = "text"
    BOOLEAN = "boolean"
    # operators
    ARITHMETIC = "arithmetic"
    NEGATE = "negate"
    COMPARE = "compare"
    LOGIC = "logic"
    NOT = "not"
    CHOOSE = "choose"
    TEXT_JOIN = "text_join"
    LIST_CREATE = "list_create"
    # components
    PROPERTY_GET = "property_get"
    PROPERTY_SET = "property_set"
    METHOD_CALL = "method_call"
    COMPONENT_REF = "component_ref"
    # variables and procedures
    VARIABLE_GET = "variable_get"
    VARIABLE_SET = "variable_set"
    LOCAL_DECLARATION = "local_declaration"
    PROCEDURE_CALL = "procedure_call"
    # anything outside the vocabulary, fields kept verbatim
    OPAQUE = "opaque"


# Declared Blockly block type -> kind. component_set_get is split on its mutation.
BLOCK_KINDS: dict[str, BlockKind] = {
    "controls_if": BlockKind.IF,
    "controls_while": BlockKind.WHILE,
    "controls_whileUntil": BlockKind.WHILE,
    "controls_forRange": BlockKind.FOR_RANGE,
    "controls_forEach": BlockKind.FOR_EACH,
    "controls_break": BlockKind.BREAK,
    "controls_choose": BlockKind.CHOOSE,
    "math_number": BlockKind.NUMBER,
    "text": BlockKind.TEXT,
    "logic_boolean": BlockKind.BOOLEAN,
    "logic_false": BlockKind.BOOLEAN,
    "math_add": BlockKind.ARITHMETIC,
    "math_subtract": BlockKind.ARITHMETIC,
    "math_multiply": BlockKind.ARITHMETIC,
    "math_division": BlockKind.ARITHMETIC,
    "math_power": BlockKind.ARITHMETIC,
    "math_neg": BlockKind.NEGATE,
    "math_compare": BlockKind.COMPARE,
    "logic_compare": BlockKind.COMPARE,
    "text_compare": BlockKind.COMPARE,
    "logic_operation": BlockKind.LOGIC,
    "logic_negate": BlockKind.NOT,
    "text_join": BlockKind.TEXT_JOIN,
    "lists_create_with": BlockKind.LIST_CREATE,
    "component_set_get": BlockKind.PROPERTY_GET,
    "component_method": BlockKind.METHOD_CALL,
    "component_component_block": BlockKind.COMPONENT_REF,
    "lexical_variable_get": BlockKind.VARIABLE_GET,
    "lexical_variable_set": BlockKind.VARIABLE_SET,
    "local_declaration_statement": BlockKind.LOCAL_DECLARATION,
    "procedures_callnoreturn": BlockKind.PROCEDURE_CALL,
    "procedures_callreturn": BlockKind.PROCEDURE_CALL,
}

# Top-level block types that are not handler roots
GLOBAL_DECLARATION = "global_declaration"
EVENT_BLOCK = "component_event"
PROCEDURE_BLOCKS = frozenset({"procedures_defnoreturn", "procedures_defreturn"})


@dataclass(frozen=True)
class BlockNode:
    """One node of the program graph.

    ``values`` maps value-slot names to a single expression (None when the
    slot is present but empty). ``statements`` maps statement-slot names to
    the ordered statement sequence, with Blockly's ``<next>`` chain flattened.
    """

    kind: BlockKind
    block_type: str
    fields: Mapping[str, str] = field(default_factory=dict)
    values: Mapping[str, "BlockNode | None"] = field(default_factory=dict)
    statements: Mapping[str, tuple["BlockNode", ...]] = field(default_factory=dict)
    mutation: Mapping[str, str] = field(default_factory=dict)
    arg_names: tuple[str, ...] = ()
    block_id: str | None = None

    def get_field(self, name: str, default: str = "") -> str:
        return self.fields.get(name, default)

    def value(self, name: str) -> "BlockNode | None":
        return self.values.get(name)

    def body(self, name: str) -> tuple["BlockNode", ...]:
        return self.statements.get(name, ())

    def item_count(self, default: int = 0) -> int:
        """Number of numbered inputs declared by the mutation (``items``)."""
        try:
            return int(self.mutation.get("items", default))
        except ValueError:
            return default


@dataclass(frozen=True)
class EventHandlerRoot:
    """A component event bound to a statement sequence."""

    component: str
    component_type: str
    event: str
    body: tuple[BlockNode, ...] = ()
    block_id: str | None = None


@dataclass(frozen=True)
class GlobalDeclaration:
    """``initialize global name to value``."""

    name: str
    value: BlockNode | None = None


@dataclass(frozen=True)
class ProcedureDefinition:
    """A user procedure; ``result`` is set for procedures that return a value."""

    name: str
    params: tuple[str, ...] = ()
    body: tuple[BlockNode, ...] = ()
    result: BlockNode | None = None
    returns_value: bool = False


@dataclass(frozen=True)
class BlockProgram:
    """Everything parsed from one screen's block descriptor, in source order."""

    handlers: tuple[EventHandlerRoot, ...] = ()
    globals: tuple[GlobalDeclaration, ...] = ()
    procedures: tuple[ProcedureDefinition, ...] = ()
    diagnostics: Diagnostics = field(default_factory=Diagnostics)
