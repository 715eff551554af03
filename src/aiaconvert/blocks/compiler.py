"""Block Compiler - BlockProgram to Kotlin activity source.

Expressions compile to strings, statements to lists of lines. A scope
(ChainMap of source variable name -> Kotlin identifier) is threaded down
through nested statement sequences; the innermost declaration wins.
"""

import re
from collections import ChainMap
from dataclasses import dataclass
from typing import Callable, Mapping

from ..core import (
    Deadline,
    DiagnosticCode,
    Diagnostics,
    IdentifierAllocator,
    OpaqueBlockEncountered,
    Severity,
    UnresolvedReferenceError,
    get_logger,
    to_kotlin_identifier,
)
from ..layout import ComponentRef
from ..mapping import MappingTable
from .models import (
    BlockKind,
    BlockNode,
    BlockProgram,
    EventHandlerRoot,
    GlobalDeclaration,
    ProcedureDefinition,
)

logger = get_logger(__name__)

Scope = ChainMap  # source variable name -> Kotlin identifier

INDENT = "    "
GLOBAL_PREFIX = "global "

ARITHMETIC_OPERATORS = {
    "math_add": "+",
    "math_subtract": "-",
    "math_multiply": "*",
}
COMPARE_OPERATORS = {
    "EQ": "==",
    "EQUAL": "==",
    "NEQ": "!=",
    "LT": "<",
    "LTE": "<=",
    "GT": ">",
    "GTE": ">=",
}
LOGIC_OPERATORS = {"AND": "&&", "OR": "||"}

_ARG_SLOT = re.compile(r"^ARG(\d+)$")


def kotlin_string(value: str) -> str:
    """Kotlin string literal for ``value``."""
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("$", "\\$")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


def kotlin_number(text: str) -> str | None:
    """Kotlin numeric literal for a math_number field, or None if it is not a number."""
    text = text.strip()
    try:
        return str(int(text))
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return repr(number)


def receiver(expression: str) -> str:
    """``expression`` made safe as the receiver of a member call (``-5`` becomes ``(-5)``)."""
    return f"({expression})" if expression.startswith("-") else expression


def indent(lines: list[str], levels: int = 1) -> list[str]:
    pad = INDENT * levels
    return [f"{pad}{line}" if line else line for line in lines]


@dataclass(frozen=True)
class CompiledScreen:
    """Generated activity source plus compiler diagnostics."""

    source: str
    diagnostics: Diagnostics


@dataclass(frozen=True)
class _Procedure:
    kotlin_name: str
    definition: ProcedureDefinition


class BlockCompiler:
    """Compiles one screen's block program into a Kotlin activity."""

    def __init__(
        self,
        components: Mapping[str, ComponentRef],
        package: str,
        activity: str = "MainActivity",
        layout_name: str = "activity_main",
        deadline: Deadline | None = None,
        screen: str | None = None,
        table: MappingTable | None = None,
    ) -> None:
        self.components = components
        self.table = table
        self.package = package
        self.activity = activity
        self.layout_name = layout_name
        self.deadline = deadline or Deadline.unlimited()
        self.diagnostics = Diagnostics(screen)

        # class-level Kotlin names (component fields, globals, procedures)
        self._names = IdentifierAllocator()
        self._names.claim(activity)
        self._component_fields: dict[str, str] = {}
        self._globals: dict[str, str] = {}
        self._procedures: dict[str, _Procedure] = {}

        self._statement_handlers: dict[BlockKind, Callable[[BlockNode, Scope], list[str]]] = {
            BlockKind.IF: self._compile_if,
            BlockKind.WHILE: self._compile_while,
            BlockKind.FOR_RANGE: self._compile_for_range,
            BlockKind.FOR_EACH: self._compile_for_each,
            BlockKind.BREAK: lambda node, scope: ["break"],
            BlockKind.PROPERTY_SET: self._compile_property_set,
            BlockKind.VARIABLE_SET: self._compile_variable_set,
            BlockKind.LOCAL_DECLARATION: self._compile_local_declaration,
            BlockKind.METHOD_CALL: lambda node, scope: [self._compile_method_call(node, scope)],
            BlockKind.PROCEDURE_CALL: lambda node, scope: [self._compile_procedure_call(node, scope)],
            BlockKind.OPAQUE: self._opaque_statement,
        }
        self._expression_handlers: dict[BlockKind, Callable[[BlockNode, Scope], str]] = {
            BlockKind.NUMBER: self._compile_number,
            BlockKind.TEXT: lambda node, scope: kotlin_string(node.get_field("TEXT")),
            BlockKind.BOOLEAN: self._compile_boolean,
            BlockKind.ARITHMETIC: self._compile_arithmetic,
            BlockKind.NEGATE: self._compile_negate,
            BlockKind.COMPARE: self._compile_compare,
            BlockKind.LOGIC: self._compile_logic,
            BlockKind.NOT: self._compile_not,
            BlockKind.CHOOSE: self._compile_choose,
            BlockKind.TEXT_JOIN: self._compile_text_join,
            BlockKind.LIST_CREATE: self._compile_list_create,
            BlockKind.PROPERTY_GET: self._compile_property_get,
            BlockKind.METHOD_CALL: self._compile_method_call,
            BlockKind.COMPONENT_REF: self._compile_component_ref,
            BlockKind.VARIABLE_GET: self._compile_variable_get,
            BlockKind.PROCEDURE_CALL: self._compile_procedure_call,
            BlockKind.OPAQUE: self._opaque_expression,
        }

    # ------------------------------------------------------------------
    # Screen
    # ------------------------------------------------------------------

    def compile(self, program: BlockProgram) -> CompiledScreen:
        """Compile globals, procedures and every event handler, in source order."""
        # declare every global and procedure first so references may precede definitions
        declared = [decl for decl in program.globals if self._declare_global(decl)]
        for definition in program.procedures:
            if definition.name in self._procedures:
                self._duplicate("Procedure", definition.name)
                continue
            kotlin_name = self._names.unique(to_kotlin_identifier(definition.name or "procedure"))
            self._procedures[definition.name] = _Procedure(kotlin_name, definition)

        global_lines = [self._compile_global(decl) for decl in declared]

        init_lines: list[str] = []
        listener_lines: list[str] = []
        for handler in program.handlers:
            inline, lines = self._compile_handler(handler)
            target = init_lines if inline else listener_lines
            if target:
                target.append("")
            target.extend(lines)

        procedure_lines: list[str] = []
        for procedure in self._procedures.values():
            procedure_lines.append("")
            procedure_lines.extend(self._compile_procedure(procedure))

        source = self._assemble(global_lines, init_lines, listener_lines, procedure_lines)
        logger.info(
            "blocks_compiled",
            handlers=len(program.handlers),
            components=len(self._component_fields),
            diagnostics=len(self.diagnostics),
        )
        return CompiledScreen(source=source, diagnostics=self.diagnostics)

    def _assemble(
        self,
        global_lines: list[str],
        init_lines: list[str],
        listener_lines: list[str],
        procedure_lines: list[str],
    ) -> str:
        imports = {"android.os.Bundle", "androidx.appcompat.app.AppCompatActivity"}
        fields: list[str] = []
        bindings: list[str] = []
        for name, field_name in self._component_fields.items():
            ref = self.components[name]
            imports.add(ref.rule.qualified_view_class)
            fields.append(f"private lateinit var {field_name}: {ref.rule.view_class_name}")
            bindings.append(f"{field_name} = findViewById(R.id.{ref.view_id})")

        body = [
            "super.onCreate(savedInstanceState)",
            f"setContentView(R.layout.{self.layout_name})",
        ]
        for section in (bindings, init_lines, listener_lines):
            if section:
                body.append("")
                body.extend(section)

        members: list[str] = []
        for section in (fields, global_lines):
            if section:
                members.extend(section)
                members.append("")
        members.append("override fun onCreate(savedInstanceState: Bundle?) {")
        members.extend(indent(body))
        members.append("}")
        members.extend(procedure_lines)

        lines = [f"package {self.package}", ""]
        lines.extend(f"import {name}" for name in sorted(imports))
        lines.append("")
        lines.append(f"class {self.activity} : AppCompatActivity() {{")
        lines.append("")
        lines.extend(indent(members))
        lines.append("}")
        return "\n".join(lines) + "\n"

    def _declare_global(self, decl: GlobalDeclaration) -> bool:
        if decl.name in self._globals:
            self._duplicate("Global variable", decl.name)
            return False
        self._globals[decl.name] = self._names.unique(to_kotlin_identifier(decl.name or "global"))
        return True

    def _duplicate(self, what: str, name: str) -> None:
        self.diagnostics.report(
            DiagnosticCode.DUPLICATE_DECLARATION,
            f"{what} '{name}' declared twice; first declaration wins",
            subject=name,
        )

    def _compile_global(self, decl: GlobalDeclaration) -> str:
        kotlin_name = self._globals[decl.name]
        if decl.value is None:
            return f"private var {kotlin_name}: Any? = null"
        value = self._expr(decl.value, Scope(), slot="VALUE", owner=f"global {decl.name}")
        return f"private var {kotlin_name} = {value}"

    def _compile_procedure(self, procedure: _Procedure) -> list[str]:
        self.deadline.check("block compilation")
        definition = procedure.definition
        scope = Scope({param: to_kotlin_identifier(param) for param in definition.params})
        params = ", ".join(f"{scope[p]}: Any?" for p in definition.params)

        body = self._compile_sequence(definition.body, scope)
        if definition.returns_value:
            result = self._expr(definition.result, scope, slot="RETURN", owner=definition.name)
            body.append(f"return {result}")
            header = f"private fun {procedure.kotlin_name}({params}): Any? {{"
        else:
            header = f"private fun {procedure.kotlin_name}({params}) {{"
        return [header, *indent(body), "}"]

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _compile_handler(self, handler: EventHandlerRoot) -> tuple[bool, list[str]]:
        """Return (inline in onCreate?, lines) for one handler root."""
        self.deadline.check("block compilation")
        ref = self.components.get(handler.component)
        if ref is not None:
            rule = ref.rule
        else:
            # event parameters still come from the declared type
            rule = self.table.get(handler.component_type) if self.table is not None else None
        binding = rule.events.get(handler.event) if rule is not None else None

        scope = Scope()
        field_name = None
        if binding is not None:
            scope = Scope({param: to_kotlin_identifier(param) for param in binding.params})
            if ref is not None and not binding.inline:
                field_name = self._component_field(handler.component)
        body = self._compile_sequence(handler.body, scope)

        label = f"{handler.component}.{handler.event}"
        if ref is None:
            self._unresolved(UnresolvedReferenceError("component", handler.component))
            return False, self._commented(f"unresolved component '{handler.component}': {label} not bound", body)

        if binding is None:
            self.diagnostics.report(
                DiagnosticCode.UNSUPPORTED_EVENT,
                f"No listener mapping for {ref.component_type}.{handler.event}",
                subject=label,
            )
            return False, self._commented(f"unsupported event {label}", body)

        if binding.inline:
            return True, [f"// {label}", *body]

        args = f" {', '.join(binding.lambda_args)} ->" if binding.lambda_args else ""
        if binding.result is not None:
            body = [*body, binding.result]
        return False, [f"{field_name}.{binding.listener} {{{args}", *indent(body), "}"]

    @staticmethod
    def _commented(reason: str, body: list[str]) -> list[str]:
        return [f"// {reason}", *(f"// {line}" for line in body)]

    def _component_field(self, name: str) -> str | None:
        """Kotlin field for a component: first use allocates, later uses reuse it."""
        if name in self._component_fields:
            return self._component_fields[name]
        if name not in self.components:
            return None
        field_name = self._names.unique(to_kotlin_identifier(name))
        self._component_fields[name] = field_name
        return field_name

    def _resolve_component(self, node: BlockNode, scope: Scope) -> tuple[str, ComponentRef]:
        """
        Field reference and layout entry for the component a block refers to.

        Raises:
            UnresolvedReferenceError: If the component is not part of the layout
        """
        name = node.mutation.get("instance_name") or node.get_field("COMPONENT_SELECTOR")
        field_name = self._component_field(name)
        if field_name is None:
            raise UnresolvedReferenceError("component", name)
        return self._member(field_name, scope), self.components[name]

    def _unresolved(self, error: UnresolvedReferenceError) -> str:
        """Report an unresolved reference; returns its placeholder expression."""
        self.diagnostics.report(
            DiagnosticCode.UNRESOLVED_REFERENCE,
            str(error),
            subject=error.name,
            severity=Severity.ERROR,
        )
        return f"error({kotlin_string(f'unresolved {error.kind}: {error.name}')})"

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def _compile_sequence(self, nodes: tuple[BlockNode, ...], scope: Scope) -> list[str]:
        lines: list[str] = []
        for node in nodes:
            lines.extend(self._compile_statement(node, scope))
        return lines

    def _compile_statement(self, node: BlockNode, scope: Scope) -> list[str]:
        self.deadline.check("block compilation")
        handler = self._statement_handlers.get(node.kind)
        if handler is not None:
            return handler(node, scope)
        # a value block plugged into a statement position
        return [self._compile_expression(node, scope)]

    def _compile_if(self, node: BlockNode, scope: Scope) -> list[str]:
        try:
            else_ifs = int(node.mutation.get("elseif", "0"))
        except ValueError:
            else_ifs = 0
        has_else = node.mutation.get("else", "0") not in ("0", "")

        lines: list[str] = []
        for i in range(else_ifs + 1):
            condition = self._expr(node.value(f"IF{i}"), scope, slot=f"IF{i}", owner=node.block_type)
            keyword = "if" if i == 0 else "} else if"
            lines.append(f"{keyword} ({condition}) {{")
            lines.extend(indent(self._compile_sequence(node.body(f"DO{i}"), scope.new_child())))
        if has_else:
            lines.append("} else {")
            lines.extend(indent(self._compile_sequence(node.body("ELSE"), scope.new_child())))
        lines.append("}")
        return lines

    def _compile_while(self, node: BlockNode, scope: Scope) -> list[str]:
        if node.block_type == "controls_while":
            condition_slot, body_slot = "TEST", "STATEMENT"
        else:
            condition_slot, body_slot = "BOOL", "DO"
        condition = self._expr(node.value(condition_slot), scope, slot=condition_slot, owner=node.block_type)
        if node.get_field("MODE", "WHILE") == "UNTIL":
            condition = f"!{condition}" if condition.startswith("(") else f"!({condition})"
        body = self._compile_sequence(self._loop_body(node, body_slot), scope.new_child())
        return [f"while ({condition}) {{", *indent(body), "}"]

    def _compile_for_range(self, node: BlockNode, scope: Scope) -> list[str]:
        start = self._expr(node.value("START"), scope, slot="START", owner=node.block_type)
        end = self._expr(node.value("END"), scope, slot="END", owner=node.block_type)
        step = self._expr(node.value("STEP"), scope, slot="STEP", owner=node.block_type)
        variable = node.get_field("VAR", "number")
        body_scope = scope.new_child({variable: to_kotlin_identifier(variable)})
        body = self._compile_sequence(self._loop_body(node, "STATEMENT"), body_scope)
        header = f"for ({body_scope[variable]} in {start}..{end} step {step}) {{"
        return [header, *indent(body), "}"]

    def _compile_for_each(self, node: BlockNode, scope: Scope) -> list[str]:
        items = self._expr(node.value("LIST"), scope, slot="LIST", owner=node.block_type)
        variable = node.get_field("VAR", "item")
        body_scope = scope.new_child({variable: to_kotlin_identifier(variable)})
        body = self._compile_sequence(self._loop_body(node, "STATEMENT"), body_scope)
        return [f"for ({body_scope[variable]} in {items}) {{", *indent(body), "}"]

    @staticmethod
    def _loop_body(node: BlockNode, slot: str) -> tuple[BlockNode, ...]:
        # Blockly's stock loops name the body DO, App Inventor's STATEMENT
        return node.body(slot) or node.body("DO") or node.body("STATEMENT")

    def _compile_local_declaration(self, node: BlockNode, scope: Scope) -> list[str]:
        """``initialize local x to .. in``: names are visible only inside the body."""
        names = [node.get_field(f"VAR{i}") or declared for i, declared in enumerate(node.arg_names)]
        declarations: list[str] = []
        body_scope = scope.new_child()
        for i, name in enumerate(names):
            # initializers see the enclosing scope, not each other
            value = self._expr(node.value(f"DECL{i}"), scope, slot=f"DECL{i}", owner=node.block_type)
            body_scope[name] = to_kotlin_identifier(name)
            declarations.append(f"var {body_scope[name]} = {value}")
        body = self._compile_sequence(node.body("STACK"), body_scope)
        return ["run {", *indent(declarations + body), "}"]

    def _compile_variable_set(self, node: BlockNode, scope: Scope) -> list[str]:
        name = node.get_field("VAR")
        value = self._expr(node.value("VALUE"), scope, slot="VALUE", owner=node.block_type)
        try:
            target = self._resolve_variable(name, scope)
        except UnresolvedReferenceError as e:
            self._unresolved(e)
            return [f"// unresolved variable '{name}' = {value}"]
        return [f"{target} = {value}"]

    def _compile_property_set(self, node: BlockNode, scope: Scope) -> list[str]:
        value_node = node.value("VALUE")
        value = self._expr(value_node, scope, slot="VALUE", owner=node.block_type)
        try:
            target, ref = self._resolve_component(node, scope)
        except UnresolvedReferenceError as e:
            self._unresolved(e)
            return [f"// unresolved component: {self._property_label(node)} = {value}"]
        accessor = self._accessor(ref, node.mutation.get("property_name") or node.get_field("PROP"))
        if accessor == "text" and value_node is not None and value_node.kind not in (
            BlockKind.TEXT,
            BlockKind.TEXT_JOIN,
        ):
            # App Inventor coerces anything assigned to Text into a string
            value = f"{receiver(value)}.toString()"
        return [f"{target}.{accessor} = {value}"]

    def _opaque_statement(self, node: BlockNode, scope: Scope) -> list[str]:
        self._report_opaque(node)
        return [f"// unsupported block: {self._opaque_label(node)}"]

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def _expr(self, node: BlockNode | None, scope: Scope, slot: str, owner: str) -> str:
        """Compile a required value slot; an empty slot is reported, never guessed."""
        if node is None:
            self.diagnostics.report(
                DiagnosticCode.MISSING_VALUE,
                f"Empty value slot {slot} in {owner}",
                subject=owner,
                severity=Severity.ERROR,
            )
            return f'error("missing value: {slot}")'
        return self._compile_expression(node, scope)

    def _compile_expression(self, node: BlockNode, scope: Scope) -> str:
        self.deadline.check("block compilation")
        handler = self._expression_handlers.get(node.kind)
        if handler is None:
            self.diagnostics.report(
                DiagnosticCode.OPAQUE_BLOCK,
                f"Statement block {node.block_type} used as a value",
                subject=node.block_type,
                severity=Severity.ERROR,
            )
            return f'error("statement used as value: {node.block_type}")'
        return handler(node, scope)

    def _compile_number(self, node: BlockNode, scope: Scope) -> str:
        literal = kotlin_number(node.get_field("NUM"))
        if literal is None:
            self.diagnostics.report(
                DiagnosticCode.MISSING_VALUE,
                f"Invalid number literal '{node.get_field('NUM')}'",
                subject=node.block_type,
            )
            return 'error("invalid number")'
        return literal

    @staticmethod
    def _compile_boolean(node: BlockNode, scope: Scope) -> str:
        if node.block_type == "logic_false":
            return "false"
        return "true" if node.get_field("BOOL", "TRUE").upper() == "TRUE" else "false"

    def _compile_arithmetic(self, node: BlockNode, scope: Scope) -> str:
        block_type = node.block_type
        if block_type in ("math_add", "math_multiply"):
            operator = ARITHMETIC_OPERATORS[block_type]
            count = node.item_count(default=2)
            if count == 0:
                return "0" if operator == "+" else "1"
            operands = [
                self._expr(node.value(f"NUM{i}"), scope, slot=f"NUM{i}", owner=block_type)
                for i in range(count)
            ]
            # left fold keeps evaluation order explicit
            result = operands[0]
            for operand in operands[1:]:
                result = f"({result} {operator} {operand})"
            return result

        left = self._expr(node.value("A"), scope, slot="A", owner=block_type)
        right = self._expr(node.value("B"), scope, slot="B", owner=block_type)
        if block_type == "math_subtract":
            return f"({left} - {right})"
        if block_type == "math_division":
            # App Inventor division is never integer division
            return f"({receiver(left)}.toDouble() / {right})"
        return f"Math.pow({receiver(left)}.toDouble(), {receiver(right)}.toDouble())"

    def _compile_negate(self, node: BlockNode, scope: Scope) -> str:
        operand = self._expr(node.value("NUM"), scope, slot="NUM", owner=node.block_type)
        if operand.startswith("-"):
            return f"(-({operand}))"
        return f"(-{operand})"

    def _compile_compare(self, node: BlockNode, scope: Scope) -> str:
        op = node.get_field("OP", "EQ")
        operator = COMPARE_OPERATORS.get(op)
        left = self._expr(node.value("A"), scope, slot="A", owner=node.block_type)
        right = self._expr(node.value("B"), scope, slot="B", owner=node.block_type)
        if operator is None:
            self._report_opaque(node)
            return f'error("unsupported comparison: {op}")'
        return f"({left} {operator} {right})"

    def _compile_logic(self, node: BlockNode, scope: Scope) -> str:
        op = node.get_field("OP", "AND")
        operator = LOGIC_OPERATORS.get(op)
        left = self._expr(node.value("A"), scope, slot="A", owner=node.block_type)
        right = self._expr(node.value("B"), scope, slot="B", owner=node.block_type)
        if operator is None:
            self._report_opaque(node)
            return f'error("unsupported logic operator: {op}")'
        return f"({left} {operator} {right})"

    def _compile_not(self, node: BlockNode, scope: Scope) -> str:
        operand = self._expr(node.value("BOOL"), scope, slot="BOOL", owner=node.block_type)
        if operand.startswith("!"):
            return f"(!({operand}))"
        return f"(!{operand})"

    def _compile_choose(self, node: BlockNode, scope: Scope) -> str:
        test = self._expr(node.value("TEST"), scope, slot="TEST", owner=node.block_type)
        then = self._expr(node.value("THENRETURN"), scope, slot="THENRETURN", owner=node.block_type)
        other = self._expr(node.value("ELSERETURN"), scope, slot="ELSERETURN", owner=node.block_type)
        return f"(if ({test}) {then} else {other})"

    def _items(self, node: BlockNode, scope: Scope, prefix: str) -> list[str]:
        return [
            self._expr(node.value(f"{prefix}{i}"), scope, slot=f"{prefix}{i}", owner=node.block_type)
            for i in range(node.item_count(default=2))
        ]

    def _compile_text_join(self, node: BlockNode, scope: Scope) -> str:
        items = self._items(node, scope, "ADD")
        if not items:
            return '""'
        return f'listOf({", ".join(items)}).joinToString("")'

    def _compile_list_create(self, node: BlockNode, scope: Scope) -> str:
        return f"mutableListOf({', '.join(self._items(node, scope, 'ADD'))})"

    def _compile_property_get(self, node: BlockNode, scope: Scope) -> str:
        try:
            target, ref = self._resolve_component(node, scope)
        except UnresolvedReferenceError as e:
            return self._unresolved(e)
        accessor = self._accessor(ref, node.mutation.get("property_name") or node.get_field("PROP"))
        return f"{target}.{accessor}"

    def _compile_method_call(self, node: BlockNode, scope: Scope) -> str:
        slots = sorted(
            (int(match.group(1)), name)
            for name in node.values
            if (match := _ARG_SLOT.match(name))
        )
        args = [self._expr(node.value(name), scope, slot=name, owner=node.block_type) for _, name in slots]
        method_name = node.mutation.get("method_name", "")
        try:
            target, ref = self._resolve_component(node, scope)
        except UnresolvedReferenceError as e:
            return self._unresolved(e)
        method = ref.rule.methods.get(method_name)
        if method is None:
            method = to_kotlin_identifier(method_name or "call")
            self.diagnostics.report(
                DiagnosticCode.UNMAPPED_MEMBER,
                f"No Kotlin mapping for method {ref.component_type}.{method_name}; using '{method}'",
                subject=f"{ref.name}.{method_name}",
            )
        return f"{target}.{method}({', '.join(args)})"

    def _compile_component_ref(self, node: BlockNode, scope: Scope) -> str:
        try:
            target, _ = self._resolve_component(node, scope)
        except UnresolvedReferenceError as e:
            return self._unresolved(e)
        return target

    def _compile_variable_get(self, node: BlockNode, scope: Scope) -> str:
        try:
            return self._resolve_variable(node.get_field("VAR"), scope)
        except UnresolvedReferenceError as e:
            return self._unresolved(e)

    def _compile_procedure_call(self, node: BlockNode, scope: Scope) -> str:
        name = node.get_field("PROCNAME") or node.mutation.get("name", "")
        args = [
            self._expr(node.value(f"ARG{i}"), scope, slot=f"ARG{i}", owner=node.block_type)
            for i in range(len(node.arg_names))
        ]
        procedure = self._procedures.get(name)
        if procedure is None:
            return self._unresolved(UnresolvedReferenceError("procedure", name))
        return f"{self._member(procedure.kotlin_name, scope)}({', '.join(args)})"

    def _opaque_expression(self, node: BlockNode, scope: Scope) -> str:
        self._report_opaque(node)
        return f"error({kotlin_string(f'unsupported block: {node.block_type}')})"

    # ------------------------------------------------------------------
    # Resolution helpers
    # ------------------------------------------------------------------

    def _resolve_variable(self, name: str, scope: Scope) -> str:
        """
        ``global x`` names a global; a bare name is a local or parameter.

        Raises:
            UnresolvedReferenceError: If the name is not declared
        """
        if name.startswith(GLOBAL_PREFIX):
            target = self._globals.get(name[len(GLOBAL_PREFIX):])
            if target is not None:
                target = self._member(target, scope)
        else:
            target = scope.get(name)
        if target is None:
            raise UnresolvedReferenceError("variable", name)
        return target

    def _member(self, kotlin_name: str, scope: Scope) -> str:
        """Activity member reference, qualified when a local of the same name shadows it."""
        if kotlin_name in scope.values():
            return f"this@{self.activity}.{kotlin_name}"
        return kotlin_name

    def _accessor(self, ref: ComponentRef, prop: str) -> str:
        accessor = ref.rule.accessors.get(prop)
        if accessor is None:
            accessor = to_kotlin_identifier(prop or "property")
            self.diagnostics.report(
                DiagnosticCode.UNMAPPED_MEMBER,
                f"No Kotlin accessor for {ref.component_type}.{prop}; using '{accessor}'",
                subject=f"{ref.name}.{prop}",
            )
        return accessor

    @staticmethod
    def _property_label(node: BlockNode) -> str:
        instance = node.mutation.get("instance_name") or node.get_field("COMPONENT_SELECTOR")
        prop = node.mutation.get("property_name") or node.get_field("PROP")
        return f"{instance}.{prop}"

    def _report_opaque(self, node: BlockNode) -> None:
        error = OpaqueBlockEncountered(node.block_type)
        self.diagnostics.report(
            DiagnosticCode.OPAQUE_BLOCK,
            f"{error}; replaced by a placeholder",
            subject=node.block_type,
        )

    @staticmethod
    def _opaque_label(node: BlockNode) -> str:
        if not node.fields:
            return node.block_type
        fields = ", ".join(f"{name}={value}" for name, value in node.fields.items())
        return f"{node.block_type} ({fields})"
