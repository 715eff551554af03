"""
Block Conversion
Blockly block descriptors (.bky) to Kotlin activity source.
"""

from .models import (
    BlockKind,
    BlockNode,
    BlockProgram,
    EventHandlerRoot,
    GlobalDeclaration,
    ProcedureDefinition,
)
from .parser import BlockParser, parse_blocks
from .compiler import BlockCompiler, CompiledScreen, kotlin_number, kotlin_string

__all__ = [
    "BlockKind",
    "BlockNode",
    "BlockProgram",
    "EventHandlerRoot",
    "GlobalDeclaration",
    "ProcedureDefinition",
    "BlockParser",
    "parse_blocks",
    "BlockCompiler",
    "CompiledScreen",
    "kotlin_number",
    "kotlin_string",
]
