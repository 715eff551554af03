"""
Layout Conversion
App Inventor component trees (.scm) to Android layout XML.
"""

from .models import ComponentNode, ComponentRef, LayoutParseResult, LayoutResult
from .parser import LayoutParser, parse_layout
from .generator import LayoutGenerator, generate_layout

__all__ = [
    "ComponentNode",
    "ComponentRef",
    "LayoutParseResult",
    "LayoutResult",
    "LayoutParser",
    "parse_layout",
    "LayoutGenerator",
    "generate_layout",
]
