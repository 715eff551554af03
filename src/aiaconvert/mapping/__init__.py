"""
Component Mapping
App Inventor component types to Android layout elements.
"""

from .table import (
    EventBinding,
    MappingRule,
    MappingTable,
    ValueFormat,
    format_value,
    load_mapping_table,
    resource_name,
)

__all__ = [
    "EventBinding",
    "MappingRule",
    "MappingTable",
    "ValueFormat",
    "format_value",
    "load_mapping_table",
    "resource_name",
]
