"""Component Mapping Table - declarative App Inventor → Android rules."""

import re
from enum import Enum
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

import msgspec
from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from ..core import get_logger
from ..core.errors import UnmappedComponentType
from ..core.validate import ValidationError

logger = get_logger(__name__)

Scalar = str | int | float | bool

PACKAGED_TABLE = "component_map.json"

_RESOURCE_INVALID = re.compile(r"[^a-z0-9_]")


class ValueFormat(str, Enum):
    """How a source property value is rendered as an attribute value."""

    TEXT = "text"
    DIMENSION = "dimension"
    COLOR = "color"
    BOOLEAN = "boolean"
    VISIBILITY = "visibility"
    SP = "sp"
    INTEGER = "integer"
    DRAWABLE = "drawable"


class EventBinding(BaseModel):
    """How one component event becomes a Kotlin callback."""

    model_config = ConfigDict(frozen=True)

    listener: str | None = Field(default=None, description="Listener setter, e.g. setOnClickListener")
    inline: bool = Field(default=False, description="Compile into onCreate instead of a listener")
    lambda_args: tuple[str, ...] = Field(default=(), description="Listener lambda parameters")
    params: tuple[str, ...] = Field(default=(), description="Event parameters visible to the body")
    result: str | None = Field(default=None, description="Trailing lambda value, e.g. 'true'")


class MappingRule(BaseModel):
    """One component type's mapping to a layout element."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    target_tag: str = Field(alias="xml_tag", min_length=1)
    id_prefix: str = Field(min_length=1, pattern=r"^[A-Za-z][A-Za-z0-9_]*$")
    default_properties: dict[str, Scalar] = Field(default_factory=dict)
    property_to_attribute: dict[str, str] = Field(default_factory=dict, alias="property_map")
    value_formats: dict[str, ValueFormat] = Field(default_factory=dict)
    view_class: str | None = None
    accessors: dict[str, str] = Field(default_factory=dict)
    methods: dict[str, str] = Field(default_factory=dict)
    events: dict[str, EventBinding] = Field(default_factory=dict)

    @property
    def qualified_view_class(self) -> str:
        """Fully qualified Kotlin class for findViewById."""
        if self.view_class:
            return self.view_class
        if "." in self.target_tag:
            return self.target_tag
        return f"android.widget.{self.target_tag}"

    @property
    def view_class_name(self) -> str:
        return self.qualified_view_class.rsplit(".", 1)[-1]

    def merged_properties(self, properties: Mapping[str, Scalar]) -> dict[str, Scalar]:
        """Defaults overlaid with the node's own values (node wins)."""
        merged = dict(self.default_properties)
        merged.update(properties)
        return merged

    def attributes(self, properties: Mapping[str, Scalar]) -> list[tuple[str, str]]:
        """Attributes in declared order for every mapped key present in ``properties``."""
        result = []
        for prop, attribute in self.property_to_attribute.items():
            if prop in properties:
                fmt = self.value_formats.get(prop, ValueFormat.TEXT)
                result.append((attribute, format_value(properties[prop], fmt)))
        return result


class MappingTable:
    """Immutable lookup from component type to MappingRule."""

    def __init__(self, rules: Mapping[str, MappingRule]) -> None:
        self._rules = MappingProxyType(dict(rules))

    def get(self, component_type: str) -> MappingRule | None:
        return self._rules.get(component_type)

    def rule_for(self, component_type: str) -> MappingRule:
        """Return the rule or raise UnmappedComponentType."""
        rule = self._rules.get(component_type)
        if rule is None:
            raise UnmappedComponentType(component_type)
        return rule

    def types(self) -> tuple[str, ...]:
        return tuple(self._rules)

    def __contains__(self, component_type: object) -> bool:
        return component_type in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "MappingTable":
        try:
            rules = {name: MappingRule.model_validate(entry) for name, entry in data.items()}
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid component mapping table: {e}") from e
        return cls(rules)


def load_mapping_table(path: str | Path | None = None) -> MappingTable:
    """
    Load the mapping table once, from ``path`` or the packaged default.

    Raises:
        ValidationError: If the table is not a valid JSON object of rules
    """
    if path is None:
        raw = resources.files(__package__).joinpath(PACKAGED_TABLE).read_bytes()
        source = PACKAGED_TABLE
    else:
        raw = Path(path).read_bytes()
        source = str(path)

    try:
        data = msgspec.json.decode(raw)
    except msgspec.DecodeError as e:
        raise ValidationError(f"Mapping table {source} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError(f"Mapping table {source} must be a JSON object")

    table = MappingTable.from_dict(data)
    logger.info("mapping_table_loaded", source=source, types=len(table))
    return table


def resource_name(file_name: str) -> str:
    """Android resource name for an asset file ('My Cat.PNG' -> 'my_cat')."""
    stem = file_name.rsplit("/", 1)[-1].rsplit(".", 1)[0].lower()
    name = _RESOURCE_INVALID.sub("_", stem) or "asset"
    if not name[0].isalpha():
        name = f"res_{name}"
    return name


def format_value(value: Scalar, fmt: ValueFormat) -> str:
    """Render a property value as an attribute value string."""
    text = _scalar_text(value)

    if fmt is ValueFormat.DIMENSION:
        try:
            number = int(float(text))
        except ValueError:
            return text
        if number == -1:
            return "wrap_content"
        if number == -2 or number <= -1000:
            # -1000 - n encodes n percent; LinearLayout has no percent sizing
            return "match_parent"
        return f"{number}dp"

    if fmt is ValueFormat.COLOR:
        if text.upper().startswith("&H"):
            return f"#{text[2:].upper()}"
        return text

    if fmt is ValueFormat.BOOLEAN:
        return "true" if text.lower() == "true" else "false"

    if fmt is ValueFormat.VISIBILITY:
        return "visible" if text.lower() == "true" else "gone"

    if fmt is ValueFormat.SP:
        return f"{text}sp"

    if fmt is ValueFormat.INTEGER:
        try:
            return str(int(float(text)))
        except ValueError:
            return text

    if fmt is ValueFormat.DRAWABLE:
        return f"@drawable/{resource_name(text)}" if text else text

    # literal text must not be read as a resource reference
    if text[:1] in ("@", "?"):
        return f"\\{text}"
    return text


def _scalar_text(value: Scalar) -> str:
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
