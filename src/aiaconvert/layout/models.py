"""Layout Data Models."""

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

from ..core import Diagnostics
from ..mapping import MappingRule

Scalar = str | int | float | bool


class ComponentNode(BaseModel):
    """One visual component of a screen, as parsed from the .scm descriptor."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(..., min_length=1, description="App Inventor component type")
    name: str = Field(..., description="Component instance name ($Name)")
    properties: dict[str, Scalar] = Field(default_factory=dict)
    children: tuple["ComponentNode", ...] = Field(default=())

    def walk(self):
        """Depth-first, pre-order traversal."""
        yield self
        for child in self.children:
            yield from child.walk()


ComponentNode.model_rebuild()


@dataclass(frozen=True)
class LayoutParseResult:
    """Parsed component tree plus per-component diagnostics."""

    root: ComponentNode
    diagnostics: Diagnostics


@dataclass(frozen=True)
class ComponentRef:
    """A component as emitted into the layout, for binding from blocks."""

    name: str
    component_type: str
    view_id: str
    rule: MappingRule


@dataclass(frozen=True)
class LayoutResult:
    """Generated layout markup plus the component index."""

    markup: str
    components: dict[str, ComponentRef]
    diagnostics: Diagnostics
