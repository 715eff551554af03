"""Conversion error taxonomy.

Screen-level errors (malformed descriptors, timeouts) abort one screen's
conversion. Node and block level errors are recoverable: the pipeline turns
them into diagnostics and keeps going.
"""


class ConversionError(Exception):
    """Base class for every conversion failure."""

    pass


class MalformedLayoutDescriptor(ConversionError):
    """The .scm component-tree descriptor cannot be matched structurally."""

    pass


class MalformedBlockDescriptor(ConversionError):
    """The .bky block-graph descriptor is not well-formed block markup."""

    pass


class UnmappedComponentType(ConversionError):
    """No mapping rule exists for a component type."""

    def __init__(self, component_type: str) -> None:
        super().__init__(f"No mapping rule for component type '{component_type}'")
        self.component_type = component_type


class UnresolvedReferenceError(ConversionError):
    """A block refers to a variable, component or procedure that is not declared."""

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(f"Unresolved {kind} reference '{name}'")
        self.kind = kind
        self.name = name


class OpaqueBlockEncountered(ConversionError):
    """A block type outside the recognized vocabulary."""

    def __init__(self, block_type: str) -> None:
        super().__init__(f"Unsupported block type '{block_type}'")
        self.block_type = block_type


class IdentifierCollision(ConversionError):
    """Sequential identifier synthesis produced a duplicate (internal invariant)."""

    pass


class ConversionTimeout(ConversionError):
    """The conversion run exceeded its deadline."""

    pass


class ArchiveError(ConversionError):
    """The uploaded project archive is unreadable or lacks the entry screen."""

    pass
