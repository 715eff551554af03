"""Deterministic identifier synthesis.

Identifiers are built from a prefix plus a per-run sequence counter, so two
runs over identical input produce identical identifiers. One allocator is
created per conversion run and never shared between runs.
"""

import re

from .errors import IdentifierCollision


# Kotlin hard keywords; soft keywords are valid identifiers.
KOTLIN_KEYWORDS = frozenset(
    {
        "as", "break", "class", "continue", "do", "else", "false", "for", "fun",
        "if", "in", "interface", "is", "null", "object", "package", "return",
        "super", "this", "throw", "true", "try", "typealias", "typeof", "val",
        "var", "when", "while",
    }
)

_INVALID_CHARS = re.compile(r"[^0-9A-Za-z_]")


class IdentifierAllocator:
    """Sequential, collision-checked identifier allocation for one run."""

    def __init__(self) -> None:
        self._counters: dict[str, int] = {}
        self._issued: set[str] = set()

    def next_id(self, prefix: str) -> str:
        """Return ``prefix`` + the next free sequence number for that prefix."""
        counter = self._counters.get(prefix, 0)
        while True:
            counter += 1
            candidate = f"{prefix}{counter}"
            if candidate not in self._issued:
                break
        self._counters[prefix] = counter
        return self.claim(candidate)

    def claim(self, name: str) -> str:
        """Reserve an exact name; a second claim is an invariant violation."""
        if name in self._issued:
            raise IdentifierCollision(f"Identifier '{name}' issued twice")
        self._issued.add(name)
        return name

    def unique(self, base: str) -> str:
        """Return ``base`` if free, otherwise ``base`` + the next free suffix."""
        if base not in self._issued:
            return self.claim(base)
        return self.next_id(base)

    def __contains__(self, name: str) -> bool:
        return name in self._issued


def to_kotlin_identifier(name: str, capitalize: bool = False) -> str:
    """Sanitize an App Inventor name into a lowerCamel (or UpperCamel) Kotlin identifier."""
    cleaned = _INVALID_CHARS.sub("_", name.strip()) or "_"
    if capitalize:
        cleaned = cleaned[0].upper() + cleaned[1:]
    else:
        cleaned = cleaned[0].lower() + cleaned[1:]
    if cleaned[0].isdigit():
        cleaned = f"_{cleaned}"
    if cleaned in KOTLIN_KEYWORDS:
        cleaned = f"{cleaned}_"
    return cleaned
