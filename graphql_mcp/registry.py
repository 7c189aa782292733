"""Mapping between externally visible tool names and schema field names."""

import logging
from typing import Dict

logger = logging.getLogger(__name__)

MAX_TOOL_NAME_LENGTH = 64
MUTATION_PREFIX = "mutation_"


def external_name(field_name: str, is_mutation: bool = False) -> str:
    """
    Compute the tool name for a root field.

    Mutations get the ``mutation_`` prefix. Names longer than 64 characters are truncated;
    for mutations only the field portion is shortened so the prefix survives.

    Args:
        field_name: Canonical field name from the schema
        is_mutation: Whether the field belongs to the mutation root type

    Returns:
        str: Name of at most 64 characters
    """
    if is_mutation:
        return MUTATION_PREFIX + field_name[: MAX_TOOL_NAME_LENGTH - len(MUTATION_PREFIX)]
    return field_name[:MAX_TOOL_NAME_LENGTH]


def prefixed_name(field_name: str, is_mutation: bool = False) -> str:
    """Untruncated name: the field itself, or ``mutation_<field>``."""
    return MUTATION_PREFIX + field_name if is_mutation else field_name


class NameRegistry:
    """
    Bidirectional map between truncated tool names and their full (possibly prefixed) names.

    Only names that were actually truncated are stored; everything else resolves to itself.
    The registry belongs to one schema generation and is cleared whenever the schema is replaced.
    When two full names truncate to the same tool name, the last one registered wins.
    """

    def __init__(self):
        self._to_full: Dict[str, str] = {}
        self._to_external: Dict[str, str] = {}
        self.generation = 0

    def register(self, external: str, full: str) -> None:
        """Record ``external -> full``, replacing any earlier owner of either name."""
        previous = self._to_full.get(external)
        if previous is not None and previous != full:
            logger.warning(f"Tool name collision: '{external}' now maps to '{full}' instead of '{previous}'")
            self._to_external.pop(previous, None)

        stale = self._to_external.get(full)
        if stale is not None and stale != external:
            self._to_full.pop(stale, None)

        self._to_full[external] = full
        self._to_external[full] = external

    def resolve(self, external: str) -> str:
        """External tool name to full name."""
        return self._to_full.get(external, external)

    def canonicalize(self, full: str) -> str:
        """Full name to the external tool name it is listed under."""
        return self._to_external.get(full, full)

    def clear(self) -> None:
        self._to_full.clear()
        self._to_external.clear()
        self.generation += 1

    def __len__(self) -> int:
        return len(self._to_full)

    def __contains__(self, external: str) -> bool:
        return external in self._to_full
