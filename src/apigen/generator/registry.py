"""The definition namespace: an ordered, conflict-checked name table.

A :class:`DefinitionRegistry` is passed explicitly to whoever creates
definitions instead of living in module state.  The operation builder fills
one registry per version; the merge engine owns the global registry and
folds each version's registry into it.

Registering a name twice is fine as long as both definitions are
structurally identical (pydantic equality); that is how a component schema
referenced from several operations, or re-declared unchanged by a later
version, ends up as a single definition.  Different content under one name
raises :class:`~apigen.exceptions.DefinitionConflictError`.
"""

from __future__ import annotations

from typing import Iterator, Optional

from apigen.exceptions import DefinitionConflictError
from apigen.models import Definition
from apigen.output import debug


class DefinitionRegistry:
    """Ordered ``name -> Definition`` table with first-writer provenance.

    Args:
        origin: Default provenance recorded for new names (e.g. ``"v2"``).
    """

    def __init__(self, origin: Optional[str] = None) -> None:
        self._origin = origin
        self._definitions: dict[str, Definition] = {}
        self._origins: dict[str, Optional[str]] = {}

    def register(
        self,
        definition: Definition,
        origin: Optional[str] = None,
        document: Optional[str] = None,
        pointer: Optional[str] = None,
    ) -> str:
        """Insert *definition*, or accept it as a duplicate of an identical one.

        Args:
            definition: The definition to add.
            origin: Provenance for error messages; defaults to the registry's.
            document: Document name attached to a conflict error.
            pointer: Location attached to a conflict error.

        Returns:
            The definition name.

        Raises:
            DefinitionConflictError: If the name is taken by different content.
        """
        name = definition.name
        origin = origin or self._origin
        existing = self._definitions.get(name)
        if existing is None:
            self._definitions[name] = definition
            self._origins[name] = origin
            debug(f"Registered {definition.kind.tag} '{name}'" + (f" ({origin})" if origin else ""))
            return name
        if existing == definition:
            return name

        first = self._origins.get(name)
        where = f" (first defined by {first}, redefined by {origin})" if first and origin and first != origin else ""
        raise DefinitionConflictError(
            f"Definition '{name}' is declared twice with different content{where}. "
            "Rename the schema or keep it identical.",
            document=document,
            pointer=pointer,
        )

    def get(self, name: str) -> Optional[Definition]:
        return self._definitions.get(name)

    def origin_of(self, name: str) -> Optional[str]:
        return self._origins.get(name)

    def snapshot(self) -> dict[str, Definition]:
        """A copy of the table in insertion order."""
        return dict(self._definitions)

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __iter__(self) -> Iterator[str]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)
