"""Resolve ``$ref`` JSON Reference pointers inside one OpenAPI document.

OpenAPI documents use ``$ref`` pointers (e.g.,
``{"$ref": "#/components/schemas/Pet"}``) to share schemas and parameters.
Unlike a blanket deep-copy resolution, :class:`RefResolver` resolves lazily,
one node at a time, so that the type modeler learns *which component* a
schema came from and can reuse its name instead of inventing one.

Only **internal** references (those starting with ``#/``) are supported.
External file or URL references raise
:class:`~apigen.exceptions.ReferenceError_`.

Cycles are an error.  The resolver keeps an explicit stack of the component
pointers currently being modeled (a list for order plus a set for lookup).
Reference chains (``A -> B -> C``) are followed iteratively and every pointer
is checked against both the chain and the stack, so detection never depends
on the interpreter's recursion limit.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, NamedTuple, Optional

from apigen.exceptions import ReferenceError_

_COMPONENT_SECTIONS = frozenset({"schemas", "parameters", "requestBodies", "responses"})


class Resolved(NamedTuple):
    """Result of :meth:`RefResolver.resolve`.

    Attributes:
        node: The target node with every ``$ref`` hop followed.
        component: Name of the component the node was found under, or
            ``None`` if the input was not a reference.
        pointer: JSON pointer of *node* within the document.
    """

    node: Any
    component: Optional[str]
    pointer: str


def escape_segment(segment: str) -> str:
    """Escape a key for use inside a JSON pointer (RFC 6901)."""
    return str(segment).replace("~", "~0").replace("/", "~1")


def join_pointer(pointer: str, *segments: Any) -> str:
    """Append *segments* to *pointer*, escaping each one.

    Example::

        join_pointer("#/paths", "/hello/{user}", "get")
        # '#/paths/~1hello~1{user}/get'
    """
    return "/".join([pointer, *(escape_segment(str(s)) for s in segments)])


def component_name(ref: str) -> Optional[str]:
    """Return ``X`` for ``#/components/<section>/X``, otherwise ``None``."""
    segments = _split(ref)
    if len(segments) == 3 and segments[0] == "components" and segments[1] in _COMPONENT_SECTIONS:
        return segments[2]
    return None


def _split(ref: str) -> list[str]:
    return [s.replace("~1", "/").replace("~0", "~") for s in ref[2:].split("/")]


class RefResolver:
    """Resolves references within a single document and tracks the visit stack.

    Args:
        document: The parsed OpenAPI document.
        source: Name of the document, attached to raised errors.

    Example::

        resolver = RefResolver(raw, source="openapi_v1.yaml")
        node, name, pointer = resolver.resolve({"$ref": "#/components/schemas/Pet"})
        with resolver.entering(pointer):
            ...  # model the Pet schema; a $ref back to Pet now fails
    """

    def __init__(self, document: dict[str, Any], source: Optional[str] = None) -> None:
        self._document = document
        self._source = source
        self._stack: list[str] = []
        self._on_stack: set[str] = set()

    @property
    def document(self) -> dict[str, Any]:
        return self._document

    @property
    def source(self) -> Optional[str]:
        return self._source

    @property
    def stack(self) -> tuple[str, ...]:
        """Component pointers currently being visited, outermost first."""
        return tuple(self._stack)

    def lookup(self, ref: str, at: Optional[str] = None) -> Any:
        """Return the node *ref* points at, without following further hops.

        Handles RFC 6901 escaping (``~0`` for ``~``, ``~1`` for ``/``) and
        numeric array indices.

        Args:
            ref: The ``$ref`` string, e.g. ``"#/components/schemas/Pet"``.
            at: Pointer of the node holding the reference, for error messages.

        Raises:
            ReferenceError_: If the reference is external or dangling.
        """
        if not isinstance(ref, str) or not ref.startswith("#/"):
            raise ReferenceError_(
                f"External $ref not supported: {ref}. "
                "Only internal references (#/...) are handled.",
                document=self._source,
                pointer=at,
            )

        current: Any = self._document
        for segment in _split(ref):
            if isinstance(current, dict) and segment in current:
                current = current[segment]
            elif isinstance(current, list) and segment.isdigit() and int(segment) < len(current):
                current = current[int(segment)]
            else:
                raise ReferenceError_(
                    f"Cannot resolve $ref '{ref}': '{segment}' not found",
                    document=self._source,
                    pointer=at,
                )
        return current

    def resolve(self, node: Any, pointer: str = "#") -> Resolved:
        """Follow ``$ref`` hops from *node* until a concrete node is reached.

        Args:
            node: Any node of the document; non-references are returned as-is.
            pointer: Location of *node*, used for the result and for errors.

        Returns:
            A :class:`Resolved` triple.  ``component`` is the name of the
            last component hop, so ``A -> B`` resolves to ``B``'s name.

        Raises:
            ReferenceError_: If a hop is external, dangling, or revisits a
                pointer already in the current chain or on the visit stack.
        """
        chain: list[str] = []
        seen: set[str] = set()
        component: Optional[str] = None
        current = node
        current_pointer = pointer

        while isinstance(current, dict) and "$ref" in current:
            ref = current["$ref"]
            if ref in seen or ref in self._on_stack:
                cycle = " -> ".join([*self._stack, *chain, ref])
                raise ReferenceError_(
                    f"Cyclic $ref: {cycle}", document=self._source, pointer=current_pointer
                )
            chain.append(ref)
            seen.add(ref)
            current = self.lookup(ref, at=current_pointer)
            current_pointer = ref
            component = component_name(ref)

        return Resolved(current, component, current_pointer)

    @contextmanager
    def entering(self, pointer: str) -> Iterator[None]:
        """Keep *pointer* on the visit stack for the duration of the block.

        Raises:
            ReferenceError_: If *pointer* is already on the stack.
        """
        if pointer in self._on_stack:
            cycle = " -> ".join([*self._stack, pointer])
            raise ReferenceError_(f"Cyclic $ref: {cycle}", document=self._source, pointer=pointer)
        self._stack.append(pointer)
        self._on_stack.add(pointer)
        try:
            yield
        finally:
            self._stack.pop()
            self._on_stack.discard(pointer)
