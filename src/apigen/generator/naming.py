"""Derive safe, deterministic identifiers from arbitrary spec strings.

Enum literals, property names, component names, and operation ids in an
OpenAPI document can contain spaces, punctuation, leading digits, or words
that are reserved in the generation target.  This module turns them into
identifiers:

* :func:`sanitize` -- ``UpperCamel`` form used for type names and enum
  variants (``"Second variant $"`` becomes ``SecondVariant``).
* :func:`snake_identifier` -- ``lower_snake`` form used for properties
  (``strEnum`` becomes ``str_enum``).
* :func:`escape_reserved` -- append ``_`` to reserved words (``class``
  becomes ``class_``).

Sanitizing is lossy, so two different labels can end up as the same
identifier.  :class:`IdentifierScope` records which label produced each
identifier within one record, enumeration, or error set and raises
:class:`~apigen.exceptions.NameCollisionError` instead of inventing a suffix.
The original label is always kept as the wire name, so serialization never
depends on the identifier.
"""

from __future__ import annotations

import keyword
import re
from typing import Any, Iterable, Optional

from apigen.exceptions import NameCollisionError

DEFAULT_RESERVED_WORDS: frozenset[str] = frozenset(keyword.kwlist)
"""Python keywords; configuration can add words for other targets."""

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]+")
_WORDS = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|[0-9]+")
_TEMPLATE_PARAM = re.compile(r"\{[^}/]*\}")


def sanitize(label: Any) -> str:
    """Produce an ``UpperCamel`` identifier from an arbitrary label.

    The label is split into tokens at every run of characters outside
    ``[A-Za-z0-9]``; empty tokens are dropped; each token gets its first
    character upper-cased with the remainder left as-is; the tokens are
    concatenated.  An empty result, or one starting with a digit, is
    prefixed with an underscore.

    Args:
        label: Any value; non-strings (integer enum values) are converted
            with ``str()``.

    Returns:
        The identifier.

    Example::

        sanitize("First Variant")      # 'FirstVariant'
        sanitize("!123")               # '_123'
        sanitize('Hello, "World"')     # 'HelloWorld'
    """
    tokens = [token for token in _NON_ALNUM.split(str(label)) if token]
    identifier = "".join(token[0].upper() + token[1:] for token in tokens)
    if not identifier or identifier[0].isdigit():
        identifier = "_" + identifier
    return identifier


def snake_identifier(label: Any) -> str:
    """Produce a ``lower_snake`` identifier from an arbitrary label.

    Words are split at case changes and letter/digit boundaries after
    :func:`sanitize` has removed punctuation, so ``strEnum`` becomes
    ``str_enum`` and ``v1_float`` becomes ``v_1_float``.
    """
    words = _WORDS.findall(sanitize(label))
    identifier = "_".join(word.lower() for word in words)
    if not identifier or identifier[0].isdigit():
        identifier = "_" + identifier
    return identifier


def escape_reserved(identifier: str, reserved: Iterable[str] = DEFAULT_RESERVED_WORDS) -> str:
    """Append an underscore when *identifier* is a reserved word."""
    if identifier in reserved:
        return identifier + "_"
    return identifier


def operation_id_for(method: str, path: str) -> str:
    """Synthesize an operation id for an operation that declares none.

    Example::

        operation_id_for("get", "/hello/{user}")   # 'get_hello_user'
    """
    return snake_identifier(f"{method} {path}")


def route_shape(path: str) -> str:
    """Normalize a path template so equivalent templates compare equal.

    Example::

        route_shape("/hello/{user}")   # '/hello/{}'
        route_shape("/hello/{name}/")  # '/hello/{}'
    """
    shape = _TEMPLATE_PARAM.sub("{}", path)
    if len(shape) > 1:
        shape = shape.rstrip("/")
    return shape or "/"


class IdentifierScope:
    """Tracks identifiers claimed inside one record, enumeration, or error set.

    Args:
        owner: Description used in error messages, e.g. ``"record GreetUserPath"``.
        document: Document name attached to raised errors.
    """

    def __init__(self, owner: str, document: Optional[str] = None) -> None:
        self._owner = owner
        self._document = document
        self._labels: dict[str, Any] = {}

    def claim(self, identifier: str, label: Any, pointer: Optional[str] = None) -> str:
        """Reserve *identifier* for *label* and return it.

        Claiming the same identifier again for the same label is allowed.

        Raises:
            NameCollisionError: If a different label already holds *identifier*.
        """
        if identifier in self._labels and self._labels[identifier] != label:
            raise NameCollisionError(
                f"In {self._owner}, {self._labels[identifier]!r} and {label!r} "
                f"both map to the identifier '{identifier}'",
                document=self._document,
                pointer=pointer,
            )
        self._labels[identifier] = label
        return identifier

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._labels

    def __len__(self) -> int:
        return len(self._labels)
