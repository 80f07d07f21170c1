"""Exception hierarchy for apigen.

All exceptions inherit from :class:`ApigenError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`apigen.exit_codes`
plus an optional location (the offending document and a JSON-pointer-like
path into it).  The top-level error handler in :func:`apigen.app.main`
catches ``ApigenError``, prints the error kind and location, and exits with
the matching code.

Every error is fail-fast: the first one aborts the whole generation run and
no partial model is handed to a renderer.

Subclass hierarchy::

    ApigenError (exit 1)
    +-- InvalidUsageError        (exit 2)
    +-- ConfigError              (exit 1)
    +-- SpecParseError           (exit 7)
    +-- ReferenceError_          (exit 8)
    +-- SchemaUnsupportedError   (exit 9)
    +-- NameCollisionError       (exit 10)
    +-- DefinitionConflictError  (exit 11)
    +-- RouteConflictError       (exit 12)
    +-- AmbiguousDefaultError    (exit 13)
"""

from __future__ import annotations

from typing import Optional

from apigen.exit_codes import (
    EXIT_AMBIGUOUS_DEFAULT,
    EXIT_DEFINITION_CONFLICT,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NAME_COLLISION,
    EXIT_REFERENCE_ERROR,
    EXIT_ROUTE_CONFLICT,
    EXIT_SCHEMA_UNSUPPORTED,
    EXIT_SPEC_PARSE_ERROR,
)


class ApigenError(Exception):
    """Base exception for all apigen errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`apigen.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        document: The spec document (file name or URL) the error refers to.
        pointer: A ``#/paths/...``-style location inside *document*.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(
        self,
        message: str,
        document: Optional[str] = None,
        pointer: Optional[str] = None,
        exit_code: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.document = document
        self.pointer = pointer
        if exit_code is not None:
            self.exit_code = exit_code

    @property
    def kind(self) -> str:
        """Error kind shown to users, e.g. ``ReferenceError``."""
        return type(self).__name__.rstrip("_")

    @property
    def location(self) -> Optional[str]:
        """``document#pointer`` when either part is known, else ``None``."""
        if self.document is None and self.pointer is None:
            return None
        return f"{self.document or '<document>'}{self.pointer or ''}"

    def with_document(self, document: str) -> ApigenError:
        """Fill in the document name if the raiser did not know it.

        Returns *self* so callers can write ``raise exc.with_document(name)``.
        """
        if self.document is None:
            self.document = document
        return self

    def __str__(self) -> str:
        location = self.location
        if location is None:
            return self.message
        return f"{self.message} (at {location})"


class InvalidUsageError(ApigenError):
    """Raised for invalid CLI arguments or an unusable spec directory layout."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(ApigenError):
    """Raised for configuration problems (invalid JSON, bad values, bad env vars)."""

    exit_code = EXIT_GENERIC_FAILURE


class SpecParseError(ApigenError):
    """Raised when an OpenAPI document cannot be loaded, parsed, or fails validation."""

    exit_code = EXIT_SPEC_PARSE_ERROR


class ReferenceError_(ApigenError):
    """Raised for an external, dangling, or cyclic ``$ref`` pointer.

    Named with a trailing underscore to avoid shadowing the built-in
    ``ReferenceError``.
    """

    exit_code = EXIT_REFERENCE_ERROR


class SchemaUnsupportedError(ApigenError):
    """Raised when a schema construct cannot be represented (``anyOf``, header parameters, ...)."""

    exit_code = EXIT_SCHEMA_UNSUPPORTED


class NameCollisionError(ApigenError):
    """Raised when two distinct labels sanitize to one identifier within a scope."""

    exit_code = EXIT_NAME_COLLISION


class DefinitionConflictError(ApigenError):
    """Raised when a definition name is registered twice with different content."""

    exit_code = EXIT_DEFINITION_CONFLICT


class RouteConflictError(ApigenError):
    """Raised when one version binds the same path and method (or operation id) twice."""

    exit_code = EXIT_ROUTE_CONFLICT


class AmbiguousDefaultError(ApigenError):
    """Raised when a required parameter or property declares a non-null default."""

    exit_code = EXIT_AMBIGUOUS_DEFAULT
