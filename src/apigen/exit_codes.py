"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~apigen.exceptions.ApigenError` subclass.
Build scripts and CI jobs can inspect the exit code to tell a broken
reference from a breaking schema change without parsing stderr.

Example::

    $ apigen generate api/
    $ echo $?
    11   # EXIT_DEFINITION_CONFLICT -- v2 changed a definition in place
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_SPEC_PARSE_ERROR = 7
"""An OpenAPI document could not be loaded, parsed, or validated."""

EXIT_REFERENCE_ERROR = 8
"""A ``$ref`` pointer is external, dangling, or part of a cycle."""

EXIT_SCHEMA_UNSUPPORTED = 9
"""A schema construct has no representation in the model."""

EXIT_NAME_COLLISION = 10
"""Two distinct labels sanitize to the same identifier."""

EXIT_DEFINITION_CONFLICT = 11
"""Two definitions share a name but differ in content."""

EXIT_ROUTE_CONFLICT = 12
"""The same path and method are declared twice within one version."""

EXIT_AMBIGUOUS_DEFAULT = 13
"""A required value also declares a non-null default."""
