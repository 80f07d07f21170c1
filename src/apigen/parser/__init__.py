"""OpenAPI document parser -- load documents and resolve ``$ref`` pointers.

This sub-package is the input half of the apigen pipeline: turning raw
OpenAPI 3.x documents (JSON or YAML, local files, a version directory, or a
remote URL) into dictionaries plus a resolver the generator can query.

Typical usage::

    from apigen.parser import discover_versions, load_spec, RefResolver

    for version, path in discover_versions("api/"):
        raw = load_spec(str(path))
        resolver = RefResolver(raw, source=path.name)

Sub-modules:

* :mod:`~apigen.parser.loader` -- I/O layer (URL, file, stdin, directory)
  plus format detection and OpenAPI version validation.
* :mod:`~apigen.parser.resolver` -- Lazy ``$ref`` resolution with an explicit
  visit stack for cycle detection.
"""

from apigen.parser.loader import (
    VersionSource,
    discover_versions,
    load_spec,
    validate_openapi_version,
)
from apigen.parser.resolver import RefResolver, Resolved, join_pointer

__all__ = [
    "RefResolver",
    "Resolved",
    "VersionSource",
    "discover_versions",
    "join_pointer",
    "load_spec",
    "validate_openapi_version",
]
