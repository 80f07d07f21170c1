"""Load OpenAPI documents from a URL, local file, stdin, or a version directory.

This module handles all I/O for fetching raw OpenAPI documents and converting
them into Python dictionaries.  It supports both JSON and YAML formats with
automatic format detection, and validates that each document declares a
supported OpenAPI version.

Public functions:

* :func:`load_spec` -- Load and parse a single document from any source.
* :func:`validate_openapi_version` -- Check and return the ``openapi``
  version string, rejecting Swagger 2.x.
* :func:`discover_versions` -- Find the per-version documents of an API in a
  directory (``openapi_v1.yaml``, ``openapi_v2.yaml``, ...) in version order.
"""

from __future__ import annotations

import json
import re
import sys
from pathlib import Path
from typing import Any, NamedTuple

import httpx
import yaml

from apigen.exceptions import InvalidUsageError, SpecParseError

_SPEC_SUFFIXES = (".yaml", ".yml", ".json")
_VERSIONED_NAME = re.compile(r"^.+_v(?P<version>\d+)\.(?:ya?ml|json)$", re.IGNORECASE)


class VersionSource(NamedTuple):
    """One version document found by :func:`discover_versions`."""

    version: int
    path: Path


def load_spec(source: str) -> dict[str, Any]:
    """Load an OpenAPI document from URL, file path, or stdin ('-').

    Supports JSON and YAML formats.
    Auto-detects format from content/extension.

    Args:
        source: A URL (http/https), file path, or '-' for stdin.

    Returns:
        The parsed document as a dictionary.

    Raises:
        SpecParseError: If the source cannot be loaded or parsed.
    """
    if source == "-":
        return _load_from_stdin()
    elif source.startswith(("http://", "https://")):
        return _load_from_url(source)
    else:
        return _load_from_file(source)


def _load_from_stdin() -> dict[str, Any]:
    """Read a document from stdin, trying JSON and then YAML."""
    try:
        content = sys.stdin.read()
    except OSError as exc:
        raise SpecParseError(f"Failed to read from stdin: {exc}") from exc

    if not content.strip():
        raise SpecParseError("No input received from stdin")

    return _parse_content(content, hint="stdin")


def _load_from_url(url: str) -> dict[str, Any]:
    """Fetch a document from a URL. Supports JSON and YAML responses.

    Raises:
        SpecParseError: If the URL cannot be fetched or content cannot be parsed.
    """
    try:
        response = httpx.get(url, timeout=30.0, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise SpecParseError(
            f"HTTP {exc.response.status_code} fetching spec from {url}", document=url
        ) from exc
    except httpx.RequestError as exc:
        raise SpecParseError(f"Failed to fetch spec from {url}: {exc}", document=url) from exc

    content_type = response.headers.get("content-type", "")
    hint = ""
    if "json" in content_type:
        hint = "json"
    elif "yaml" in content_type or "yml" in content_type:
        hint = "yaml"

    return _parse_content(response.text, hint=hint)


def _load_from_file(path: str) -> dict[str, Any]:
    """Load a document from a local file.

    Supports .json, .yaml, and .yml extensions. Falls back to content-based
    detection if the extension is not recognized.

    Raises:
        SpecParseError: If the file cannot be read or content cannot be parsed.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise SpecParseError(f"Spec file not found: {path}")

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SpecParseError(f"Failed to read spec file {path}: {exc}") from exc

    if not content.strip():
        raise SpecParseError(f"Spec file is empty: {path}")

    suffix = file_path.suffix.lower()
    hint = ""
    if suffix == ".json":
        hint = "json"
    elif suffix in (".yaml", ".yml"):
        hint = "yaml"

    try:
        return _parse_content(content, hint=hint)
    except SpecParseError as exc:
        raise exc.with_document(file_path.name)


def _parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse content as JSON or YAML.

    Tries JSON first (unless hint is 'yaml'), then falls back to YAML.
    Valid JSON is also valid YAML, but JSON parsing is stricter and faster.

    Args:
        content: The raw string content.
        hint: Optional format hint ('json' or 'yaml').

    Returns:
        The parsed dictionary.

    Raises:
        SpecParseError: If the content cannot be parsed as either format.
    """
    json_error: Exception | None = None
    yaml_error: Exception | None = None

    if hint != "yaml":
        try:
            result = json.loads(content)
        except json.JSONDecodeError as exc:
            json_error = exc
            if hint == "json":
                raise SpecParseError(f"Invalid JSON: {exc}") from exc
        else:
            if not isinstance(result, dict):
                raise SpecParseError(
                    f"Spec must be a JSON/YAML object (got {type(result).__name__})"
                )
            return result

    try:
        result = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        yaml_error = exc
    else:
        if not isinstance(result, dict):
            raise SpecParseError(
                "Spec must be a JSON/YAML object (got "
                f"{type(result).__name__ if result is not None else 'empty document'})"
            )
        return result

    msg = "Failed to parse spec as JSON or YAML"
    if json_error:
        msg += f"\n  JSON error: {json_error}"
    if yaml_error:
        msg += f"\n  YAML error: {yaml_error}"
    raise SpecParseError(msg)


def validate_openapi_version(spec: dict[str, Any], source: str | None = None) -> str:
    """Validate and return the OpenAPI version string.

    Accepts OpenAPI 3.x (3.0 is the primary target; 3.1 ``type`` arrays are
    read as nullability).  Raises SpecParseError for Swagger 2.x, missing
    version fields, or other major versions.

    Args:
        spec: The parsed document.
        source: Document name attached to the error.

    Returns:
        The OpenAPI version string (e.g., '3.0.3').

    Raises:
        SpecParseError: If the version is missing, unsupported, or indicates Swagger 2.x.
    """
    if "swagger" in spec:
        raise SpecParseError(
            f"Swagger {spec['swagger']} is not supported. "
            "Only OpenAPI 3.x documents are supported. "
            "Consider converting with https://converter.swagger.io",
            document=source,
            pointer="#/swagger",
        )

    openapi_version = spec.get("openapi")
    if openapi_version is None:
        raise SpecParseError(
            "Missing 'openapi' field. Is this an OpenAPI 3.x document?", document=source
        )

    version_str = str(openapi_version)
    if version_str.startswith("3."):
        return version_str

    raise SpecParseError(
        f"Unsupported OpenAPI version: {version_str}. Only OpenAPI 3.x is supported.",
        document=source,
        pointer="#/openapi",
    )


def discover_versions(location: str | Path) -> list[VersionSource]:
    """Find the version documents of an API, oldest first.

    *location* is either a single spec file (treated as version 1) or a
    directory.  In a directory, files named ``<anything>_v<N>.yaml`` (or
    ``.yml`` / ``.json``) are version ``N``.  A directory with no versioned
    names but exactly one spec file is treated as a single version.

    Args:
        location: Spec file or directory path.

    Returns:
        The version documents sorted by version number.

    Raises:
        InvalidUsageError: If nothing usable is found, or two files claim the
            same version number.
    """
    path = Path(location)
    if path.is_file():
        return [VersionSource(1, path)]
    if not path.is_dir():
        raise InvalidUsageError(f"Spec location not found: {location}")

    candidates = sorted(
        p for p in path.iterdir() if p.is_file() and p.suffix.lower() in _SPEC_SUFFIXES
    )
    found: dict[int, Path] = {}
    for candidate in candidates:
        match = _VERSIONED_NAME.match(candidate.name)
        if match is None:
            continue
        version = int(match.group("version"))
        if version < 1:
            raise InvalidUsageError(f"Version numbers start at 1: {candidate.name}")
        if version in found:
            raise InvalidUsageError(
                f"Both {found[version].name} and {candidate.name} declare version {version}"
            )
        found[version] = candidate

    if found:
        return [VersionSource(v, found[v]) for v in sorted(found)]
    if len(candidates) == 1:
        return [VersionSource(1, candidates[0])]
    if not candidates:
        raise InvalidUsageError(f"No OpenAPI documents found in {path}")
    raise InvalidUsageError(
        f"Cannot order {len(candidates)} documents in {path}; "
        "name them <name>_v1.yaml, <name>_v2.yaml, ..."
    )
