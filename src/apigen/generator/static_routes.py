"""Documentation and raw-spec routes served next to the API.

Every version gets its own spec document at ``/vN/openapi.yaml`` and the
shared docs viewer at ``/vN/docs``; ``/vN`` redirects to ``vN/docs``.  The
unprefixed ``/openapi.yaml`` serves the latest version's document, and ``/``
as well as every ``/vN/`` redirect to the relative target ``docs``, so the
viewer always loads the spec sitting next to it.
"""

from __future__ import annotations

import posixpath
from typing import NamedTuple

from apigen.models import (
    Definition,
    HTTPMethod,
    Redirect,
    StaticAsset,
    StaticHtmlRoute,
    StaticRouteBinding,
    StaticTextRoute,
    VersionModel,
)

DOCS_HTML = "DOCS_HTML"
DOCS_VIEWER_FILE = "docs.html"


class StaticRoutes(NamedTuple):
    """Static definitions plus the routes serving them, both in emission order."""

    definitions: list[Definition]
    routes: list[StaticRouteBinding]


def synthesize_static_routes(versions: list[VersionModel], docs_path: str) -> StaticRoutes:
    """Build the static definitions and routes for *versions*.

    Args:
        versions: All versions, in any order; they are sorted by number.
        docs_path: Directory (relative to the generated service) holding the
            docs viewer and the spec documents.

    Raises:
        ValueError: If *versions* is empty.
    """
    if not versions:
        raise ValueError("At least one version is required")
    versions = sorted(versions, key=lambda v: v.version)
    latest = versions[-1]

    definitions = [
        Definition(name=DOCS_HTML, kind=StaticAsset(path=posixpath.join(docs_path, DOCS_VIEWER_FILE))),
        Definition(name="docs", kind=StaticHtmlRoute(asset=DOCS_HTML)),
        Definition(name="to_docs", kind=Redirect(target="docs")),
    ]
    for version in versions:
        asset = f"DOCS_OPENAPI_{version.label.upper()}"
        definitions.extend(
            [
                Definition(name=asset, kind=StaticAsset(path=posixpath.join(docs_path, version.spec_file))),
                Definition(name=f"openapi_{version.label}", kind=StaticTextRoute(asset=asset)),
                Definition(name=f"to_{version.label}_docs", kind=Redirect(target=f"{version.label}/docs")),
            ]
        )

    routes = [
        _get("/", "to_docs"),
        _get("/docs", "docs"),
        _get("/openapi.yaml", f"openapi_{latest.label}"),
    ]
    for version in versions:
        prefix = f"/{version.label}"
        routes.extend(
            [
                _get(prefix, f"to_{version.label}_docs"),
                _get(f"{prefix}/", "to_docs"),
                _get(f"{prefix}/docs", "docs"),
                _get(f"{prefix}/openapi.yaml", f"openapi_{version.label}"),
            ]
        )
    return StaticRoutes(definitions, routes)


def _get(url_path: str, definition_name: str) -> StaticRouteBinding:
    return StaticRouteBinding(http_method=HTTPMethod.GET, url_path=url_path, definition_name=definition_name)
