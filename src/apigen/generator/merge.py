"""Fold per-version models into one backward-compatible :class:`ApiModel`.

Versions are merged oldest to newest, strictly one after the other: every
decision for version *N* depends on what versions ``1..N-1`` left behind.

Each route slot is a ``(method, path shape)`` pair, where the shape ignores
the names of template parameters (``/hello/{user}`` and ``/hello/{name}`` are
the same slot).  For every route of version *N*:

* a slot seen for the first time binds its operation at ``/vN/path`` and at
  the unprefixed ``/path``; the unprefixed binding never changes afterwards;
* a slot whose latest operation has the same id and signature is inherited:
  the existing operation is bound again at ``/vN/path``;
* anything else is a breaking redefinition: the new operation is registered
  and bound at ``/vN/path`` only, and becomes the slot's latest operation.

Example::

    merger = ModelMerger()
    for version_model in versions:
        merger.merge(version_model)
    model = merger.build(synthesize_static_routes(versions, "static"))
"""

from __future__ import annotations

from typing import Optional

from apigen.exceptions import DefinitionConflictError
from apigen.generator.naming import route_shape
from apigen.generator.registry import DefinitionRegistry
from apigen.generator.static_routes import StaticRoutes
from apigen.models import (
    ApiModel,
    HTTPMethod,
    Operation,
    RouteBinding,
    VersionModel,
)
from apigen.output import debug


class ModelMerger:
    """Accumulates versions into the global definition, operation, and route tables.

    The merger owns the only :class:`DefinitionRegistry` that ends up in the
    final model; per-version registries are folded into it.
    """

    def __init__(self) -> None:
        self._registry = DefinitionRegistry()
        self._operations: dict[str, Operation] = {}
        self._origins: dict[str, str] = {}
        self._routes: list[RouteBinding] = []
        self._slots: dict[tuple[HTTPMethod, str], str] = {}
        self._last_version = 0

    @property
    def registry(self) -> DefinitionRegistry:
        return self._registry

    def merge(self, version_model: VersionModel) -> None:
        """Fold one version into the accumulated tables.

        Args:
            version_model: The next version; versions must arrive in
                ascending order.

        Raises:
            ValueError: If versions arrive out of order.
            DefinitionConflictError: If a definition or an operation id is
                redeclared by this version with different content.
        """
        if version_model.version <= self._last_version:
            raise ValueError(
                f"Version {version_model.version} merged after version {self._last_version}"
            )
        self._last_version = version_model.version
        label = version_model.label

        for name, definition in version_model.definitions.items():
            try:
                self._registry.register(definition, origin=label)
            except DefinitionConflictError as exc:
                raise exc.with_document(version_model.source)

        for route in version_model.routes:
            operation = route.operation
            prefixed = f"/{label}{route.path}"
            slot = (route.method, route_shape(route.path))
            self._check_operation(operation, label, version_model.source)

            latest = self._slots.get(slot)
            if latest is None:
                self._register_operation(operation, label)
                self._bind(operation.id, route.path, route.method)
                self._bind(operation.id, prefixed, route.method)
                debug(f"{label}: new route {route.method.value.upper()} {route.path} -> {operation.id}")
            elif latest == operation.id:
                self._bind(operation.id, prefixed, route.method)
                debug(f"{label}: {route.method.value.upper()} {route.path} inherits {operation.id}")
            else:
                self._register_operation(operation, label)
                self._bind(operation.id, prefixed, route.method)
                debug(
                    f"{label}: {route.method.value.upper()} {route.path} redefined "
                    f"{latest} -> {operation.id}"
                )
            self._slots[slot] = operation.id

    def build(self, static_routes: Optional[StaticRoutes] = None) -> ApiModel:
        """Produce the merged model, adding the static definitions and routes."""
        static_bindings = []
        if static_routes is not None:
            for definition in static_routes.definitions:
                self._registry.register(definition, origin="static")
            static_bindings = list(static_routes.routes)
        return ApiModel(
            definitions=self._registry.snapshot(),
            operations=dict(self._operations),
            routes=list(self._routes),
            static_routes=static_bindings,
        )

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _check_operation(self, operation: Operation, label: str, source: str) -> None:
        existing = self._operations.get(operation.id)
        if existing is None or existing.same_signature(operation):
            return
        raise DefinitionConflictError(
            f"Operation '{operation.id}' (first defined by {self._origins[operation.id]}) is "
            f"redefined by {label} with a different signature. Give the new operation a new operationId.",
            document=source,
        )

    def _register_operation(self, operation: Operation, label: str) -> None:
        if operation.id not in self._operations:
            self._operations[operation.id] = operation
            self._origins[operation.id] = label

    def _bind(self, operation_id: str, url_path: str, method: HTTPMethod) -> None:
        self._routes.append(
            RouteBinding(operation_id=operation_id, url_path=url_path, http_method=method)
        )


def merge_versions(
    versions: list[VersionModel],
    static_routes: Optional[StaticRoutes] = None,
) -> ApiModel:
    """Merge *versions* (oldest first) into one :class:`ApiModel`."""
    merger = ModelMerger()
    for version_model in sorted(versions, key=lambda v: v.version):
        merger.merge(version_model)
    return merger.build(static_routes)
