"""Build the operations of one version document.

:func:`build_version` walks ``paths`` of a single OpenAPI document in
document order and produces a :class:`~apigen.models.VersionModel`: the
version's routes, each with its :class:`~apigen.models.Operation`, plus
every definition the operations need, in a registry local to the version.

For an operation with id ``greet_user`` the builder creates:

* ``GreetUserPath`` / ``GreetUserQuery`` -- records of the path and query
  parameters (path-level parameters merged with operation-level ones, the
  latter winning on the same ``name`` and ``in``);
* ``GreetUserBody`` -- the ``application/json`` request body, when inline;
* ``GreetUser`` -- the inline object of the lowest 2xx response; an object
  nested in it may not take one of the other names here (a property
  ``path`` holding an object raises :class:`~apigen.exceptions.NameCollisionError`
  when the operation has path parameters);
* ``GreetUserError`` -- an error set with one variant per
  ``(status, literal)`` pair of the non-2xx responses, which makes the
  operation's result a fallible pairing of response and error set.

Header and cookie parameters are rejected, since the generated router has
nowhere to put them.
"""

from __future__ import annotations

from http import HTTPStatus
from pathlib import Path
from typing import Any, Iterable, NamedTuple, Optional

from apigen.exceptions import RouteConflictError, SchemaUnsupportedError, SpecParseError
from apigen.generator.naming import (
    DEFAULT_RESERVED_WORDS,
    IdentifierScope,
    operation_id_for,
    route_shape,
    sanitize,
)
from apigen.generator.registry import DefinitionRegistry
from apigen.generator.types import TypeModeler
from apigen.models import (
    BodyType,
    Definition,
    ErrorSet,
    ErrorVariant,
    HTTPMethod,
    Operation,
    ParameterLocation,
    Property,
    TypeRef,
    VersionModel,
    VersionRoute,
)
from apigen.output import debug, warning
from apigen.parser.resolver import RefResolver, join_pointer

_METHODS = {m.value: m for m in HTTPMethod}
_SUPPORTED_LOCATIONS = (ParameterLocation.PATH, ParameterLocation.QUERY)


class _Parameter(NamedTuple):
    name: str
    location: ParameterLocation
    required: bool
    node: dict[str, Any]
    pointer: str


def build_version(
    document: dict[str, Any],
    version: int,
    source: str,
    spec_file: Optional[str] = None,
    reserved_words: Iterable[str] = DEFAULT_RESERVED_WORDS,
) -> VersionModel:
    """Build the :class:`~apigen.models.VersionModel` of one document.

    Args:
        document: The parsed OpenAPI document.
        version: Version number, 1 for the oldest document.
        source: Where the document came from; attached to errors.
        spec_file: File name served as ``/v<version>/openapi.yaml``.
            Defaults to the last path component of *source*.
        reserved_words: Identifiers that get a trailing underscore.

    Returns:
        The version's routes and definitions.

    Raises:
        ApigenError: Any resolution, modeling, or conflict error; the
            document name is filled in if the raiser did not know it.
    """
    registry = DefinitionRegistry(origin=f"v{version}")
    builder = OperationBuilder(RefResolver(document, source), registry, reserved_words)
    routes = builder.build_routes()
    debug(f"v{version}: {len(routes)} routes, {len(registry)} definitions from {source}")
    return VersionModel(
        version=version,
        source=source,
        spec_file=spec_file or Path(source).name,
        definitions=registry.snapshot(),
        routes=routes,
    )


class OperationBuilder:
    """Assembles operations of one document into a definition registry."""

    def __init__(
        self,
        resolver: RefResolver,
        registry: DefinitionRegistry,
        reserved_words: Iterable[str] = DEFAULT_RESERVED_WORDS,
    ) -> None:
        self._resolver = resolver
        self._modeler = TypeModeler(resolver, registry, reserved_words)

    @property
    def modeler(self) -> TypeModeler:
        return self._modeler

    def build_routes(self) -> list[VersionRoute]:
        """Build every ``(path, method)`` route of the document, in document order.

        Raises:
            RouteConflictError: If two equivalent path templates declare the
                same method, or an operation id is used twice.
        """
        paths = self._resolver.document.get("paths") or {}
        if not isinstance(paths, dict):
            raise SpecParseError("'paths' must be a mapping", document=self._source, pointer="#/paths")

        routes: list[VersionRoute] = []
        shapes: dict[tuple[HTTPMethod, str], str] = {}
        operation_ids: dict[str, str] = {}

        for path, item in paths.items():
            path = str(path)
            item_pointer = join_pointer("#/paths", path)
            item = self._resolver.resolve(item, item_pointer).node
            if not isinstance(item, dict):
                raise SpecParseError("Path item must be a mapping", document=self._source, pointer=item_pointer)

            for key, operation in item.items():
                method = _METHODS.get(key)
                if method is None:
                    continue
                op_pointer = join_pointer(item_pointer, key)

                shape = (method, route_shape(path))
                if shape in shapes:
                    raise RouteConflictError(
                        f"{method.value.upper()} {path} duplicates {method.value.upper()} {shapes[shape]}",
                        document=self._source,
                        pointer=op_pointer,
                    )
                shapes[shape] = path

                built = self.build_operation(path, method, operation, item.get("parameters") or [], item_pointer)
                if built.id in operation_ids:
                    raise RouteConflictError(
                        f"operationId '{built.id}' is used by both {operation_ids[built.id]} "
                        f"and {method.value.upper()} {path}",
                        document=self._source,
                        pointer=join_pointer(op_pointer, "operationId"),
                    )
                operation_ids[built.id] = f"{method.value.upper()} {path}"
                routes.append(VersionRoute(path=path, method=method, operation=built))
        return routes

    def build_operation(
        self,
        path: str,
        method: HTTPMethod,
        operation: dict[str, Any],
        path_parameters: list[Any],
        item_pointer: str,
    ) -> Operation:
        """Build one operation.

        Args:
            path: The path template, e.g. ``/hello/{user}``.
            method: The HTTP method.
            operation: The operation object.
            path_parameters: ``parameters`` declared on the path item.
            item_pointer: Location of the path item.
        """
        pointer = join_pointer(item_pointer, method.value)
        if not isinstance(operation, dict):
            raise SpecParseError("Operation must be a mapping", document=self._source, pointer=pointer)

        op_id = str(operation.get("operationId") or operation_id_for(method.value, path))
        type_name = sanitize(op_id)

        parameters = _merge_parameters(
            self._parameters(path_parameters, join_pointer(item_pointer, "parameters")),
            self._parameters(operation.get("parameters") or [], join_pointer(pointer, "parameters")),
        )
        path_type = self._parameter_record(parameters, ParameterLocation.PATH, f"{type_name}Path", pointer)
        query_type = self._parameter_record(parameters, ParameterLocation.QUERY, f"{type_name}Query", pointer)
        body_type = self._request_body(operation.get("requestBody"), f"{type_name}Body", pointer)

        taken: dict[str, str] = {}
        if path_type is not None:
            taken[path_type] = f"the path parameters of '{op_id}'"
        if query_type is not None:
            taken[query_type] = f"the query parameters of '{op_id}'"
        if body_type is not None and body_type.type_ref.name == f"{type_name}Body":
            taken[f"{type_name}Body"] = f"the request body of '{op_id}'"
        response_type, error_type = self._responses(
            operation.get("responses") or {}, op_id, type_name, pointer, taken
        )

        return Operation(
            id=op_id,
            doc=operation.get("summary") or operation.get("description"),
            path_params_type=path_type,
            query_params_type=query_type,
            body_type=body_type,
            response_type=response_type,
            error_type=error_type,
        )

    # ------------------------------------------------------------------ #
    # Parameters
    # ------------------------------------------------------------------ #

    def _parameters(self, raw: list[Any], pointer: str) -> list[_Parameter]:
        if not isinstance(raw, list):
            raise SpecParseError("'parameters' must be a list", document=self._source, pointer=pointer)

        parameters: list[_Parameter] = []
        for index, entry in enumerate(raw):
            resolved = self._resolver.resolve(entry, join_pointer(pointer, index))
            node = resolved.node
            if not isinstance(node, dict) or "name" not in node or "in" not in node:
                raise SpecParseError(
                    "Parameter needs 'name' and 'in'", document=self._source, pointer=resolved.pointer
                )
            try:
                location = ParameterLocation(node["in"])
            except ValueError:
                raise SchemaUnsupportedError(
                    f"Unknown parameter location '{node['in']}'",
                    document=self._source,
                    pointer=resolved.pointer,
                ) from None
            if location not in _SUPPORTED_LOCATIONS:
                raise SchemaUnsupportedError(
                    f"{location.value.capitalize()} parameter '{node['name']}' is not supported",
                    document=self._source,
                    pointer=resolved.pointer,
                )
            parameters.append(
                _Parameter(
                    name=str(node["name"]),
                    location=location,
                    required=bool(node.get("required", False)),
                    node=node,
                    pointer=resolved.pointer,
                )
            )
        return parameters

    def _parameter_record(
        self,
        parameters: list[_Parameter],
        location: ParameterLocation,
        name: str,
        pointer: str,
    ) -> Optional[str]:
        selected = [p for p in parameters if p.location == location]
        if not selected:
            return None

        scope = IdentifierScope(f"record {name}", document=self._source)
        properties: list[Property] = []
        for param in selected:
            identifier = scope.claim(self._modeler.property_identifier(param.name), param.name, param.pointer)
            schema, schema_pointer = self._parameter_schema(param)
            field = self._modeler.field(
                schema,
                param.required,
                name + sanitize(param.name),
                schema_pointer,
                doc=param.node.get("description"),
            )
            properties.append(
                Property(
                    identifier=identifier,
                    wire_name=param.name,
                    default_ref=field.default_ref,
                    type_ref=field.type_ref,
                    doc=field.doc,
                )
            )
        self._modeler.register_record(name, properties, pointer)
        return name

    def _parameter_schema(self, param: _Parameter) -> tuple[Any, str]:
        if "schema" in param.node:
            return param.node["schema"], join_pointer(param.pointer, "schema")
        media = self._json_media(param.node, param.pointer, what=f"parameter '{param.name}'")
        if media is None:
            return None, param.pointer
        return media

    # ------------------------------------------------------------------ #
    # Request body and responses
    # ------------------------------------------------------------------ #

    def _request_body(self, body: Any, name: str, pointer: str) -> Optional[BodyType]:
        if body is None:
            return None
        resolved = self._resolver.resolve(body, join_pointer(pointer, "requestBody"))
        media = self._json_media(resolved.node, resolved.pointer, what="request body")
        if media is None:
            raise SchemaUnsupportedError(
                "Request body declares no application/json content",
                document=self._source,
                pointer=resolved.pointer,
            )
        schema, schema_pointer = media
        return BodyType(
            type_ref=self._modeler.model(schema, name, schema_pointer),
            optional=not resolved.node.get("required", False),
        )

    def _responses(
        self,
        responses: dict[str, Any],
        op_id: str,
        type_name: str,
        pointer: str,
        taken: dict[str, str],
    ) -> tuple[TypeRef, Optional[str]]:
        """Model the success response and collect the error set.

        The success response is modeled while the operation's other
        definition names (*taken*, plus the error set's when there is one)
        are reserved.

        Returns:
            ``(response_type, error_set_name_or_None)``.
        """
        if not isinstance(responses, dict):
            raise SpecParseError("'responses' must be a mapping", document=self._source, pointer=pointer)

        error_name = f"{type_name}Error"
        scope = IdentifierScope(f"error set {error_name}", document=self._source)
        success: Optional[tuple[int, dict[str, Any], str]] = None
        variants: list[ErrorVariant] = []
        doc_blocks: list[str] = []

        for code, response in responses.items():
            code = str(code)
            response_pointer = join_pointer(pointer, "responses", code)
            if code == "default":
                warning(f"{self._source}: ignoring 'default' response of {type_name}; declare explicit status codes")
                continue
            if not (code.isdigit() and len(code) == 3):
                raise SchemaUnsupportedError(
                    f"Status code '{code}' is not supported; declare explicit status codes",
                    document=self._source,
                    pointer=response_pointer,
                )
            status = int(code)
            resolved = self._resolver.resolve(response, response_pointer)
            if not isinstance(resolved.node, dict):
                raise SpecParseError("Response must be a mapping", document=self._source, pointer=resolved.pointer)

            if 200 <= status < 300:
                if success is None or status < success[0]:
                    success = (status, resolved.node, resolved.pointer)
                continue

            for variant in self._error_variants(status, resolved.node, resolved.pointer, scope):
                if variant not in variants:
                    variants.append(variant)
            doc_blocks.append(f"Status {_status_name(status)}:\n{resolved.node.get('description', '')}".rstrip())

        if variants:
            taken = {**taken, error_name: f"the error set of '{op_id}'"}

        response_type = TypeRef.empty()
        if success is not None:
            _, node, success_pointer = success
            media = self._json_media(node, success_pointer, what="success response")
            if media is not None:
                schema, schema_pointer = media
                with self._modeler.reserving(taken):
                    response_type = self._modeler.model(schema, type_name, schema_pointer)

        if not variants:
            return response_type, None
        self._modeler.registry.register(
            Definition(name=error_name, kind=ErrorSet(doc="\n\n".join(doc_blocks), variants=variants)),
            document=self._source,
            pointer=join_pointer(pointer, "responses"),
        )
        return response_type, error_name

    def _error_variants(
        self,
        status: int,
        response: dict[str, Any],
        pointer: str,
        scope: IdentifierScope,
    ) -> list[ErrorVariant]:
        """One variant per literal of the response schema, or one per status without content."""
        media = self._json_media(response, pointer, what=f"{status} response", strict=False)
        if media is None:
            phrase = _status_phrase(status)
            identifier = scope.claim(self._modeler.variant_identifier(phrase), (status, phrase), pointer)
            detail = response.get("description") or phrase
            return [ErrorVariant(identifier=identifier, detail_message=detail, status_code=status)]

        schema, schema_pointer = media
        node = self._resolver.resolve(schema, schema_pointer).node if schema is not None else {}
        literals: list[Any] = []
        if isinstance(node, dict):
            if "const" in node:
                literals = [node["const"]]
            else:
                literals = [v for v in node.get("enum") or [] if v is not None]
        if not literals or not all(isinstance(v, str) for v in literals):
            raise SchemaUnsupportedError(
                f"Error response {status} must declare a string enum of detail messages",
                document=self._source,
                pointer=schema_pointer,
            )

        variants: list[ErrorVariant] = []
        for literal in literals:
            identifier = scope.claim(self._modeler.variant_identifier(literal), (status, literal), schema_pointer)
            variants.append(ErrorVariant(identifier=identifier, detail_message=literal, status_code=status))
        return variants

    def _json_media(
        self, node: dict[str, Any], pointer: str, what: str, strict: bool = True
    ) -> Optional[tuple[Any, str]]:
        """The ``(schema, pointer)`` of the JSON media type in ``node["content"]``.

        Returns ``None`` when there is no content at all.  Content without a
        JSON media type raises, or is ignored with a warning when not *strict*.
        """
        content = node.get("content")
        if not content:
            return None
        if not isinstance(content, dict):
            raise SpecParseError("'content' must be a mapping", document=self._source, pointer=pointer)

        media_type = next(
            (m for m in content if m == "application/json" or str(m).endswith("+json")),
            None,
        )
        if media_type is None:
            if strict:
                raise SchemaUnsupportedError(
                    f"The {what} only declares {', '.join(map(str, content))}; "
                    "application/json is required",
                    document=self._source,
                    pointer=join_pointer(pointer, "content"),
                )
            warning(f"{self._source}: ignoring non-JSON content of the {what}")
            return None

        media_pointer = join_pointer(pointer, "content", media_type)
        media = self._resolver.resolve(content[media_type], media_pointer).node or {}
        return media.get("schema"), join_pointer(media_pointer, "schema")

    @property
    def _source(self) -> Optional[str]:
        return self._resolver.source


def _merge_parameters(
    path_params: list[_Parameter],
    op_params: list[_Parameter],
) -> list[_Parameter]:
    """Merge path-level and operation-level parameters.

    Operation-level parameters override path-level parameters with the same
    name and location (``in`` field), per the OpenAPI spec.
    """
    overridden = {(p.name, p.location) for p in op_params}
    merged = [p for p in path_params if (p.name, p.location) not in overridden]
    merged.extend(op_params)
    return merged


def _status_name(status: int) -> str:
    try:
        return HTTPStatus(status).name
    except ValueError:
        return str(status)


def _status_phrase(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return f"Status {status}"
