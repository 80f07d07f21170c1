"""Canonical Pydantic models shared across all apigen modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Configuration model** -- read from JSON config files and environment
variables: :class:`GeneratorConfig`.

**Type references** -- how a property, parameter set, or response refers to
a type: :class:`ScalarType`, :class:`TypeKind`, and :class:`TypeRef`.

**API model** -- the intermediate representation produced from the OpenAPI
documents and handed to a renderer: :class:`Definition` (with one of the
kinds :class:`StaticAsset`, :class:`StaticTextRoute`,
:class:`StaticHtmlRoute`, :class:`Redirect`, :class:`Record`,
:class:`Enumeration`, :class:`ErrorSet`, :class:`DefaultValueProvider`),
:class:`Operation`, :class:`RouteBinding`, :class:`StaticRouteBinding`,
:class:`VersionModel`, and :class:`ApiModel`.

The API model classes are frozen: once the merge engine has built an
:class:`ApiModel` nothing downstream can alter it.  Equality is structural
(field by field), which is exactly what definition deduplication needs.
"""

from __future__ import annotations

import enum
from http import HTTPStatus
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


_FROZEN = ConfigDict(frozen=True)


# --- Configuration ---


class GeneratorConfig(BaseModel):
    """Effective generator settings after precedence resolution.

    See :func:`~apigen.config.resolve_config` for how the values are layered
    from CLI flags, ``APIGEN_*`` environment variables, ``./apigen.json``, and
    the user config file.

    Example::

        GeneratorConfig(docs_path="assets", reserved_words=["type", "match"])
    """

    docs_path: str = Field(
        default="static",
        description="Directory (relative to the generated service) holding docs assets",
    )
    output_file: str = Field(
        default="api.yaml", description="File name used by the built-in IR renderer"
    )
    max_workers: Optional[int] = Field(
        default=None,
        ge=1,
        description="Threads used to load and build versions; None lets the executor decide",
    )
    reserved_words: list[str] = Field(
        default_factory=list,
        description="Extra reserved words escaped with a trailing underscore",
    )


# --- HTTP ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods recognised by OpenAPI 3.x path-item objects.

    Member order is the order in which methods are read from a path item.
    """

    GET = "get"
    PUT = "put"
    POST = "post"
    DELETE = "delete"
    OPTIONS = "options"
    HEAD = "head"
    PATCH = "patch"
    TRACE = "trace"


class ParameterLocation(str, enum.Enum):
    """Locations where an API parameter can appear, per OpenAPI ``in`` field."""

    QUERY = "query"
    HEADER = "header"
    PATH = "path"
    COOKIE = "cookie"


# --- Type references ---


class ScalarType(str, enum.Enum):
    """Scalar value types, refined by the OpenAPI ``format`` hint."""

    STRING = "string"
    DATE = "date"
    DATETIME = "date-time"
    UUID = "uuid"
    BYTES = "bytes"
    INT32 = "int32"
    INT64 = "int64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    BOOLEAN = "boolean"


class TypeKind(str, enum.Enum):
    """Shape of a :class:`TypeRef`."""

    SCALAR = "scalar"
    SEQUENCE = "sequence"
    MAP = "map"
    OPTIONAL = "optional"
    NAMED = "named"
    ANY = "any"
    EMPTY = "empty"
    FALLIBLE = "fallible"


class TypeRef(BaseModel):
    """Reference to a type: a scalar, a wrapper around another type, or a definition.

    Build instances through the classmethod constructors rather than by
    hand; they fill in exactly the fields each kind uses.

    * ``scalar`` -- ``scalar`` is set.
    * ``sequence`` / ``map`` / ``optional`` -- ``inner`` is the element type
      (``map`` keys are always strings).
    * ``named`` -- ``name`` is a key of :attr:`ApiModel.definitions`.
    * ``fallible`` -- ``inner`` is the success type and ``name`` the
      :class:`ErrorSet` definition.
    * ``any`` / ``empty`` -- free-form JSON value / no content.
    """

    model_config = _FROZEN

    kind: TypeKind
    scalar: Optional[ScalarType] = None
    name: Optional[str] = None
    inner: Optional[TypeRef] = None

    @classmethod
    def of(cls, scalar: ScalarType) -> TypeRef:
        return cls(kind=TypeKind.SCALAR, scalar=scalar)

    @classmethod
    def sequence(cls, inner: TypeRef) -> TypeRef:
        return cls(kind=TypeKind.SEQUENCE, inner=inner)

    @classmethod
    def mapping(cls, inner: TypeRef) -> TypeRef:
        return cls(kind=TypeKind.MAP, inner=inner)

    @classmethod
    def optional(cls, inner: TypeRef) -> TypeRef:
        if inner.kind == TypeKind.OPTIONAL:
            return inner
        return cls(kind=TypeKind.OPTIONAL, inner=inner)

    @classmethod
    def named(cls, name: str) -> TypeRef:
        return cls(kind=TypeKind.NAMED, name=name)

    @classmethod
    def any(cls) -> TypeRef:
        return cls(kind=TypeKind.ANY)

    @classmethod
    def empty(cls) -> TypeRef:
        return cls(kind=TypeKind.EMPTY)

    @classmethod
    def fallible(cls, success: TypeRef, error_set: str) -> TypeRef:
        return cls(kind=TypeKind.FALLIBLE, inner=success, name=error_set)

    @property
    def is_optional(self) -> bool:
        return self.kind == TypeKind.OPTIONAL

    def __str__(self) -> str:
        if self.kind == TypeKind.SCALAR:
            assert self.scalar is not None
            return self.scalar.value
        if self.kind == TypeKind.NAMED:
            return self.name or ""
        if self.kind == TypeKind.SEQUENCE:
            return f"list[{self.inner}]"
        if self.kind == TypeKind.MAP:
            return f"dict[string, {self.inner}]"
        if self.kind == TypeKind.OPTIONAL:
            return f"Optional[{self.inner}]"
        if self.kind == TypeKind.FALLIBLE:
            return f"Result[{self.inner}, {self.name}]"
        return self.kind.value


# --- Definition kinds ---


class StaticAsset(BaseModel):
    """A file embedded into the generated service, referenced by path."""

    model_config = _FROZEN

    tag: Literal["static_asset"] = "static_asset"
    path: str


class StaticTextRoute(BaseModel):
    """Serves a :class:`StaticAsset`'s content as plain text (a version's OpenAPI document)."""

    model_config = _FROZEN

    tag: Literal["static_text"] = "static_text"
    asset: str


class StaticHtmlRoute(BaseModel):
    """Serves a :class:`StaticAsset`'s content as HTML (the docs viewer)."""

    model_config = _FROZEN

    tag: Literal["static_html"] = "static_html"
    asset: str


class Redirect(BaseModel):
    """Redirects to *target*, resolved relative to the request path."""

    model_config = _FROZEN

    tag: Literal["redirect"] = "redirect"
    target: str


class Property(BaseModel):
    """One field of a :class:`Record`.

    ``identifier`` is the sanitized, keyword-escaped name used in generated
    code; ``wire_name`` is the name as written in the document and used for
    serialization.  ``default_ref`` names a :class:`DefaultValueProvider`.
    """

    model_config = _FROZEN

    identifier: str
    wire_name: str
    default_ref: Optional[str] = None
    type_ref: TypeRef
    doc: Optional[str] = None


class Record(BaseModel):
    """An object type with an ordered list of properties."""

    model_config = _FROZEN

    tag: Literal["record"] = "record"
    doc: Optional[str] = None
    properties: list[Property] = Field(default_factory=list)


class Variant(BaseModel):
    """One case of an :class:`Enumeration`.

    ``payload_type_ref`` is only set for tagged-union members, where it names
    the :class:`Record` carried by the case.
    """

    model_config = _FROZEN

    identifier: str
    wire_value: Any
    payload_type_ref: Optional[str] = None


class Enumeration(BaseModel):
    """A closed set of literal values, or a tagged union when ``discriminator`` is set."""

    model_config = _FROZEN

    tag: Literal["enumeration"] = "enumeration"
    doc: Optional[str] = None
    variants: list[Variant] = Field(default_factory=list)
    discriminator: Optional[str] = None


class ErrorVariant(BaseModel):
    """One documented failure of an operation: an HTTP status plus a literal detail."""

    model_config = _FROZEN

    identifier: str
    detail_message: str
    status_code: int

    @property
    def status_name(self) -> str:
        """The status constant name, e.g. ``NOT_FOUND`` for 404."""
        try:
            return HTTPStatus(self.status_code).name
        except ValueError:
            return str(self.status_code)


class ErrorSet(BaseModel):
    """All documented failures of one operation."""

    model_config = _FROZEN

    tag: Literal["error_set"] = "error_set"
    doc: Optional[str] = None
    variants: list[ErrorVariant] = Field(default_factory=list)


class DefaultValueProvider(BaseModel):
    """Supplies a default literal for one or more properties.

    ``present`` is ``True`` when the property type is optional and the default
    is "present with this value" rather than absent.
    """

    model_config = _FROZEN

    tag: Literal["default_value"] = "default_value"
    value_type: TypeRef
    literal: Any
    present: bool = False


DefinitionKind = Annotated[
    Union[
        StaticAsset,
        StaticTextRoute,
        StaticHtmlRoute,
        Redirect,
        Record,
        Enumeration,
        ErrorSet,
        DefaultValueProvider,
    ],
    Field(discriminator="tag"),
]


class Definition(BaseModel):
    """A named entry of the definition table."""

    model_config = _FROZEN

    name: str
    kind: DefinitionKind


# --- Operations and routes ---


class BodyType(BaseModel):
    """Request body type of an operation; ``optional`` when the body is not required."""

    model_config = _FROZEN

    type_ref: TypeRef
    optional: bool = False


class Operation(BaseModel):
    """One API operation, independent of the URL paths it is bound to.

    Parameter and body types are names of :class:`Record` definitions;
    ``error_type`` names an :class:`ErrorSet`.
    """

    model_config = _FROZEN

    id: str
    doc: Optional[str] = None
    path_params_type: Optional[str] = None
    query_params_type: Optional[str] = None
    body_type: Optional[BodyType] = None
    response_type: TypeRef
    error_type: Optional[str] = None

    @property
    def result_type(self) -> TypeRef:
        """The handler result: success and error set paired, or the bare response."""
        if self.error_type is None:
            return self.response_type
        return TypeRef.fallible(self.response_type, self.error_type)

    def signature(self) -> dict[str, Any]:
        """Everything that affects generated code; documentation is excluded."""
        return self.model_dump(exclude={"doc"})

    def same_signature(self, other: Operation) -> bool:
        return self.signature() == other.signature()


class RouteBinding(BaseModel):
    """Binds an HTTP method and URL path to an operation."""

    model_config = _FROZEN

    operation_id: str
    url_path: str
    http_method: HTTPMethod


class StaticRouteBinding(BaseModel):
    """Binds an HTTP method and URL path to a static definition."""

    model_config = _FROZEN

    http_method: HTTPMethod
    url_path: str
    definition_name: str


class VersionRoute(BaseModel):
    """A route declared by one version document, before merging."""

    model_config = _FROZEN

    path: str
    method: HTTPMethod
    operation: Operation


class VersionModel(BaseModel):
    """Everything one version document contributes to the API model.

    Produced by :func:`~apigen.generator.operations.build_version` and folded
    into the final model by :class:`~apigen.generator.merge.ModelMerger`.
    """

    model_config = _FROZEN

    version: int = Field(ge=1)
    source: str = Field(description="Where the document was loaded from")
    spec_file: str = Field(description="File name of the document, served as /vN/openapi.yaml")
    definitions: dict[str, Definition] = Field(default_factory=dict)
    routes: list[VersionRoute] = Field(default_factory=list)

    @property
    def label(self) -> str:
        """URL prefix segment of this version, e.g. ``v2``."""
        return f"v{self.version}"


class ApiModel(BaseModel):
    """The merged, versioned API model handed to a renderer."""

    model_config = _FROZEN

    definitions: dict[str, Definition] = Field(default_factory=dict)
    operations: dict[str, Operation] = Field(default_factory=dict)
    routes: list[RouteBinding] = Field(default_factory=list)
    static_routes: list[StaticRouteBinding] = Field(default_factory=list)

    def operation_for(self, method: HTTPMethod | str, url_path: str) -> Optional[Operation]:
        """Return the operation bound at *method* *url_path*, if any."""
        method = HTTPMethod(method)
        for route in self.routes:
            if route.http_method == method and route.url_path == url_path:
                return self.operations[route.operation_id]
        return None

    def static_route_for(self, url_path: str) -> Optional[Definition]:
        """Return the static definition served at GET *url_path*, if any."""
        for route in self.static_routes:
            if route.url_path == url_path:
                return self.definitions[route.definition_name]
        return None
