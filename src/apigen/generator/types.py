"""Turn OpenAPI schema nodes into type references and named definitions.

:class:`TypeModeler` walks a schema (resolving ``$ref`` pointers through a
:class:`~apigen.parser.resolver.RefResolver`) and returns a
:class:`~apigen.models.TypeRef`, registering a
:class:`~apigen.models.Definition` for every record, enumeration, tagged
union, and default value it meets:

* ``string`` / ``integer`` / ``number`` / ``boolean`` become scalars, refined
  by ``format`` (``int32``, ``date-time``, ``uuid``, ...).
* ``array`` becomes a sequence of its item type.
* An object with ``properties`` becomes a :class:`~apigen.models.Record`;
  one with only ``additionalProperties`` becomes a string-keyed map.
* ``enum`` on a string or integer becomes an
  :class:`~apigen.models.Enumeration`.
* ``oneOf`` with a ``discriminator`` becomes an enumeration whose variants
  carry a payload record each (the discriminator field is left out of the
  payload, since the variant itself encodes it).  A payload taken from a
  component is named ``<Union><Component>`` (``PetCat``), so the component
  can still be used directly as ``Cat``.

Names come from the component a schema was declared under when there is
one, and are otherwise built from the context: the operation name followed
by the chain of property names (``GreetUserBodyObj``).

Nullability and defaults of a property or parameter follow this table
(``T`` is the modeled type)::

    required  nullable  default   type          default provider
    false     false     yes       T             literal
    false     false     no        T             -
    false     true      yes       Optional[T]   present(literal)
    false     true      no        Optional[T]   -
    true      false     no        T             -
    true      true      no        Optional[T]   -
    true      any       yes       AmbiguousDefaultError

Default value providers are named after their type and literal
(``default_int_1``, ``opt_default_float_0_1``) so that two properties with
the same type and default share one provider.
"""

from __future__ import annotations

import datetime
import hashlib
import json
import re
from contextlib import contextmanager, nullcontext
from typing import Any, Iterable, Iterator, NamedTuple, Optional

from apigen.exceptions import AmbiguousDefaultError, NameCollisionError, SchemaUnsupportedError
from apigen.generator.naming import (
    DEFAULT_RESERVED_WORDS,
    IdentifierScope,
    escape_reserved,
    sanitize,
    snake_identifier,
)
from apigen.generator.registry import DefinitionRegistry
from apigen.models import (
    Definition,
    DefaultValueProvider,
    Enumeration,
    Property,
    Record,
    ScalarType,
    TypeKind,
    TypeRef,
    Variant,
)
from apigen.parser.resolver import RefResolver, join_pointer

_SCALARS: dict[tuple[str, Optional[str]], ScalarType] = {
    ("string", None): ScalarType.STRING,
    ("string", "date"): ScalarType.DATE,
    ("string", "date-time"): ScalarType.DATETIME,
    ("string", "uuid"): ScalarType.UUID,
    ("string", "byte"): ScalarType.BYTES,
    ("string", "binary"): ScalarType.BYTES,
    ("integer", None): ScalarType.INT64,
    ("integer", "int32"): ScalarType.INT32,
    ("integer", "int64"): ScalarType.INT64,
    ("number", None): ScalarType.FLOAT64,
    ("number", "float"): ScalarType.FLOAT32,
    ("number", "double"): ScalarType.FLOAT64,
    ("boolean", None): ScalarType.BOOLEAN,
}

_SCALAR_SLUGS = {
    ScalarType.STRING: "str",
    ScalarType.DATE: "date",
    ScalarType.DATETIME: "datetime",
    ScalarType.UUID: "uuid",
    ScalarType.BYTES: "bytes",
    ScalarType.INT32: "int32",
    ScalarType.INT64: "int",
    ScalarType.FLOAT32: "float32",
    ScalarType.FLOAT64: "float",
    ScalarType.BOOLEAN: "bool",
}

_INTEGER_SCALARS = frozenset({ScalarType.INT32, ScalarType.INT64})
_FLOAT_SCALARS = frozenset({ScalarType.FLOAT32, ScalarType.FLOAT64})
_KNOWN_TYPES = frozenset({"string", "integer", "number", "boolean", "array", "object"})
_UNSUPPORTED_KEYWORDS = ("anyOf", "allOf", "not")

_SLUG_SAFE = re.compile(r"[A-Za-z0-9]+(?:_[A-Za-z0-9]+)*")
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]+")


class FieldType(NamedTuple):
    """Type, default provider, and doc of one property or parameter."""

    type_ref: TypeRef
    default_ref: Optional[str]
    doc: Optional[str]


def is_nullable(node: Any) -> bool:
    """True for ``nullable: true`` (3.0) or a ``type`` list containing ``"null"`` (3.1)."""
    if not isinstance(node, dict):
        return False
    declared = node.get("type")
    return node.get("nullable") is True or (isinstance(declared, list) and "null" in declared)


def default_provider_name(value_type: TypeRef, literal: Any) -> str:
    """Name of the provider for *literal* of *value_type*.

    Literals that cannot be spelled exactly in an identifier (strings with
    punctuation, lists, objects) get a short content hash, so distinct
    literals never share a name.

    Example::

        default_provider_name(TypeRef.of(ScalarType.INT64), 1)  # 'default_int_1'
    """
    if value_type.is_optional:
        assert value_type.inner is not None
        parts = ["opt_default", _type_slug(value_type.inner)]
    else:
        parts = ["default", _type_slug(value_type)]
    slug = _literal_slug(literal)
    if slug:
        parts.append(slug)
    return "_".join(parts)


def _type_slug(type_ref: TypeRef) -> str:
    if type_ref.kind == TypeKind.SCALAR:
        assert type_ref.scalar is not None
        return _SCALAR_SLUGS[type_ref.scalar]
    if type_ref.kind == TypeKind.NAMED:
        return snake_identifier(type_ref.name).lstrip("_")
    assert type_ref.inner is not None or type_ref.kind in (TypeKind.ANY, TypeKind.EMPTY)
    if type_ref.kind == TypeKind.SEQUENCE:
        return "list_" + _type_slug(type_ref.inner)
    if type_ref.kind == TypeKind.MAP:
        return "map_" + _type_slug(type_ref.inner)
    if type_ref.kind == TypeKind.OPTIONAL:
        return "opt_" + _type_slug(type_ref.inner)
    return type_ref.kind.value


def _literal_slug(literal: Any) -> str:
    if isinstance(literal, bool):
        return "true" if literal else "false"
    if isinstance(literal, int):
        return str(literal) if literal >= 0 else f"neg_{-literal}"
    if isinstance(literal, float):
        text = str(int(literal)) if literal.is_integer() and abs(literal) < 1e15 else repr(literal)
        return text.replace("-", "neg_").replace(".", "_").replace("+", "")
    if isinstance(literal, str) and _SLUG_SAFE.fullmatch(literal):
        return literal

    canonical = json.dumps(literal, sort_keys=True, separators=(",", ":"), default=str)
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:8]
    if isinstance(literal, str):
        readable = "_".join(token for token in _NON_ALNUM.split(literal) if token)
        return f"{readable}_{digest}" if readable else digest
    return digest


class TypeModeler:
    """Models schema nodes of one document into a definition registry.

    Args:
        resolver: Resolver for the document the schemas belong to.
        registry: Where new definitions are registered.
        reserved_words: Identifiers escaped with a trailing underscore.
    """

    def __init__(
        self,
        resolver: RefResolver,
        registry: DefinitionRegistry,
        reserved_words: Iterable[str] = DEFAULT_RESERVED_WORDS,
    ) -> None:
        self._resolver = resolver
        self._registry = registry
        self._reserved = frozenset(reserved_words)
        self._components: dict[str, TypeRef] = {}
        self._taken: dict[str, str] = {}

    @property
    def resolver(self) -> RefResolver:
        return self._resolver

    @property
    def registry(self) -> DefinitionRegistry:
        return self._registry

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def model(self, schema: Any, context: str, pointer: str) -> TypeRef:
        """Model *schema* and return its type.

        Nullability is not applied here; it belongs to the property or
        parameter holding the schema (see :meth:`field`).

        Args:
            schema: A schema object or a ``$ref`` to one.
            context: Name to use if the schema needs a synthesized name.
            pointer: Location of *schema* in the document.

        Raises:
            ReferenceError_: For bad or cyclic references.
            SchemaUnsupportedError: For constructs with no representation.
            NameCollisionError: For clashing identifiers in one definition.
            DefinitionConflictError: For two different definitions under one name.
        """
        if schema is None:
            return TypeRef.any()

        resolved = self._resolver.resolve(schema, pointer)
        if resolved.component is None:
            return self._model_node(resolved.node, context, resolved.pointer)

        cached = self._components.get(resolved.pointer)
        if cached is not None:
            return cached
        with self._resolver.entering(resolved.pointer):
            type_ref = self._model_node(resolved.node, sanitize(resolved.component), resolved.pointer)
        self._components[resolved.pointer] = type_ref
        return type_ref

    def field(
        self,
        schema: Any,
        required: bool,
        context: str,
        pointer: str,
        doc: Optional[str] = None,
    ) -> FieldType:
        """Model a property or parameter schema, applying nullability and defaults.

        Args:
            schema: The property/parameter schema (or a ``$ref``).
            required: Whether the property is listed in ``required``.
            context: Synthesized name for inline object or enum types.
            pointer: Location of *schema*.
            doc: Documentation overriding the schema's ``description``.

        Raises:
            AmbiguousDefaultError: If *required* and the schema has a non-null default.
        """
        node = self._resolver.resolve(schema, pointer).node if schema is not None else {}
        base = self.model(schema, context, pointer)
        default = node.get("default") if isinstance(node, dict) else None

        if required and default is not None:
            raise AmbiguousDefaultError(
                f"Required value declares the default {default!r}; "
                "remove the default or make the value optional",
                document=self._resolver.source,
                pointer=pointer,
            )

        type_ref = TypeRef.optional(base) if is_nullable(node) else base
        default_ref = None
        if default is not None:
            default_ref = self.default_provider(type_ref, default, pointer)
        if doc is None and isinstance(node, dict):
            doc = node.get("description")
        return FieldType(type_ref, default_ref, doc)

    def property_identifier(self, wire_name: str) -> str:
        """The escaped ``lower_snake`` identifier for a property or parameter."""
        return escape_reserved(snake_identifier(wire_name), self._reserved)

    def variant_identifier(self, label: Any) -> str:
        """The escaped ``UpperCamel`` identifier for an enumeration or error variant."""
        return escape_reserved(sanitize(label), self._reserved)

    def register_record(
        self,
        name: str,
        properties: list[Property],
        pointer: str,
        doc: Optional[str] = None,
    ) -> TypeRef:
        """Register a record assembled by the caller (e.g. a parameter set)."""
        self._register(Record(doc=doc, properties=properties), name, pointer)
        return TypeRef.named(name)

    @contextmanager
    def reserving(self, names: dict[str, str]) -> Iterator[None]:
        """Refuse to register definitions under *names* while active.

        Used around the success response of an operation, whose nested
        objects are named ``<Op><Prop>`` and would otherwise silently
        shadow ``<Op>Path``, ``<Op>Query``, ``<Op>Body`` or ``<Op>Error``.

        Args:
            names: Definition name to what it is reserved for, e.g.
                ``{"GreetUserPath": "the path parameters of 'greet_user'"}``.

        Raises:
            NameCollisionError: From the registration of a reserved name.
        """
        previous = self._taken
        self._taken = {**previous, **names}
        try:
            yield
        finally:
            self._taken = previous

    def default_provider(self, value_type: TypeRef, literal: Any, pointer: str) -> str:
        """Register (or reuse) the provider of *literal* for *value_type*.

        Returns:
            The provider's definition name.

        Raises:
            SchemaUnsupportedError: If *literal* does not fit *value_type*.
        """
        base = value_type.inner if value_type.is_optional else value_type
        assert base is not None
        literal = self._coerce_default(base, literal, pointer)
        name = default_provider_name(value_type, literal)
        provider = DefaultValueProvider(
            value_type=value_type, literal=literal, present=value_type.is_optional
        )
        self._register(provider, name, pointer)
        return name

    # ------------------------------------------------------------------ #
    # Schema dispatch
    # ------------------------------------------------------------------ #

    def _model_node(self, node: Any, name: str, pointer: str) -> TypeRef:
        if not isinstance(node, dict):
            raise self._unsupported(
                f"Expected a schema object, got {type(node).__name__}", pointer
            )
        for keyword in _UNSUPPORTED_KEYWORDS:
            if keyword in node:
                raise self._unsupported(f"'{keyword}' schemas are not supported", pointer)
        if "oneOf" in node:
            return self._model_tagged_union(node, name, pointer)

        kind = self._schema_type(node, pointer)
        if "enum" in node:
            return self._model_enumeration(node, kind, name, pointer)

        if kind == "array":
            items = node.get("items")
            if items is None:
                return TypeRef.sequence(TypeRef.any())
            items_pointer = join_pointer(pointer, "items")
            item_type = self.model(items, f"{name}Item", items_pointer)
            if is_nullable(self._resolver.resolve(items, items_pointer).node):
                item_type = TypeRef.optional(item_type)
            return TypeRef.sequence(item_type)

        if kind == "object":
            if node.get("properties"):
                return self._model_record(node, name, pointer)
            extra = node.get("additionalProperties")
            if isinstance(extra, dict) and extra:
                values_pointer = join_pointer(pointer, "additionalProperties")
                return TypeRef.mapping(self.model(extra, f"{name}Value", values_pointer))
            if extra is True or isinstance(extra, dict):
                return TypeRef.mapping(TypeRef.any())
            return TypeRef.any()

        if kind is None:
            return TypeRef.any()

        scalar = _SCALARS.get((kind, node.get("format"))) or _SCALARS[(kind, None)]
        return TypeRef.of(scalar)

    def _schema_type(self, node: dict[str, Any], pointer: str) -> Optional[str]:
        """The effective ``type`` of *node*, inferred when not declared."""
        declared = node.get("type")
        if isinstance(declared, list):
            non_null = [t for t in declared if t != "null"]
            if len(non_null) > 1:
                raise self._unsupported(f"Multiple types {declared} are not supported", pointer)
            declared = non_null[0] if non_null else None

        if declared is None:
            if "properties" in node or "additionalProperties" in node:
                return "object"
            if "items" in node:
                return "array"
            values = [v for v in node.get("enum") or [] if v is not None]
            if values and all(isinstance(v, str) for v in values):
                return "string"
            if values and all(isinstance(v, int) and not isinstance(v, bool) for v in values):
                return "integer"
            return None

        if declared not in _KNOWN_TYPES:
            raise self._unsupported(f"Unknown schema type '{declared}'", pointer)
        return declared

    # ------------------------------------------------------------------ #
    # Records, enumerations, tagged unions
    # ------------------------------------------------------------------ #

    def _model_record(
        self,
        node: dict[str, Any],
        name: str,
        pointer: str,
        exclude: frozenset[str] = frozenset(),
    ) -> TypeRef:
        required = node.get("required") or []
        if not isinstance(required, list):
            raise self._unsupported("'required' must be a list of property names", pointer)

        scope = IdentifierScope(f"record {name}", document=self._resolver.source)
        properties: list[Property] = []
        for wire_name, schema in node["properties"].items():
            wire_name = str(wire_name)
            if wire_name in exclude:
                continue
            prop_pointer = join_pointer(pointer, "properties", wire_name)
            identifier = scope.claim(self.property_identifier(wire_name), wire_name, prop_pointer)
            field = self.field(schema, wire_name in required, name + sanitize(wire_name), prop_pointer)
            properties.append(
                Property(
                    identifier=identifier,
                    wire_name=wire_name,
                    default_ref=field.default_ref,
                    type_ref=field.type_ref,
                    doc=field.doc,
                )
            )
        return self.register_record(name, properties, pointer, doc=node.get("description"))

    def _model_enumeration(
        self, node: dict[str, Any], kind: Optional[str], name: str, pointer: str
    ) -> TypeRef:
        if kind not in ("string", "integer"):
            raise self._unsupported(
                f"'enum' is only supported on string and integer schemas, not {kind}", pointer
            )

        scope = IdentifierScope(f"enumeration {name}", document=self._resolver.source)
        variants: list[Variant] = []
        seen: list[Any] = []
        for index, value in enumerate(node["enum"]):
            if value is None:
                # null in an enum only repeats nullable: true
                continue
            value_pointer = join_pointer(pointer, "enum", index)
            value = self._enum_literal(value, kind, value_pointer)
            if value in seen:
                continue
            seen.append(value)
            identifier = scope.claim(self.variant_identifier(value), value, value_pointer)
            variants.append(Variant(identifier=identifier, wire_value=value))

        if not variants:
            raise self._unsupported("'enum' declares no values", pointer)
        self._register(Enumeration(doc=node.get("description"), variants=variants), name, pointer)
        return TypeRef.named(name)

    def _enum_literal(self, value: Any, kind: str, pointer: str) -> Any:
        if isinstance(value, bool):
            raise self._unsupported(f"Boolean enum value {value!r} is not supported", pointer)
        if kind == "integer":
            if not isinstance(value, int):
                raise self._unsupported(f"Integer enum value {value!r} is not an integer", pointer)
            return value
        if isinstance(value, (int, float)):
            # unquoted YAML numbers in a string enum
            return str(value)
        if not isinstance(value, str):
            raise self._unsupported(f"String enum value {value!r} is not a string", pointer)
        return value

    def _model_tagged_union(self, node: dict[str, Any], name: str, pointer: str) -> TypeRef:
        discriminator = node.get("discriminator")
        if not isinstance(discriminator, dict) or not discriminator.get("propertyName"):
            raise self._unsupported(
                "'oneOf' is only supported together with a discriminator propertyName", pointer
            )
        tag = discriminator["propertyName"]
        mapped = {ref: key for key, ref in (discriminator.get("mapping") or {}).items()}

        scope = IdentifierScope(f"enumeration {name}", document=self._resolver.source)
        variants: list[Variant] = []
        for index, member in enumerate(node["oneOf"]):
            member_pointer = join_pointer(pointer, "oneOf", index)
            resolved = self._resolver.resolve(member, member_pointer)
            member_node = resolved.node
            if not isinstance(member_node, dict) or not member_node.get("properties"):
                raise self._unsupported(
                    "'oneOf' members must be object schemas with properties", member_pointer
                )

            ref = member.get("$ref") if isinstance(member, dict) else None
            wire_value = self._variant_tag(
                member_node, tag, mapped.get(ref), resolved.component, resolved.pointer
            )
            identifier = scope.claim(self.variant_identifier(wire_value), wire_value, member_pointer)

            if resolved.component is not None:
                # the component's own name stays free for its full record
                payload = name + sanitize(resolved.component)
            elif member_node.get("title"):
                payload = sanitize(member_node["title"])
            else:
                payload = name + sanitize(wire_value).lstrip("_")

            guard = (
                self._resolver.entering(resolved.pointer)
                if resolved.component is not None
                else nullcontext()
            )
            with guard:
                self._model_record(member_node, payload, resolved.pointer, exclude=frozenset({tag}))
            variants.append(
                Variant(identifier=identifier, wire_value=wire_value, payload_type_ref=payload)
            )

        enumeration = Enumeration(doc=node.get("description"), variants=variants, discriminator=tag)
        self._register(enumeration, name, pointer)
        return TypeRef.named(name)

    def _variant_tag(
        self,
        member: dict[str, Any],
        tag: str,
        mapped: Optional[str],
        component: Optional[str],
        pointer: str,
    ) -> Any:
        """The discriminator value selecting *member*.

        Taken from the discriminator ``mapping``, else from a ``const`` or
        single-value ``enum`` on the member's tag property, else the
        component name.
        """
        if mapped is not None:
            return mapped
        tag_schema = member["properties"].get(tag)
        if tag_schema is not None:
            tag_node = self._resolver.resolve(tag_schema, join_pointer(pointer, "properties", tag)).node
            values: list[Any] = []
            if isinstance(tag_node, dict):
                if "const" in tag_node:
                    values = [tag_node["const"]]
                else:
                    values = [v for v in tag_node.get("enum") or [] if v is not None]
            if len(values) == 1:
                return values[0]
        if component is not None:
            return component
        raise self._unsupported(
            f"Cannot tell which '{tag}' value selects this member; "
            "add a single-value enum or a discriminator mapping",
            pointer,
        )

    # ------------------------------------------------------------------ #
    # Defaults
    # ------------------------------------------------------------------ #

    def _coerce_default(self, base: TypeRef, literal: Any, pointer: str) -> Any:
        """Normalize *literal* to *base* (``1`` becomes ``1.0`` for numbers)."""
        mismatch = self._unsupported(f"Default {literal!r} does not match type {base}", pointer)

        if base.kind == TypeKind.SCALAR:
            if base.scalar in _INTEGER_SCALARS:
                if isinstance(literal, bool) or not isinstance(literal, (int, float)):
                    raise mismatch
                if isinstance(literal, float) and not literal.is_integer():
                    raise mismatch
                return int(literal)
            if base.scalar in _FLOAT_SCALARS:
                if isinstance(literal, bool) or not isinstance(literal, (int, float)):
                    raise mismatch
                return float(literal)
            if base.scalar == ScalarType.BOOLEAN:
                if not isinstance(literal, bool):
                    raise mismatch
                return literal
            if isinstance(literal, (datetime.date, datetime.datetime)):
                # YAML reads unquoted dates as date objects
                return literal.isoformat()
            if not isinstance(literal, str):
                raise mismatch
            return literal

        if base.kind == TypeKind.NAMED:
            definition = self._registry.get(base.name or "")
            if definition is not None and isinstance(definition.kind, Enumeration):
                if definition.kind.discriminator is None:
                    allowed = [variant.wire_value for variant in definition.kind.variants]
                    if literal not in allowed:
                        raise mismatch
            return literal

        if base.kind == TypeKind.SEQUENCE and not isinstance(literal, list):
            raise mismatch
        return literal

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _register(self, kind: Any, name: str, pointer: str) -> None:
        owner = self._taken.get(name)
        if owner is not None:
            raise NameCollisionError(
                f"The name '{name}' synthesized for this schema is already used by {owner}; "
                "move the schema into components to give it its own name",
                document=self._resolver.source,
                pointer=pointer,
            )
        self._registry.register(
            Definition(name=name, kind=kind), document=self._resolver.source, pointer=pointer
        )

    def _unsupported(self, message: str, pointer: str) -> SchemaUnsupportedError:
        return SchemaUnsupportedError(message, document=self._resolver.source, pointer=pointer)
