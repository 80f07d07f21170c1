"""Tests for apigen.generator.operations -- one version's routes and operations."""

from __future__ import annotations

import re
from typing import Any

import pytest

from apigen.exceptions import (
    NameCollisionError,
    ReferenceError_,
    RouteConflictError,
    SchemaUnsupportedError,
)
from apigen.generator.operations import build_version
from apigen.models import (
    BodyType,
    ErrorSet,
    ErrorVariant,
    HTTPMethod,
    Record,
    ScalarType,
    TypeRef,
)
from apigen.output import OutputFormat, OutputManager, set_output

STRING = TypeRef.of(ScalarType.STRING)
INT = TypeRef.of(ScalarType.INT64)


def _only_operation(version_model):
    assert len(version_model.routes) == 1
    return version_model.routes[0].operation


def _path_param(name: str, schema: dict[str, Any], **extra: Any) -> dict[str, Any]:
    return {"name": name, "in": "path", "required": True, "schema": schema, **extra}


# ---------------------------------------------------------------------------
# Fixture documents
# ---------------------------------------------------------------------------


class TestFixtureDocuments:
    def test_error_fixture(self, load_fixture) -> None:
        model = build_version(load_fixture("error.yaml"), 1, "error.yaml")
        op = _only_operation(model)

        assert op.id == "greet_user"
        assert op.doc == "Returns a greeting to the user!"
        assert op.path_params_type == "GreetUserPath"
        assert op.query_params_type is None
        assert op.body_type is None
        assert op.response_type == STRING
        assert op.error_type == "GreetUserError"
        assert op.result_type == TypeRef.fallible(STRING, "GreetUserError")
        assert list(model.definitions) == ["GreetUserPath", "GreetUserError"]

        errors = model.definitions["GreetUserError"].kind
        assert isinstance(errors, ErrorSet)
        assert errors.variants == [
            ErrorVariant(identifier="NotFound", detail_message="Not found", status_code=404),
            ErrorVariant(identifier="InvalidCharacterInName", detail_message="Invalid character in name", status_code=400),
            ErrorVariant(identifier="NameContainsSpace", detail_message="Name contains space", status_code=400),
        ]
        assert errors.doc == "Status NOT_FOUND:\nUser not found\n\nStatus BAD_REQUEST:\nInput data error"
        assert errors.variants[0].status_name == "NOT_FOUND"

    def test_default_parameter_fixture(self, load_fixture) -> None:
        model = build_version(load_fixture("default_parameter.yaml"), 1, "default_parameter.yaml")
        path_record = model.definitions["GreetUserPath"].kind
        assert isinstance(path_record, Record)
        assert [(p.identifier, p.wire_name, str(p.type_ref), p.default_ref) for p in path_record.properties] == [
            ("user", "user", "string", "default_str_World"),
            ("v_1_float", "v1_float", "float64", "default_float_1"),
            ("v_1_int", "v1_int", "int64", "default_int_1"),
            ("v_1_opt_float", "v1_opt_float", "Optional[float64]", "opt_default_float_1"),
            ("v_1_opt_int", "v1_opt_int", "Optional[int64]", "opt_default_int_1"),
            ("n_1", "n1", "Optional[int64]", "opt_default_int_1"),
            ("n_2", "n2", "int64", None),
            ("n_3", "n3", "Optional[int64]", None),
            ("n_4", "n4", "int64", "default_int_1"),
        ]
        assert path_record.properties[0].doc == "The name of the user to greet."

    def test_enum_fixture_response_named_after_operation(self, load_fixture) -> None:
        model = build_version(load_fixture("enum.yaml"), 1, "enum.yaml")
        op = _only_operation(model)
        assert op.response_type == TypeRef.named("GreetUser")
        assert op.error_type is None
        assert op.result_type == TypeRef.named("GreetUser")
        assert list(model.definitions) == ["GreetUserPath", "GreetUserStrEnum", "GreetUserIntEnum", "GreetUser"]

    def test_nested_body_fixture(self, load_fixture) -> None:
        model = build_version(load_fixture("request_body_nested.yaml"), 1, "request_body_nested.yaml")
        op = _only_operation(model)
        assert op.body_type == BodyType(type_ref=TypeRef.named("GreetUserBody"), optional=True)
        assert "GreetUserBodyObj" in model.definitions
        assert model.routes[0].method == HTTPMethod.POST

    def test_tagged_union_body_required(self, load_fixture) -> None:
        model = build_version(load_fixture("tagged_union.yaml"), 1, "tagged_union.yaml")
        op = _only_operation(model)
        assert op.body_type == BodyType(type_ref=TypeRef.named("GreetUserBody"), optional=False)
        assert model.definitions["GreetUserBody"].kind.discriminator == "type"

    def test_reference_fixture(self, load_fixture) -> None:
        model = build_version(load_fixture("reference.yaml"), 1, "reference.yaml")
        op = _only_operation(model)
        assert op.response_type == STRING
        props = model.definitions["GreetUserPath"].kind.properties
        assert [(p.wire_name, p.type_ref, p.doc) for p in props] == [
            ("user", STRING, "The name of the user to greet.")
        ]

    def test_version_metadata(self, load_fixture) -> None:
        model = build_version(load_fixture("error.yaml"), 3, "specs/error_v3.yaml")
        assert model.version == 3
        assert model.label == "v3"
        assert model.source == "specs/error_v3.yaml"
        assert model.spec_file == "error_v3.yaml"


# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------


class TestParameters:
    def test_operation_level_overrides_path_level(self, make_document, json_operation) -> None:
        doc = make_document(
            {
                "/hello/{user}": {
                    "parameters": [_path_param("user", {"type": "string"})],
                    "get": json_operation("greet_user", parameters=[_path_param("user", {"type": "integer"})]),
                }
            }
        )
        model = build_version(doc, 1, "api.yaml")
        props = model.definitions["GreetUserPath"].kind.properties
        assert [(p.wire_name, p.type_ref) for p in props] == [("user", INT)]

    def test_path_and_query_records(self, make_document, json_operation) -> None:
        doc = make_document(
            {
                "/pets/{id}": {
                    "get": json_operation(
                        "get_pet",
                        parameters=[
                            {"name": "verbose", "in": "query", "schema": {"type": "boolean"}},
                            _path_param("id", {"type": "integer"}),
                            {"name": "fields", "in": "query", "required": True, "schema": {"type": "array", "items": {"type": "string"}}},
                        ],
                    )
                }
            }
        )
        model = build_version(doc, 1, "api.yaml")
        op = _only_operation(model)
        assert op.path_params_type == "GetPetPath"
        assert op.query_params_type == "GetPetQuery"
        query = model.definitions["GetPetQuery"].kind
        assert [(p.identifier, str(p.type_ref)) for p in query.properties] == [
            ("verbose", "boolean"),
            ("fields", "list[string]"),
        ]

    def test_parameter_ref(self, make_document, json_operation) -> None:
        doc = make_document(
            {"/items": {"get": json_operation("list_items", parameters=[{"$ref": "#/components/parameters/Limit"}])}},
            parameters={"Limit": {"name": "limit", "in": "query", "schema": {"type": "integer", "default": 20}}},
        )
        model = build_version(doc, 1, "api.yaml")
        limit = model.definitions["ListItemsQuery"].kind.properties[0]
        assert limit.default_ref == "default_int_20"
        assert "default_int_20" in model.definitions

    def test_dangling_parameter_ref(self, make_document, json_operation) -> None:
        doc = make_document({"/items": {"get": json_operation("list_items", parameters=[{"$ref": "#/components/parameters/Nope"}])}})
        with pytest.raises(ReferenceError_) as exc_info:
            build_version(doc, 1, "api_v1.yaml")
        assert exc_info.value.location == "api_v1.yaml#/paths/~1items/get/parameters/0"

    @pytest.mark.parametrize("location", ["header", "cookie"])
    def test_header_and_cookie_rejected(self, location, make_document, json_operation) -> None:
        doc = make_document(
            {"/items": {"get": json_operation("list_items", parameters=[{"name": "X-Trace", "in": location}])}}
        )
        with pytest.raises(SchemaUnsupportedError, match="not supported") as exc_info:
            build_version(doc, 1, "api_v1.yaml")
        assert exc_info.value.pointer == "#/paths/~1items/get/parameters/0"
        assert exc_info.value.exit_code == 9

    def test_parameter_collision(self, make_document, json_operation) -> None:
        doc = make_document(
            {
                "/items": {
                    "get": json_operation(
                        "list_items",
                        parameters=[
                            {"name": "page-size", "in": "query", "schema": {"type": "integer"}},
                            {"name": "page_size", "in": "query", "schema": {"type": "integer"}},
                        ],
                    )
                }
            }
        )
        with pytest.raises(NameCollisionError, match="page_size"):
            build_version(doc, 1, "api.yaml")

    def test_parameter_named_from_operation(self, make_document, json_operation) -> None:
        doc = make_document(
            {
                "/items": {
                    "get": json_operation(
                        "list_items",
                        parameters=[{"name": "order", "in": "query", "schema": {"type": "string", "enum": ["asc", "desc"]}}],
                    )
                }
            }
        )
        model = build_version(doc, 1, "api.yaml")
        assert model.definitions["ListItemsQuery"].kind.properties[0].type_ref == TypeRef.named("ListItemsQueryOrder")


# ---------------------------------------------------------------------------
# Bodies and responses
# ---------------------------------------------------------------------------


class TestBodiesAndResponses:
    def test_non_json_body_rejected(self, make_document, json_operation) -> None:
        doc = make_document(
            {
                "/upload": {
                    "post": json_operation(
                        "upload",
                        requestBody={"content": {"multipart/form-data": {"schema": {"type": "object"}}}},
                    )
                }
            }
        )
        with pytest.raises(SchemaUnsupportedError, match="multipart/form-data"):
            build_version(doc, 1, "api.yaml")

    def test_vendor_json_body(self, make_document, json_operation) -> None:
        doc = make_document(
            {
                "/patch": {
                    "patch": json_operation(
                        "patch_it",
                        requestBody={"required": True, "content": {"application/merge-patch+json": {"schema": {"type": "string"}}}},
                    )
                }
            }
        )
        op = _only_operation(build_version(doc, 1, "api.yaml"))
        assert op.body_type == BodyType(type_ref=STRING, optional=False)

    def test_lowest_success_status_wins(self, make_document) -> None:
        operation = {
            "operationId": "create_pet",
            "responses": {
                "201": {"description": "Created", "content": {"application/json": {"schema": {"type": "integer"}}}},
                "200": {"description": "OK", "content": {"application/json": {"schema": {"type": "string"}}}},
            },
        }
        op = _only_operation(build_version(make_document({"/pets": {"post": operation}}), 1, "api.yaml"))
        assert op.response_type == STRING

    def test_no_content_is_empty(self, make_document) -> None:
        operation = {"operationId": "delete_pet", "responses": {"204": {"description": "Deleted"}}}
        op = _only_operation(build_version(make_document({"/pets": {"delete": operation}}), 1, "api.yaml"))
        assert op.response_type == TypeRef.empty()
        assert str(op.result_type) == "empty"

    def test_default_response_ignored_with_warning(self, make_document, json_operation, capfd) -> None:
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        operation = json_operation("ping")
        operation["responses"]["default"] = {"description": "Unexpected"}
        op = _only_operation(build_version(make_document({"/ping": {"get": operation}}), 1, "api.yaml"))
        assert op.error_type is None
        assert "ignoring 'default' response" in capfd.readouterr().err

    def test_status_range_rejected(self, make_document, json_operation) -> None:
        operation = json_operation("ping")
        operation["responses"]["4XX"] = {"description": "Client error"}
        with pytest.raises(SchemaUnsupportedError, match="4XX"):
            build_version(make_document({"/ping": {"get": operation}}), 1, "api.yaml")

    def test_error_without_content_uses_status_phrase(self, make_document, json_operation) -> None:
        operation = json_operation("get_pet")
        operation["responses"]["404"] = {"description": "No such pet"}
        model = build_version(make_document({"/pets/{id}": {"get": operation}}), 1, "api.yaml")
        errors = model.definitions["GetPetError"].kind
        assert errors.variants == [ErrorVariant(identifier="NotFound", detail_message="No such pet", status_code=404)]

    def test_error_schema_must_be_string_enum(self, make_document, json_operation) -> None:
        operation = json_operation("get_pet")
        operation["responses"]["500"] = {
            "description": "Oops",
            "content": {"application/json": {"schema": {"type": "object", "properties": {"code": {"type": "integer"}}}}},
        }
        with pytest.raises(SchemaUnsupportedError, match="string enum"):
            build_version(make_document({"/pets": {"get": operation}}), 1, "api.yaml")

    def test_error_const_schema(self, make_document, json_operation) -> None:
        operation = json_operation("get_pet")
        operation["responses"]["409"] = {
            "description": "Conflict",
            "content": {"application/json": {"schema": {"const": "Already exists"}}},
        }
        model = build_version(make_document({"/pets": {"get": operation}}), 1, "api.yaml")
        assert model.definitions["GetPetError"].kind.variants[0].identifier == "AlreadyExists"

    def test_error_variant_collision_across_statuses(self, make_document, json_operation) -> None:
        operation = json_operation("get_pet")
        operation["responses"]["404"] = {
            "description": "Missing",
            "content": {"application/json": {"schema": {"type": "string", "enum": ["Not found"]}}},
        }
        operation["responses"]["410"] = {
            "description": "Gone",
            "content": {"application/json": {"schema": {"type": "string", "enum": ["Not-found"]}}},
        }
        with pytest.raises(NameCollisionError, match="NotFound"):
            build_version(make_document({"/pets": {"get": operation}}), 1, "api.yaml")

    @pytest.mark.parametrize(
        ("prop", "extra", "owner"),
        [
            ("path", {"parameters": [_path_param("user", {"type": "string"})]}, "path parameters"),
            ("query", {"parameters": [{"name": "q", "in": "query", "schema": {"type": "string"}}]}, "query parameters"),
            (
                "body",
                {"requestBody": {"content": {"application/json": {"schema": {"type": "object", "properties": {"a": {"type": "string"}}}}}}},
                "request body",
            ),
            ("error", {}, "error set"),
        ],
    )
    def test_nested_response_object_cannot_take_operation_names(
        self, prop: str, extra: dict[str, Any], owner: str, make_document, json_operation
    ) -> None:
        response = {"type": "object", "properties": {prop: {"type": "object", "properties": {"x": {"type": "integer"}}}}}
        operation = json_operation("greet_user", response=response, **extra)
        if prop == "error":
            operation["responses"]["404"] = {"description": "User not found"}

        with pytest.raises(NameCollisionError, match=f"'GreetUser{prop.capitalize()}' .* {owner} of 'greet_user'") as exc_info:
            build_version(make_document({"/hello/{user}": {"post": operation}}), 1, "api_v1.yaml")
        assert exc_info.value.document == "api_v1.yaml"
        assert exc_info.value.pointer.endswith(f"/schema/properties/{prop}")

    def test_nested_response_name_free_when_unused(self, make_document, json_operation) -> None:
        response = {"type": "object", "properties": {"path": {"type": "object", "properties": {"x": {"type": "integer"}}}}}
        model = build_version(make_document({"/hello": {"get": json_operation("greet_user", response=response)}}), 1, "api_v1.yaml")
        assert list(model.definitions) == ["GreetUserPath", "GreetUser"]
        assert _only_operation(model).path_params_type is None

    def test_body_component_does_not_reserve_body_name(self, make_document, json_operation) -> None:
        schemas = {"Greeting": {"type": "object", "properties": {"text": {"type": "string"}}}}
        response = {"type": "object", "properties": {"body": {"type": "object", "properties": {"x": {"type": "integer"}}}}}
        body = {"content": {"application/json": {"schema": {"$ref": "#/components/schemas/Greeting"}}}}
        operation = json_operation("greet_user", response=response, requestBody=body)
        model = build_version(make_document({"/hello": {"post": operation}}, schemas=schemas), 1, "api_v1.yaml")
        assert list(model.definitions) == ["Greeting", "GreetUserBody", "GreetUser"]

    def test_doc_falls_back_to_description(self, make_document, json_operation) -> None:
        op = _only_operation(
            build_version(make_document({"/ping": {"get": json_operation("ping", description="Health check")}}), 1, "api.yaml")
        )
        assert op.doc == "Health check"


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


class TestRoutes:
    def test_document_order(self, make_document, json_operation) -> None:
        doc = make_document(
            {
                "/b": {"post": json_operation("create_b"), "get": json_operation("list_b"), "summary": "B things"},
                "/a": {"get": json_operation("list_a")},
            }
        )
        model = build_version(doc, 1, "api.yaml")
        assert [(r.method.value, r.path, r.operation.id) for r in model.routes] == [
            ("post", "/b", "create_b"),
            ("get", "/b", "list_b"),
            ("get", "/a", "list_a"),
        ]

    def test_synthesized_operation_id(self, make_document) -> None:
        operation = {"responses": {"200": {"description": "OK"}}}
        op = _only_operation(build_version(make_document({"/hello/{user}": {"get": operation}}), 1, "api.yaml"))
        assert op.id == "get_hello_user"

    def test_duplicate_operation_id(self, make_document, json_operation) -> None:
        doc = make_document({"/a": {"get": json_operation("same")}, "/b": {"get": json_operation("same")}})
        with pytest.raises(RouteConflictError, match="operationId 'same'") as exc_info:
            build_version(doc, 1, "api_v1.yaml")
        assert exc_info.value.pointer == "#/paths/~1b/get/operationId"
        assert exc_info.value.exit_code == 12

    def test_equivalent_templates_conflict(self, make_document, json_operation) -> None:
        doc = make_document(
            {
                "/users/{id}": {"get": json_operation("get_user")},
                "/users/{name}": {"get": json_operation("get_user_by_name")},
            }
        )
        with pytest.raises(RouteConflictError, match=re.escape("duplicates GET /users/{id}")):
            build_version(doc, 1, "api.yaml")

    def test_same_template_other_method_is_fine(self, make_document, json_operation) -> None:
        doc = make_document(
            {
                "/users/{id}": {"get": json_operation("get_user")},
                "/users/{name}": {"delete": json_operation("delete_user")},
            }
        )
        assert len(build_version(doc, 1, "api.yaml").routes) == 2

    def test_path_item_ref(self, make_document, json_operation) -> None:
        doc = make_document({"/ping": {"$ref": "#/components/pathItems/Ping"}}, pathItems={"Ping": {"get": json_operation("ping")}})
        assert _only_operation(build_version(doc, 1, "api.yaml")).id == "ping"

    def test_empty_paths(self, make_document) -> None:
        model = build_version(make_document(), 1, "api.yaml")
        assert model.routes == []
        assert model.definitions == {}
