"""Tests for apigen.exceptions -- error kinds, locations, exit codes."""

from __future__ import annotations

import pytest

from apigen import exit_codes
from apigen.exceptions import (
    AmbiguousDefaultError,
    ApigenError,
    ConfigError,
    DefinitionConflictError,
    InvalidUsageError,
    NameCollisionError,
    ReferenceError_,
    RouteConflictError,
    SchemaUnsupportedError,
    SpecParseError,
)


class TestExitCodes:
    @pytest.mark.parametrize(
        ("error_class", "code"),
        [
            (ApigenError, exit_codes.EXIT_GENERIC_FAILURE),
            (ConfigError, exit_codes.EXIT_GENERIC_FAILURE),
            (InvalidUsageError, exit_codes.EXIT_INVALID_USAGE),
            (SpecParseError, exit_codes.EXIT_SPEC_PARSE_ERROR),
            (ReferenceError_, exit_codes.EXIT_REFERENCE_ERROR),
            (SchemaUnsupportedError, exit_codes.EXIT_SCHEMA_UNSUPPORTED),
            (NameCollisionError, exit_codes.EXIT_NAME_COLLISION),
            (DefinitionConflictError, exit_codes.EXIT_DEFINITION_CONFLICT),
            (RouteConflictError, exit_codes.EXIT_ROUTE_CONFLICT),
            (AmbiguousDefaultError, exit_codes.EXIT_AMBIGUOUS_DEFAULT),
        ],
    )
    def test_class_exit_code(self, error_class, code) -> None:
        assert error_class("boom").exit_code == code
        assert issubclass(error_class, ApigenError)

    def test_override(self) -> None:
        assert ApigenError("boom", exit_code=42).exit_code == 42


class TestFormatting:
    def test_kind_drops_trailing_underscore(self) -> None:
        assert ReferenceError_("x").kind == "ReferenceError"
        assert RouteConflictError("x").kind == "RouteConflictError"

    def test_message_only(self) -> None:
        err = SchemaUnsupportedError("allOf is not supported")
        assert err.location is None
        assert str(err) == "allOf is not supported"

    def test_document_and_pointer(self) -> None:
        err = SchemaUnsupportedError("allOf is not supported", document="pets_v1.yaml", pointer="#/components/schemas/Pet")
        assert str(err) == "allOf is not supported (at pets_v1.yaml#/components/schemas/Pet)"

    def test_pointer_without_document(self) -> None:
        assert NameCollisionError("x", pointer="#/a").location == "<document>#/a"

    def test_with_document_fills_only_missing(self) -> None:
        err = ReferenceError_("x", pointer="#/a")
        assert err.with_document("api_v2.yaml") is err
        assert err.location == "api_v2.yaml#/a"
        err.with_document("other.yaml")
        assert err.document == "api_v2.yaml"
