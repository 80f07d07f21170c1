"""Tests for apigen.parser.loader."""

from __future__ import annotations

import io
import json
import textwrap
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from apigen.exceptions import InvalidUsageError, SpecParseError
from apigen.parser.loader import (
    VersionSource,
    _load_from_url,
    _parse_content,
    discover_versions,
    load_spec,
    validate_openapi_version,
)

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


# ---------------------------------------------------------------------------
# load_spec dispatch
# ---------------------------------------------------------------------------


class TestLoadSpec:
    """Test load_spec dispatcher routes to the correct loader."""

    def test_loads_from_file_yaml(self) -> None:
        result = load_spec(str(FIXTURES_DIR / "enum.yaml"))
        assert result["openapi"] == "3.0.3"
        assert result["info"]["title"] == "Hello World API"

    def test_loads_from_file_json(self, tmp_path: Path) -> None:
        spec_file = tmp_path / "spec.json"
        spec_file.write_text(json.dumps({"openapi": "3.0.3", "paths": {}}), encoding="utf-8")
        assert load_spec(str(spec_file)) == {"openapi": "3.0.3", "paths": {}}

    def test_loads_from_stdin(self) -> None:
        spec_json = json.dumps({"openapi": "3.0.3", "info": {"title": "stdin test", "version": "1.0"}})
        with patch("apigen.parser.loader.sys") as mock_sys:
            mock_sys.stdin = io.StringIO(spec_json)
            result = load_spec("-")
        assert result["info"]["title"] == "stdin test"

    def test_empty_stdin_raises(self) -> None:
        with patch("apigen.parser.loader.sys") as mock_sys:
            mock_sys.stdin = io.StringIO("   ")
            with pytest.raises(SpecParseError, match="No input"):
                load_spec("-")

    def test_loads_from_url(self) -> None:
        spec = {"openapi": "3.0.3", "info": {"title": "URL test", "version": "1.0"}}
        mock_response = httpx.Response(
            status_code=200,
            json=spec,
            request=httpx.Request("GET", "https://example.com/spec.json"),
        )
        with patch("apigen.parser.loader.httpx.get", return_value=mock_response):
            result = load_spec("https://example.com/spec.json")
        assert result["info"]["title"] == "URL test"


class TestLoadFromFile:
    """Test local file errors carry the document name."""

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SpecParseError, match="not found"):
            load_spec(str(tmp_path / "nope.yaml"))

    def test_empty_file(self, tmp_path: Path) -> None:
        spec_file = tmp_path / "empty.yaml"
        spec_file.write_text("  \n", encoding="utf-8")
        with pytest.raises(SpecParseError, match="empty"):
            load_spec(str(spec_file))

    def test_invalid_json_names_document(self, tmp_path: Path) -> None:
        spec_file = tmp_path / "broken_v1.json"
        spec_file.write_text("{not json", encoding="utf-8")
        with pytest.raises(SpecParseError) as exc_info:
            load_spec(str(spec_file))
        assert exc_info.value.document == "broken_v1.json"
        assert "broken_v1.json" in str(exc_info.value)


class TestLoadFromUrl:
    """Test HTTP failures become SpecParseError."""

    def test_http_error_status(self) -> None:
        url = "https://example.com/missing.yaml"
        mock_response = httpx.Response(status_code=404, request=httpx.Request("GET", url))
        with patch("apigen.parser.loader.httpx.get", return_value=mock_response):
            with pytest.raises(SpecParseError, match="HTTP 404"):
                _load_from_url(url)

    def test_connection_error(self) -> None:
        url = "https://unreachable.example.com/spec.yaml"
        with patch(
            "apigen.parser.loader.httpx.get",
            side_effect=httpx.ConnectError("refused"),
        ):
            with pytest.raises(SpecParseError, match="Failed to fetch") as exc_info:
                _load_from_url(url)
        assert exc_info.value.document == url

    def test_yaml_content_type(self) -> None:
        url = "https://example.com/spec"
        mock_response = httpx.Response(
            status_code=200,
            text="openapi: 3.0.3\npaths: {}\n",
            headers={"content-type": "application/yaml"},
            request=httpx.Request("GET", url),
        )
        with patch("apigen.parser.loader.httpx.get", return_value=mock_response):
            assert _load_from_url(url)["openapi"] == "3.0.3"


class TestParseContent:
    """Test JSON/YAML detection."""

    def test_json_without_hint(self) -> None:
        assert _parse_content('{"openapi": "3.0.0"}') == {"openapi": "3.0.0"}

    def test_yaml_fallback(self) -> None:
        content = textwrap.dedent("""\
            openapi: "3.0.0"
            paths: {}
        """)
        assert _parse_content(content) == {"openapi": "3.0.0", "paths": {}}

    def test_non_mapping_rejected(self) -> None:
        with pytest.raises(SpecParseError, match="must be a JSON/YAML object"):
            _parse_content("- a\n- b\n", hint="yaml")

    def test_invalid_json_with_json_hint(self) -> None:
        with pytest.raises(SpecParseError, match="Invalid JSON"):
            _parse_content("openapi: 3", hint="json")


class TestValidateOpenapiVersion:
    """Test OpenAPI version validation."""

    def test_accepts_30(self) -> None:
        assert validate_openapi_version({"openapi": "3.0.3"}) == "3.0.3"

    def test_accepts_31(self) -> None:
        assert validate_openapi_version({"openapi": "3.1.0"}) == "3.1.0"

    def test_rejects_swagger(self) -> None:
        with pytest.raises(SpecParseError, match="Swagger 2.0 is not supported") as exc_info:
            validate_openapi_version({"swagger": "2.0"}, source="legacy.yaml")
        assert exc_info.value.location == "legacy.yaml#/swagger"

    def test_rejects_missing_version(self) -> None:
        with pytest.raises(SpecParseError, match="Missing 'openapi'"):
            validate_openapi_version({"info": {}})

    def test_rejects_other_major(self) -> None:
        with pytest.raises(SpecParseError, match="Unsupported OpenAPI version"):
            validate_openapi_version({"openapi": "4.0.0"})


# ---------------------------------------------------------------------------
# discover_versions
# ---------------------------------------------------------------------------


class TestDiscoverVersions:
    """Test version discovery in spec directories."""

    def test_single_file_is_version_one(self) -> None:
        path = FIXTURES_DIR / "enum.yaml"
        assert discover_versions(path) == [VersionSource(1, path)]

    def test_versioned_directory(self) -> None:
        versions = discover_versions(FIXTURES_DIR / "hello_api")
        assert [(v.version, v.path.name) for v in versions] == [
            (1, "hello_v1.yaml"),
            (2, "hello_v2.yaml"),
        ]

    def test_numeric_ordering(self, tmp_path: Path) -> None:
        for n in (10, 2, 1):
            (tmp_path / f"api_v{n}.yaml").write_text("openapi: 3.0.3\n", encoding="utf-8")
        assert [v.version for v in discover_versions(tmp_path)] == [1, 2, 10]

    def test_unversioned_files_ignored_next_to_versioned(self, tmp_path: Path) -> None:
        (tmp_path / "api_v1.yaml").write_text("openapi: 3.0.3\n", encoding="utf-8")
        (tmp_path / "notes.yaml").write_text("a: 1\n", encoding="utf-8")
        (tmp_path / "README.md").write_text("hi\n", encoding="utf-8")
        assert [v.path.name for v in discover_versions(tmp_path)] == ["api_v1.yaml"]

    def test_single_unversioned_file_in_directory(self, tmp_path: Path) -> None:
        (tmp_path / "openapi.yaml").write_text("openapi: 3.0.3\n", encoding="utf-8")
        assert discover_versions(tmp_path) == [VersionSource(1, tmp_path / "openapi.yaml")]

    def test_duplicate_version_rejected(self, tmp_path: Path) -> None:
        (tmp_path / "a_v1.yaml").write_text("openapi: 3.0.3\n", encoding="utf-8")
        (tmp_path / "b_v1.json").write_text("{}", encoding="utf-8")
        with pytest.raises(InvalidUsageError, match="declare version 1"):
            discover_versions(tmp_path)

    def test_version_zero_rejected(self, tmp_path: Path) -> None:
        (tmp_path / "api_v0.yaml").write_text("openapi: 3.0.3\n", encoding="utf-8")
        with pytest.raises(InvalidUsageError, match="start at 1"):
            discover_versions(tmp_path)

    def test_ambiguous_unversioned_files(self, tmp_path: Path) -> None:
        (tmp_path / "a.yaml").write_text("openapi: 3.0.3\n", encoding="utf-8")
        (tmp_path / "b.yaml").write_text("openapi: 3.0.3\n", encoding="utf-8")
        with pytest.raises(InvalidUsageError, match="Cannot order"):
            discover_versions(tmp_path)

    def test_empty_directory(self, tmp_path: Path) -> None:
        with pytest.raises(InvalidUsageError, match="No OpenAPI documents"):
            discover_versions(tmp_path)

    def test_missing_location(self, tmp_path: Path) -> None:
        with pytest.raises(InvalidUsageError, match="not found"):
            discover_versions(tmp_path / "missing")
