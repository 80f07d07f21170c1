"""Tests for apigen.render -- YAML dump of the model and file writing."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from apigen.exceptions import ApigenError
from apigen.generator import build_api_model
from apigen.models import ApiModel
from apigen.render import dump_model, model_data, render_ir, write_outputs


@pytest.fixture
def hello_model(fixtures_dir: Path) -> ApiModel:
    return build_api_model(fixtures_dir / "hello_api")


class TestDumpModel:
    def test_top_level_order(self, hello_model: ApiModel) -> None:
        data = yaml.safe_load(dump_model(hello_model))
        assert list(data) == ["definitions", "operations", "routes", "static_routes"]

    def test_preserves_route_order(self, hello_model: ApiModel) -> None:
        data = yaml.safe_load(dump_model(hello_model))
        assert [r["url_path"] for r in data["routes"]][:2] == ["/hello/{user}", "/v1/hello/{user}"]

    def test_loads_back_into_model(self, hello_model: ApiModel) -> None:
        assert ApiModel.model_validate(yaml.safe_load(dump_model(hello_model))) == hello_model

    def test_none_fields_dropped(self, hello_model: ApiModel) -> None:
        greet = model_data(hello_model)["operations"]["greet_user"]
        assert "query_params_type" not in greet
        assert greet["response_type"] == {"kind": "scalar", "scalar": "string"}

    def test_multiline_strings_as_blocks(self, fixtures_dir: Path) -> None:
        text = dump_model(build_api_model(fixtures_dir / "error.yaml"))
        assert "doc: |-\n" in text
        assert "Status NOT_FOUND:" in text

    def test_stable(self, hello_model: ApiModel, fixtures_dir: Path) -> None:
        assert dump_model(hello_model) == dump_model(build_api_model(fixtures_dir / "hello_api"))


class TestRenderIr:
    def test_single_file(self, hello_model: ApiModel) -> None:
        files = render_ir(hello_model, file_name="model.yaml")
        assert [name for name, _ in files] == ["model.yaml"]
        assert files[0][1] == dump_model(hello_model)


class TestWriteOutputs:
    def test_writes_and_creates_directories(self, tmp_path: Path) -> None:
        written = write_outputs([("api.yaml", "a: 1\n"), ("nested/b.yaml", "b: 2\n")], tmp_path / "out")
        assert written == [(tmp_path / "out" / "api.yaml").resolve(), (tmp_path / "out" / "nested" / "b.yaml").resolve()]
        assert written[1].read_text(encoding="utf-8") == "b: 2\n"

    def test_overwrites(self, tmp_path: Path) -> None:
        write_outputs([("api.yaml", "old\n")], tmp_path)
        write_outputs([("api.yaml", "new\n")], tmp_path)
        assert (tmp_path / "api.yaml").read_text(encoding="utf-8") == "new\n"

    def test_refuses_escape(self, tmp_path: Path) -> None:
        with pytest.raises(ApigenError, match="Refusing to write outside"):
            write_outputs([("../evil.yaml", "x\n")], tmp_path / "out")
        assert not (tmp_path / "evil.yaml").exists()
