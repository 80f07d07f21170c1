"""Shared test fixtures for apigen.

Provides reusable fixtures for loading spec fixtures, building small inline
documents, creating isolated config environments, managing output state,
and running CLI commands.  These fixtures are automatically discovered by
pytest and available to all test modules without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional

import pytest
import yaml

from apigen.output import OutputFormat, OutputManager, reset_output, set_output


FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Spec fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fixtures_dir() -> Path:
    """Directory holding the YAML spec fixtures."""
    return FIXTURES_DIR


@pytest.fixture
def load_fixture() -> Callable[[str], dict[str, Any]]:
    """Return a loader for ``tests/fixtures/<name>`` as a plain dict."""

    def _load(name: str) -> dict[str, Any]:
        with open(FIXTURES_DIR / name, encoding="utf-8") as f:
            return yaml.safe_load(f)

    return _load


@pytest.fixture
def make_document() -> Callable[..., dict[str, Any]]:
    """Return a factory for minimal OpenAPI 3.0 documents.

    Example::

        doc = make_document({"/ping": {"get": {...}}}, schemas={"Pet": {...}})
    """

    def _make(
        paths: Optional[dict[str, Any]] = None,
        schemas: Optional[dict[str, Any]] = None,
        **components: Any,
    ) -> dict[str, Any]:
        document: dict[str, Any] = {
            "openapi": "3.0.3",
            "info": {"title": "Test API", "version": "1.0"},
            "paths": paths or {},
        }
        if schemas:
            components["schemas"] = schemas
        if components:
            document["components"] = components
        return document

    return _make


@pytest.fixture
def write_spec(tmp_path: Path) -> Callable[[str, dict[str, Any]], Path]:
    """Return a helper writing a document as YAML under ``tmp_path/specs``."""
    spec_dir = tmp_path / "specs"

    def _write(name: str, document: dict[str, Any]) -> Path:
        spec_dir.mkdir(exist_ok=True)
        path = spec_dir / name
        path.write_text(yaml.safe_dump(document, sort_keys=False), encoding="utf-8")
        return path

    return _write


def json_get(operation_id: str, response: Optional[dict[str, Any]] = None, **extra: Any) -> dict[str, Any]:
    """An operation object answering 200 with *response* as JSON (string by default)."""
    operation = {
        "operationId": operation_id,
        "responses": {
            "200": {
                "description": "OK",
                "content": {"application/json": {"schema": response or {"type": "string"}}},
            }
        },
    }
    operation.update(extra)
    return operation


@pytest.fixture
def json_operation() -> Callable[..., dict[str, Any]]:
    """Factory for operation objects, see :func:`json_get`."""
    return json_get


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME to a subdirectory of tmp_path so that tests never
    touch real user config, clears all APIGEN_* environment variables, and
    changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))

    for var in [
        "APIGEN_DOCS_PATH",
        "APIGEN_OUTPUT_FILE",
        "APIGEN_MAX_WORKERS",
        "APIGEN_RESERVED_WORDS",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def verbose_output() -> OutputManager:
    """Install a PLAIN-format OutputManager with debug messages enabled."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner.

    Returns a CliRunner instance that captures stdout/stderr and
    provides a consistent interface for invoking Typer apps in tests.
    """
    from typer.testing import CliRunner

    return CliRunner()
