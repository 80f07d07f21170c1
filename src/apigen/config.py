"""Configuration management with XDG paths and precedence resolution.

Generator settings (:class:`~apigen.models.GeneratorConfig`) are layered from
four sources, highest precedence first:

1. CLI flags passed to :func:`resolve_config`.
2. Environment variables ``APIGEN_DOCS_PATH``, ``APIGEN_OUTPUT_FILE``,
   ``APIGEN_MAX_WORKERS``, and ``APIGEN_RESERVED_WORDS`` (comma-separated).
3. Project config ``./apigen.json`` in the current working directory.
4. User config ``config.json`` in the XDG config directory
   (``$XDG_CONFIG_HOME/apigen/`` on Linux/BSD, ``~/.apigen/`` elsewhere).

Anything left unset falls back to the model defaults.
"""

from __future__ import annotations

import json
import os
import platform
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from apigen.exceptions import ConfigError
from apigen.models import GeneratorConfig

_APP_NAME = "apigen"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "apigen.json"

_ENV_PREFIX = "APIGEN_"
_ENV_FIELDS = ("docs_path", "output_file", "max_workers", "reserved_words")


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_config_dir() -> Path:
    """Return the user configuration directory (not created).

    On Linux/BSD: ``$XDG_CONFIG_HOME/apigen/`` (default ``~/.config/apigen/``).
    On macOS/Windows: ``~/.apigen/``.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_CONFIG_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".config"
        return base / _APP_NAME
    return Path.home() / f".{_APP_NAME}"


# --- Config files ---


def _read_json_config(path: Path, label: str) -> Optional[dict[str, Any]]:
    """Read a JSON object from *path*, or ``None`` if the file does not exist."""
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Invalid {label} config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid {label} config at {path}: expected a JSON object")
    return data


def load_user_config() -> Optional[dict[str, Any]]:
    """Load the user-level configuration file.

    Returns:
        The parsed JSON as a dict, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but does not contain a JSON object.
    """
    return _read_json_config(get_config_dir() / _CONFIG_FILENAME, "user")


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./apigen.json``.

    Project-local config sits between the user config and environment
    variables in the precedence chain.  A repository typically pins its
    ``docs_path`` and target ``reserved_words`` here.

    Returns:
        The parsed JSON as a dict, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but does not contain a JSON object.
    """
    return _read_json_config(Path.cwd() / _PROJECT_CONFIG_FILENAME, "project")


def _env_overrides() -> dict[str, Any]:
    """Collect ``APIGEN_*`` environment variables as raw config values."""
    values: dict[str, Any] = {}
    for field in _ENV_FIELDS:
        raw = os.environ.get(_ENV_PREFIX + field.upper())
        if not raw:
            continue
        if field == "reserved_words":
            values[field] = [word.strip() for word in raw.split(",") if word.strip()]
        elif field == "max_workers":
            try:
                values[field] = int(raw)
            except ValueError as exc:
                raise ConfigError(
                    f"{_ENV_PREFIX}MAX_WORKERS must be an integer, got {raw!r}"
                ) from exc
        else:
            values[field] = raw
    return values


# --- Precedence resolution ---


def resolve_config(
    cli_docs_path: Optional[str] = None,
    cli_output_file: Optional[str] = None,
    cli_max_workers: Optional[int] = None,
    cli_reserved_words: Optional[list[str]] = None,
) -> GeneratorConfig:
    """Resolve the generator config with full precedence chain.

    Precedence (high to low):
        1. CLI flags
        2. Environment variables (``APIGEN_*``)
        3. Project config (``./apigen.json``)
        4. User config (``~/.config/apigen/config.json``)
        5. Defaults

    Reserved words are the one exception to "highest wins": CLI words are
    added to whatever the lower layers configured.

    Returns:
        The effective :class:`~apigen.models.GeneratorConfig`.

    Raises:
        ConfigError: If a config file is malformed or a value fails validation.
    """
    merged: dict[str, Any] = {}
    for layer in (load_user_config(), load_project_config(), _env_overrides()):
        if layer:
            merged.update(layer)

    if cli_docs_path is not None:
        merged["docs_path"] = cli_docs_path
    if cli_output_file is not None:
        merged["output_file"] = cli_output_file
    if cli_max_workers is not None:
        merged["max_workers"] = cli_max_workers
    if cli_reserved_words:
        merged["reserved_words"] = list(merged.get("reserved_words", [])) + list(cli_reserved_words)

    try:
        return GeneratorConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
