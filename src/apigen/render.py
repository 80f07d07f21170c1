"""Renderers -- turn an :class:`~apigen.models.ApiModel` into output files.

A renderer is a pure function from the model to an ordered list of
``(file_name, text)`` pairs; it never touches the filesystem and keeps no
state between calls.  :func:`write_outputs` is the only place that writes.

The built-in :func:`render_ir` emits the model itself as YAML, which is what
target-language templates consume.  The dump keeps the model's ordering, so
the same input documents always produce byte-identical output.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol

import yaml

from apigen.exceptions import ApigenError
from apigen.models import ApiModel
from apigen.output import debug


class Renderer(Protocol):
    """Callable turning a model into ``(file_name, text)`` pairs."""

    def __call__(self, model: ApiModel) -> list[tuple[str, str]]: ...


class _IRDumper(yaml.SafeDumper):
    """SafeDumper that writes multi-line strings as literal blocks."""


def _represent_str(dumper: yaml.SafeDumper, data: str) -> Any:
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


_IRDumper.add_representer(str, _represent_str)


def model_data(model: ApiModel) -> dict[str, Any]:
    """JSON-compatible form of *model*, with unset optional fields dropped."""
    return model.model_dump(mode="json", exclude_none=True)


def dump_model(model: ApiModel) -> str:
    """Serialize *model* to YAML, preserving definition and route order."""
    return yaml.dump(
        model_data(model),
        Dumper=_IRDumper,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )


def render_ir(model: ApiModel, file_name: str = "api.yaml") -> list[tuple[str, str]]:
    """The built-in renderer: a single YAML file holding the whole model."""
    return [(file_name, dump_model(model))]


def write_outputs(files: list[tuple[str, str]], directory: str | Path) -> list[Path]:
    """Write renderer output under *directory*, creating it if needed.

    Args:
        files: ``(file_name, text)`` pairs; names may contain subdirectories
            but must stay inside *directory*.
        directory: Output root.

    Returns:
        The written paths, in input order.

    Raises:
        ApigenError: If a file name escapes *directory* or cannot be written.
    """
    root = Path(directory).resolve()
    written: list[Path] = []
    for name, text in files:
        target = (root / name).resolve()
        if root != target and root not in target.parents:
            raise ApigenError(f"Refusing to write outside {root}: {name}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise ApigenError(f"Cannot write {target}: {exc}") from exc
        debug(f"Wrote {target}")
        written.append(target)
    return written
