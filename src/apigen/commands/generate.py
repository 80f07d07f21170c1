"""The ``apigen generate`` command -- build the model and write the IR file."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from apigen.output import get_output, success


def generate_command(
    spec_dir: Path = typer.Argument(
        ..., help="Spec file, or directory of <name>_v<N>.yaml files."
    ),
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", "-o", help="Directory to write into; prints to stdout when omitted."
    ),
    docs_path: Optional[str] = typer.Option(
        None, "--docs-path", help="Directory of the docs viewer and spec assets."
    ),
    output_file: Optional[str] = typer.Option(
        None, "--output-file", help="Name of the IR file."
    ),
    max_workers: Optional[int] = typer.Option(
        None, "--max-workers", min=1, help="Threads used to build versions."
    ),
    reserved_words: Optional[list[str]] = typer.Option(
        None, "--reserved-word", "-r", help="Extra reserved identifier (repeatable)."
    ),
) -> None:
    """Build the merged API model and render it.

    Example::

        apigen generate api/ -o build/
        apigen --verbose generate api/hello_v1.yaml
    """
    from apigen.config import resolve_config
    from apigen.generator import build_api_model
    from apigen.render import render_ir, write_outputs

    config = resolve_config(
        cli_docs_path=docs_path,
        cli_output_file=output_file,
        cli_max_workers=max_workers,
        cli_reserved_words=reserved_words,
    )
    model = build_api_model(spec_dir, config)
    files = render_ir(model, file_name=config.output_file)

    if output_dir is None:
        for _, text in files:
            get_output().print_yaml(text)
        return

    written = write_outputs(files, output_dir)
    success(
        f"Generated {len(model.operations)} operations, {len(model.routes)} routes "
        f"into {', '.join(str(p) for p in written)}"
    )
