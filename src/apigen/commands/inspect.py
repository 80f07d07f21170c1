"""Inspect commands -- examine the merged model without rendering it.

Provides the ``apigen inspect`` sub-command group with read-only commands
for the route table, the definition table, and the operations.  Every
sub-command builds the full model first, so it fails exactly like
``apigen generate`` would.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from apigen.models import ApiModel, Definition, Operation
from apigen.output import get_output, info


inspect_app = typer.Typer(no_args_is_help=True)

SPEC_DIR_ARGUMENT = typer.Argument(..., help="Spec file, or directory of <name>_v<N>.yaml files.")


def _build(spec_dir: Path, reserved_words: Optional[list[str]] = None) -> ApiModel:
    from apigen.config import resolve_config
    from apigen.generator import build_api_model

    config = resolve_config(cli_reserved_words=reserved_words)
    return build_api_model(spec_dir, config)


@inspect_app.command("routes")
def inspect_routes(
    spec_dir: Path = SPEC_DIR_ARGUMENT,
    static: bool = typer.Option(True, "--static/--no-static", help="Include docs and spec routes."),
) -> None:
    """List the route table: API routes first, then static routes.

    Example::

        apigen inspect routes api/
        apigen --plain inspect routes api/ --no-static
    """
    model = _build(spec_dir)

    rows: list[list[str]] = [
        [route.http_method.value.upper(), route.url_path, "operation", route.operation_id]
        for route in model.routes
    ]
    if static:
        rows.extend(
            [route.http_method.value.upper(), route.url_path, model.definitions[route.definition_name].kind.tag, route.definition_name]
            for route in model.static_routes
        )
    get_output().print_table(
        ["Method", "Path", "Kind", "Target"], rows, title=f"Routes ({len(rows)})"
    )


@inspect_app.command("definitions")
def inspect_definitions(
    spec_dir: Path = SPEC_DIR_ARGUMENT,
    kind: Optional[str] = typer.Option(
        None, "--kind", "-k", help="Only this kind, e.g. record or enumeration."
    ),
) -> None:
    """List the definition table in emission order.

    Example::

        apigen inspect definitions api/ --kind record
    """
    model = _build(spec_dir)

    rows = [
        [name, definition.kind.tag, _describe(definition)]
        for name, definition in model.definitions.items()
        if kind is None or definition.kind.tag == kind
    ]
    if not rows:
        info("No matching definitions.")
        return
    get_output().print_table(
        ["Name", "Kind", "Details"], rows, title=f"Definitions ({len(rows)})"
    )


@inspect_app.command("operations")
def inspect_operations(spec_dir: Path = SPEC_DIR_ARGUMENT) -> None:
    """List the operations with their parameter, body, and result types."""
    model = _build(spec_dir)

    rows = [_operation_row(op) for op in model.operations.values()]
    get_output().print_table(
        ["Operation", "Path params", "Query", "Body", "Result", "Summary"],
        rows,
        title=f"Operations ({len(rows)})",
    )


def _operation_row(op: Operation) -> list[str]:
    body = "-"
    if op.body_type is not None:
        body = str(op.body_type.type_ref) + (" (optional)" if op.body_type.optional else "")
    return [
        op.id,
        op.path_params_type or "-",
        op.query_params_type or "-",
        body,
        str(op.result_type),
        op.doc or "",
    ]


def _describe(definition: Definition) -> str:
    kind = definition.kind
    if kind.tag == "record":
        return ", ".join(f"{p.identifier}: {p.type_ref}" for p in kind.properties)
    if kind.tag == "enumeration":
        names = ", ".join(v.identifier for v in kind.variants)
        return f"{names} (tag: {kind.discriminator})" if kind.discriminator else names
    if kind.tag == "error_set":
        return ", ".join(f"{v.identifier} ({v.status_code})" for v in kind.variants)
    if kind.tag == "default_value":
        return f"{kind.value_type} = {kind.literal!r}"
    if kind.tag == "static_asset":
        return kind.path
    if kind.tag == "redirect":
        return f"-> {kind.target}"
    return kind.asset
