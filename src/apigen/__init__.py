"""apigen -- Compile versioned OpenAPI documents into one API model.

This package reads one OpenAPI 3.0 document per API version and folds them
into a single canonical intermediate model (:class:`~apigen.models.ApiModel`):
an ordered table of named type definitions, an operation table, and a route
table in which every version stays addressable under its own ``/vN`` prefix
while the unprefixed routes stay frozen at the version that introduced them.
A renderer turns that model into service code; the built-in renderer dumps
the model itself as YAML.

Typical workflow::

    apigen generate api/ -o build/      # api/openapi_v1.yaml, api/openapi_v2.yaml
    apigen inspect routes api/

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models for the configuration and the API model.
    config: XDG-aware configuration with precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    render: Renderer protocol and the YAML model dump.
"""

__version__ = "0.1.0"
