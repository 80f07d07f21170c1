"""End-to-end build: spec location in, :class:`~apigen.models.ApiModel` out.

Loading and building the versions are independent of each other and run on
a thread pool; the results are collected in version order and merged
sequentially.  The first exception from any stage aborts the run.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

from apigen.exceptions import ApigenError
from apigen.generator.merge import ModelMerger
from apigen.generator.naming import DEFAULT_RESERVED_WORDS
from apigen.generator.operations import build_version
from apigen.generator.static_routes import synthesize_static_routes
from apigen.models import ApiModel, GeneratorConfig, VersionModel
from apigen.output import debug, progress
from apigen.parser.loader import VersionSource, discover_versions, load_spec, validate_openapi_version


def load_version(source: VersionSource, reserved_words: frozenset[str] = DEFAULT_RESERVED_WORDS) -> VersionModel:
    """Load, validate, and build one version document."""
    name = source.path.name
    document = load_spec(str(source.path))
    openapi_version = validate_openapi_version(document, source=name)
    debug(f"Loaded {name} as v{source.version} (OpenAPI {openapi_version})")
    try:
        return build_version(
            document,
            source.version,
            name,
            spec_file=name,
            reserved_words=reserved_words,
        )
    except ApigenError as exc:
        raise exc.with_document(name)


def build_versions(location: str | Path, config: Optional[GeneratorConfig] = None) -> list[VersionModel]:
    """Build every version found at *location*, oldest first."""
    config = config or GeneratorConfig()
    sources = discover_versions(location)
    reserved = DEFAULT_RESERVED_WORDS | frozenset(config.reserved_words)
    progress(f"Building {len(sources)} version(s) from {location}")

    with ThreadPoolExecutor(max_workers=config.max_workers) as executor:
        futures = [executor.submit(load_version, source, reserved) for source in sources]
        # Results in submission order, so the first failing version wins.
        return [future.result() for future in futures]


def build_api_model(location: str | Path, config: Optional[GeneratorConfig] = None) -> ApiModel:
    """Build the merged API model of the spec file or version directory at *location*.

    Args:
        location: A spec file or a directory of ``*_v<N>`` spec files.
        config: Generator settings; defaults are used when omitted.

    Returns:
        The merged model, including the static docs routes.

    Raises:
        ApigenError: The first error of any version; no model is returned.
    """
    config = config or GeneratorConfig()
    versions = build_versions(location, config)

    merger = ModelMerger()
    for version_model in versions:
        merger.merge(version_model)
    model = merger.build(synthesize_static_routes(versions, config.docs_path))
    debug(
        f"Model: {len(model.definitions)} definitions, {len(model.operations)} operations, "
        f"{len(model.routes)} routes"
    )
    return model
