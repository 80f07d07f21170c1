"""Generator -- turn OpenAPI documents into the merged API model.

Stages, in pipeline order:

* :mod:`~apigen.generator.naming` -- identifier sanitizing and collision scopes.
* :mod:`~apigen.generator.registry` -- the conflict-checked definition table.
* :mod:`~apigen.generator.types` -- schema to type modeling, defaults.
* :mod:`~apigen.generator.operations` -- one version's routes and operations.
* :mod:`~apigen.generator.merge` -- version merge into one model.
* :mod:`~apigen.generator.static_routes` -- docs and raw-spec routes.
* :mod:`~apigen.generator.pipeline` -- all of the above for a spec location.
"""

from apigen.generator.merge import ModelMerger, merge_versions
from apigen.generator.operations import OperationBuilder, build_version
from apigen.generator.pipeline import build_api_model, build_versions
from apigen.generator.registry import DefinitionRegistry
from apigen.generator.static_routes import StaticRoutes, synthesize_static_routes
from apigen.generator.types import TypeModeler

__all__ = [
    "DefinitionRegistry",
    "ModelMerger",
    "OperationBuilder",
    "StaticRoutes",
    "TypeModeler",
    "build_api_model",
    "build_version",
    "build_versions",
    "merge_versions",
    "synthesize_static_routes",
]
