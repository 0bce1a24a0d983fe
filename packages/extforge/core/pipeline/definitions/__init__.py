"""Pipeline definitions: factory functions for building pipelines.

- **Extension pipeline**: build → stage_directory → copy_assets → write_manifest
  → patch_bootstrap → write_shims → write_build_record

The multi-project bundle pipeline lives with the coordinator
(``extforge.core.coordinator.definition``).

Usage:
    >>> from extforge.core.pipeline.definitions import build_extension_pipeline
    >>> result = await PipelineExecutor().execute(build_extension_pipeline(), config, context)
"""

from extforge.core.pipeline.definitions.extension import (
    EXTENSION_STAGE_IDS,
    build_extension_pipeline,
)

__all__ = [
    "EXTENSION_STAGE_IDS",
    "build_extension_pipeline",
]
