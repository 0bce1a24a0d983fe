"""Single-project extension build pipeline.

Stages (strict chain, fail fast, no retries):

    build (conditional) → stage_directory → copy_assets → write_manifest
    → patch_bootstrap → write_shims → write_build_record
"""

from __future__ import annotations

from extforge.core.pipeline.definition import (
    ExecutionPattern,
    PipelineDefinition,
    StageDefinition,
)
from extforge.core.pipeline.extension_stages import (
    BuildStage,
    CopyAssetsStage,
    PatchBootstrapStage,
    StageDirectoryStage,
    WriteBuildRecordStage,
    WriteManifestStage,
    WriteShimsStage,
)

EXTENSION_STAGE_IDS = (
    "build",
    "stage_directory",
    "copy_assets",
    "write_manifest",
    "patch_bootstrap",
    "write_shims",
    "write_build_record",
)


def build_extension_pipeline() -> PipelineDefinition:
    """Build the single-project extension pipeline.

    Example:
        >>> pipeline = build_extension_pipeline()
        >>> [s.id for s in pipeline.stages][:2]
        ['build', 'stage_directory']
    """
    return PipelineDefinition(
        name="extension",
        description="Compile a web bundle and package it as a browser extension",
        fail_fast=True,
        stages=[
            StageDefinition(
                id="build",
                stage=BuildStage(),
                pattern=ExecutionPattern.CONDITIONAL,
                condition=lambda ctx: not ctx.config.skip_build,
                description="Compile the web bundle",
            ),
            StageDefinition(
                id="stage_directory",
                stage=StageDirectoryStage(),
                inputs=["build"],
                description="Delete and recreate the output directory",
            ),
            StageDefinition(
                id="copy_assets",
                stage=CopyAssetsStage(),
                inputs=["stage_directory"],
                description="Copy the compiled bundle",
            ),
            StageDefinition(
                id="write_manifest",
                stage=WriteManifestStage(),
                inputs=["copy_assets"],
                description="Write manifest.json",
            ),
            StageDefinition(
                id="patch_bootstrap",
                stage=PatchBootstrapStage(),
                inputs=["write_manifest"],
                description="Back up and patch flutter_bootstrap.js",
            ),
            StageDefinition(
                id="write_shims",
                stage=WriteShimsStage(),
                inputs=["patch_bootstrap"],
                description="Write topology shims",
            ),
            StageDefinition(
                id="write_build_record",
                stage=WriteBuildRecordStage(),
                inputs=["write_shims"],
                description="Write BUILD_INFO.md",
            ),
        ],
    )
