"""Multi-project bundle pipeline.

Stages:

    prepare → resolve (fan-out) → build (fan-out, bounded) → package (fan-out)
"""

from __future__ import annotations

from typing import Any

from extforge.core.config.models import AppConfig
from extforge.core.coordinator.models import ProjectList
from extforge.core.coordinator.packaging import ProjectPackager
from extforge.core.coordinator.stages import (
    PackageStage,
    PrepareStage,
    ProjectBuildStage,
    ResolveStage,
)
from extforge.core.coordinator.workspace import WorkspaceResolver
from extforge.core.pipeline.definition import (
    ExecutionPattern,
    PipelineDefinition,
    StageDefinition,
)

BUNDLE_STAGE_IDS = ("prepare", "resolve", "build", "package")


def _item_id(item: Any) -> str:
    return item.id


def build_bundle_pipeline(
    project_list: ProjectList,
    app_config: AppConfig,
    support_patch: str | None = None,
    skip_build: bool = False,
) -> PipelineDefinition:
    """Build the multi-project bundle pipeline.

    Args:
        project_list: Projects and package layout
        app_config: Application configuration (toolchain, build concurrency, tolerance)
        support_patch: Patch text for overlay ``flutter.js`` files
        skip_build: Reuse existing build outputs

    Returns:
        PipelineDefinition with stages prepare, resolve, build, package
    """
    resolver = WorkspaceResolver(project_list.workspace_dir, app_config.toolchain)
    packager = ProjectPackager(
        project_list.package_dir,
        support_patch=support_patch,
        tolerance=app_config.patch_tolerance,
    )

    return PipelineDefinition(
        name="bundle",
        description="Build several projects and package them into one extension tree",
        fail_fast=True,
        stages=[
            StageDefinition(
                id="prepare",
                stage=PrepareStage(project_list),
                description="Reset the package directory and copy static files",
            ),
            StageDefinition(
                id="resolve",
                stage=ResolveStage(resolver),
                pattern=ExecutionPattern.FAN_OUT,
                inputs=["prepare"],
                max_concurrent_fan_out=None,
                item_key=_item_id,
                description="Locate or clone each project",
            ),
            StageDefinition(
                id="build",
                stage=ProjectBuildStage(project_list.build_args, skip_build=skip_build),
                pattern=ExecutionPattern.FAN_OUT,
                inputs=["resolve"],
                max_concurrent_fan_out=app_config.max_concurrent_builds,
                item_key=_item_id,
                description="Build each project",
            ),
            StageDefinition(
                id="package",
                stage=PackageStage(packager),
                pattern=ExecutionPattern.FAN_OUT,
                inputs=["build"],
                max_concurrent_fan_out=1,
                item_key=_item_id,
                description="Copy each project into the package tree",
            ),
        ],
    )
