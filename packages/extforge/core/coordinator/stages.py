"""Pipeline stages of a multi-project bundle."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from extforge.core.coordinator.models import Project, ProjectList
from extforge.core.coordinator.packaging import ProjectPackager
from extforge.core.coordinator.workspace import ResolvedProject, WorkspaceResolver
from extforge.core.io.copying import copy_tree, reset_directory
from extforge.core.pipeline.context import PipelineContext
from extforge.core.pipeline.extension_stages import stage_failure
from extforge.core.pipeline.result import StageResult, success_result
from extforge.core.toolchain.flutter import build_web
from extforge.core.utils.logging import get_logger

logger = logging.getLogger(__name__)


class PrepareStage:
    """Stage: reset the package directory and copy the static tree.

    Input: ProjectList
    Output: list of projects (fan-out input)
    """

    def __init__(self, project_list: ProjectList) -> None:
        self.project_list = project_list

    @property
    def name(self) -> str:
        return "prepare"

    async def execute(self, input: Any, context: PipelineContext) -> StageResult[list[Project]]:
        try:
            package_dir = self.project_list.package_dir
            await asyncio.to_thread(reset_directory, package_dir)

            static_dir = self.project_list.static_dir
            if static_dir is not None:
                copied = await copy_tree(static_dir, package_dir, cancel_token=context.cancel_token)
                context.add_metric("static_files", len(copied))
                logger.info(f"Copied {len(copied)} static files from {static_dir}")

            return success_result(list(self.project_list.projects), stage_name=self.name)
        except Exception as e:
            return stage_failure(self.name, e, context)


class ResolveStage:
    """Stage (fan-out): locate or clone one project.

    Input: Project
    Output: ResolvedProject
    """

    def __init__(self, resolver: WorkspaceResolver) -> None:
        self.resolver = resolver

    @property
    def name(self) -> str:
        return "resolve"

    async def execute(
        self, input: Project, context: PipelineContext
    ) -> StageResult[ResolvedProject]:
        try:
            resolved = await self.resolver.resolve(input, cancel_token=context.cancel_token)
            return success_result(resolved, stage_name=self.name)
        except Exception as e:
            return stage_failure(self.name, e, context)


class ProjectBuildStage:
    """Stage (fan-out): one supervised ``flutter build web`` per project.

    Passes the project through untouched when building is skipped.

    Input: ResolvedProject
    Output: ResolvedProject
    """

    def __init__(self, build_args: list[str], skip_build: bool = False) -> None:
        self.build_args = ["build", "web", *build_args]
        self.skip_build = skip_build

    @property
    def name(self) -> str:
        return "build"

    async def execute(
        self, input: ResolvedProject, context: PipelineContext
    ) -> StageResult[ResolvedProject]:
        project_logger = get_logger(__name__, project_id=input.id)
        if self.skip_build:
            project_logger.debug("Build skipped")
            return success_result(input, stage_name=self.name, metadata={"skipped": True})
        try:
            outcome = await build_web(
                input.directory,
                self.build_args,
                context.app_config.toolchain,
                cancel_token=context.cancel_token,
            )
            context.add_metric(f"build_{input.id}_duration_ms", outcome.duration_ms)
            project_logger.info(f"Built in {outcome.duration_ms / 1000:.1f}s")
            return success_result(input, stage_name=self.name)
        except Exception as e:
            return stage_failure(self.name, e, context)


class PackageStage:
    """Stage (fan-out): copy one built project into the package tree.

    Input: ResolvedProject
    Output: list of app directories
    """

    def __init__(self, packager: ProjectPackager) -> None:
        self.packager = packager

    @property
    def name(self) -> str:
        return "package"

    async def execute(
        self, input: ResolvedProject, context: PipelineContext
    ) -> StageResult[list[Path]]:
        try:
            written = await self.packager.package(input, cancel_token=context.cancel_token)
            return success_result(written, stage_name=self.name)
        except Exception as e:
            return stage_failure(self.name, e, context)
