"""Multi-project bundle orchestration."""

from __future__ import annotations

import asyncio
import logging

from extforge.core.config.models import AppConfig
from extforge.core.coordinator.definition import build_bundle_pipeline
from extforge.core.coordinator.models import ProjectList
from extforge.core.coordinator.workspace import checkout_dir
from extforge.core.errors import AggregateBuildFailure, PreconditionFailure, StageFailure
from extforge.core.orchestrator import paths_overlap, run_pipeline
from extforge.core.pipeline.context import PipelineContext
from extforge.core.pipeline.result import PipelineResult
from extforge.core.toolchain.flutter import require_executable

logger = logging.getLogger(__name__)


def read_support_patch(project_list: ProjectList) -> str | None:
    """Read the configured support patch, or None when unset or missing."""
    path = project_list.support_patch
    if path is None:
        return None
    if not path.is_file():
        logger.warning(f"Support patch {path} not found; overlay support scripts stay unpatched")
        return None
    return path.read_text(encoding="utf-8")


def check_bundle_preconditions(
    project_list: ProjectList, app_config: AppConfig, skip_build: bool
) -> None:
    """Check the package layout and the toolchain needed by a bundle run.

    Raises:
        PreconditionFailure: If the package directory overlaps a project, the
            workspace or the static tree, or if flutter (when building) or git
            (when a clone is needed) is missing
    """
    package_dir = project_list.package_dir
    guarded = [("workspace", project_list.workspace_dir)]
    if project_list.static_dir is not None:
        guarded.append(("static", project_list.static_dir))
    guarded.extend((f"project '{p.id}'", p.path) for p in project_list.projects if p.path)
    for label, directory in guarded:
        if paths_overlap(package_dir, directory):
            raise PreconditionFailure(
                f"Package directory {package_dir} overlaps the {label} directory {directory}"
            )

    if not skip_build:
        require_executable(app_config.toolchain.flutter_executable)
    needs_clone = any(
        p.git is not None and not checkout_dir(p, project_list.workspace_dir).exists()
        for p in project_list.projects
    )
    if needs_clone:
        require_executable(app_config.toolchain.git_executable)


async def run_bundle(
    project_list: ProjectList,
    app_config: AppConfig | None = None,
    skip_build: bool = False,
    cancel_token: asyncio.Event | None = None,
) -> PipelineResult:
    """Build and package every project of a bundle.

    Args:
        project_list: Projects and package layout
        app_config: Application configuration (defaults apply if None)
        skip_build: Reuse existing build outputs
        cancel_token: Optional cancellation token

    Returns:
        PipelineResult of the bundle pipeline

    Raises:
        PreconditionFailure: Before any stage runs
    """
    app_config = app_config or AppConfig()
    check_bundle_preconditions(project_list, app_config, skip_build)

    pipeline = build_bundle_pipeline(
        project_list,
        app_config,
        support_patch=read_support_patch(project_list),
        skip_build=skip_build,
    )
    context = PipelineContext(
        app_config=app_config,
        output_dir=project_list.package_dir,
        cancel_token=cancel_token,
    )

    logger.info(
        f"Bundling {len(project_list.projects)} projects into {project_list.package_dir}"
    )
    result = await run_pipeline(pipeline, project_list, context, app_config.run_deadline_s)
    if result.success:
        logger.info(f"Bundle ready in {project_list.package_dir}")
    return result


def raise_for_bundle_failure(result: PipelineResult) -> None:
    """Raise the error describing a failed bundle run.

    Raises:
        AggregateBuildFailure: When project builds failed, one entry per project
        StageFailure: For any other failed stage
    """
    if result.success:
        return
    stage_id, error = result.first_failure()
    stage_result = result.stage_results.get(stage_id)
    failed_items = stage_result.metadata.get("failed_items") if stage_result else None
    if stage_id == "build" and failed_items:
        raise AggregateBuildFailure(list(failed_items))
    raise StageFailure(stage_id, error)
