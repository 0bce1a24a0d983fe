"""Multi-project coordinator: resolve, build and package several projects."""

from extforge.core.coordinator.definition import BUNDLE_STAGE_IDS, build_bundle_pipeline
from extforge.core.coordinator.models import Project, ProjectList, ProjectTarget
from extforge.core.coordinator.packaging import ProjectPackager, app_dir
from extforge.core.coordinator.runner import (
    check_bundle_preconditions,
    raise_for_bundle_failure,
    run_bundle,
)
from extforge.core.coordinator.workspace import ResolvedProject, WorkspaceResolver

__all__ = [
    "BUNDLE_STAGE_IDS",
    "Project",
    "ProjectList",
    "ProjectPackager",
    "ProjectTarget",
    "ResolvedProject",
    "WorkspaceResolver",
    "app_dir",
    "build_bundle_pipeline",
    "check_bundle_preconditions",
    "raise_for_bundle_failure",
    "run_bundle",
]
