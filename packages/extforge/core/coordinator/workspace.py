"""Project source resolution (local directories and git checkouts)."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from extforge.core.config.models import ToolchainConfig
from extforge.core.coordinator.models import Project
from extforge.core.errors import PreconditionFailure
from extforge.core.toolchain.git import clone

logger = logging.getLogger(__name__)

PROJECT_FILE = "pubspec.yaml"


@dataclass(frozen=True)
class ResolvedProject:
    """A project with its source directory on disk.

    Attributes:
        project: Project definition
        directory: Project root (contains pubspec.yaml)
    """

    project: Project
    directory: Path

    @property
    def id(self) -> str:
        return self.project.id

    @property
    def build_dir(self) -> Path:
        """Compiled bundle location."""
        return self.directory / "build" / "web"


def checkout_dir(project: Project, workspace_dir: Path) -> Path:
    """Checkout directory of a git project: ``<workspace>/<repo-basename>``."""
    return workspace_dir / project.repo_name


def project_dir(project: Project, workspace_dir: Path) -> Path:
    """Project root: the local path, or the checkout plus optional subdir."""
    if project.path is not None:
        return project.path
    directory = checkout_dir(project, workspace_dir)
    return directory / project.subdir if project.subdir else directory


class WorkspaceResolver:
    """Resolves project sources, cloning git projects into the workspace.

    A checkout is cloned only if its directory does not exist yet. Projects
    sharing a repository share one checkout; concurrent resolutions of the same
    checkout wait for a single clone.

    Example:
        >>> resolver = WorkspaceResolver(Path("workspace"), ToolchainConfig())
        >>> resolved = await resolver.resolve(project)
        >>> resolved.build_dir
        PosixPath('workspace/tools/apps/notes/build/web')
    """

    def __init__(self, workspace_dir: Path, toolchain: ToolchainConfig) -> None:
        self.workspace_dir = workspace_dir
        self.toolchain = toolchain
        self._locks: dict[Path, asyncio.Lock] = {}

    async def resolve(
        self,
        project: Project,
        cancel_token: asyncio.Event | None = None,
    ) -> ResolvedProject:
        """Resolve a project directory, cloning when needed.

        Raises:
            ToolchainError: If the clone fails
            PreconditionFailure: If the resolved directory has no pubspec.yaml
        """
        if project.git is not None:
            checkout = checkout_dir(project, self.workspace_dir)
            async with self._locks.setdefault(checkout, asyncio.Lock()):
                if checkout.exists():
                    logger.debug(f"Reusing checkout {checkout} for '{project.id}'")
                else:
                    await clone(
                        project.git,
                        checkout,
                        self.toolchain,
                        ref=project.ref,
                        cancel_token=cancel_token,
                    )

        directory = project_dir(project, self.workspace_dir)
        if not (directory / PROJECT_FILE).is_file():
            raise PreconditionFailure(
                f"Project '{project.id}': {PROJECT_FILE} not found in {directory}"
            )
        logger.debug(f"Resolved '{project.id}' to {directory}")
        return ResolvedProject(project=project, directory=directory)
