"""Project list models for multi-project bundles."""

from __future__ import annotations

from enum import Enum
from pathlib import Path, PurePosixPath

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from extforge.core.toolchain.flutter import DEFAULT_BUNDLE_BUILD_ARGS


class ProjectTarget(str, Enum):
    """Extension surface a project is packaged for."""

    POPUP = "popup"
    OPTIONS = "options"
    OVERLAY = "overlay"


class Project(BaseModel):
    """One application in a bundle.

    Exactly one source is given: a local ``path`` or a ``git`` URL (with an
    optional ``subdir`` inside the checkout and an optional ``ref``).

    Attributes:
        id: Project id; also the directory name under ``<target>/apps/``
        path: Local project directory
        git: Repository URL
        subdir: Project directory inside the checkout
        ref: Branch or tag to clone
        targets: Surfaces to package the project for; without any, the project
            is resolved and built but not packaged
    """

    id: str = Field(pattern=r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")
    path: Path | None = None
    git: str | None = None
    subdir: str | None = None
    ref: str | None = None
    targets: list[ProjectTarget] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("targets")
    @classmethod
    def _unique_targets(cls, targets: list[ProjectTarget]) -> list[ProjectTarget]:
        return list(dict.fromkeys(targets))

    @field_validator("subdir")
    @classmethod
    def _relative_subdir(cls, subdir: str | None) -> str | None:
        if subdir is not None:
            parts = PurePosixPath(subdir).parts
            if PurePosixPath(subdir).is_absolute() or ".." in parts:
                raise ValueError(f"subdir must be relative to the checkout: {subdir}")
        return subdir

    @model_validator(mode="after")
    def _single_source(self) -> Project:
        if (self.path is None) == (self.git is None):
            raise ValueError(f"Project '{self.id}' needs exactly one of 'path' or 'git'")
        if self.git is None and (self.subdir or self.ref):
            raise ValueError(f"Project '{self.id}': 'subdir' and 'ref' require 'git'")
        return self

    @property
    def repo_name(self) -> str:
        """Checkout directory name derived from the git URL.

        Example:
            >>> Project(id="a", git="https://host/org/tools.git", targets=["popup"]).repo_name
            'tools'
        """
        if self.git is None:
            raise ValueError(f"Project '{self.id}' is not a git project")
        name = self.git.rstrip("/").rsplit("/", 1)[-1].rsplit(":", 1)[-1]
        return name.removesuffix(".git")


class ProjectList(BaseModel):
    """Multi-project bundle definition.

    Attributes:
        package_dir: Unpacked extension package (deleted and recreated)
        workspace_dir: Where git projects are cloned
        static_dir: Optional static tree copied into the package first
        support_patch: Optional patch applied to each overlay app's ``flutter.js``
        build_args: Arguments appended to ``flutter build web``
        projects: Projects to build and package

    Example:
        >>> projects = ProjectList.model_validate({
        ...     "projects": [{"id": "notes", "path": "apps/notes", "targets": ["popup"]}],
        ... })
        >>> projects.build_args
        ['--csp', '--profile']
    """

    package_dir: Path = Path("build/unpacked")
    workspace_dir: Path = Path("workspace")
    static_dir: Path | None = None
    support_patch: Path | None = None
    build_args: list[str] = Field(default_factory=lambda: list(DEFAULT_BUNDLE_BUILD_ARGS))
    projects: list[Project] = Field(min_length=1)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def _unique_ids(self) -> ProjectList:
        ids = [p.id for p in self.projects]
        duplicates = sorted({pid for pid in ids if ids.count(pid) > 1})
        if duplicates:
            raise ValueError(f"Duplicate project ids: {duplicates}")
        return self

    def resolve_paths(self, base: Path) -> ProjectList:
        """Return a copy with every relative directory anchored at ``base``."""

        def anchor(path: Path | None) -> Path | None:
            if path is None or path.is_absolute():
                return path
            return base / path

        return self.model_copy(
            update={
                "package_dir": anchor(self.package_dir),
                "workspace_dir": anchor(self.workspace_dir),
                "static_dir": anchor(self.static_dir),
                "support_patch": anchor(self.support_patch),
                "projects": [
                    p.model_copy(update={"path": anchor(p.path)}) for p in self.projects
                ],
            }
        )
