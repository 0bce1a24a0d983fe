"""Error taxonomy for the extension build pipeline.

Every failure the pipeline can report maps to one of these types. Nothing is
retried: stages convert exceptions into failed ``StageResult`` objects and the
run stops at the first critical failure.
"""

from __future__ import annotations

from pathlib import Path

from extforge.core.patchset.models import PatchFailure


class ExtforgeError(Exception):
    """Base class for extforge errors."""


class PreconditionFailure(ExtforgeError):
    """A prerequisite is missing (project file, toolchain, required input).

    Raised before the output directory is touched.
    """


class StageFailure(ExtforgeError):
    """A pipeline stage failed.

    Attributes:
        stage_id: ID of the failed stage
        error: Error text reported by the stage
    """

    def __init__(self, stage_id: str, error: str | None) -> None:
        self.stage_id = stage_id
        self.error = error or "Unknown error"
        super().__init__(f"Stage '{stage_id}' failed: {self.error}")


class CopyFailure(ExtforgeError):
    """One or more awaited file copies failed.

    Attributes:
        failures: ``(source, reason)`` pairs for each failed copy
    """

    def __init__(self, failures: list[tuple[Path, str]]) -> None:
        self.failures = failures
        details = "; ".join(f"{src}: {reason}" for src, reason in failures)
        super().__init__(f"{len(failures)} file copies failed: {details}")


class AggregateBuildFailure(ExtforgeError):
    """One or more project builds failed.

    Attributes:
        failures: ``(project_id, message)`` pairs, one per failed project
    """

    def __init__(self, failures: list[tuple[str, str]]) -> None:
        self.failures = failures
        details = "; ".join(f"[{project_id}] {message}" for project_id, message in failures)
        super().__init__(f"{len(failures)} project builds failed: {details}")


__all__ = [
    "AggregateBuildFailure",
    "CopyFailure",
    "ExtforgeError",
    "PatchFailure",
    "PreconditionFailure",
    "StageFailure",
]
