"""Stage and pipeline results.

Stages report outcomes as values: a failed stage returns a ``StageResult``
with ``success=False`` and an error message instead of raising.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

TOutput = TypeVar("TOutput")

CANCELLED_PREFIX = "[CANCELLED]"


class StageResult(BaseModel, Generic[TOutput]):
    """Outcome of one stage call.

    Attributes:
        success: False for failures and cancellations; True for skipped stages
        stage_name: Stage that produced the result
        output: Stage output, None unless successful
        error: Failure message; cancellations start with ``[CANCELLED]``
        metadata: Extra facts such as ``skipped`` or fan-out ``failed_items``

    Example:
        >>> result = failure_result("flutter_bootstrap.js not found", stage_name="patch_bootstrap")
        >>> result.success, result.cancelled
        (False, False)
    """

    success: bool
    stage_name: str
    output: TOutput | None = None
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    @property
    def skipped(self) -> bool:
        return bool(self.metadata.get("skipped", False))

    @property
    def cancelled(self) -> bool:
        return self.error is not None and self.error.startswith(CANCELLED_PREFIX)


def success_result(
    output: TOutput,
    stage_name: str = "unknown",
    metadata: dict[str, Any] | None = None,
) -> StageResult[TOutput]:
    return StageResult(success=True, output=output, stage_name=stage_name, metadata=metadata or {})


def failure_result(
    error: str,
    stage_name: str = "unknown",
    metadata: dict[str, Any] | None = None,
) -> StageResult[Any]:
    return StageResult(success=False, error=error, stage_name=stage_name, metadata=metadata or {})


def cancelled_result(
    reason: str = "Cancelled by user",
    stage_name: str = "unknown",
) -> StageResult[Any]:
    """Failure whose error is the cancellation reason behind ``[CANCELLED]``."""
    return failure_result(f"{CANCELLED_PREFIX} {reason}", stage_name=stage_name)


def skipped_result(
    stage_name: str = "unknown",
    reason: str = "Condition not met",
) -> StageResult[Any]:
    """Result of a conditional stage whose condition was false.

    Counts as a success, so stages that consume it still run, with None as input.
    """
    return StageResult(
        success=True,
        stage_name=stage_name,
        metadata={"skipped": True, "skip_reason": reason},
    )


class PipelineResult(BaseModel):
    """Outcome of a whole pipeline run.

    Attributes:
        success: True when no stage failed
        outputs: Output of every successful stage, by stage id
        stage_results: Result of every stage that ran, by stage id
        failed_stages: Failed stage ids in completion order; on cancellation the
            stages that never ran follow
        total_duration_ms: Wall time of the run
        metadata: Context metrics on completion, otherwise details of the stop
            (``validation_errors``, ``fail_fast``, ``cancellation``)
    """

    success: bool
    outputs: dict[str, Any] = Field(default_factory=dict)
    stage_results: dict[str, StageResult[Any]] = Field(default_factory=dict)
    failed_stages: list[str] = Field(default_factory=list)
    total_duration_ms: float = 0.0
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, extra="forbid")

    def first_failure(self) -> tuple[str, str]:
        """Return ``(stage_id, error)`` of the first failed stage.

        A stage that never ran reports the validation errors or the
        cancellation reason that stopped the run.

        Raises:
            ValueError: If the pipeline succeeded
        """
        if self.success or not self.failed_stages:
            raise ValueError("Pipeline did not fail")
        stage_id = self.failed_stages[0]
        result = self.stage_results.get(stage_id)
        if result is not None and result.error:
            return stage_id, result.error
        if "validation_errors" in self.metadata:
            return stage_id, "; ".join(self.metadata["validation_errors"])
        reason = self.metadata.get("cancellation", "Unknown error")
        return stage_id, f"{CANCELLED_PREFIX} {reason}"
