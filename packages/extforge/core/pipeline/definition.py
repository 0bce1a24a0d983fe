"""Stage graph of a pipeline.

A pipeline is a set of ``StageDefinition`` objects whose ``inputs`` name the
stages they consume. The executor runs the graph in waves: a stage starts once
every stage it consumes has finished.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from graphlib import CycleError, TopologicalSorter
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from extforge.core.pipeline.context import PipelineContext


class ExecutionPattern(str, Enum):
    """How the executor invokes a stage.

    Values:
        SEQUENTIAL: One call with the stage input (default)
        FAN_OUT: One call per item of a list input, results collected in order
        CONDITIONAL: One call, or a skipped result when ``condition`` is false
    """

    SEQUENTIAL = "sequential"
    FAN_OUT = "fan_out"
    CONDITIONAL = "conditional"


@dataclass
class StageDefinition:
    """A stage and its place in the graph.

    Stages are never retried: a failed stage is reported as is.

    Attributes:
        id: Stage id, unique within the pipeline
        stage: Object implementing the PipelineStage protocol
        pattern: Execution pattern
        inputs: Ids of the stages whose outputs this stage consumes
        condition: Predicate on the context, evaluated when the stage's wave starts
        timeout_ms: Per-call timeout (None: no timeout)
        critical: Whether a failure stops a fail-fast pipeline
        max_concurrent_fan_out: Fan-out concurrency bound (None: unbounded)
        item_key: Labels a fan-out item in failure reports (default: its index)
        description: Human-readable summary

    Example:
        >>> build_stage = StageDefinition(
        ...     id="build",
        ...     stage=BuildStage(),
        ...     pattern=ExecutionPattern.CONDITIONAL,
        ...     condition=lambda ctx: not ctx.config.skip_build,
        ... )
        >>> projects_stage = StageDefinition(
        ...     id="build_projects",
        ...     stage=ProjectBuildStage(),
        ...     pattern=ExecutionPattern.FAN_OUT,
        ...     inputs=["resolve"],
        ...     max_concurrent_fan_out=2,
        ...     item_key=lambda project: project.id,
        ... )
    """

    id: str
    stage: Any  # PipelineStage; a Protocol cannot be validated at runtime
    pattern: ExecutionPattern = ExecutionPattern.SEQUENTIAL
    inputs: list[str] = field(default_factory=list)
    condition: Callable[[PipelineContext], bool] | None = None
    timeout_ms: float | None = None
    critical: bool = True
    max_concurrent_fan_out: int | None = 4
    item_key: Callable[[Any], str] | None = None
    description: str | None = None

    def should_execute(self, context: PipelineContext) -> bool:
        return self.condition is None or self.condition(context)

    def label_item(self, index: int, item: Any) -> str:
        """Label a fan-out input item for failure attribution."""
        return str(index) if self.item_key is None else self.item_key(item)

    def validate_inputs(self, available_stages: set[str]) -> list[str]:
        """Report every input that names a stage missing from the pipeline."""
        return [
            f"Stage '{self.id}' depends on unknown stage '{input_id}'"
            for input_id in self.inputs
            if input_id not in available_stages
        ]


class PipelineDefinition(BaseModel):
    """A named stage graph.

    Declaration order only matters within a wave, where it is kept.

    Attributes:
        name: Pipeline name used in logs
        stages: Stage definitions
        description: Human-readable summary
        fail_fast: Stop at the first failed critical stage

    Example:
        >>> pipeline = PipelineDefinition(
        ...     name="extension",
        ...     stages=[
        ...         StageDefinition("stage_directory", StageDirectoryStage()),
        ...         StageDefinition("copy_assets", CopyAssetsStage(), inputs=["stage_directory"]),
        ...     ],
        ... )
        >>> [[s.id for s in wave] for wave in pipeline.dependency_waves()]
        [['stage_directory'], ['copy_assets']]
    """

    name: str = Field(description="Pipeline name")
    stages: list[StageDefinition] = Field(description="Stage definitions")
    description: str | None = Field(default=None, description="Human-readable summary")
    fail_fast: bool = Field(default=True, description="Stop at the first critical failure")

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    def validate_pipeline(self) -> list[str]:
        """Check ids, inputs and acyclicity.

        Returns:
            Error messages, empty for a runnable pipeline
        """
        errors = []

        stage_ids = [s.id for s in self.stages]
        duplicates = sorted({sid for sid in stage_ids if stage_ids.count(sid) > 1})
        if duplicates:
            errors.append(f"Duplicate stage IDs: {duplicates}")

        known = set(stage_ids)
        for stage_def in self.stages:
            errors.extend(stage_def.validate_inputs(known))

        try:
            self._prepared_sorter()
        except ValueError as e:
            errors.append(str(e))

        if all(s.inputs for s in self.stages):
            errors.append("Pipeline has no entry points (all stages have dependencies)")

        return errors

    def dependency_waves(self) -> list[list[StageDefinition]]:
        """Group stages into waves; each stage follows the waves holding its inputs.

        Raises:
            ValueError: If the stages form a cycle
        """
        sorter = self._prepared_sorter()
        waves = []
        while sorter.is_active():
            ready = set(sorter.get_ready())
            waves.append([s for s in self.stages if s.id in ready])
            sorter.done(*ready)
        return waves

    def _prepared_sorter(self) -> TopologicalSorter[str]:
        known = {s.id for s in self.stages}
        sorter: TopologicalSorter[str] = TopologicalSorter(
            {s.id: [dep for dep in s.inputs if dep in known] for s in self.stages}
        )
        try:
            sorter.prepare()
        except CycleError as e:
            cycle = " -> ".join(reversed(e.args[1]))
            raise ValueError(f"Circular dependency detected: {cycle}") from e
        return sorter

    def get_stage(self, stage_id: str) -> StageDefinition | None:
        """Get stage definition by ID, or None if not found."""
        return next((s for s in self.stages if s.id == stage_id), None)
