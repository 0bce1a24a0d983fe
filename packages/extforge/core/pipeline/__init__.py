"""Pipeline orchestration framework for extforge.

Stages declare the stages they consume; the executor runs them in dependency
waves and reports failures as results.

Core concepts:
- PipelineStage: Unit of work (build, copy, patch, package)
- PipelineDefinition: Declarative stage dependencies and execution config
- PipelineExecutor: Orchestrates execution with dep tracking
- PipelineContext: Shared configuration, state and cancellation across stages

Example:
    >>> from extforge.core.pipeline import PipelineContext, PipelineExecutor
    >>> from extforge.core.pipeline.definitions import build_extension_pipeline
    >>>
    >>> ctx = PipelineContext(build_config=config, output_dir=config.output_dir)
    >>> result = await PipelineExecutor().execute(build_extension_pipeline(), config, ctx)
"""

from extforge.core.pipeline.context import PipelineContext
from extforge.core.pipeline.definition import (
    ExecutionPattern,
    PipelineDefinition,
    StageDefinition,
)
from extforge.core.pipeline.executor import PipelineExecutor
from extforge.core.pipeline.result import (
    PipelineResult,
    StageResult,
    cancelled_result,
    failure_result,
    skipped_result,
    success_result,
)
from extforge.core.pipeline.stage import PipelineStage

__all__ = [
    "ExecutionPattern",
    "PipelineContext",
    "PipelineDefinition",
    "PipelineExecutor",
    "PipelineResult",
    "PipelineStage",
    "StageDefinition",
    "StageResult",
    "cancelled_result",
    "failure_result",
    "skipped_result",
    "success_result",
]
