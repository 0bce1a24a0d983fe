"""Single-project extension build orchestration.

Checks preconditions, then runs the extension pipeline under an optional run
deadline and cancellation token.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from extforge.core.config.models import AppConfig, BuildConfiguration
from extforge.core.errors import PreconditionFailure, StageFailure
from extforge.core.patching.log_points import resolve_log_points
from extforge.core.pipeline.context import PipelineContext
from extforge.core.pipeline.definition import PipelineDefinition
from extforge.core.pipeline.definitions.extension import build_extension_pipeline
from extforge.core.pipeline.executor import PipelineExecutor
from extforge.core.pipeline.result import PipelineResult
from extforge.core.toolchain.flutter import require_executable

logger = logging.getLogger(__name__)

PROJECT_FILE = "pubspec.yaml"


def paths_overlap(a: Path, b: Path) -> bool:
    """Whether one directory is, contains or lies inside the other."""
    a, b = a.resolve(), b.resolve()
    return a == b or a.is_relative_to(b) or b.is_relative_to(a)


def check_preconditions(config: BuildConfiguration, app_config: AppConfig) -> None:
    """Validate a build before anything is written.

    Raises:
        PreconditionFailure: Missing project file, missing toolchain, or an
            output directory overlapping the project or its build output
    """
    if not (config.project_dir / PROJECT_FILE).is_file():
        raise PreconditionFailure(f"{PROJECT_FILE} not found in {config.project_dir}")

    if not config.skip_build:
        require_executable(app_config.toolchain.flutter_executable)

    if config.output_dir.resolve() == config.project_dir.resolve() or paths_overlap(
        config.output_dir, config.source_dir
    ):
        raise PreconditionFailure(
            f"Output directory {config.output_dir} overlaps the project or its build output"
        )


async def run_pipeline(
    pipeline: PipelineDefinition,
    initial_input: Any,
    context: PipelineContext,
    deadline_s: float | None = None,
) -> PipelineResult:
    """Execute a pipeline, cancelling it once ``deadline_s`` elapses."""
    timer: asyncio.TimerHandle | None = None
    if deadline_s is not None:
        timer = context.arm_deadline(deadline_s)
    try:
        return await PipelineExecutor().execute(pipeline, initial_input, context)
    finally:
        if timer is not None:
            timer.cancel()


async def run_extension_build(
    config: BuildConfiguration,
    app_config: AppConfig | None = None,
    cancel_token: asyncio.Event | None = None,
) -> PipelineResult:
    """Build one extension package.

    Args:
        config: Build configuration
        app_config: Application configuration (defaults apply if None)
        cancel_token: Optional token; setting it kills running processes and
            stops the run before the next stage

    Returns:
        PipelineResult of the extension pipeline

    Raises:
        PreconditionFailure: Before any stage runs

    Example:
        >>> result = await run_extension_build(BuildConfiguration(output_dir=Path("ext")))
        >>> raise_for_failure(result)
    """
    app_config = app_config or AppConfig()
    check_preconditions(config, app_config)

    context = PipelineContext(
        app_config=app_config,
        build_config=config,
        output_dir=config.output_dir,
        log_points=resolve_log_points(config.debug_mode),
        cancel_token=cancel_token,
    )

    logger.info(
        f"Building {config.topology.value} extension '{config.name}' "
        f"({config.compile_target.value}) into {config.output_dir}"
    )
    result = await run_pipeline(
        build_extension_pipeline(), config, context, app_config.run_deadline_s
    )
    if result.success:
        logger.info(f"Extension ready in {config.output_dir}")
    return result


def raise_for_failure(result: PipelineResult) -> None:
    """Raise StageFailure for a failed pipeline result.

    Raises:
        StageFailure: Naming the first failed stage and its error text
    """
    if not result.success:
        stage_id, error = result.first_failure()
        raise StageFailure(stage_id, error)
