"""Wave-based pipeline executor.

Runs a ``PipelineDefinition`` wave by wave. Stages of one wave run
concurrently; fan-out stages run once per input item under an optional
concurrency bound. Nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from extforge.core.pipeline.context import PipelineContext
from extforge.core.pipeline.definition import (
    ExecutionPattern,
    PipelineDefinition,
    StageDefinition,
)
from extforge.core.pipeline.result import (
    PipelineResult,
    StageResult,
    cancelled_result,
    failure_result,
    skipped_result,
    success_result,
)

logger = logging.getLogger(__name__)


class PipelineExecutor:
    """Executes pipelines wave by wave.

    - Waves come from the pipeline's dependency graph
    - Cancellation is checked before every wave and every fan-out item
    - Per-call timeouts via ``StageDefinition.timeout_ms``
    - Fan-out failures are attributed to their items
    - With ``fail_fast``, the first failed critical stage ends the run

    Example:
        >>> executor = PipelineExecutor()
        >>> result = await executor.execute(
        ...     pipeline=build_extension_pipeline(),
        ...     initial_input=config,
        ...     context=context,
        ... )
        >>> if not result.success:
        ...     stage_id, error = result.first_failure()
    """

    async def execute(
        self,
        pipeline: PipelineDefinition,
        initial_input: Any,
        context: PipelineContext,
    ) -> PipelineResult:
        """Run every stage of a pipeline.

        Args:
            pipeline: Pipeline definition
            initial_input: Input of the stages without inputs
            context: Shared pipeline context

        Returns:
            PipelineResult; never raises for stage failures
        """
        start_time = time.perf_counter()

        def elapsed_ms() -> float:
            return (time.perf_counter() - start_time) * 1000

        errors = pipeline.validate_pipeline()
        if errors:
            logger.error(f"Pipeline {pipeline.name} is invalid: {errors}")
            return PipelineResult(
                success=False,
                failed_stages=["validation"],
                metadata={"validation_errors": errors},
            )

        waves = pipeline.dependency_waves()
        logger.debug(
            f"Executing pipeline {pipeline.name}: {len(pipeline.stages)} stages in "
            f"{len(waves)} waves (fail_fast={pipeline.fail_fast})"
        )

        outputs: dict[str, Any] = {}
        stage_results: dict[str, StageResult[Any]] = {}
        failed_stages: list[str] = []

        for wave_idx, wave in enumerate(waves):
            if context.is_cancelled():
                reason = context.cancellation_reason()
                logger.warning(f"Pipeline {pipeline.name} cancelled: {reason}")
                never_ran = [s.id for pending in waves[wave_idx:] for s in pending]
                return PipelineResult(
                    success=False,
                    outputs=outputs,
                    stage_results=stage_results,
                    failed_stages=failed_stages + never_ran,
                    total_duration_ms=elapsed_ms(),
                    metadata={"cancellation": reason, "completed_waves": wave_idx},
                )

            logger.debug(f"Wave {wave_idx + 1}/{len(waves)}: {[s.id for s in wave]}")
            results = await asyncio.gather(
                *(self._execute_stage(s, outputs, initial_input, context) for s in wave),
                return_exceptions=True,
            )

            for stage_def, result in zip(wave, results, strict=True):
                result = self._as_stage_result(stage_def, result)
                stage_results[stage_def.id] = result

                if result.success:
                    outputs[stage_def.id] = result.output
                    logger.debug(f"  ✓ {stage_def.id}")
                    continue

                failed_stages.append(stage_def.id)
                logger.error(f"  ✗ {stage_def.id} failed: {result.error}")
                if stage_def.critical and pipeline.fail_fast:
                    logger.error(f"Stopping pipeline {pipeline.name} after '{stage_def.id}'")
                    return PipelineResult(
                        success=False,
                        outputs=outputs,
                        stage_results=stage_results,
                        failed_stages=failed_stages,
                        total_duration_ms=elapsed_ms(),
                        metadata={"fail_fast": True, "failed_stage": stage_def.id},
                    )

        duration_ms = elapsed_ms()
        if failed_stages:
            logger.warning(f"Pipeline {pipeline.name} finished with failures: {failed_stages}")
        else:
            logger.debug(f"Pipeline {pipeline.name} completed in {duration_ms:.0f}ms")

        return PipelineResult(
            success=not failed_stages,
            outputs=outputs,
            stage_results=stage_results,
            failed_stages=failed_stages,
            total_duration_ms=duration_ms,
            metadata=dict(context.metrics),
        )

    @staticmethod
    def _as_stage_result(stage_def: StageDefinition, outcome: Any) -> StageResult[Any]:
        """Normalize a gathered outcome; stages are expected to return, not raise."""
        if isinstance(outcome, StageResult):
            return outcome
        if isinstance(outcome, BaseException):
            logger.error(f"Unexpected exception in stage {stage_def.id}", exc_info=outcome)
            return failure_result(f"Unexpected error: {outcome}", stage_name=stage_def.stage.name)
        return failure_result("Invalid result type", stage_name=stage_def.stage.name)

    @staticmethod
    def _stage_input(stage_def: StageDefinition, outputs: dict[str, Any], initial_input: Any) -> Any:
        if not stage_def.inputs:
            return initial_input
        if len(stage_def.inputs) == 1:
            return outputs.get(stage_def.inputs[0])
        return {input_id: outputs.get(input_id) for input_id in stage_def.inputs}

    async def _execute_stage(
        self,
        stage_def: StageDefinition,
        outputs: dict[str, Any],
        initial_input: Any,
        context: PipelineContext,
    ) -> StageResult[Any]:
        """Run one stage definition: condition, fan-out, timeout and cancellation."""
        stage_name = stage_def.stage.name

        if context.is_cancelled():
            return cancelled_result(context.cancellation_reason(), stage_name=stage_name)

        if not stage_def.should_execute(context):
            logger.debug(f"Skipping conditional stage '{stage_def.id}'")
            return skipped_result(stage_name=stage_name, reason="Condition not met")

        stage_input = self._stage_input(stage_def, outputs, initial_input)

        if stage_def.pattern == ExecutionPattern.FAN_OUT:
            if not isinstance(stage_input, (list, tuple)):
                logger.error(
                    f"FAN_OUT stage '{stage_def.id}' expected list input, got {type(stage_input)}"
                )
                return failure_result(
                    error=f"FAN_OUT requires list input, got {type(stage_input)}",
                    stage_name=stage_name,
                )
            return await self._execute_fan_out(stage_def, list(stage_input), context)

        call = stage_def.stage.execute(stage_input, context)
        try:
            if stage_def.timeout_ms:
                result = await asyncio.wait_for(call, timeout=stage_def.timeout_ms / 1000.0)
            else:
                result = await call
        except TimeoutError:
            logger.warning(f"{stage_name} timed out after {stage_def.timeout_ms}ms")
            return failure_result(
                error=f"Stage timeout after {stage_def.timeout_ms}ms", stage_name=stage_name
            )
        except asyncio.CancelledError:
            if not context.is_cancelled():
                raise
            return cancelled_result(context.cancellation_reason(), stage_name=stage_name)
        except Exception as e:
            logger.exception(f"{stage_name} raised exception", exc_info=e)
            return failure_result(str(e), stage_name=stage_name)

        if not isinstance(result, StageResult):
            return failure_result("Stage returned invalid result type", stage_name=stage_name)
        return result

    async def _execute_fan_out(
        self,
        stage_def: StageDefinition,
        items: list[Any],
        context: PipelineContext,
    ) -> StageResult[list[Any]]:
        """Run a stage once per item and collect the outputs in item order.

        Every item runs to completion even when others fail. Failed items are
        reported under their ``item_key`` label, both in the error text and in
        ``metadata["failed_items"]`` as ``(label, error)`` pairs.
        """
        stage_name = stage_def.stage.name
        limit = stage_def.max_concurrent_fan_out
        semaphore = asyncio.Semaphore(limit) if limit else None
        logger.debug(
            f"Fan-out {stage_name}: {len(items)} items"
            + (f" (max {limit} concurrent)" if semaphore else "")
        )

        async def run_item(item: Any) -> StageResult[Any]:
            if semaphore is None:
                return await stage_def.stage.execute(item, context)
            async with semaphore:
                # Items still queued when the run is cancelled never start.
                if context.is_cancelled():
                    return cancelled_result(context.cancellation_reason(), stage_name=stage_name)
                return await stage_def.stage.execute(item, context)

        results = await asyncio.gather(*(run_item(i) for i in items), return_exceptions=True)

        outputs = []
        failures: list[tuple[str, str]] = []
        for index, (item, result) in enumerate(zip(items, results, strict=True)):
            label = stage_def.label_item(index, item)
            if isinstance(result, BaseException):
                failures.append((label, str(result) or type(result).__name__))
            elif not isinstance(result, StageResult):
                failures.append((label, "Invalid result type"))
            elif result.success:
                outputs.append(result.output)
            else:
                failures.append((label, result.error or "Unknown error"))

        counts = {"successes": len(outputs), "failures": len(failures), "failed_items": failures}
        if failures:
            logger.warning(f"Fan-out {stage_name}: {len(failures)}/{len(items)} items failed")
            if stage_def.critical:
                details = "; ".join(f"[{label}]: {error}" for label, error in failures)
                return failure_result(
                    error=f"Fan-out failures: {details}",
                    stage_name=stage_name,
                    metadata=counts,
                )

        return success_result(
            output=outputs,
            stage_name=stage_name,
            metadata={"total_executions": len(items), **counts},
        )
