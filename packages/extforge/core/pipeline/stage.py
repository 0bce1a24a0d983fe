"""Pipeline stage protocol.

Defines the contract for pipeline stages using Protocol pattern for extensibility.
"""

from __future__ import annotations

from typing import Any, Protocol

from extforge.core.pipeline.context import PipelineContext
from extforge.core.pipeline.result import StageResult


class PipelineStage(Protocol):
    """Protocol for pipeline stages.

    Uses Protocol pattern for structural subtyping (no inheritance required).

    Example:
        >>> class WriteManifestStage:
        ...     @property
        ...     def name(self) -> str:
        ...         return "write_manifest"
        ...
        ...     async def execute(self, input: Any, context: PipelineContext) -> StageResult[Path]:
        ...         path = context.config.output_dir / "manifest.json"
        ...         path.write_text(synthesize(context.config).to_json())
        ...         return success_result(path, stage_name=self.name)
    """

    @property
    def name(self) -> str:
        """Stage name for logging and tracking."""
        ...

    async def execute(
        self,
        input: Any,  # Use Any to avoid variance issues with Protocol
        context: PipelineContext,
    ) -> StageResult[Any]:
        """Execute stage with input and shared context.

        Args:
            input: Stage input (type varies by stage)
            context: Shared pipeline context

        Returns:
            StageResult containing output or error

        Raises:
            Should not raise - wrap errors with failure_result()
        """
        ...
