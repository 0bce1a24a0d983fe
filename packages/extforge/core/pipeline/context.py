"""Pipeline context for shared state and dependencies.

Provides configuration, cancellation and state management across pipeline stages.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from extforge.core.config.models import AppConfig, BuildConfiguration
from extforge.core.templates.renderer import TemplateRenderer


@dataclass
class PipelineContext:
    """Shared context across pipeline stages.

    Mutable to allow state updates during pipeline execution.

    Attributes:
        app_config: Application configuration (toolchain, timeouts, concurrency)
        build_config: Single-project build configuration (None for bundle runs)
        output_dir: Directory owned by this run
        renderer: Template renderer shared by the stages
        log_points: Resolved debug log-point table
        state: Mutable state dictionary for sharing data between stages
        metrics: Mutable metrics dictionary (timing, file counts, etc.)
        cancel_token: Optional cancellation token (asyncio.Event)

    Example:
        >>> context = PipelineContext(
        ...     app_config=AppConfig(),
        ...     build_config=config,
        ...     output_dir=config.output_dir,
        ...     cancel_token=asyncio.Event(),
        ... )
        >>>
        >>> # Access in stage
        >>> async def execute(self, input, context):
        ...     context.set_state("bootstrap_path", path)
        ...     context.add_metric("copied_files", len(copied))
    """

    app_config: AppConfig = field(default_factory=AppConfig)
    build_config: BuildConfiguration | None = None
    output_dir: Path | None = None
    renderer: TemplateRenderer = field(default_factory=TemplateRenderer)
    log_points: dict[str, str] | None = None

    # Mutable state
    state: dict[str, Any] = field(default_factory=dict)
    metrics: dict[str, Any] = field(default_factory=dict)

    # Cancellation support
    cancel_token: asyncio.Event | None = None

    @property
    def config(self) -> BuildConfiguration:
        """Build configuration of a single-project run.

        Raises:
            RuntimeError: If the context carries no build configuration
        """
        if self.build_config is None:
            raise RuntimeError("Pipeline context has no build configuration")
        return self.build_config

    def is_cancelled(self) -> bool:
        """Check if pipeline has been cancelled.

        Returns:
            True if cancel_token is set and signaled
        """
        return self.cancel_token is not None and self.cancel_token.is_set()

    def cancellation_reason(self) -> str:
        """Describe why the run was cancelled."""
        if self.get_state("deadline_exceeded", False):
            return "Run deadline exceeded"
        return "Cancelled by user"

    def arm_deadline(self, seconds: float) -> asyncio.TimerHandle:
        """Cancel the run once ``seconds`` have elapsed.

        Creates a cancellation token if the context has none. Must be called
        from within a running event loop.

        Returns:
            Timer handle; cancel it when the run finishes first
        """
        if self.cancel_token is None:
            self.cancel_token = asyncio.Event()
        token = self.cancel_token

        def _expire() -> None:
            self.set_state("deadline_exceeded", True)
            token.set()

        return asyncio.get_running_loop().call_later(seconds, _expire)

    def add_metric(self, key: str, value: Any) -> None:
        """Add or update metric.

        Args:
            key: Metric key
            value: Metric value
        """
        self.metrics[key] = value

    def get_state(self, key: str, default: Any = None) -> Any:
        """Get state value with optional default."""
        return self.state.get(key, default)

    def set_state(self, key: str, value: Any) -> None:
        """Set state value."""
        self.state[key] = value
