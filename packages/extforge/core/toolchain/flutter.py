"""Flutter toolchain commands."""

from __future__ import annotations

import asyncio
import logging
import shutil
from collections.abc import Sequence
from pathlib import Path

from extforge.core.config.models import CompileTarget, ToolchainConfig
from extforge.core.errors import PreconditionFailure
from extforge.core.toolchain.process import (
    ProcessCancelled,
    ProcessOutcome,
    ToolchainError,
    run_process,
)

logger = logging.getLogger(__name__)

UNKNOWN_VERSION = "Unknown"

# Arguments used when bundling several projects into one package.
DEFAULT_BUNDLE_BUILD_ARGS = ("--csp", "--profile")


def require_executable(executable: str) -> str:
    """Resolve an executable on PATH.

    Args:
        executable: Name or path of the executable

    Returns:
        Resolved executable path

    Raises:
        PreconditionFailure: If the executable cannot be found
    """
    resolved = shutil.which(executable)
    if resolved is None:
        raise PreconditionFailure(f"Required executable '{executable}' not found on PATH")
    return resolved


def web_build_args(compile_target: CompileTarget) -> list[str]:
    """Arguments for a single-project debug build.

    Example:
        >>> web_build_args(CompileTarget.BINARY)
        ['build', 'web', '--wasm', '--debug']
    """
    if compile_target is CompileTarget.BINARY:
        return ["build", "web", "--wasm", "--debug"]
    return ["build", "web", "--debug"]


async def build_web(
    project_dir: Path,
    args: Sequence[str],
    toolchain: ToolchainConfig,
    cancel_token: asyncio.Event | None = None,
) -> ProcessOutcome:
    """Run ``flutter <args>`` in a project directory.

    Raises:
        ToolchainError: Build failed (ProcessTimeout / ProcessCancelled included)
    """
    logger.info(f"Building {project_dir} with: flutter {' '.join(args)}")
    return await run_process(
        [toolchain.flutter_executable, *args],
        cwd=project_dir,
        timeout_s=toolchain.build_timeout_s,
        cancel_token=cancel_token,
    )


async def flutter_version(
    toolchain: ToolchainConfig,
    cancel_token: asyncio.Event | None = None,
) -> str:
    """Return the first line of ``flutter --version``, or "Unknown" if unavailable.

    Raises:
        ProcessCancelled: If the run is cancelled while the version is queried
    """
    try:
        outcome = await run_process(
            [toolchain.flutter_executable, "--version"],
            timeout_s=toolchain.version_timeout_s,
            cancel_token=cancel_token,
        )
    except ProcessCancelled:
        raise
    except ToolchainError as e:
        logger.debug(f"Toolchain version unavailable: {e}")
        return UNKNOWN_VERSION

    lines = outcome.stdout.strip().splitlines()
    return lines[0].strip() if lines else UNKNOWN_VERSION
