"""Git commands used to fetch project sources."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from extforge.core.config.models import ToolchainConfig
from extforge.core.toolchain.process import ProcessOutcome, run_process

logger = logging.getLogger(__name__)


async def clone(
    url: str,
    destination: Path,
    toolchain: ToolchainConfig,
    ref: str | None = None,
    cancel_token: asyncio.Event | None = None,
) -> ProcessOutcome:
    """Clone a repository.

    Args:
        url: Repository URL
        destination: Checkout directory (must not exist)
        toolchain: Toolchain configuration (git executable, clone timeout)
        ref: Optional branch or tag to check out
        cancel_token: Optional cancellation token

    Raises:
        ToolchainError: Clone failed
    """
    args = [toolchain.git_executable, "clone"]
    if ref:
        args += ["--branch", ref]
    args += [url, str(destination)]

    logger.info(f"Cloning {url} into {destination}")
    destination.parent.mkdir(parents=True, exist_ok=True)
    return await run_process(
        args,
        timeout_s=toolchain.clone_timeout_s,
        cancel_token=cancel_token,
    )
