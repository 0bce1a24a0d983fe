"""Supervised external processes.

Every external tool (flutter, git) runs as an asyncio subprocess with captured
output, its own timeout and an optional cancellation token. A process that
times out or is cancelled is killed before the error is raised.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from extforge.core.errors import ExtforgeError

logger = logging.getLogger(__name__)

STDERR_TAIL_LINES = 20

# Time allowed for pipes to drain after a kill.
_DRAIN_TIMEOUT_S = 5.0


def _tail(text: str, lines: int = STDERR_TAIL_LINES) -> str:
    return "\n".join(text.strip().splitlines()[-lines:])


class ToolchainError(ExtforgeError):
    """An external process failed.

    Attributes:
        command: Command line that was run
        returncode: Exit status (None if the process never finished)
        stderr_tail: Last lines of captured stderr
    """

    def __init__(
        self,
        message: str,
        command: Sequence[str],
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.stderr_tail = _tail(stderr)
        detail = f"{message} (command: {' '.join(self.command)}"
        if returncode is not None:
            detail += f", exit status {returncode}"
        detail += ")"
        if self.stderr_tail:
            detail += f"\n{self.stderr_tail}"
        super().__init__(detail)


class ProcessTimeout(ToolchainError):
    """An external process exceeded its timeout and was killed."""


class ProcessCancelled(ToolchainError):
    """An external process was killed because the run was cancelled."""


@dataclass(frozen=True)
class ProcessOutcome:
    """Result of a finished process.

    Attributes:
        args: Command line
        returncode: Exit status
        stdout: Captured stdout (decoded, replacement on invalid bytes)
        stderr: Captured stderr
        duration_ms: Wall time in milliseconds
    """

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    duration_ms: float

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0


async def run_process(
    args: Sequence[str],
    *,
    cwd: Path | str | None = None,
    timeout_s: float | None = None,
    cancel_token: asyncio.Event | None = None,
    check: bool = True,
) -> ProcessOutcome:
    """Run an external process to completion.

    Args:
        args: Command line (no shell)
        cwd: Working directory
        timeout_s: Kill the process after this many seconds
        cancel_token: Kill the process as soon as this event is set
        check: Raise ToolchainError on a non-zero exit status

    Returns:
        ProcessOutcome with captured output

    Raises:
        ToolchainError: Executable missing, or non-zero exit with check=True
        ProcessTimeout: Timeout elapsed
        ProcessCancelled: cancel_token was set

    Example:
        >>> outcome = await run_process(["flutter", "--version"], timeout_s=60)
        >>> outcome.stdout.splitlines()[0]
        'Flutter 3.32.0 • channel stable • ...'
    """
    command = [str(arg) for arg in args]
    if cancel_token is not None and cancel_token.is_set():
        raise ProcessCancelled("Cancelled before start", command)

    logger.debug(f"Running: {' '.join(command)} (cwd={cwd or '.'})")
    start_time = time.perf_counter()

    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise ToolchainError(f"Executable not found: {command[0]}", command) from e

    communicate = asyncio.ensure_future(proc.communicate())
    waiters: set[asyncio.Future] = {communicate}
    cancel_waiter: asyncio.Future | None = None
    if cancel_token is not None:
        cancel_waiter = asyncio.ensure_future(cancel_token.wait())
        waiters.add(cancel_waiter)

    try:
        done, _ = await asyncio.wait(
            waiters, timeout=timeout_s, return_when=asyncio.FIRST_COMPLETED
        )
    except asyncio.CancelledError:
        await _kill(proc, communicate)
        raise
    finally:
        if cancel_waiter is not None:
            cancel_waiter.cancel()

    if communicate not in done:
        stderr = await _kill(proc, communicate)
        if cancel_waiter is not None and cancel_waiter in done:
            raise ProcessCancelled("Process cancelled", command, proc.returncode, stderr)
        raise ProcessTimeout(f"Process timed out after {timeout_s}s", command, None, stderr)

    stdout_bytes, stderr_bytes = communicate.result()
    outcome = ProcessOutcome(
        args=tuple(command),
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout_bytes.decode("utf-8", errors="replace"),
        stderr=stderr_bytes.decode("utf-8", errors="replace"),
        duration_ms=(time.perf_counter() - start_time) * 1000,
    )
    logger.debug(
        f"Finished: {command[0]} exit={outcome.returncode} in {outcome.duration_ms:.0f}ms"
    )

    if check and not outcome.succeeded:
        raise ToolchainError("Process failed", command, outcome.returncode, outcome.stderr)
    return outcome


async def _kill(proc: asyncio.subprocess.Process, communicate: asyncio.Future) -> str:
    """Kill a running process and return whatever stderr it produced."""
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass

    try:
        _, stderr_bytes = await asyncio.wait_for(asyncio.shield(communicate), _DRAIN_TIMEOUT_S)
    except asyncio.TimeoutError:
        logger.warning(f"Output of killed process {proc.pid} did not drain")
        communicate.cancel()
        return ""
    return stderr_bytes.decode("utf-8", errors="replace")
