"""Tests for supervised external processes and the flutter/git wrappers."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import pytest

from extforge.core.config.models import CompileTarget, ToolchainConfig
from extforge.core.errors import PreconditionFailure
from extforge.core.toolchain import (
    UNKNOWN_VERSION,
    ProcessCancelled,
    ProcessTimeout,
    ToolchainError,
    build_web,
    clone,
    flutter_version,
    require_executable,
    run_process,
    web_build_args,
)

RECORD_ARGS = """\
import json, os, sys
with open(os.environ.get("RECORD", "args.json"), "w") as fh:
    json.dump({"argv": sys.argv[1:], "cwd": os.getcwd()}, fh)
"""

# ============================================================================
# Tests: run_process
# ============================================================================


@pytest.mark.asyncio
async def test_run_process_captures_output(make_script):
    command = make_script(
        """\
        import sys
        print("hello")
        print("warning", file=sys.stderr)
        """
    )

    outcome = await run_process(command, timeout_s=30)

    assert outcome.succeeded is True
    assert outcome.stdout.strip() == "hello"
    assert outcome.stderr.strip() == "warning"
    assert outcome.args == tuple(command)
    assert outcome.duration_ms > 0


@pytest.mark.asyncio
async def test_run_process_uses_working_directory(make_script, tmp_path):
    command = make_script("import os; print(os.getcwd())")
    workdir = tmp_path / "work"
    workdir.mkdir()

    outcome = await run_process(command, cwd=workdir, timeout_s=30)

    assert Path(outcome.stdout.strip()).resolve() == workdir.resolve()


@pytest.mark.asyncio
async def test_run_process_nonzero_exit_raises(make_script):
    command = make_script(
        """\
        import sys
        print("line one", file=sys.stderr)
        print("compile error", file=sys.stderr)
        sys.exit(3)
        """
    )

    with pytest.raises(ToolchainError) as exc_info:
        await run_process(command, timeout_s=30)

    error = exc_info.value
    assert error.returncode == 3
    assert error.stderr_tail.endswith("compile error")
    assert "exit status 3" in str(error)


@pytest.mark.asyncio
async def test_run_process_without_check_returns_outcome(make_script):
    command = make_script("import sys; sys.exit(2)")

    outcome = await run_process(command, timeout_s=30, check=False)

    assert outcome.returncode == 2
    assert outcome.succeeded is False


@pytest.mark.asyncio
async def test_run_process_timeout_kills_process(make_script):
    command = make_script("import time; time.sleep(30)")

    with pytest.raises(ProcessTimeout) as exc_info:
        await run_process(command, timeout_s=0.2)

    assert exc_info.value.returncode is None
    assert "timed out" in str(exc_info.value)


@pytest.mark.asyncio
async def test_run_process_cancel_token_kills_process(make_script):
    command = make_script("import time; time.sleep(30)")
    token = asyncio.Event()
    asyncio.get_running_loop().call_later(0.2, token.set)

    with pytest.raises(ProcessCancelled):
        await run_process(command, timeout_s=30, cancel_token=token)


@pytest.mark.asyncio
async def test_run_process_cancelled_before_start(make_script):
    token = asyncio.Event()
    token.set()

    with pytest.raises(ProcessCancelled, match="before start"):
        await run_process(make_script("print('never')"), cancel_token=token)


@pytest.mark.asyncio
async def test_run_process_missing_executable():
    with pytest.raises(ToolchainError, match="Executable not found"):
        await run_process(["extforge-test-no-such-tool", "--version"])


# ============================================================================
# Tests: flutter / git wrappers
# ============================================================================


def test_require_executable():
    assert require_executable(sys.executable)

    with pytest.raises(PreconditionFailure, match="not found"):
        require_executable("extforge-test-no-such-tool")


def test_web_build_args():
    assert web_build_args(CompileTarget.BINARY) == ["build", "web", "--wasm", "--debug"]
    assert web_build_args(CompileTarget.INTERPRETED) == ["build", "web", "--debug"]


@pytest.mark.asyncio
async def test_flutter_version_first_line(make_tool):
    tool = make_tool(
        "flutter",
        """\
        print("Flutter 3.35.0 - channel stable")
        print("Framework - revision abc")
        """,
    )

    version = await flutter_version(ToolchainConfig(flutter_executable=tool))

    assert version == "Flutter 3.35.0 - channel stable"


@pytest.mark.asyncio
async def test_flutter_version_unknown_when_missing():
    toolchain = ToolchainConfig(flutter_executable="extforge-test-no-such-tool")

    assert await flutter_version(toolchain) == UNKNOWN_VERSION


@pytest.mark.asyncio
async def test_flutter_version_propagates_cancellation(make_tool):
    tool = make_tool("flutter", "import time; time.sleep(30)\n")
    token = asyncio.Event()
    asyncio.get_running_loop().call_later(0.2, token.set)

    with pytest.raises(ProcessCancelled):
        await flutter_version(ToolchainConfig(flutter_executable=tool), cancel_token=token)


@pytest.mark.asyncio
async def test_build_web_runs_in_project(make_tool, tmp_path, monkeypatch):
    record = tmp_path / "build_args.json"
    monkeypatch.setenv("RECORD", str(record))
    tool = make_tool("flutter", RECORD_ARGS)
    project = tmp_path / "project"
    project.mkdir()

    await build_web(project, ["build", "web", "--debug"], ToolchainConfig(flutter_executable=tool))

    recorded = json.loads(record.read_text())
    assert recorded["argv"] == ["build", "web", "--debug"]
    assert Path(recorded["cwd"]).resolve() == project.resolve()


@pytest.mark.asyncio
async def test_clone_passes_ref_and_creates_parent(make_tool, tmp_path, monkeypatch):
    record = tmp_path / "clone_args.json"
    monkeypatch.setenv("RECORD", str(record))
    tool = make_tool("git", RECORD_ARGS)
    destination = tmp_path / "workspace" / "repo"

    await clone(
        "https://example.com/repo.git",
        destination,
        ToolchainConfig(git_executable=tool),
        ref="v1.2",
    )

    recorded = json.loads(record.read_text())
    assert recorded["argv"] == [
        "clone",
        "--branch",
        "v1.2",
        "https://example.com/repo.git",
        str(destination),
    ]
    assert destination.parent.is_dir()
