"""External tool runner (flutter, git)."""

from extforge.core.toolchain.flutter import (
    DEFAULT_BUNDLE_BUILD_ARGS,
    UNKNOWN_VERSION,
    build_web,
    flutter_version,
    require_executable,
    web_build_args,
)
from extforge.core.toolchain.git import clone
from extforge.core.toolchain.process import (
    ProcessCancelled,
    ProcessOutcome,
    ProcessTimeout,
    ToolchainError,
    run_process,
)

__all__ = [
    "DEFAULT_BUNDLE_BUILD_ARGS",
    "UNKNOWN_VERSION",
    "ProcessCancelled",
    "ProcessOutcome",
    "ProcessTimeout",
    "ToolchainError",
    "build_web",
    "clone",
    "flutter_version",
    "require_executable",
    "run_process",
    "web_build_args",
]
