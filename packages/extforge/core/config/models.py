"""Configuration models for extforge."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from extforge.core.patchset.models import PatchTolerance


class CompileTarget(str, Enum):
    """Compiled output flavor of the web bundle.

    Values:
        INTERPRETED: dart2js JavaScript emit (CanvasKit renderer)
        BINARY: dart2wasm WebAssembly emit (Skwasm renderer)
    """

    INTERPRETED = "interpreted"
    BINARY = "binary"


class Topology(str, Enum):
    """How the application is hosted inside the browser extension."""

    POPUP = "popup"
    OVERLAY = "overlay"


class RuntimeNames(BaseModel):
    """Page-global and DOM names the generated JavaScript relies on.

    Attributes:
        id_global: Window global carrying the extension runtime id
        init_flag_global: Window global guarding against double initialization
        container_id: Element id hosting the application
        overlay_id: Overlay root element id (overlay topology)
        header_id: Draggable overlay header id
        close_id: Overlay close button id
        toggle_key: Key toggling the overlay together with Ctrl+Shift
    """

    id_global: str = "FLUTTER_EXTENSION_ID"
    init_flag_global: str = "flutterInitialized"
    container_id: str = "flutter-extension-container"
    overlay_id: str = "flutter-extension-overlay"
    header_id: str = "flutter-extension-header"
    close_id: str = "flutter-extension-close"
    toggle_key: str = Field(default="F", min_length=1, max_length=1)

    model_config = ConfigDict(frozen=True, extra="forbid")


_DEFAULT_DESCRIPTIONS: dict[tuple[Topology, CompileTarget], str] = {
    (Topology.POPUP, CompileTarget.BINARY): (
        "A Chrome extension popup running Flutter with WebAssembly"
    ),
    (Topology.POPUP, CompileTarget.INTERPRETED): (
        "A Chrome extension popup running Flutter with JavaScript"
    ),
    (Topology.OVERLAY, CompileTarget.BINARY): (
        "A Chrome content script running Flutter with WebAssembly"
    ),
    (Topology.OVERLAY, CompileTarget.INTERPRETED): (
        "A Chrome content script running Flutter with JavaScript"
    ),
}


def default_description(topology: Topology, compile_target: CompileTarget) -> str:
    """Return the stock package description for a topology and compile target."""
    return _DEFAULT_DESCRIPTIONS[(topology, compile_target)]


class BuildConfiguration(BaseModel):
    """Immutable inputs of a single-project extension build.

    Attributes:
        output_dir: Extension package directory (deleted and recreated)
        project_dir: Application project root (contains pubspec.yaml)
        build_dir: Compiled bundle directory, relative to project_dir
        name: Extension name
        version: Extension version
        description: Extension description (defaults per topology and target)
        compile_target: Compiled output flavor
        topology: Hosting topology
        debug_mode: Emit console instrumentation in generated JavaScript
        skip_build: Reuse an existing compiled bundle instead of building
        popup_width: Popup panel width in pixels
        popup_height: Popup panel height in pixels
        runtime_names: Names shared by all generated JavaScript
    """

    output_dir: Path
    project_dir: Path = Field(default_factory=Path.cwd)
    build_dir: Path = Path("build/web")
    name: str = Field(default="Flutter App Extension", min_length=1)
    version: str = Field(default="1.0.0", min_length=1)
    description: str = ""
    compile_target: CompileTarget = CompileTarget.BINARY
    topology: Topology = Topology.POPUP
    debug_mode: bool = True
    skip_build: bool = False
    popup_width: int = Field(default=500, gt=0)
    popup_height: int = Field(default=600, gt=0)
    runtime_names: RuntimeNames = Field(default_factory=RuntimeNames)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="before")
    @classmethod
    def _fill_description(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("description"):
            topology = Topology(data.get("topology", Topology.POPUP))
            target = CompileTarget(data.get("compile_target", CompileTarget.BINARY))
            data = {**data, "description": default_description(topology, target)}
        return data

    @property
    def source_dir(self) -> Path:
        """Absolute location of the compiled bundle."""
        return self.build_dir if self.build_dir.is_absolute() else self.project_dir / self.build_dir

    @property
    def is_binary(self) -> bool:
        return self.compile_target is CompileTarget.BINARY


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    filename: str | None = None
    structured: bool = False


class ToolchainConfig(BaseModel):
    """External tool locations and per-process timeouts."""

    flutter_executable: str = "flutter"
    git_executable: str = "git"
    build_timeout_s: float = Field(default=900.0, gt=0, description="Per-build timeout")
    clone_timeout_s: float = Field(default=300.0, gt=0, description="Per-clone timeout")
    version_timeout_s: float = Field(default=60.0, gt=0, description="Timeout of the version query")


class AppConfig(BaseModel):
    """Application-level configuration shared by every command.

    Example:
        >>> config = AppConfig.model_validate({"max_concurrent_builds": 2})
        >>> config.toolchain.flutter_executable
        'flutter'
    """

    model_config = ConfigDict(extra="ignore")

    logging: LoggingConfig = LoggingConfig()
    toolchain: ToolchainConfig = ToolchainConfig()
    run_deadline_s: float | None = Field(
        default=None, gt=0, description="Deadline for a whole build or bundle run"
    )
    max_concurrent_builds: int = Field(default=4, ge=1, description="Parallel project builds")
    patch_tolerance: PatchTolerance = PatchTolerance()
