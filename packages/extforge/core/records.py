"""Build record written beside the extension package (``BUILD_INFO.md``)."""

from __future__ import annotations

import shlex
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from extforge.core.config.models import BuildConfiguration, CompileTarget, Topology
from extforge.core.templates.renderer import TemplateRenderer

BUILD_RECORD_FILE = "BUILD_INFO.md"

_TARGET_DESCRIPTIONS = {
    CompileTarget.BINARY: "WebAssembly with Skwasm renderer",
    CompileTarget.INTERPRETED: "JavaScript with CanvasKit renderer",
}

_COMMON_FILES = [
    ("manifest.json", "Extension manifest (version 3)"),
    ("flutter_bootstrap.js", "Bootstrap patched for the extension origin"),
    ("flutter_bootstrap.js.backup", "Unmodified bootstrap"),
    ("flutter_init.js", "Runtime configuration loaded before the bootstrap"),
]
_TOPOLOGY_FILES = {
    Topology.POPUP: [("popup.html", "Popup host page")],
    Topology.OVERLAY: [
        ("content_script.js", "Overlay injection script"),
        ("content_script.css", "Overlay styling"),
    ],
}
_BUNDLE_FILES = [
    ("main.dart.js / main.dart.wasm", "Compiled application"),
    ("canvaskit/", "Renderer files"),
    ("assets/", "Application assets"),
]


class BuildRecord(BaseModel):
    """Metadata describing one extension build.

    Attributes:
        generated_at: Build completion time (UTC)
        toolchain_version: First line of ``flutter --version`` or "Unknown"
        name: Extension name
        version: Extension version
        topology: Hosting topology
        compile_target: Compiled output flavor
        output_dir: Extension package directory
    """

    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    toolchain_version: str = "Unknown"
    name: str
    version: str
    topology: Topology
    compile_target: CompileTarget
    output_dir: Path

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def from_config(cls, config: BuildConfiguration, toolchain_version: str) -> BuildRecord:
        return cls(
            toolchain_version=toolchain_version,
            name=config.name,
            version=config.version,
            topology=config.topology,
            compile_target=config.compile_target,
            output_dir=config.output_dir,
        )


def rebuild_command(record: BuildRecord) -> str:
    """Command line that reproduces the build."""
    parts = [
        "extforge",
        "build",
        "--output",
        record.output_dir.as_posix(),
        "--name",
        record.name,
        "--version",
        record.version,
        f"--{record.topology.value}",
        "--wasm" if record.compile_target is CompileTarget.BINARY else "--web",
    ]
    return shlex.join(parts)


def render_build_record(
    record: BuildRecord,
    toggle_key: str = "F",
    renderer: TemplateRenderer | None = None,
) -> str:
    """Render a build record as Markdown.

    Args:
        record: Build record
        toggle_key: Overlay toggle key shown in the usage notes
        renderer: Template renderer to reuse

    Returns:
        Markdown text
    """
    renderer = renderer or TemplateRenderer()
    files = _COMMON_FILES + _TOPOLOGY_FILES[record.topology] + _BUNDLE_FILES
    return renderer.render_file(
        "build_info.md.j2",
        {
            "record": record,
            "target_description": _TARGET_DESCRIPTIONS[record.compile_target],
            "toggle_key": toggle_key,
            "files": files,
            "rebuild_command": rebuild_command(record),
        },
    )
