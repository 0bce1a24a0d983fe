"""Tests for runtime shim generation and the build record."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from extforge.core.config.models import (
    BuildConfiguration,
    CompileTarget,
    RuntimeNames,
    Topology,
)
from extforge.core.records import BuildRecord, rebuild_command, render_build_record
from extforge.core.shims.generator import (
    CONTENT_SCRIPT,
    CONTENT_STYLE,
    INIT_SCRIPT,
    POPUP_PAGE,
    generate_shims,
)

# ============================================================================
# Tests: Shims
# ============================================================================


def test_popup_shims(tmp_path):
    config = BuildConfiguration(output_dir=tmp_path / "ext", name="Popup <App>")

    shims = generate_shims(config)

    assert set(shims) == {INIT_SCRIPT, POPUP_PAGE}
    page = shims[POPUP_PAGE]
    assert '<script src="flutter_init.js"></script>' in page
    assert '<div id="flutter-extension-container"></div>' in page
    assert "width: 500px;" in page
    assert "<title>Popup &lt;App&gt;</title>" in page
    assert "flutter_bootstrap.js" in shims[INIT_SCRIPT]


def test_popup_dimensions(tmp_path):
    config = BuildConfiguration(output_dir=tmp_path / "ext", popup_width=320, popup_height=480)

    page = generate_shims(config)[POPUP_PAGE]

    assert "width: 320px;" in page
    assert "height: 480px;" in page


def test_overlay_shims(tmp_path):
    config = BuildConfiguration(output_dir=tmp_path / "ext", topology=Topology.OVERLAY)

    shims = generate_shims(config)

    assert set(shims) == {INIT_SCRIPT, CONTENT_SCRIPT, CONTENT_STYLE}
    script = shims[CONTENT_SCRIPT]
    assert "var TOGGLE_KEY = \"F\";" in script
    assert "'flutter_bootstrap.js'" in script
    assert "#flutter-extension-overlay {" in shims[CONTENT_STYLE]


def test_overlay_shims_use_runtime_names(tmp_path):
    names = RuntimeNames(overlay_id="my-overlay", id_global="MY_EXT_ID", toggle_key="K")
    config = BuildConfiguration(
        output_dir=tmp_path / "ext", topology=Topology.OVERLAY, runtime_names=names
    )

    shims = generate_shims(config)

    assert 'var OVERLAY_ID = "my-overlay";' in shims[CONTENT_SCRIPT]
    assert 'var TOGGLE_KEY = "K";' in shims[CONTENT_SCRIPT]
    assert 'window["MY_EXT_ID"]' in shims[INIT_SCRIPT]
    assert "#my-overlay {" in shims[CONTENT_STYLE]


def test_shims_respect_debug_mode(tmp_path):
    debug = BuildConfiguration(output_dir=tmp_path / "ext", topology=Topology.OVERLAY)
    quiet = BuildConfiguration(
        output_dir=tmp_path / "ext", topology=Topology.OVERLAY, debug_mode=False
    )

    assert "console." in generate_shims(debug)[CONTENT_SCRIPT]
    assert "console." not in generate_shims(quiet)[CONTENT_SCRIPT]
    assert "// [extforge] CONTENT_LOADED" in generate_shims(quiet)[CONTENT_SCRIPT]


# ============================================================================
# Tests: Build Record
# ============================================================================


def _record(topology: Topology = Topology.POPUP) -> BuildRecord:
    config = BuildConfiguration(
        output_dir=Path("out/my ext"),
        name="My App",
        version="1.2.3",
        topology=topology,
        compile_target=CompileTarget.INTERPRETED,
    )
    return BuildRecord.from_config(config, toolchain_version="Flutter 3.35.0")


def test_record_from_config():
    record = _record()

    assert record.name == "My App"
    assert record.toolchain_version == "Flutter 3.35.0"
    assert record.generated_at.tzinfo is not None
    assert record.generated_at <= datetime.now(UTC)


def test_rebuild_command_quotes_arguments():
    command = rebuild_command(_record(Topology.OVERLAY))

    assert command == (
        "extforge build --output 'out/my ext' --name 'My App' --version 1.2.3 --overlay --web"
    )


def test_render_popup_record():
    text = render_build_record(_record())

    assert text.startswith("# Extension Build Information")
    assert "**Toolchain Version:** Flutter 3.35.0" in text
    assert "JavaScript with CanvasKit renderer" in text
    assert "- `popup.html`: Popup host page" in text
    assert "content_script.js" not in text
    assert "Ctrl+Shift" not in text


def test_render_overlay_record_names_toggle_key():
    text = render_build_record(_record(Topology.OVERLAY), toggle_key="K")

    assert "Press Ctrl+Shift+K" in text
    assert "- `content_script.css`: Overlay styling" in text
    assert "popup.html" not in text
