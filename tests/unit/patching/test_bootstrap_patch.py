"""Tests for bootstrap rewriting."""

from __future__ import annotations

from pathlib import Path

import pytest

from extforge.core.config.models import BuildConfiguration, CompileTarget
from extforge.core.patching import (
    BEGIN_MARKER,
    DEFAULT_ENGINE_REVISION,
    END_MARKER,
    contains_auto_load,
    patch_bootstrap,
    strip_auto_load,
)
from extforge.core.patchset import PatchFailure
from extforge.core.templates.renderer import TemplateRenderer


@pytest.fixture
def wasm_config(tmp_path: Path) -> BuildConfiguration:
    return BuildConfiguration(output_dir=tmp_path / "ext")


@pytest.fixture
def js_config(tmp_path: Path) -> BuildConfiguration:
    return BuildConfiguration(
        output_dir=tmp_path / "ext", compile_target=CompileTarget.INTERPRETED
    )


# ============================================================================
# Tests: Stripping
# ============================================================================


def test_compiled_bootstrap_contains_auto_load(bootstrap_source):
    assert contains_auto_load(bootstrap_source) is True


def test_strip_removes_loader_call_and_build_config(bootstrap_source):
    """Both statements are removed; the loader definition stays."""
    stripped, removed = strip_auto_load(bootstrap_source)

    assert len(removed) == 2
    assert removed[0].startswith("_flutter.buildConfig =")
    assert removed[1].startswith("_flutter.loader.load({")
    assert removed[1].endswith("});")
    assert "serviceWorkerVersion" not in stripped
    assert "_flutter.loader = {load:" in stripped
    assert contains_auto_load(stripped) is False


def test_strip_ignores_occurrences_inside_literals():
    """Strings, templates and comments are not code."""
    text = (
        'var a = "_flutter.loader.load(x);";\n'
        "var b = `_flutter.buildConfig = {}`;\n"
        "// _flutter.loader.load(y);\n"
        "/* _flutter.buildConfig = 1; */\n"
    )

    stripped, removed = strip_auto_load(text)

    assert removed == []
    assert stripped == text


def test_strip_includes_global_receiver():
    """An explicit ``window.`` receiver is removed with the statement."""
    text = 'a();\nwindow._flutter.buildConfig = {"engineRevision":"ff00"};\nb();\n'

    stripped, removed = strip_auto_load(text)

    assert removed == ['window._flutter.buildConfig = {"engineRevision":"ff00"};']
    assert stripped == "a();\n\nb();\n"


def test_strip_handles_brackets_inside_arguments():
    """Nested brackets and strings in the call do not end it early."""
    text = "_flutter.loader.load({onEntrypointLoaded: function(e) { go(')'); }});\nrest();\n"

    stripped, _ = strip_auto_load(text)

    assert stripped == "\nrest();\n"


# ============================================================================
# Tests: Patching
# ============================================================================


def test_patch_appends_delimited_block(bootstrap_source, wasm_config):
    patched = patch_bootstrap(bootstrap_source, wasm_config)

    assert BEGIN_MARKER in patched
    assert patched.rstrip().endswith(END_MARKER)
    assert contains_auto_load(patched) is False


def test_patch_keeps_engine_revision(bootstrap_source, wasm_config):
    """The revision from the removed build config is carried over."""
    patched = patch_bootstrap(bootstrap_source, wasm_config)

    assert '"engineRevision": "a1b2c3d4e5"' in patched


def test_patch_uses_default_engine_revision_when_absent(wasm_config):
    patched = patch_bootstrap("_flutter.loader.load();\n", wasm_config)

    assert f'"engineRevision": "{DEFAULT_ENGINE_REVISION}"' in patched


def test_patch_wasm_build_config(bootstrap_source, wasm_config):
    patched = patch_bootstrap(bootstrap_source, wasm_config)

    assert '"compileTarget": "dart2wasm"' in patched
    assert '"compileTarget": "dart2js"' not in patched


def test_patch_js_build_config(bootstrap_source, js_config):
    patched = patch_bootstrap(bootstrap_source, js_config)

    assert '"compileTarget": "dart2js"' in patched
    assert '"compileTarget": "dart2wasm"' not in patched


def test_patch_uses_container_id(bootstrap_source, wasm_config):
    patched = patch_bootstrap(bootstrap_source, wasm_config)

    assert '"flutter-extension-container"' in patched


def test_repatching_replaces_block(bootstrap_source, wasm_config):
    """Patching twice yields the same text as patching once."""
    once = patch_bootstrap(bootstrap_source, wasm_config)
    twice = patch_bootstrap(once, wasm_config)

    assert twice == once
    assert twice.count(BEGIN_MARKER) == 1


def test_debug_mode_emits_console_statements(bootstrap_source, wasm_config):
    patched = patch_bootstrap(bootstrap_source, wasm_config)

    assert "console.log('Applying extension runtime patch...');" in patched


def test_debug_off_emits_no_op_markers(bootstrap_source, tmp_path):
    config = BuildConfiguration(output_dir=tmp_path / "ext", debug_mode=False)

    patched = patch_bootstrap(bootstrap_source, config)

    assert "console." not in patched
    assert "// [extforge] PATCH_START" in patched


def test_unscannable_source_fails_strip_operation(wasm_config):
    with pytest.raises(PatchFailure) as exc_info:
        patch_bootstrap('var s = "unterminated\n_flutter.loader.load();\n', wasm_config)

    assert exc_info.value.operation_index == 0


def test_missing_template_fails_append_operation(bootstrap_source, wasm_config, tmp_path):
    renderer = TemplateRenderer(base_path=tmp_path)

    with pytest.raises(PatchFailure) as exc_info:
        patch_bootstrap(bootstrap_source, wasm_config, renderer=renderer)

    assert exc_info.value.operation_index == 1
