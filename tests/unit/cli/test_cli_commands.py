"""Tests for the extforge command line."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from extforge.cli.main import build_arg_parser, build_configuration, main
from extforge.core.config.models import CompileTarget, Topology

MISSING_TOOLS_CONFIG = """\
toolchain:
  flutter_executable: extforge-test-missing-flutter
  git_executable: extforge-test-missing-git
"""


@pytest.fixture(autouse=True)
def isolated_cli(tmp_path, monkeypatch):
    """Run each command in an empty directory and restore root logging afterwards."""
    monkeypatch.chdir(tmp_path)
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def config_file(tmp_path) -> Path:
    path = tmp_path / "extforge.yaml"
    path.write_text(MISSING_TOOLS_CONFIG)
    return path


def _exit_code(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


# ============================================================================
# Tests: Argument Parsing
# ============================================================================


def test_build_requires_output():
    with pytest.raises(SystemExit):
        build_arg_parser().parse_args(["build"])


def test_target_flags_are_exclusive():
    with pytest.raises(SystemExit):
        build_arg_parser().parse_args(["build", "--output", "x", "--web", "--wasm"])


def test_build_configuration_defaults(tmp_path):
    args = build_arg_parser().parse_args(["build", "--output", "ext"])

    config = build_configuration(args)

    assert config.output_dir == (tmp_path / "ext").resolve()
    assert config.project_dir == tmp_path.resolve()
    assert config.compile_target is CompileTarget.BINARY
    assert config.topology is Topology.POPUP
    assert config.debug_mode is True
    assert config.skip_build is False
    assert config.name == "Flutter App Extension"


def test_build_configuration_from_flags():
    args = build_arg_parser().parse_args(
        [
            "build",
            "--output",
            "ext",
            "--name",
            "Notes",
            "--version",
            "2.1.0",
            "--web",
            "--overlay",
            "--no-build",
            "--no-debug",
        ]
    )

    config = build_configuration(args)

    assert config.name == "Notes"
    assert config.version == "2.1.0"
    assert config.compile_target is CompileTarget.INTERPRETED
    assert config.topology is Topology.OVERLAY
    assert config.description == "A Chrome content script running Flutter with JavaScript"
    assert config.skip_build is True
    assert config.debug_mode is False


# ============================================================================
# Tests: Patch Commands
# ============================================================================


def test_patch_create_and_apply(tmp_path):
    original = tmp_path / "flutter.js"
    modified = tmp_path / "flutter.modified.js"
    original.write_text("a\nb\nc\n")
    modified.write_text("a\nB\nc\n")

    assert _exit_code(["patch", "create", str(original), str(modified), "--out", "p.patch"]) == 0
    assert Path("p.patch").read_text().startswith("@@ -1,")

    drifted = tmp_path / "drifted.js"
    drifted.write_text("header\na\nb\nc\n")
    assert _exit_code(["patch", "apply", "p.patch", str(drifted), "--out", "out.js"]) == 0
    assert Path("out.js").read_text() == "header\na\nB\nc\n"


def test_patch_apply_failure_writes_nothing(tmp_path):
    Path("p.patch").write_text("@@ -1,3 +1,3 @@\n a\n-b\n+B\n c\n")
    target = tmp_path / "target.js"
    target.write_text("x\ny\nz\n")

    assert _exit_code(["patch", "apply", "p.patch", str(target), "--out", "out.js"]) == 1
    assert not Path("out.js").exists()


def test_patch_create_missing_file():
    assert _exit_code(["patch", "create", "nope.js", "nope2.js", "--out", "p.patch"]) == 1


# ============================================================================
# Tests: Build / Bundle Commands
# ============================================================================


def test_build_without_compiling(fake_project, tmp_path, config_file):
    output = tmp_path / "ext"

    code = _exit_code(
        [
            "build",
            "--output",
            str(output),
            "--project-dir",
            str(fake_project),
            "--name",
            "CLI App",
            "--no-build",
            "--config",
            str(config_file),
        ]
    )

    assert code == 0
    manifest = json.loads((output / "manifest.json").read_text())
    assert manifest["name"] == "CLI App"
    assert (output / "popup.html").is_file()
    assert "**Toolchain Version:** Unknown" in (output / "BUILD_INFO.md").read_text()


def test_build_missing_project_file(tmp_path, config_file):
    code = _exit_code(
        ["build", "--output", "ext", "--no-build", "--config", str(config_file)]
    )

    assert code == 1
    assert not (tmp_path / "ext").exists()


def test_build_requires_toolchain_when_compiling(fake_project, tmp_path, config_file):
    code = _exit_code(
        [
            "build",
            "--output",
            str(tmp_path / "ext"),
            "--project-dir",
            str(fake_project),
            "--config",
            str(config_file),
        ]
    )

    assert code == 1
    assert not (tmp_path / "ext").exists()


def test_build_invalid_config(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("logging:\n  level: LOUD\n")

    assert _exit_code(["build", "--output", "ext", "--config", str(bad)]) == 1


def test_bundle_without_compiling(make_project, tmp_path, config_file):
    make_project("notes")
    projects = tmp_path / "projects.yaml"
    projects.write_text(
        "package_dir: out\n"
        "projects:\n"
        "  - id: notes\n"
        "    path: projects/notes\n"
        "    targets: [popup]\n"
    )

    code = _exit_code(
        ["bundle", "--projects", str(projects), "--no-build", "--config", str(config_file)]
    )

    assert code == 0
    assert (tmp_path / "out" / "popup" / "apps" / "notes" / "main.dart.js").is_file()


def test_bundle_invalid_project_list(tmp_path, config_file):
    projects = tmp_path / "projects.yaml"
    projects.write_text("projects: []\n")

    assert _exit_code(["bundle", "--projects", str(projects), "--config", str(config_file)]) == 1
