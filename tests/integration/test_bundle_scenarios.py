"""End-to-end multi-project bundles built from local projects."""

from __future__ import annotations

import json

import pytest

from extforge.core.config.models import AppConfig, ToolchainConfig
from extforge.core.coordinator import (
    BUNDLE_STAGE_IDS,
    ProjectList,
    raise_for_bundle_failure,
    run_bundle,
)
from extforge.core.errors import AggregateBuildFailure, PreconditionFailure
from extforge.core.patchset import create_patch_text

# Fake flutter: records the working directory of every build and fails in
# any project directory named "broken".
FAKE_FLUTTER = """\
import os, sys
if sys.argv[1:] == ["--version"]:
    print("Flutter 3.35.0")
    sys.exit(0)
with open(os.environ["BUILD_LOG"], "a") as fh:
    fh.write(os.path.basename(os.getcwd()) + " " + " ".join(sys.argv[1:]) + "\\n")
if os.path.basename(os.getcwd()) == "broken":
    print("Target dart2js failed", file=sys.stderr)
    sys.exit(1)
"""


@pytest.fixture
def bundle_layout(make_project, tmp_path):
    """Two built projects, a static tree and a support patch for overlay apps."""
    notes = make_project("notes")
    make_project("tools")

    static_dir = tmp_path / "static"
    (static_dir / "icons").mkdir(parents=True)
    (static_dir / "manifest.json").write_text(json.dumps({"manifest_version": 3}))
    (static_dir / "icons" / "icon.png").write_text("png")

    original = (notes / "build" / "web" / "flutter.js").read_text()
    modified = original.replace(
        "return url.startsWith(window.location.origin);",
        "return url.startsWith(window.location.origin) || url.startsWith('chrome-extension://');",
    )
    patch_file = tmp_path / "flutter.js.patch"
    patch_file.write_text(create_patch_text(original, modified))

    return {
        "package_dir": tmp_path / "unpacked",
        "workspace_dir": tmp_path / "workspace",
        "static_dir": static_dir,
        "support_patch": patch_file,
        "projects": [
            {"id": "notes", "path": "projects/notes", "targets": ["popup", "overlay"]},
            {"id": "tools", "path": "projects/tools", "targets": ["options"]},
        ],
    }


def _project_list(layout: dict, tmp_path) -> ProjectList:
    return ProjectList.model_validate(layout).resolve_paths(tmp_path)


# ============================================================================
# Scenario: bundle without compiling
# ============================================================================


@pytest.mark.asyncio
async def test_bundle_packages_every_target(bundle_layout, tmp_path, app_config):
    package = bundle_layout["package_dir"]
    package.mkdir()
    (package / "stale.js").write_text("// old")

    result = await run_bundle(_project_list(bundle_layout, tmp_path), app_config, skip_build=True)

    raise_for_bundle_failure(result)
    assert list(result.outputs) == list(BUNDLE_STAGE_IDS)
    assert result.metadata["static_files"] == 2
    assert not (package / "stale.js").exists()
    assert (package / "manifest.json").is_file()
    assert (package / "icons" / "icon.png").is_file()

    popup = package / "popup" / "apps" / "notes"
    assert (popup / "main.dart.js").is_file()
    assert not (popup / "index.html").exists()
    assert not (popup / "flutter.js").exists()
    assert not (popup / "main.dart.js.orig").exists()
    assert not (popup / "flutter.js.orig").exists()

    options = package / "options" / "apps" / "tools"
    assert (options / "canvaskit" / "canvaskit.wasm").is_file()
    assert not (options / "main.dart.js.orig").exists()
    assert not (options / "flutter.js.orig").exists()
    assert (package / "commons" / "flutter.js").is_file()

    overlay = package / "overlay" / "apps" / "notes"
    assert (overlay / "main.dart.js.orig").is_file()
    assert (overlay / "flutter.js.orig").is_file()
    assert "extforgeAppBase" in (overlay / "main.dart.js").read_text()
    assert "chrome-extension://" in (overlay / "flutter.js").read_text()
    assert not (package / "tools").exists()


@pytest.mark.asyncio
async def test_missing_support_patch_leaves_script_unpatched(bundle_layout, tmp_path, app_config):
    bundle_layout["support_patch"] = tmp_path / "missing.patch"

    result = await run_bundle(_project_list(bundle_layout, tmp_path), app_config, skip_build=True)

    raise_for_bundle_failure(result)
    overlay = bundle_layout["package_dir"] / "overlay" / "apps" / "notes"
    assert "chrome-extension://" not in (overlay / "flutter.js").read_text()


@pytest.mark.asyncio
async def test_project_without_targets_is_skipped_by_packaging(
    bundle_layout, make_project, tmp_path, app_config
):
    make_project("shared", built=False)
    bundle_layout["projects"].append({"id": "shared", "path": "projects/shared", "targets": []})

    result = await run_bundle(_project_list(bundle_layout, tmp_path), app_config, skip_build=True)

    raise_for_bundle_failure(result)
    package = bundle_layout["package_dir"]
    assert not list(package.glob("*/apps/shared"))
    assert (package / "popup" / "apps" / "notes" / "main.dart.js").is_file()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("package_dir", "guarded"),
    [
        ("projects", "project 'notes'"),
        ("projects/notes/build/unpacked", "project 'notes'"),
        ("workspace/unpacked", "workspace"),
        ("static", "static"),
    ],
)
async def test_package_dir_overlapping_sources_is_rejected(
    bundle_layout, tmp_path, app_config, package_dir, guarded
):
    bundle_layout["package_dir"] = tmp_path / package_dir
    notes = tmp_path / "projects" / "notes"
    static_files = sorted(p.name for p in bundle_layout["static_dir"].rglob("*"))

    with pytest.raises(PreconditionFailure, match=f"overlaps the {guarded} directory"):
        await run_bundle(_project_list(bundle_layout, tmp_path), app_config, skip_build=True)

    assert (notes / "pubspec.yaml").is_file()
    assert (notes / "build" / "web" / "main.dart.js").is_file()
    assert sorted(p.name for p in bundle_layout["static_dir"].rglob("*")) == static_files


@pytest.mark.asyncio
async def test_unbuilt_project_fails_packaging(bundle_layout, make_project, tmp_path, app_config):
    make_project("draft", built=False)
    bundle_layout["projects"].append(
        {"id": "draft", "path": "projects/draft", "targets": ["popup"]}
    )

    result = await run_bundle(_project_list(bundle_layout, tmp_path), app_config, skip_build=True)

    stage_id, error = result.first_failure()
    assert stage_id == "package"
    assert "[draft]" in error
    assert "[notes]" not in error


# ============================================================================
# Scenario: bundle with builds
# ============================================================================


@pytest.mark.asyncio
async def test_bundle_builds_each_project(bundle_layout, tmp_path, make_tool, monkeypatch):
    build_log = tmp_path / "builds.log"
    monkeypatch.setenv("BUILD_LOG", str(build_log))
    app_config = AppConfig(
        toolchain=ToolchainConfig(flutter_executable=make_tool("flutter", FAKE_FLUTTER))
    )

    result = await run_bundle(_project_list(bundle_layout, tmp_path), app_config)

    raise_for_bundle_failure(result)
    assert sorted(build_log.read_text().splitlines()) == [
        "notes build web --csp --profile",
        "tools build web --csp --profile",
    ]
    assert "build_notes_duration_ms" in result.metadata


@pytest.mark.asyncio
async def test_failed_builds_are_aggregated(
    bundle_layout, make_project, tmp_path, make_tool, monkeypatch
):
    make_project("broken")
    bundle_layout["projects"].append(
        {"id": "broken", "path": "projects/broken", "targets": ["popup"]}
    )
    monkeypatch.setenv("BUILD_LOG", str(tmp_path / "builds.log"))
    app_config = AppConfig(
        toolchain=ToolchainConfig(flutter_executable=make_tool("flutter", FAKE_FLUTTER)),
        max_concurrent_builds=1,
    )

    result = await run_bundle(_project_list(bundle_layout, tmp_path), app_config)

    with pytest.raises(AggregateBuildFailure) as exc_info:
        raise_for_bundle_failure(result)
    failures = exc_info.value.failures
    assert [project_id for project_id, _ in failures] == ["broken"]
    assert "Target dart2js failed" in failures[0][1]
    # Every project was still built before the run stopped
    assert len((tmp_path / "builds.log").read_text().splitlines()) == 3
    assert "package" not in result.stage_results
