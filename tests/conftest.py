"""Shared pytest fixtures for extforge tests.

External tools are never required: build outputs are written as small fake
trees, and processes are simulated with scripts run by the current interpreter.
"""

from __future__ import annotations

from pathlib import Path
import sys
import textwrap

import pytest

from extforge.core.config.models import AppConfig, BuildConfiguration, ToolchainConfig

# ============================================================================
# Sample compiled sources
# ============================================================================

BOOTSTRAP_SOURCE = textwrap.dedent(
    """\
    (()=>{var _flutter = window._flutter || {};
    _flutter.loader = {load: function(options) { return "_flutter.loader.load(ignored);"; }};
    window._flutter = _flutter;})();

    if (!window._flutter) {
      window._flutter = {};
    }
    _flutter.buildConfig = {"engineRevision":"a1b2c3d4e5","builds":[{"compileTarget":"dart2wasm","renderer":"skwasm","mainWasmPath":"main.dart.wasm","jsSupportRuntimePath":"main.dart.mjs"},{"compileTarget":"dart2js","renderer":"canvaskit","mainJsPath":"main.dart.js"}]};

    _flutter.loader.load({
      serviceWorkerSettings: {
        serviceWorkerVersion: "1234567"
      }
    });
    """
)

APP_ENTRY_SOURCE = textwrap.dedent(
    """\
    (function dartProgram() {
      function copyProperties(from, to) {
        var keys = Object.keys(from);
        for (var i = 0; i < keys.length; i++) {
          to[keys[i]] = from[keys[i]];
        }
      }
      var A = {
        AssetManager: function AssetManager(t0) {
          this._assetBase = t0;
        },
        main() {
          var loader = self._flutter.loader;
          self.window.console.debug("Flutter Web Bootstrap: Programmatic.");
          loader.didCreateEngineInitializer(bootstrap.prepareEngineInitializer$0());
        }
      };
    })();
    """
)

SUPPORT_SCRIPT_SOURCE = textwrap.dedent(
    """\
    (function() {
      function isAllowedUrl(url) {
        return url.startsWith(window.location.origin);
      }
      function loadScript(url) {
        if (!isAllowedUrl(url)) {
          throw new Error("Refusing to load " + url);
        }
        return url;
      }
      window._flutter = window._flutter || {};
      window._flutter.loadScript = loadScript;
    })();
    """
)


def write_build_output(build_dir: Path) -> Path:
    """Write a fake ``flutter build web`` output tree."""
    files = {
        "flutter_bootstrap.js": BOOTSTRAP_SOURCE,
        "flutter.js": SUPPORT_SCRIPT_SOURCE,
        "main.dart.js": APP_ENTRY_SOURCE,
        "main.dart.js_1.part.js": "// deferred part 1\n",
        "main.dart.mjs": "export const instantiate = () => {};\n",
        "main.dart.wasm": "\0asm",
        "index.html": "<html><body></body></html>\n",
        "flutter_service_worker.js": "// service worker\n",
        "manifest.json": '{"name": "web app"}\n',
        "canvaskit/canvaskit.js": "// canvaskit\n",
        "canvaskit/canvaskit.wasm": "\0asm",
        "canvaskit/chromium/canvaskit.js": "// canvaskit chromium\n",
        "assets/AssetManifest.json": "{}\n",
        "assets/fonts/MaterialIcons-Regular.otf": "font",
        "icons/Icon-192.png": "png",
        "icons/Icon-512.png": "png",
    }
    for name, content in files.items():
        path = build_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return build_dir


def write_script(path: Path, body: str) -> list[str]:
    """Write a Python script and return the command line running it."""
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return [sys.executable, str(path)]


# ============================================================================
# Path Fixtures
# ============================================================================


@pytest.fixture
def project_root() -> Path:
    """Get project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def bootstrap_source() -> str:
    return BOOTSTRAP_SOURCE


@pytest.fixture
def app_entry_source() -> str:
    return APP_ENTRY_SOURCE


@pytest.fixture
def fake_project(tmp_path: Path) -> Path:
    """Project directory with pubspec.yaml and a compiled bundle in build/web."""
    project_dir = tmp_path / "app"
    project_dir.mkdir()
    (project_dir / "pubspec.yaml").write_text("name: app\n", encoding="utf-8")
    write_build_output(project_dir / "build" / "web")
    return project_dir


# ============================================================================
# Config Fixtures
# ============================================================================


@pytest.fixture
def app_config() -> AppConfig:
    """App config whose toolchain executables do not exist."""
    return AppConfig(
        toolchain=ToolchainConfig(
            flutter_executable="extforge-test-missing-flutter",
            git_executable="extforge-test-missing-git",
        )
    )


@pytest.fixture
def build_config(fake_project: Path, tmp_path: Path) -> BuildConfiguration:
    """Popup/WASM build reusing the fake bundle."""
    return BuildConfiguration(
        output_dir=tmp_path / "extension",
        project_dir=fake_project,
        name="Test Extension",
        version="2.0.0",
        skip_build=True,
    )


# ============================================================================
# Factory Fixtures
# ============================================================================


@pytest.fixture
def make_script(tmp_path: Path):
    """Factory writing a Python script and returning its command line."""
    counter = iter(range(1000))

    def _make(body: str) -> list[str]:
        return write_script(tmp_path / f"script_{next(counter)}.py", body)

    return _make


@pytest.fixture
def make_project(tmp_path: Path):
    """Factory creating a local project with a fake compiled bundle."""

    def _make(name: str, built: bool = True) -> Path:
        project_dir = tmp_path / "projects" / name
        project_dir.mkdir(parents=True)
        (project_dir / "pubspec.yaml").write_text(f"name: {name}\n", encoding="utf-8")
        if built:
            write_build_output(project_dir / "build" / "web")
        return project_dir

    return _make


@pytest.fixture
def make_tool(tmp_path: Path):
    """Factory writing an executable Python script that stands in for a CLI tool."""
    tools_dir = tmp_path / "tools"

    def _make(name: str, body: str) -> str:
        tools_dir.mkdir(exist_ok=True)
        path = tools_dir / name
        path.write_text(f"#!{sys.executable}\n" + textwrap.dedent(body), encoding="utf-8")
        path.chmod(0o755)
        return str(path)

    return _make
