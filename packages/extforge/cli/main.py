"""Command-line interface for extforge.

Uses the Pipeline Framework for execution.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
import sys

from pydantic import ValidationError
from rich.console import Console

from extforge.core.config.loader import load_app_config, load_project_list
from extforge.core.config.models import (
    AppConfig,
    BuildConfiguration,
    CompileTarget,
    Topology,
)
from extforge.core.coordinator.definition import BUNDLE_STAGE_IDS
from extforge.core.coordinator.runner import raise_for_bundle_failure, run_bundle
from extforge.core.errors import AggregateBuildFailure, ExtforgeError, StageFailure
from extforge.core.orchestrator import raise_for_failure, run_extension_build
from extforge.core.patchset.models import PatchFailure, PatchFormatError
from extforge.core.patchset.serialization import apply_patch_text, create_patch_text
from extforge.core.pipeline.definitions.extension import EXTENSION_STAGE_IDS
from extforge.core.pipeline.result import PipelineResult
from extforge.core.utils.logging import configure_logging

console = Console()
logger = logging.getLogger(__name__)


def _load_app_config(path: str | None) -> AppConfig | None:
    try:
        app_config = load_app_config(path)
    except (FileNotFoundError, ValueError, ValidationError) as e:
        console.print(f"[red]ERROR: Could not load config: {e}[/red]")
        return None

    log = app_config.logging
    configure_logging(
        level=log.level,
        format_string=log.format,
        filename=log.filename,
        structured=log.structured,
    )
    return app_config


def _report(result: PipelineResult, stage_count: int) -> None:
    console.print(
        f"Duration: {result.total_duration_ms:.0f}ms ({result.total_duration_ms / 1000:.1f}s)"
    )
    console.print(f"Stages Completed: {len(result.outputs)}/{stage_count}")


def build_configuration(args: argparse.Namespace) -> BuildConfiguration:
    """Translate ``build`` arguments into a BuildConfiguration."""
    fields = {
        "output_dir": Path(args.output).resolve(),
        "project_dir": Path(args.project_dir).resolve(),
        "compile_target": CompileTarget.INTERPRETED if args.web else CompileTarget.BINARY,
        "topology": Topology.OVERLAY if args.overlay else Topology.POPUP,
        "debug_mode": not args.no_debug,
        "skip_build": args.no_build,
    }
    for option in ("name", "version", "description"):
        value = getattr(args, option)
        if value is not None:
            fields[option] = value
    return BuildConfiguration.model_validate(fields)


async def build_async(config: BuildConfiguration, app_config: AppConfig) -> int:
    """Run a single-project build.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    console.print(f"[bold]🔧 Building {config.topology.value} extension:[/bold] {config.name}")
    console.print(f"   Target: {config.compile_target.value}")
    console.print(f"   Output: {config.output_dir}")

    try:
        result = await run_extension_build(config, app_config)
    except ExtforgeError as e:
        console.print(f"[red]ERROR: {e}[/red]")
        return 1

    _report(result, len(EXTENSION_STAGE_IDS))
    try:
        raise_for_failure(result)
    except StageFailure as e:
        console.print(f"\n[red]❌ Stage '{e.stage_id}' failed:[/red] {e.error}")
        return 1

    console.print("\n[bold green]✅ Extension built successfully![/bold green]")
    console.print(f"[green]📁 Load unpacked from:[/green] {config.output_dir}")
    return 0


async def bundle_async(projects_path: Path, app_config: AppConfig, skip_build: bool) -> int:
    """Run a multi-project bundle.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    try:
        project_list = load_project_list(projects_path)
    except (FileNotFoundError, ValueError, ValidationError) as e:
        console.print(f"[red]ERROR: Could not load project list: {e}[/red]")
        return 1

    console.print(f"[bold]📦 Bundling {len(project_list.projects)} projects[/bold]")

    try:
        result = await run_bundle(project_list, app_config, skip_build=skip_build)
    except ExtforgeError as e:
        console.print(f"[red]ERROR: {e}[/red]")
        return 1

    _report(result, len(BUNDLE_STAGE_IDS))
    try:
        raise_for_bundle_failure(result)
    except AggregateBuildFailure as e:
        console.print(f"\n[red]❌ {len(e.failures)} project builds failed:[/red]")
        for project_id, message in e.failures:
            console.print(f"   - [red]{project_id}[/red]: {message}")
        return 1
    except StageFailure as e:
        console.print(f"\n[red]❌ Stage '{e.stage_id}' failed:[/red] {e.error}")
        return 1

    console.print("\n[bold green]✅ Bundle completed successfully![/bold green]")
    console.print(f"[green]📁 Package:[/green] {project_list.package_dir}")
    return 0


def run_build(args: argparse.Namespace) -> int:
    app_config = _load_app_config(args.config)
    if app_config is None:
        return 1
    try:
        config = build_configuration(args)
    except ValidationError as e:
        console.print(f"[red]ERROR: Invalid build options: {e}[/red]")
        return 1
    return asyncio.run(build_async(config, app_config))


def run_bundle_command(args: argparse.Namespace) -> int:
    app_config = _load_app_config(args.config)
    if app_config is None:
        return 1
    return asyncio.run(bundle_async(Path(args.projects).resolve(), app_config, args.no_build))


def run_patch_create(args: argparse.Namespace) -> int:
    """Write a patch turning ORIGINAL into MODIFIED."""
    original_path = Path(args.original)
    modified_path = Path(args.modified)
    for path in (original_path, modified_path):
        if not path.is_file():
            console.print(f"[red]ERROR: File not found: {path}[/red]")
            return 1

    patch_text = create_patch_text(
        original_path.read_text(encoding="utf-8"),
        modified_path.read_text(encoding="utf-8"),
    )
    Path(args.out).write_text(patch_text, encoding="utf-8")
    if patch_text:
        console.print(f"[green]✅ Patch written to[/green] {args.out}")
    else:
        console.print(f"[yellow]Files are identical; wrote empty patch to[/yellow] {args.out}")
    return 0


def run_patch_apply(args: argparse.Namespace) -> int:
    """Apply PATCH to ORIGINAL, writing the result only if every operation applies."""
    patch_path = Path(args.patch)
    original_path = Path(args.original)
    for path in (patch_path, original_path):
        if not path.is_file():
            console.print(f"[red]ERROR: File not found: {path}[/red]")
            return 1

    app_config = _load_app_config(args.config)
    if app_config is None:
        return 1

    try:
        patched = apply_patch_text(
            patch_path.read_text(encoding="utf-8"),
            original_path.read_text(encoding="utf-8"),
            app_config.patch_tolerance,
        )
    except (PatchFailure, PatchFormatError) as e:
        console.print(f"[red]ERROR: Patch not applied: {e}[/red]")
        return 1

    Path(args.out).write_text(patched, encoding="utf-8")
    console.print(f"[green]✅ Patched file written to[/green] {args.out}")
    return 0


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for CLI."""
    p = argparse.ArgumentParser(
        prog="extforge",
        description="extforge - package compiled web apps as browser extensions",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    build = sub.add_parser("build", help="Build one extension package")
    build.add_argument("--output", required=True, help="Extension output directory")
    build.add_argument(
        "--project-dir", default=".", help="Project root with pubspec.yaml (default: current dir)"
    )
    build.add_argument("--name", help="Extension name")
    build.add_argument("--version", help="Extension version")
    build.add_argument("--description", help="Extension description")
    target = build.add_mutually_exclusive_group()
    target.add_argument("--web", action="store_true", help="JavaScript build (CanvasKit)")
    target.add_argument("--wasm", action="store_true", help="WebAssembly build (default)")
    topology = build.add_mutually_exclusive_group()
    topology.add_argument("--popup", action="store_true", help="Popup extension (default)")
    topology.add_argument("--overlay", action="store_true", help="Content-script overlay")
    build.add_argument("--no-build", action="store_true", help="Reuse the existing build output")
    build.add_argument("--no-debug", action="store_true", help="Omit console instrumentation")
    build.add_argument("--config", help="Path to app config (YAML or JSON)")

    bundle = sub.add_parser("bundle", help="Build and package several projects")
    bundle.add_argument("--projects", required=True, help="Project list file (YAML or JSON)")
    bundle.add_argument("--no-build", action="store_true", help="Reuse existing build outputs")
    bundle.add_argument("--config", help="Path to app config (YAML or JSON)")

    patch = sub.add_parser("patch", help="Create or apply text patches")
    patch_sub = patch.add_subparsers(dest="patch_cmd", required=True)

    create = patch_sub.add_parser("create", help="Diff two files into a patch")
    create.add_argument("original", help="Original file")
    create.add_argument("modified", help="Modified file")
    create.add_argument("--out", required=True, help="Patch output file")

    apply = patch_sub.add_parser("apply", help="Apply a patch to a file")
    apply.add_argument("patch", help="Patch file")
    apply.add_argument("original", help="File to patch")
    apply.add_argument("--out", required=True, help="Patched output file")
    apply.add_argument("--config", help="Path to app config (patch tolerance)")

    return p


def main(argv: list[str] | None = None) -> None:
    """Main entry point for CLI."""
    p = build_arg_parser()
    args = p.parse_args(argv)

    if args.cmd == "build":
        exit_code = run_build(args)
    elif args.cmd == "bundle":
        exit_code = run_bundle_command(args)
    elif args.patch_cmd == "create":
        exit_code = run_patch_create(args)
    else:
        exit_code = run_patch_apply(args)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
