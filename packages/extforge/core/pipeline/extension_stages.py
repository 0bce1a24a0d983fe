"""Pipeline stages of a single-project extension build.

Each stage reads the build configuration from the context and writes into the
output directory. The chain is strict: every stage depends on the previous one.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Any

from extforge.core.io.copying import copy_tree, reset_directory
from extforge.core.manifest.synthesizer import MANIFEST_FILE, synthesize
from extforge.core.patching.bootstrap import contains_auto_load, patch_bootstrap
from extforge.core.patchset.models import PatchFailure
from extforge.core.pipeline.context import PipelineContext
from extforge.core.pipeline.result import (
    StageResult,
    cancelled_result,
    failure_result,
    success_result,
)
from extforge.core.records import BUILD_RECORD_FILE, BuildRecord, render_build_record
from extforge.core.shims.generator import generate_shims
from extforge.core.toolchain.flutter import build_web, flutter_version, web_build_args
from extforge.core.toolchain.process import ProcessCancelled

logger = logging.getLogger(__name__)

BOOTSTRAP_FILE = "flutter_bootstrap.js"
BACKUP_SUFFIX = ".backup"


def stage_failure(stage_name: str, error: Exception, context: PipelineContext) -> StageResult[Any]:
    """Convert a stage exception into a failed (or cancelled) result."""
    if isinstance(error, ProcessCancelled) or context.is_cancelled():
        logger.warning(f"{stage_name} cancelled: {error}")
        return cancelled_result(context.cancellation_reason(), stage_name=stage_name)
    logger.exception(f"{stage_name} failed", exc_info=error)
    return failure_result(str(error), stage_name=stage_name)


class BuildStage:
    """Stage: compile the web bundle with the external toolchain.

    Input: BuildConfiguration (ignored, read from context)
    Output: Path to the compiled bundle
    """

    @property
    def name(self) -> str:
        return "build"

    async def execute(self, input: Any, context: PipelineContext) -> StageResult[Path]:
        config = context.config
        try:
            outcome = await build_web(
                config.project_dir,
                web_build_args(config.compile_target),
                context.app_config.toolchain,
                cancel_token=context.cancel_token,
            )
            context.add_metric("build_duration_ms", outcome.duration_ms)
            logger.info(f"Build finished in {outcome.duration_ms / 1000:.1f}s")
            return success_result(config.source_dir, stage_name=self.name)
        except Exception as e:
            return stage_failure(self.name, e, context)


class StageDirectoryStage:
    """Stage: delete and recreate the output directory.

    Fails without touching the output directory when the compiled bundle is missing.

    Output: Path to the (empty) output directory
    """

    @property
    def name(self) -> str:
        return "stage_directory"

    async def execute(self, input: Any, context: PipelineContext) -> StageResult[Path]:
        config = context.config
        try:
            if not config.source_dir.is_dir():
                raise FileNotFoundError(f"Build output not found: {config.source_dir}")
            await asyncio.to_thread(reset_directory, config.output_dir)
            logger.info(f"Staged output directory {config.output_dir}")
            return success_result(config.output_dir, stage_name=self.name)
        except Exception as e:
            return stage_failure(self.name, e, context)


class CopyAssetsStage:
    """Stage: copy the compiled bundle into the output directory.

    Output: list of copied file paths
    """

    @property
    def name(self) -> str:
        return "copy_assets"

    async def execute(self, input: Any, context: PipelineContext) -> StageResult[list[Path]]:
        config = context.config
        try:
            copied = await copy_tree(
                config.source_dir, config.output_dir, cancel_token=context.cancel_token
            )
            context.add_metric("copied_files", len(copied))
            logger.info(f"Copied {len(copied)} files from {config.source_dir}")
            return success_result(copied, stage_name=self.name)
        except Exception as e:
            return stage_failure(self.name, e, context)


class WriteManifestStage:
    """Stage: synthesize and write ``manifest.json``."""

    @property
    def name(self) -> str:
        return "write_manifest"

    async def execute(self, input: Any, context: PipelineContext) -> StageResult[Path]:
        config = context.config
        try:
            path = config.output_dir / MANIFEST_FILE
            path.write_text(synthesize(config).to_json(), encoding="utf-8")
            logger.info(f"Wrote {path.name}")
            return success_result(path, stage_name=self.name)
        except Exception as e:
            return stage_failure(self.name, e, context)


class PatchBootstrapStage:
    """Stage: back up and rewrite ``flutter_bootstrap.js``.

    The backup is written before the patched text, so a failed patch leaves
    both the backup and the copied original on disk.
    """

    @property
    def name(self) -> str:
        return "patch_bootstrap"

    async def execute(self, input: Any, context: PipelineContext) -> StageResult[Path]:
        config = context.config
        try:
            path = config.output_dir / BOOTSTRAP_FILE
            if not path.is_file():
                raise PatchFailure(f"{BOOTSTRAP_FILE} not found in {config.output_dir}", 0)

            original = path.read_text(encoding="utf-8")
            backup = path.with_name(path.name + BACKUP_SUFFIX)
            shutil.copyfile(path, backup)

            patched = patch_bootstrap(original, config, context.log_points, context.renderer)
            if contains_auto_load(patched):
                raise PatchFailure("automatic loader call survived patching", 0)

            path.write_text(patched, encoding="utf-8")
            context.set_state("bootstrap_path", path)
            logger.info(f"Patched {BOOTSTRAP_FILE} (backup: {backup.name})")
            return success_result(path, stage_name=self.name)
        except Exception as e:
            return stage_failure(self.name, e, context)


class WriteShimsStage:
    """Stage: write the topology's runtime shims."""

    @property
    def name(self) -> str:
        return "write_shims"

    async def execute(self, input: Any, context: PipelineContext) -> StageResult[list[Path]]:
        config = context.config
        try:
            written = []
            for filename, content in generate_shims(
                config, context.log_points, context.renderer
            ).items():
                path = config.output_dir / filename
                path.write_text(content, encoding="utf-8")
                written.append(path)
            logger.info(f"Wrote shims: {', '.join(p.name for p in written)}")
            return success_result(written, stage_name=self.name)
        except Exception as e:
            return stage_failure(self.name, e, context)


class WriteBuildRecordStage:
    """Stage: write ``BUILD_INFO.md`` describing the build."""

    @property
    def name(self) -> str:
        return "write_build_record"

    async def execute(self, input: Any, context: PipelineContext) -> StageResult[Path]:
        config = context.config
        try:
            version = await flutter_version(
                context.app_config.toolchain, cancel_token=context.cancel_token
            )
            record = BuildRecord.from_config(config, version)
            path = config.output_dir / BUILD_RECORD_FILE
            path.write_text(
                render_build_record(record, config.runtime_names.toggle_key, context.renderer),
                encoding="utf-8",
            )
            context.set_state("build_record", record)
            logger.info(f"Wrote {BUILD_RECORD_FILE}")
            return success_result(path, stage_name=self.name)
        except Exception as e:
            return stage_failure(self.name, e, context)
