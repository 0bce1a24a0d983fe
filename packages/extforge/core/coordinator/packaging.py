"""Per-project packaging into a multi-app extension tree.

Each project is copied to ``<package>/<target>/apps/<id>/`` for each of its
targets. Overlay apps are rewritten to resolve assets against their own
directory and carry their own patched ``flutter.js``; other targets share
``<package>/commons/flutter.js``.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from extforge.core.coordinator.models import ProjectTarget
from extforge.core.coordinator.workspace import ResolvedProject
from extforge.core.io.copying import copy_files, copy_tree, exclude_names
from extforge.core.patching.app_entry import patch_app_entry
from extforge.core.patchset.models import PatchTolerance
from extforge.core.patchset.serialization import apply_patch_text

logger = logging.getLogger(__name__)

APP_ENTRY = "main.dart.js"
SUPPORT_SCRIPT = "flutter.js"
ORIGINAL_SUFFIX = ".orig"
COMMONS_DIR = "commons"

# Files of the build tree that never belong in a non-overlay app directory.
NON_OVERLAY_EXCLUDES = ("index.html", "flutter_service_worker.js", "*.orig", "*.backup")


def app_dir(package_dir: Path, target: ProjectTarget, project_id: str) -> Path:
    return package_dir / target.value / "apps" / project_id


class ProjectPackager:
    """Copies one built project into the package tree.

    Attributes:
        package_dir: Package root
        support_patch: Patch text applied to each overlay app's ``flutter.js`` (None: copied as is)
        tolerance: Patch application tolerance
    """

    def __init__(
        self,
        package_dir: Path,
        support_patch: str | None = None,
        tolerance: PatchTolerance | None = None,
    ) -> None:
        self.package_dir = package_dir
        self.support_patch = support_patch
        self.tolerance = tolerance or PatchTolerance()

    async def package(
        self,
        resolved: ResolvedProject,
        cancel_token: asyncio.Event | None = None,
    ) -> list[Path]:
        """Package a project for each of its targets.

        Returns:
            App directories written, one per target

        Raises:
            FileNotFoundError: If the build output lacks a required file
            CopyFailure: If any copy fails
            PatchFailure: If the app entry or support script cannot be patched
        """
        if not resolved.project.targets:
            logger.info(f"'{resolved.id}' has no targets; nothing to package")
            return []

        build_dir = resolved.build_dir
        for required in (APP_ENTRY, SUPPORT_SCRIPT):
            if not (build_dir / required).is_file():
                raise FileNotFoundError(f"{required} not found in {build_dir}")

        written = []
        for target in resolved.project.targets:
            dest = app_dir(self.package_dir, target, resolved.id)
            if target is ProjectTarget.OVERLAY:
                await self._package_overlay(build_dir, dest, cancel_token)
            else:
                await self._package_page(build_dir, dest, cancel_token)
            logger.info(f"Packaged '{resolved.id}' for {target.value}")
            written.append(dest)
        return written

    async def _package_overlay(
        self,
        build_dir: Path,
        dest: Path,
        cancel_token: asyncio.Event | None,
    ) -> None:
        assets = build_dir / "assets"
        if assets.is_dir():
            await copy_tree(assets, dest / "assets", cancel_token=cancel_token)

        original_entry = dest / (APP_ENTRY + ORIGINAL_SUFFIX)
        original_support = dest / (SUPPORT_SCRIPT + ORIGINAL_SUFFIX)
        pairs = [
            (build_dir / APP_ENTRY, original_entry),
            (build_dir / SUPPORT_SCRIPT, original_support),
        ]
        pairs += [(part, dest / part.name) for part in sorted(build_dir.glob("*.part.js"))]
        # Every fragment is on disk before the entry is patched.
        await copy_files(pairs, cancel_token=cancel_token)

        entry = patch_app_entry(original_entry.read_text(encoding="utf-8"))
        (dest / APP_ENTRY).write_text(entry, encoding="utf-8")

        support = original_support.read_text(encoding="utf-8")
        if self.support_patch is not None:
            support = apply_patch_text(self.support_patch, support, self.tolerance)
        else:
            logger.warning(f"No support patch configured; {SUPPORT_SCRIPT} copied unpatched")
        (dest / SUPPORT_SCRIPT).write_text(support, encoding="utf-8")

    async def _package_page(
        self,
        build_dir: Path,
        dest: Path,
        cancel_token: asyncio.Event | None,
    ) -> None:
        await copy_tree(
            build_dir,
            dest,
            file_filter=exclude_names(SUPPORT_SCRIPT, *NON_OVERLAY_EXCLUDES),
            cancel_token=cancel_token,
        )
        await copy_files(
            [(build_dir / SUPPORT_SCRIPT, self.package_dir / COMMONS_DIR / SUPPORT_SCRIPT)],
            cancel_token=cancel_token,
        )
