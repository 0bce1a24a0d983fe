"""Awaited file operations.

Blocking filesystem work runs in worker threads via ``asyncio.to_thread`` so
that copies can be gathered and cancelled alongside external processes.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from collections.abc import Callable, Iterable
from pathlib import Path

from extforge.core.errors import CopyFailure

logger = logging.getLogger(__name__)

# Receives a path relative to the copy root; returns False to skip it.
FileFilter = Callable[[Path], bool]


def reset_directory(path: Path) -> None:
    """Delete a directory (if present) and recreate it empty."""
    if path.exists():
        logger.debug(f"Removing existing directory {path}")
        shutil.rmtree(path)
    path.mkdir(parents=True)


def list_files(root: Path, file_filter: FileFilter | None = None) -> list[Path]:
    """List files under ``root`` relative to it, sorted.

    Raises:
        FileNotFoundError: If ``root`` is not a directory
    """
    if not root.is_dir():
        raise FileNotFoundError(f"Source directory does not exist: {root}")

    files = []
    for path in sorted(root.rglob("*")):
        if not path.is_file():
            continue
        relative = path.relative_to(root)
        if file_filter is None or file_filter(relative):
            files.append(relative)
    return files


def _copy_file(source: Path, destination: Path) -> Path:
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, destination)
    return destination


async def copy_files(
    pairs: Iterable[tuple[Path, Path]],
    cancel_token: asyncio.Event | None = None,
) -> list[Path]:
    """Copy ``(source, destination)`` pairs concurrently and await all of them.

    Every copy is awaited before returning, whether or not others fail.

    Args:
        pairs: Source and destination file paths
        cancel_token: Optional cancellation token, checked before starting

    Returns:
        Destination paths, in input order

    Raises:
        CopyFailure: Listing every copy that failed
        asyncio.CancelledError: If the token is set before copying starts
    """
    pairs = list(pairs)
    if cancel_token is not None and cancel_token.is_set():
        raise asyncio.CancelledError("copy cancelled before start")

    results = await asyncio.gather(
        *(asyncio.to_thread(_copy_file, src, dest) for src, dest in pairs),
        return_exceptions=True,
    )

    failures: list[tuple[Path, str]] = []
    copied: list[Path] = []
    for (src, _dest), result in zip(pairs, results, strict=True):
        if isinstance(result, BaseException):
            failures.append((src, str(result)))
        else:
            copied.append(result)

    if failures:
        logger.error(f"{len(failures)}/{len(pairs)} copies failed")
        raise CopyFailure(failures)

    logger.debug(f"Copied {len(copied)} files")
    return copied


async def copy_tree(
    source: Path,
    destination: Path,
    file_filter: FileFilter | None = None,
    cancel_token: asyncio.Event | None = None,
) -> list[Path]:
    """Copy a directory tree, awaiting every file.

    Args:
        source: Source directory
        destination: Destination directory (created as needed)
        file_filter: Optional predicate on paths relative to ``source``
        cancel_token: Optional cancellation token

    Returns:
        Destination paths of copied files

    Raises:
        FileNotFoundError: If ``source`` is not a directory
        CopyFailure: If any file copy fails
    """
    files = await asyncio.to_thread(list_files, source, file_filter)
    return await copy_files(
        ((source / rel, destination / rel) for rel in files),
        cancel_token=cancel_token,
    )


def exclude_names(*patterns: str) -> FileFilter:
    """Build a filter that skips files whose name matches any glob pattern.

    Example:
        >>> keep = exclude_names("index.html", "*.orig")
        >>> keep(Path("main.dart.js.orig"))
        False
    """

    def _keep(relative: Path) -> bool:
        return not any(relative.match(pattern) for pattern in patterns)

    return _keep
