"""Awaited file operations."""

from extforge.core.io.copying import (
    FileFilter,
    copy_files,
    copy_tree,
    exclude_names,
    list_files,
    reset_directory,
)

__all__ = [
    "FileFilter",
    "copy_files",
    "copy_tree",
    "exclude_names",
    "list_files",
    "reset_directory",
]
