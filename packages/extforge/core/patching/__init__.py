"""Source patchers for compiled web output.

- ``patch_bootstrap``: retarget the bootstrap at the extension origin
- ``patch_app_entry``: make an application entry aware of its own directory
- ``resolve_log_points``: debug instrumentation table for generated JavaScript
"""

from extforge.core.patching.app_entry import APP_ENTRY_EDITS, AnchorEdit, patch_app_entry
from extforge.core.patching.bootstrap import (
    BEGIN_MARKER,
    DEFAULT_ENGINE_REVISION,
    END_MARKER,
    contains_auto_load,
    patch_bootstrap,
    strip_auto_load,
)
from extforge.core.patching.log_points import LogPoint, resolve_log_points
from extforge.core.patching.scanner import ScanError

__all__ = [
    "APP_ENTRY_EDITS",
    "AnchorEdit",
    "BEGIN_MARKER",
    "DEFAULT_ENGINE_REVISION",
    "END_MARKER",
    "LogPoint",
    "ScanError",
    "contains_auto_load",
    "patch_app_entry",
    "patch_bootstrap",
    "resolve_log_points",
    "strip_auto_load",
]
