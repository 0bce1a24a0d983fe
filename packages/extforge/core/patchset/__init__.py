"""Character-level patches for vendor-generated files.

Provides diff generation, fuzzy all-or-nothing application and the
diff-match-patch text format.
"""

from extforge.core.patchset.engine import apply_patch, create_matcher, diff
from extforge.core.patchset.models import (
    DiffOp,
    DiffSpan,
    PatchDocument,
    PatchFailure,
    PatchFormatError,
    PatchOperation,
    PatchTolerance,
)
from extforge.core.patchset.serialization import (
    apply_patch_text,
    create_patch_text,
    patch_from_text,
    patch_to_text,
)

__all__ = [
    "DiffOp",
    "DiffSpan",
    "PatchDocument",
    "PatchFailure",
    "PatchFormatError",
    "PatchOperation",
    "PatchTolerance",
    "apply_patch",
    "apply_patch_text",
    "create_matcher",
    "create_patch_text",
    "diff",
    "patch_from_text",
    "patch_to_text",
]
