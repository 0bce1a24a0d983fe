"""Text form of patch documents.

Patches use diff-match-patch's text format: ``@@ -s,l +s,l @@`` headers with
character offsets, followed by ``' '``/``'-'``/``'+'`` lines whose text is
URI-encoded. Patch files made with any diff-match-patch port load unchanged.
"""

from __future__ import annotations

from diff_match_patch import diff_match_patch

from extforge.core.patchset.engine import (
    apply_patch,
    diff,
    from_patch_objects,
    to_patch_objects,
)
from extforge.core.patchset.models import PatchDocument, PatchFormatError, PatchTolerance


def patch_to_text(patch: PatchDocument) -> str:
    """Serialize a patch document."""
    return diff_match_patch().patch_toText(to_patch_objects(patch))


def patch_from_text(text: str) -> PatchDocument:
    """Parse patch text.

    Args:
        text: Patch text

    Returns:
        PatchDocument

    Raises:
        PatchFormatError: If the text is malformed or an operation body does
            not match the lengths in its header
    """
    try:
        objects = diff_match_patch().patch_fromText(text)
    except ValueError as e:
        raise PatchFormatError(str(e).strip()) from e

    document = from_patch_objects(objects)
    for index, operation in enumerate(document.operations):
        if (
            len(operation.source_text) != operation.source_length
            or len(operation.target_text) != operation.target_length
        ):
            raise PatchFormatError(
                f"Operation {index} at offset {operation.source_start} "
                "does not match its header lengths"
            )
    return document


def create_patch_text(original: str, modified: str) -> str:
    """Diff two texts and serialize the result."""
    return patch_to_text(diff(original, modified))


def apply_patch_text(
    patch_text: str,
    original: str,
    tolerance: PatchTolerance | None = None,
) -> str:
    """Parse patch text and apply it to ``original``."""
    return apply_patch(patch_from_text(patch_text), original, tolerance)
