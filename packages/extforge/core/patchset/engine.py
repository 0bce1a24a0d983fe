"""Diff generation and fuzzy patch application on diff-match-patch.

``diff`` turns a character-level diff into context-anchored operations
(``patch_make``). ``apply_patch`` re-locates every operation in a possibly
drifted original with bitap fuzzy matching (``patch_apply``) and rejects the
whole document when any operation has no acceptable match. Matching works on
characters, so a change inside one long line of minified JavaScript only
needs its own neighbourhood to be intact.
"""

from __future__ import annotations

import logging
from bisect import bisect_right

from diff_match_patch import diff_match_patch, patch_obj

from extforge.core.patchset.models import (
    DiffOp,
    DiffSpan,
    PatchDocument,
    PatchFailure,
    PatchOperation,
    PatchTolerance,
)

logger = logging.getLogger(__name__)

DEFAULT_MARGIN = 4


def create_matcher(tolerance: PatchTolerance | None = None) -> diff_match_patch:
    """Return a diff-match-patch instance configured from ``tolerance``."""
    tolerance = tolerance or PatchTolerance()
    dmp = diff_match_patch()
    # No time limit, so the same inputs always produce the same patch.
    dmp.Diff_Timeout = 0
    dmp.Match_Distance = tolerance.match_distance
    dmp.Match_Threshold = tolerance.match_threshold
    dmp.Patch_DeleteThreshold = tolerance.delete_threshold
    dmp.Patch_Margin = tolerance.margin
    return dmp


def to_patch_objects(patch: PatchDocument) -> list[patch_obj]:
    objects = []
    for operation in patch.operations:
        obj = patch_obj()
        obj.start1, obj.length1 = operation.source_start, operation.source_length
        obj.start2, obj.length2 = operation.target_start, operation.target_length
        obj.diffs = [(int(span.op), span.text) for span in operation.spans]
        objects.append(obj)
    return objects


def from_patch_objects(objects: list[patch_obj]) -> PatchDocument:
    return PatchDocument(
        operations=[
            PatchOperation(
                source_start=obj.start1,
                source_length=obj.length1,
                target_start=obj.start2,
                target_length=obj.length2,
                spans=[DiffSpan(op=DiffOp(tag), text=text) for tag, text in obj.diffs],
            )
            for obj in objects
        ]
    )


def diff(original: str, modified: str, margin: int = DEFAULT_MARGIN) -> PatchDocument:
    """Build a patch document that turns ``original`` into ``modified``.

    Args:
        original: Known original text
        modified: Desired text
        margin: Context characters kept around each change (grown where
            needed to make the context unique)

    Returns:
        PatchDocument (empty when the texts are identical)

    Example:
        >>> doc = diff("a\\nb\\nc\\n", "a\\nB\\nc\\n")
        >>> len(doc.operations)
        1
    """
    dmp = create_matcher(PatchTolerance(margin=margin))
    document = from_patch_objects(dmp.patch_make(original, modified))
    logger.debug(
        f"Diff produced {len(document.operations)} operations "
        f"({len(original)} -> {len(modified)} chars)"
    )
    return document


def apply_patch(
    patch: PatchDocument,
    original: str,
    tolerance: PatchTolerance | None = None,
) -> str:
    """Apply a patch document to ``original``.

    Args:
        patch: Patch produced by ``diff`` or parsed from text
        original: Text to patch (may have drifted from the diffed original)
        tolerance: Fuzzy matching bounds (defaults to ``PatchTolerance()``)

    Returns:
        Patched text

    Raises:
        PatchFailure: If any operation cannot be matched; names the first one
    """
    tolerance = tolerance or PatchTolerance()
    dmp = create_matcher(tolerance)
    objects = to_patch_objects(patch)

    patched, applied = dmp.patch_apply(objects, original)
    if all(applied):
        logger.debug(f"Applied {len(objects)} patch operations")
        return patched

    index = _operation_owners(dmp, objects)[applied.index(False)]
    operation = patch.operations[index]
    raise PatchFailure(
        f"context {operation.source_text[:40]!r} expected near offset "
        f"{operation.source_start} not found (match distance {tolerance.match_distance}, "
        f"threshold {tolerance.match_threshold})",
        operation_index=index,
    )


def _operation_owners(dmp: diff_match_patch, objects: list[patch_obj]) -> list[int]:
    """Map each result of ``patch_apply`` back to its document operation.

    ``patch_apply`` pads the outer operations and splits those longer than
    ``Match_MaxBits`` before matching, so it may report on more pieces than
    the document has operations. Pieces never start before their operation.
    """
    prepared = dmp.patch_deepCopy(objects)
    dmp.patch_addPadding(prepared)
    starts = [obj.start1 for obj in prepared]
    dmp.patch_splitMax(prepared)
    return [max(bisect_right(starts, piece.start1) - 1, 0) for piece in prepared]
