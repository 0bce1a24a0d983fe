"""Patch document models.

A ``PatchDocument`` is an ordered list of character-level operations derived
from diffing an original text against a desired text. Each operation carries
its context and its approximate offset in the original so it can be
re-located in a drifted copy.
"""

from __future__ import annotations

from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field


class DiffOp(IntEnum):
    """Kind of a diff span; values match diff-match-patch's tuple tags."""

    DELETE = -1
    EQUAL = 0
    INSERT = 1


class DiffSpan(BaseModel):
    """A run of characters kept, removed or added."""

    op: DiffOp
    text: str

    model_config = ConfigDict(frozen=True, extra="forbid")


class PatchOperation(BaseModel):
    """One context-anchored change.

    Attributes:
        source_start: 0-based character offset in the original text
        source_length: Characters of the original covered (context + deletions)
        target_start: 0-based character offset in the modified text
        target_length: Characters of the modified text covered (context + insertions)
        spans: Operation body in order
    """

    source_start: int = Field(ge=0)
    source_length: int = Field(ge=0)
    target_start: int = Field(ge=0)
    target_length: int = Field(ge=0)
    spans: list[DiffSpan] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def source_text(self) -> str:
        """Text the operation expects in the original (context + deletions)."""
        return "".join(s.text for s in self.spans if s.op is not DiffOp.INSERT)

    @property
    def target_text(self) -> str:
        """Text the operation produces (context + insertions)."""
        return "".join(s.text for s in self.spans if s.op is not DiffOp.DELETE)


class PatchDocument(BaseModel):
    """Ordered sequence of operations produced by ``diff``.

    Example:
        >>> doc = diff("a\\nb\\n", "a\\nc\\n")
        >>> apply_patch(doc, "a\\nb\\n")
        'a\\nc\\n'
    """

    operations: list[PatchOperation] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def is_empty(self) -> bool:
        return not self.operations


class PatchTolerance(BaseModel):
    """Bounds for fuzzy operation matching.

    A candidate location scores ``errors / pattern_length + distance /
    match_distance``; it is accepted when the score stays within
    ``match_threshold``.

    Attributes:
        match_distance: Characters of drift that cost a full score point
        match_threshold: Highest accepted score (0.0 demands an exact match in place)
        delete_threshold: Highest accepted share of differences inside a long
            deleted block before the operation is refused
        margin: Context characters kept on each side of a change when diffing
    """

    match_distance: int = Field(default=1000, ge=0)
    match_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    delete_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    margin: int = Field(default=4, ge=1)

    model_config = ConfigDict(frozen=True, extra="forbid")


class PatchFailure(Exception):
    """A patch operation could not be applied.

    Attributes:
        reason: Why the operation failed
        operation_index: 0-based index of the failing operation (patch operation or anchor)
    """

    def __init__(self, reason: str, operation_index: int) -> None:
        self.reason = reason
        self.operation_index = operation_index
        super().__init__(f"operation {operation_index}: {reason}")


class PatchFormatError(ValueError):
    """Patch text could not be parsed."""
