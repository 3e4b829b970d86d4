"""Pydantic models for prompt history.

This module defines the immutable records for revisions and branches, and the
result types produced by the diff engine and the branch comparison.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from promptline.history.enums import DiffLineTag, LineChangeType


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class Revision(BaseModel):
    """Immutable snapshot of a document's content.

    Revision numbers are allocated per document and shared by all of the
    document's branches, so a number identifies exactly one revision.

    Attributes:
        document_id: ID of the document this revision belongs to
        revision_number: Document-wide sequential number, starting at 1
        branch: Name of the branch the revision was appended to
        content: The document content at this revision
        metadata: Structured metadata stored alongside the content
        parent_revision_number: Head of the branch when this revision was created
        change_reason: Optional description of the change
        merged_from_revision_number: Source head copied when created by a merge
        created_at: Timestamp when the revision was created
    """

    model_config = ConfigDict(frozen=True)

    document_id: str = Field(..., min_length=1, max_length=255)
    revision_number: int = Field(..., ge=1)
    branch: str = Field(..., min_length=1, max_length=255)
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    parent_revision_number: Optional[int] = Field(default=None, ge=1)
    change_reason: Optional[str] = None
    merged_from_revision_number: Optional[int] = Field(default=None, ge=1)
    created_at: datetime = Field(default_factory=utc_now)


class Branch(BaseModel):
    """Named line of development for a document.

    Attributes:
        document_id: ID of the document the branch belongs to
        name: Branch name, unique per document
        created_at: Timestamp when the branch was created
        origin_revision_number: Revision the branch was forked from
        is_active: Whether this is the document's active branch
    """

    model_config = ConfigDict(frozen=True)

    document_id: str = Field(..., min_length=1, max_length=255)
    name: str = Field(..., min_length=1, max_length=255)
    created_at: datetime = Field(default_factory=utc_now)
    origin_revision_number: Optional[int] = Field(default=None, ge=1)
    is_active: bool = False

    @field_validator("name")
    @classmethod
    def validate_name_not_blank(cls, value: str) -> str:
        """Validate that the branch name has no surrounding whitespace.

        Args:
            value: The name to validate

        Returns:
            The validated name

        Raises:
            ValueError: If the name is blank or padded with whitespace
        """
        if not value.strip() or value != value.strip():
            raise ValueError("Branch name must be non-blank without surrounding whitespace")
        return value


class DiffLine(BaseModel):
    """Single line of a diff.

    Attributes:
        tag: Whether the line is context, added or removed
        text: The line text without its trailing newline
        old_line_number: 1-based line number in the old content, if present there
        new_line_number: 1-based line number in the new content, if present there
    """

    model_config = ConfigDict(frozen=True)

    tag: DiffLineTag
    text: str
    old_line_number: Optional[int] = None
    new_line_number: Optional[int] = None

    @property
    def prefix(self) -> str:
        """Unified-diff prefix for this line."""
        return self.tag.prefix


class DiffHunk(BaseModel):
    """Contiguous block of changes with surrounding context.

    Start positions follow the unified-diff convention: they are 1-based, and
    a side with zero lines reports the line preceding the change.
    """

    model_config = ConfigDict(frozen=True)

    old_start: int = Field(..., ge=0)
    old_line_count: int = Field(..., ge=0)
    new_start: int = Field(..., ge=0)
    new_line_count: int = Field(..., ge=0)
    lines: list[DiffLine] = Field(default_factory=list)


class DiffStats(BaseModel):
    """Line counts for a diff."""

    model_config = ConfigDict(frozen=True)

    added: int = Field(default=0, ge=0)
    removed: int = Field(default=0, ge=0)
    unchanged: int = Field(default=0, ge=0)


class TextDiff(BaseModel):
    """Line diff between two texts.

    Attributes:
        hunks: Changed regions with context, in order
        stats: Added, removed and unchanged line counts
        lines: The complete edit script, including all unchanged lines
    """

    model_config = ConfigDict(frozen=True)

    hunks: list[DiffHunk] = Field(default_factory=list)
    stats: DiffStats = Field(default_factory=DiffStats)
    lines: list[DiffLine] = Field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        """Whether the two texts differ."""
        return bool(self.stats.added or self.stats.removed)


class RevisionDiff(TextDiff):
    """Line diff between two revisions of the same document."""

    document_id: str
    from_revision_number: int
    to_revision_number: int


class BranchComparison(BaseModel):
    """Ahead/behind counts of one branch relative to another.

    Attributes:
        ahead: Revisions reachable from the first branch but not the second
        behind: Revisions reachable from the second branch but not the first
        can_merge: Whether the first branch can be fast-forward merged into the second
    """

    model_config = ConfigDict(frozen=True)

    ahead: int = Field(..., ge=0)
    behind: int = Field(..., ge=0)
    can_merge: bool


class SideBySideRow(BaseModel):
    """One row of a side-by-side diff."""

    model_config = ConfigDict(frozen=True)

    change: LineChangeType
    left: Optional[str] = None
    right: Optional[str] = None
    left_line: Optional[int] = None
    right_line: Optional[int] = None


class SideBySideDiff(BaseModel):
    """Two-column rendering of a diff."""

    model_config = ConfigDict(frozen=True)

    rows: list[SideBySideRow] = Field(default_factory=list)

    @property
    def left(self) -> list[str]:
        """Left column text, with blanks where the old side has no line."""
        return [row.left or "" for row in self.rows]

    @property
    def right(self) -> list[str]:
        """Right column text, with blanks where the new side has no line."""
        return [row.right or "" for row in self.rows]
