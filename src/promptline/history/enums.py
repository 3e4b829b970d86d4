"""Enumerations for prompt history.

This module defines enums for diff line tags, side-by-side change kinds,
and the reasons a branch operation can be refused.
"""

from enum import Enum

DEFAULT_BRANCH = "main"


class DiffLineTag(str, Enum):
    """Kind of a single line in a diff.

    Each tag maps to the unified-diff prefix used when rendering.
    """

    CONTEXT = "context"
    ADD = "add"
    REMOVE = "remove"

    @property
    def prefix(self) -> str:
        """Unified-diff prefix character for this tag."""
        return _PREFIXES[self]


_PREFIXES = {
    DiffLineTag.CONTEXT: " ",
    DiffLineTag.ADD: "+",
    DiffLineTag.REMOVE: "-",
}


class LineChangeType(str, Enum):
    """Classification of a row in a side-by-side diff."""

    UNCHANGED = "unchanged"
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"


class BranchErrorReason(str, Enum):
    """Rule that blocked a branch operation."""

    ONLY_BRANCH = "only_branch"
    UNMERGED_CHANGES = "unmerged_changes"
