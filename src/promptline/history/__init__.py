"""Document history module.

This module provides versioned content storage for prompt documents:
append-only revisions, named fast-forward-only branches, line diffs,
rollback and merge.
"""

from promptline.history.enums import (
    DEFAULT_BRANCH,
    BranchErrorReason,
    DiffLineTag,
    LineChangeType,
)
from promptline.history.errors import (
    BranchAlreadyExistsError,
    BranchError,
    BranchNotFoundError,
    HistoryError,
    MergeConflictError,
    NotFoundError,
)
from promptline.history.models import (
    Branch,
    BranchComparison,
    DiffHunk,
    DiffLine,
    DiffStats,
    Revision,
    RevisionDiff,
    SideBySideDiff,
    SideBySideRow,
    TextDiff,
)
from promptline.history.service import HistoryService, create_history_service

__all__ = [
    # Enums
    "DEFAULT_BRANCH",
    "BranchErrorReason",
    "DiffLineTag",
    "LineChangeType",
    # Errors
    "BranchAlreadyExistsError",
    "BranchError",
    "BranchNotFoundError",
    "HistoryError",
    "MergeConflictError",
    "NotFoundError",
    # Models
    "Branch",
    "BranchComparison",
    "DiffHunk",
    "DiffLine",
    "DiffStats",
    "Revision",
    "RevisionDiff",
    "SideBySideDiff",
    "SideBySideRow",
    "TextDiff",
    # Service
    "HistoryService",
    "create_history_service",
]
