"""Custom exceptions for prompt history.

This module defines the closed exception hierarchy raised by the revision
store, branch registry, diff engine and rollback/merge operators. Every error
carries a machine-readable code and an HTTP-style status code so the command
layer can map each kind to a distinct message.
"""

from typing import Optional

from promptline.history.enums import BranchErrorReason


class HistoryError(Exception):
    """Base exception for all history errors.

    Attributes:
        code: Machine-readable error code
        message: Human-readable error message
        status_code: HTTP status code for API responses
    """

    def __init__(self, message: str, code: str, status_code: int) -> None:
        """Initialize history error.

        Args:
            message: Human-readable error description
            code: Machine-readable error code
            status_code: HTTP status code (404, 409, etc.)
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


class NotFoundError(HistoryError):
    """Raised when a document or revision cannot be found.

    Also raised when a branch exists but has no revisions and a head was
    requested from it.
    """

    def __init__(
        self,
        document_id: str,
        revision_number: Optional[int] = None,
        branch: Optional[str] = None,
    ) -> None:
        """Initialize not found error.

        Args:
            document_id: The document that was looked up
            revision_number: The revision number that was not found, if any
            branch: The branch that has no revisions, if any
        """
        if revision_number is not None:
            message = f"Revision {revision_number} of document '{document_id}' not found"
        elif branch is not None:
            message = f"Branch '{branch}' of document '{document_id}' has no revisions"
        else:
            message = f"Document '{document_id}' not found"

        super().__init__(message=message, code="not_found", status_code=404)
        self.document_id = document_id
        self.revision_number = revision_number
        self.branch = branch


class BranchNotFoundError(HistoryError):
    """Raised when a named branch does not exist for a document."""

    def __init__(self, document_id: str, branch_name: str) -> None:
        """Initialize branch not found error.

        Args:
            document_id: The document the branch was looked up on
            branch_name: The missing branch name
        """
        super().__init__(
            message=f"Branch '{branch_name}' not found for document '{document_id}'",
            code="branch_not_found",
            status_code=404,
        )
        self.document_id = document_id
        self.branch_name = branch_name


class BranchAlreadyExistsError(HistoryError):
    """Raised when creating a branch whose name is already taken."""

    def __init__(self, document_id: str, branch_name: str) -> None:
        """Initialize branch already exists error.

        Args:
            document_id: The document the branch belongs to
            branch_name: The duplicate branch name
        """
        super().__init__(
            message=f"Branch '{branch_name}' already exists for document '{document_id}'",
            code="branch_already_exists",
            status_code=409,
        )
        self.document_id = document_id
        self.branch_name = branch_name


class BranchError(HistoryError):
    """Raised when a branch operation violates a branch rule.

    The only_branch reason means the branch is the document's sole branch.
    The unmerged_changes reason means revisions exist on the branch, and
    revision_count tells how many would be orphaned.
    """

    def __init__(
        self,
        document_id: str,
        branch_name: str,
        reason: BranchErrorReason,
        revision_count: Optional[int] = None,
    ) -> None:
        """Initialize branch error.

        Args:
            document_id: The document the branch belongs to
            branch_name: The branch the operation targeted
            reason: Which rule blocked the operation
            revision_count: Number of revisions on the branch (unmerged changes)
        """
        if reason == BranchErrorReason.ONLY_BRANCH:
            message = (
                f"Cannot delete branch '{branch_name}': it is the only branch "
                f"of document '{document_id}'"
            )
        else:
            message = (
                f"Cannot delete branch '{branch_name}' with unmerged changes "
                f"({revision_count} revisions)"
            )

        super().__init__(message=message, code="branch_error", status_code=409)
        self.document_id = document_id
        self.branch_name = branch_name
        self.reason = reason
        self.revision_count = revision_count


class MergeConflictError(HistoryError):
    """Raised when a fast-forward merge is not possible.

    No automatic reconciliation is attempted; the caller has to resolve the
    divergence manually.
    """

    def __init__(
        self,
        document_id: str,
        source_branch: str,
        target_branch: str,
        detail: Optional[str] = None,
    ) -> None:
        """Initialize merge conflict error.

        Args:
            document_id: The document being merged
            source_branch: Branch whose head would be merged
            target_branch: Branch that would receive the merge
            detail: Optional explanation appended to the message
        """
        message = (
            f"Cannot fast-forward merge '{source_branch}' into '{target_branch}' "
            f"for document '{document_id}'"
        )
        if detail:
            message = f"{message}: {detail}"

        super().__init__(message=message, code="merge_conflict", status_code=409)
        self.document_id = document_id
        self.source_branch = source_branch
        self.target_branch = target_branch
