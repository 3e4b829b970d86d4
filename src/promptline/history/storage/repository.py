"""Repository protocol for history storage operations.

This module defines the abstract interface that all history storage
implementations must follow. All reads and writes happen through a
transaction object obtained from the repository, so a multi-step mutation
either applies completely or not at all.
"""

from typing import AsyncContextManager, Optional, Protocol

from promptline.history.models import Branch, Revision


class HistoryTransaction(Protocol):
    """Operations available inside one storage transaction.

    Implementations apply writes in call order and make them visible to later
    calls in the same transaction.
    """

    # Revision Operations
    async def next_revision_number(self, document_id: str) -> int:
        """Atomically allocate the next revision number for a document.

        The number is one greater than every revision number the document has
        ever used, on any branch.

        Args:
            document_id: Document identifier

        Returns:
            The allocated revision number
        """
        ...

    async def add_revision(self, revision: Revision) -> Revision:
        """Store a new revision.

        Args:
            revision: The revision to store

        Returns:
            The stored revision
        """
        ...

    async def get_revision(self, document_id: str, revision_number: int) -> Optional[Revision]:
        """Retrieve a revision by number.

        Args:
            document_id: Document identifier
            revision_number: Revision number to retrieve

        Returns:
            The revision if it exists for this document, None otherwise
        """
        ...

    async def get_head(self, document_id: str, branch: str) -> Optional[Revision]:
        """Retrieve the most recent revision on a branch.

        Args:
            document_id: Document identifier
            branch: Branch name

        Returns:
            The branch head, or None if the branch has no revisions
        """
        ...

    async def list_revisions(
        self,
        document_id: str,
        branch: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Revision]:
        """List revisions of a document.

        Args:
            document_id: Document identifier
            branch: Optional branch filter (None lists every branch)
            limit: Maximum number of results to return (None for no limit)
            offset: Number of results to skip

        Returns:
            List of revisions, sorted by revision_number descending
        """
        ...

    async def count_revisions(self, document_id: str, branch: str) -> int:
        """Count the revisions on a branch.

        Args:
            document_id: Document identifier
            branch: Branch name

        Returns:
            Number of revisions on the branch
        """
        ...

    # Branch Operations
    async def add_branch(self, branch: Branch) -> Branch:
        """Store a new branch.

        Args:
            branch: The branch to store

        Returns:
            The stored branch
        """
        ...

    async def get_branch(self, document_id: str, name: str) -> Optional[Branch]:
        """Retrieve a branch by name.

        Args:
            document_id: Document identifier
            name: Branch name

        Returns:
            The branch if found, None otherwise
        """
        ...

    async def list_branches(self, document_id: str) -> list[Branch]:
        """List branches of a document.

        Args:
            document_id: Document identifier

        Returns:
            List of branches, sorted by created_at ascending
        """
        ...

    async def get_active_branch(self, document_id: str) -> Optional[Branch]:
        """Retrieve the branch flagged active.

        Args:
            document_id: Document identifier

        Returns:
            The active branch, or None if no branch is flagged active
        """
        ...

    async def set_active_branch(self, document_id: str, name: str) -> Branch:
        """Clear every active flag of the document, then flag one branch.

        Args:
            document_id: Document identifier
            name: Name of the branch to activate

        Returns:
            The activated branch

        Raises:
            BranchNotFoundError: If the branch does not exist
        """
        ...

    async def delete_branch(self, document_id: str, name: str) -> bool:
        """Delete a branch record.

        Args:
            document_id: Document identifier
            name: Branch name

        Returns:
            True if deleted, False if not found
        """
        ...


class HistoryRepository(Protocol):
    """Protocol for history storage backends.

    Implementations must ensure that a transaction's writes are discarded
    when the block raises, and that concurrent transactions never allocate
    the same revision number.
    """

    def transaction(self) -> AsyncContextManager[HistoryTransaction]:
        """Open a transaction.

        Returns:
            Async context manager yielding the transaction; it commits when the
            block exits normally and rolls back when it raises
        """
        ...
