"""In-memory implementation of the history repository.

This module provides a thread-safe, in-memory storage implementation
suitable for development, testing, and lightweight deployments.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from promptline.history.errors import BranchNotFoundError
from promptline.history.models import Branch, Revision


class InMemoryHistoryRepository:
    """Thread-safe in-memory storage for revisions and branches.

    Uses asyncio.Lock so that only one transaction runs at a time. Each
    transaction snapshots the stored dictionaries and restores them if the
    transaction block raises. Revisions are deep-copied on the way in and out,
    so callers never share the stored metadata.
    """

    def __init__(self) -> None:
        """Initialize the in-memory repository with empty storage."""
        self._revisions: dict[tuple[str, int], Revision] = {}
        self._branches: dict[tuple[str, str], Branch] = {}
        self._counters: dict[str, int] = {}
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["InMemoryHistoryTransaction"]:
        """Open a transaction over the in-memory state.

        Yields:
            Transaction bound to this repository
        """
        async with self._lock:
            snapshot = (dict(self._revisions), dict(self._branches), dict(self._counters))
            try:
                yield InMemoryHistoryTransaction(self)
            except BaseException:
                self._revisions, self._branches, self._counters = snapshot
                raise


class InMemoryHistoryTransaction:
    """Transaction over an InMemoryHistoryRepository.

    Writes go straight into the repository's dictionaries; the repository
    restores its snapshot when the transaction fails.
    """

    def __init__(self, repository: InMemoryHistoryRepository) -> None:
        """Initialize the transaction.

        Args:
            repository: Repository whose state this transaction operates on
        """
        self._repository = repository

    # Revision Operations
    async def next_revision_number(self, document_id: str) -> int:
        """Allocate the next revision number for a document.

        Args:
            document_id: Document identifier

        Returns:
            The allocated revision number
        """
        counters = self._repository._counters
        counters[document_id] = counters.get(document_id, 0) + 1
        return counters[document_id]

    async def add_revision(self, revision: Revision) -> Revision:
        """Store a new revision.

        Args:
            revision: The revision to store

        Returns:
            The stored revision

        Raises:
            ValueError: If the revision number is already used by the document
        """
        key = (revision.document_id, revision.revision_number)
        if key in self._repository._revisions:
            raise ValueError(
                f"Revision {revision.revision_number} already exists "
                f"for document '{revision.document_id}'"
            )
        self._repository._revisions[key] = revision.model_copy(deep=True)
        return revision

    async def get_revision(self, document_id: str, revision_number: int) -> Optional[Revision]:
        """Retrieve a revision by number.

        Args:
            document_id: Document identifier
            revision_number: Revision number to retrieve

        Returns:
            The revision if found, None otherwise
        """
        revision = self._repository._revisions.get((document_id, revision_number))
        return revision.model_copy(deep=True) if revision else None

    async def get_head(self, document_id: str, branch: str) -> Optional[Revision]:
        """Retrieve the most recent revision on a branch.

        Args:
            document_id: Document identifier
            branch: Branch name

        Returns:
            The branch head, or None if the branch has no revisions
        """
        revisions = await self.list_revisions(document_id, branch=branch, limit=1)
        return revisions[0] if revisions else None

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
            branch: Optional branch filter
            limit: Maximum number of results to return
            offset: Number of results to skip

        Returns:
            List of revisions, sorted by revision_number descending
        """
        filtered = [
            r
            for r in self._repository._revisions.values()
            if r.document_id == document_id and (branch is None or r.branch == branch)
        ]

        sorted_revisions = sorted(filtered, key=lambda r: r.revision_number, reverse=True)

        # Apply pagination
        if limit is None:
            page = sorted_revisions[offset:]
        else:
            page = sorted_revisions[offset : offset + limit]
        return [r.model_copy(deep=True) for r in page]

    async def count_revisions(self, document_id: str, branch: str) -> int:
        """Count the revisions on a branch.

        Args:
            document_id: Document identifier
            branch: Branch name

        Returns:
            Number of revisions on the branch
        """
        return sum(
            1
            for r in self._repository._revisions.values()
            if r.document_id == document_id and r.branch == branch
        )

    # Branch Operations
    async def add_branch(self, branch: Branch) -> Branch:
        """Store a new branch.

        Args:
            branch: The branch to store

        Returns:
            The stored branch

        Raises:
            ValueError: If the name is taken, or a second branch would be active
        """
        key = (branch.document_id, branch.name)
        if key in self._repository._branches:
            raise ValueError(
                f"Branch '{branch.name}' already exists for document '{branch.document_id}'"
            )
        if branch.is_active and await self.get_active_branch(branch.document_id):
            raise ValueError(f"Document '{branch.document_id}' already has an active branch")

        self._repository._branches[key] = branch
        return branch

    async def get_branch(self, document_id: str, name: str) -> Optional[Branch]:
        """Retrieve a branch by name.

        Args:
            document_id: Document identifier
            name: Branch name

        Returns:
            The branch if found, None otherwise
        """
        return self._repository._branches.get((document_id, name))

    async def list_branches(self, document_id: str) -> list[Branch]:
        """List branches of a document.

        Dictionary order is insertion order, so the stable sort keeps branches
        created within the same clock tick in creation order.

        Args:
            document_id: Document identifier

        Returns:
            List of branches, sorted by created_at ascending
        """
        filtered = [
            b for b in self._repository._branches.values() if b.document_id == document_id
        ]
        return sorted(filtered, key=lambda b: b.created_at)

    async def get_active_branch(self, document_id: str) -> Optional[Branch]:
        """Retrieve the branch flagged active.

        Args:
            document_id: Document identifier

        Returns:
            The active branch, or None
        """
        for branch in self._repository._branches.values():
            if branch.document_id == document_id and branch.is_active:
                return branch
        return None

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
        branches = self._repository._branches
        if (document_id, name) not in branches:
            raise BranchNotFoundError(document_id, name)

        for key, branch in list(branches.items()):
            if branch.document_id == document_id and branch.is_active:
                branches[key] = branch.model_copy(update={"is_active": False})

        activated = branches[(document_id, name)].model_copy(update={"is_active": True})
        branches[(document_id, name)] = activated
        return activated

    async def delete_branch(self, document_id: str, name: str) -> bool:
        """Delete a branch record.

        Args:
            document_id: Document identifier
            name: Branch name

        Returns:
            True if deleted, False if not found
        """
        return self._repository._branches.pop((document_id, name), None) is not None
