"""Branch registry for document history.

This module provides the BranchRegistry class for creating, listing,
switching and deleting the named branches of a document. The active branch is
a persisted flag on the branch records, never in-process state.
"""

import logging
from typing import Optional

from promptline.history.documents import DocumentLookup, ensure_document
from promptline.history.enums import DEFAULT_BRANCH, BranchErrorReason
from promptline.history.errors import (
    BranchAlreadyExistsError,
    BranchError,
    BranchNotFoundError,
)
from promptline.history.locks import DocumentLocks
from promptline.history.models import Branch
from promptline.history.revisions.store import require_head, require_revision
from promptline.history.storage.repository import HistoryRepository, HistoryTransaction

logger = logging.getLogger(__name__)


async def require_branch(tx: HistoryTransaction, document_id: str, name: str) -> Branch:
    """Fetch a branch or raise BranchNotFoundError.

    Args:
        tx: Open history transaction
        document_id: Document identifier
        name: Branch name

    Returns:
        The branch

    Raises:
        BranchNotFoundError: If the branch does not exist
    """
    branch = await tx.get_branch(document_id, name)
    if branch is None:
        raise BranchNotFoundError(document_id, name)
    return branch


class BranchRegistry:
    """Registry of named branches per document.

    Exactly one branch per document is flagged active. Switching and deleting
    branches update the flags inside a single transaction while holding the
    document's lock, so the rule holds even when an operation fails midway.

    Attributes:
        _repository: Storage repository for revisions and branches
        _locks: Per-document locks shared with the other history components
        _documents: Optional existence check from the document store
    """

    def __init__(
        self,
        repository: HistoryRepository,
        locks: Optional[DocumentLocks] = None,
        documents: Optional[DocumentLookup] = None,
    ) -> None:
        """Initialize the branch registry.

        Args:
            repository: Storage repository for revisions and branches
            locks: Per-document locks (a private registry if omitted)
            documents: Optional document existence check
        """
        self._repository = repository
        self._locks = locks or DocumentLocks()
        self._documents = documents

    async def create_branch(
        self,
        document_id: str,
        name: str,
        from_revision_number: Optional[int] = None,
    ) -> Branch:
        """Create a new, inactive branch forked from a revision.

        Args:
            document_id: Document identifier
            name: Name for the new branch
            from_revision_number: Fork point (default: head of "main")

        Returns:
            The created branch

        Raises:
            BranchAlreadyExistsError: If the name is already taken
            NotFoundError: If the fork revision does not exist, or main is empty
        """
        await ensure_document(self._documents, document_id)

        async with self._locks.hold(document_id):
            async with self._repository.transaction() as tx:
                if await tx.get_branch(document_id, name) is not None:
                    raise BranchAlreadyExistsError(document_id, name)

                if from_revision_number is None:
                    origin = await require_head(tx, document_id, DEFAULT_BRANCH)
                else:
                    origin = await require_revision(tx, document_id, from_revision_number)

                branch = await tx.add_branch(
                    Branch(
                        document_id=document_id,
                        name=name,
                        origin_revision_number=origin.revision_number,
                        is_active=False,
                    )
                )

        logger.info(
            f"Created branch '{name}' for document {document_id} "
            f"from revision {origin.revision_number}"
        )
        return branch

    async def get_branch(self, document_id: str, name: str) -> Branch:
        """Retrieve a branch by name.

        Args:
            document_id: Document identifier
            name: Branch name

        Returns:
            The branch

        Raises:
            BranchNotFoundError: If the branch does not exist
        """
        async with self._repository.transaction() as tx:
            return await require_branch(tx, document_id, name)

    async def list_branches(self, document_id: str) -> list[Branch]:
        """List a document's branches in creation order.

        Args:
            document_id: Document identifier

        Returns:
            List of branches sorted by created_at ascending
        """
        async with self._repository.transaction() as tx:
            branches = await tx.list_branches(document_id)

        logger.debug(f"Listed {len(branches)} branches for document {document_id}")
        return branches

    async def get_active_branch(self, document_id: str) -> Branch:
        """Get the document's active branch.

        When no branch is flagged active, "main" is flagged and returned.
        This recovery is not reported as an error.

        Args:
            document_id: Document identifier

        Returns:
            The active branch

        Raises:
            BranchNotFoundError: If no branch is active and "main" does not exist
        """
        async with self._repository.transaction() as tx:
            active = await tx.get_active_branch(document_id)
        if active is not None:
            return active

        async with self._locks.hold(document_id):
            async with self._repository.transaction() as tx:
                # Another coroutine may have activated a branch meanwhile
                active = await tx.get_active_branch(document_id)
                if active is not None:
                    return active

                await require_branch(tx, document_id, DEFAULT_BRANCH)
                healed = await tx.set_active_branch(document_id, DEFAULT_BRANCH)

        logger.warning(
            f"No active branch for document {document_id}; "
            f"defaulted to '{DEFAULT_BRANCH}'"
        )
        return healed

    async def switch_branch(self, document_id: str, name: str) -> Branch:
        """Make a branch the document's active branch.

        Args:
            document_id: Document identifier
            name: Branch to activate

        Returns:
            The activated branch

        Raises:
            BranchNotFoundError: If the branch does not exist
        """
        async with self._locks.hold(document_id):
            async with self._repository.transaction() as tx:
                await require_branch(tx, document_id, name)
                branch = await tx.set_active_branch(document_id, name)

        logger.info(f"Switched document {document_id} to branch '{name}'")
        return branch

    async def delete_branch(self, document_id: str, name: str) -> None:
        """Delete a branch that has no revisions.

        If the branch is active, the active flag moves to "main" (or to the
        oldest remaining branch when "main" itself is deleted) in the same
        transaction as the deletion.

        Args:
            document_id: Document identifier
            name: Branch to delete

        Raises:
            BranchNotFoundError: If the branch does not exist
            BranchError: If it is the only branch, or revisions exist on it
        """
        async with self._locks.hold(document_id):
            async with self._repository.transaction() as tx:
                branch = await require_branch(tx, document_id, name)

                branches = await tx.list_branches(document_id)
                if len(branches) <= 1:
                    raise BranchError(document_id, name, BranchErrorReason.ONLY_BRANCH)

                revision_count = await tx.count_revisions(document_id, name)
                if revision_count > 0:
                    raise BranchError(
                        document_id,
                        name,
                        BranchErrorReason.UNMERGED_CHANGES,
                        revision_count=revision_count,
                    )

                await tx.delete_branch(document_id, name)

                if branch.is_active:
                    remaining = [b.name for b in branches if b.name != name]
                    successor = DEFAULT_BRANCH if DEFAULT_BRANCH in remaining else remaining[0]
                    await tx.set_active_branch(document_id, successor)
                    logger.info(
                        f"Reassigned active branch of document {document_id} to '{successor}'"
                    )

        logger.info(f"Deleted branch '{name}' of document {document_id}")
