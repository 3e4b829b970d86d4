"""Revision store for document history.

This module provides the RevisionStore class for appending immutable
revisions and resolving heads, plus the transaction-level helpers that the
rollback and merge operators reuse inside their own transactions.
"""

import copy
import logging
from typing import Any, Optional

from promptline.history.documents import DocumentLookup, ensure_document
from promptline.history.enums import DEFAULT_BRANCH
from promptline.history.errors import BranchNotFoundError, NotFoundError
from promptline.history.locks import DocumentLocks
from promptline.history.models import Branch, Revision
from promptline.history.storage.repository import HistoryRepository, HistoryTransaction

logger = logging.getLogger(__name__)


async def append_revision(
    tx: HistoryTransaction,
    document_id: str,
    branch: str,
    content: str,
    metadata: Optional[dict[str, Any]] = None,
    change_reason: Optional[str] = None,
    merged_from_revision_number: Optional[int] = None,
) -> Revision:
    """Append a revision to a branch inside an open transaction.

    The caller must hold the document's lock. The default branch is created
    on first use; any other branch must already exist.

    Args:
        tx: Open history transaction
        document_id: Document identifier
        branch: Branch to append to
        content: New content
        metadata: Structured metadata to store with the content
        change_reason: Optional description of the change
        merged_from_revision_number: Source head, when appended by a merge

    Returns:
        The new revision

    Raises:
        BranchNotFoundError: If the branch does not exist and is not the default
    """
    if await tx.get_branch(document_id, branch) is None:
        if branch != DEFAULT_BRANCH:
            raise BranchNotFoundError(document_id, branch)
        await tx.add_branch(
            Branch(
                document_id=document_id,
                name=DEFAULT_BRANCH,
                is_active=await tx.get_active_branch(document_id) is None,
            )
        )
        logger.info(f"Created default branch '{DEFAULT_BRANCH}' for document {document_id}")

    head = await tx.get_head(document_id, branch)
    revision = Revision(
        document_id=document_id,
        revision_number=await tx.next_revision_number(document_id),
        branch=branch,
        content=content,
        metadata=copy.deepcopy(metadata or {}),
        parent_revision_number=head.revision_number if head else None,
        change_reason=change_reason,
        merged_from_revision_number=merged_from_revision_number,
    )
    return await tx.add_revision(revision)


async def require_revision(
    tx: HistoryTransaction, document_id: str, revision_number: int
) -> Revision:
    """Fetch a revision or raise NotFoundError.

    Args:
        tx: Open history transaction
        document_id: Document identifier
        revision_number: Revision number to fetch

    Returns:
        The revision

    Raises:
        NotFoundError: If the document has no such revision
    """
    revision = await tx.get_revision(document_id, revision_number)
    if revision is None:
        raise NotFoundError(document_id, revision_number=revision_number)
    return revision


async def require_head(tx: HistoryTransaction, document_id: str, branch: str) -> Revision:
    """Fetch a branch head or raise NotFoundError.

    Args:
        tx: Open history transaction
        document_id: Document identifier
        branch: Branch name

    Returns:
        The most recent revision on the branch

    Raises:
        NotFoundError: If the branch has no revisions
    """
    head = await tx.get_head(document_id, branch)
    if head is None:
        raise NotFoundError(document_id, branch=branch)
    return head


class RevisionStore:
    """Store for immutable document revisions.

    Revision numbers are allocated per document across all branches. Every
    append holds the document's lock and runs in one repository transaction,
    so concurrent appends never collide.

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
        """Initialize the revision store.

        Args:
            repository: Storage repository for revisions and branches
            locks: Per-document locks (a private registry if omitted)
            documents: Optional document existence check
        """
        self._repository = repository
        self._locks = locks or DocumentLocks()
        self._documents = documents

    async def create_revision(
        self,
        document_id: str,
        branch: str,
        content: str,
        metadata: Optional[dict[str, Any]] = None,
        change_reason: Optional[str] = None,
    ) -> Revision:
        """Append a new revision to a branch.

        Args:
            document_id: Document identifier
            branch: Branch to append to
            content: New content
            metadata: Structured metadata to store with the content
            change_reason: Optional description of the change

        Returns:
            The created revision

        Raises:
            NotFoundError: If the document lookup reports the document absent
            BranchNotFoundError: If the branch does not exist and is not "main"
        """
        await ensure_document(self._documents, document_id)

        async with self._locks.hold(document_id):
            async with self._repository.transaction() as tx:
                revision = await append_revision(
                    tx,
                    document_id,
                    branch,
                    content,
                    metadata=metadata,
                    change_reason=change_reason,
                )

        logger.info(
            f"Created revision {revision.revision_number} on branch '{branch}' "
            f"for document {document_id}"
        )
        return revision

    async def get_head(self, document_id: str, branch: str = DEFAULT_BRANCH) -> Revision:
        """Retrieve the most recent revision on a branch.

        Args:
            document_id: Document identifier
            branch: Branch name (default: "main")

        Returns:
            The branch head

        Raises:
            NotFoundError: If the branch has no revisions
        """
        async with self._repository.transaction() as tx:
            head = await require_head(tx, document_id, branch)

        logger.debug(
            f"Retrieved head revision {head.revision_number} of branch '{branch}' "
            f"for document {document_id}"
        )
        return head

    async def get_revision(self, document_id: str, revision_number: int) -> Revision:
        """Retrieve a specific revision of a document.

        Args:
            document_id: Document identifier
            revision_number: Revision number to retrieve

        Returns:
            The requested revision

        Raises:
            NotFoundError: If the revision does not exist for this document
        """
        async with self._repository.transaction() as tx:
            return await require_revision(tx, document_id, revision_number)

    async def list_revisions(
        self,
        document_id: str,
        branch: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Revision]:
        """List revisions of a document, most recent first.

        Args:
            document_id: Document identifier
            branch: Optional branch filter (None lists every branch)
            limit: Maximum number of revisions to return (None for all)
            offset: Number of revisions to skip for pagination

        Returns:
            List of revisions sorted by revision_number descending

        Raises:
            ValueError: If limit or offset is negative
        """
        if limit is not None and limit < 0:
            raise ValueError("limit must be non-negative")
        if offset < 0:
            raise ValueError("offset must be non-negative")

        async with self._repository.transaction() as tx:
            revisions = await tx.list_revisions(
                document_id, branch=branch, limit=limit, offset=offset
            )

        logger.debug(
            f"Listed {len(revisions)} revisions for document {document_id} "
            f"(branch={branch}, limit={limit}, offset={offset})"
        )
        return revisions
