"""Rollback operator for document history.

Rolling back never rewrites history: it appends a new revision whose content
and metadata equal those of an earlier revision.
"""

import logging
from typing import Optional

from promptline.history.branching.registry import require_branch
from promptline.history.documents import DocumentLookup, ensure_document
from promptline.history.enums import DEFAULT_BRANCH
from promptline.history.locks import DocumentLocks
from promptline.history.models import Revision
from promptline.history.revisions.store import append_revision, require_revision
from promptline.history.storage.repository import HistoryRepository

logger = logging.getLogger(__name__)


class RollbackOperator:
    """Restores earlier content by appending a copy of a past revision.

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
        """Initialize the rollback operator.

        Args:
            repository: Storage repository for revisions and branches
            locks: Per-document locks (a private registry if omitted)
            documents: Optional document existence check
        """
        self._repository = repository
        self._locks = locks or DocumentLocks()
        self._documents = documents

    async def rollback(
        self,
        document_id: str,
        target_revision_number: int,
        branch: Optional[str] = None,
        change_reason: Optional[str] = None,
    ) -> Revision:
        """Append a revision restoring the content of an earlier revision.

        This operation:
        1. Verifies the target revision exists for the document
        2. Resolves the branch (default: the active branch)
        3. Appends a revision with the target's content and metadata

        Repeating a rollback to the same target yields the same content under a
        new, higher revision number each time.

        Args:
            document_id: Document identifier
            target_revision_number: Revision whose content to restore
            branch: Branch to append to (default: the active branch)
            change_reason: Description (default: "Rollback to revision N")

        Returns:
            The newly appended revision

        Raises:
            NotFoundError: If the target revision does not exist for the document
            BranchNotFoundError: If the given branch does not exist
        """
        await ensure_document(self._documents, document_id)

        async with self._locks.hold(document_id):
            async with self._repository.transaction() as tx:
                target = await require_revision(tx, document_id, target_revision_number)

                if branch is None:
                    active = await tx.get_active_branch(document_id)
                    branch_name = active.name if active else DEFAULT_BRANCH
                else:
                    branch_name = branch
                await require_branch(tx, document_id, branch_name)

                revision = await append_revision(
                    tx,
                    document_id,
                    branch_name,
                    target.content,
                    metadata=target.metadata,
                    change_reason=change_reason
                    or f"Rollback to revision {target_revision_number}",
                )

        logger.info(
            f"Rolled back document {document_id} on branch '{branch_name}' to revision "
            f"{target_revision_number} as revision {revision.revision_number}"
        )
        return revision
