"""Fast-forward merge and branch comparison.

Branches only ever merge by fast-forward: the source must have been forked
from the target's current head. Anything else is reported as a conflict for
the caller to resolve by hand.
"""

import logging
from typing import Optional

from promptline.history.branching.registry import require_branch
from promptline.history.documents import DocumentLookup, ensure_document
from promptline.history.errors import MergeConflictError
from promptline.history.locks import DocumentLocks
from promptline.history.models import Branch, BranchComparison, Revision
from promptline.history.revisions.store import append_revision, require_head
from promptline.history.storage.repository import HistoryRepository, HistoryTransaction

logger = logging.getLogger(__name__)


def can_fast_forward(
    source: Branch,
    source_head: Optional[Revision],
    target_head: Optional[Revision],
) -> bool:
    """Check whether a source branch can be fast-forward merged into a target.

    Args:
        source: Source branch
        source_head: Head of the source branch, None if it has no revisions
        target_head: Head of the target branch, None if it has no revisions

    Returns:
        True if the source has revisions and the target is empty or still at
        the revision the source was forked from
    """
    if source_head is None:
        return False
    if target_head is None:
        return True
    return source.origin_revision_number == target_head.revision_number


async def _ancestry(tx: HistoryTransaction, document_id: str, branch: Branch) -> set[int]:
    """Collect the revision numbers reachable from a branch.

    Starts at the branch head (or its fork point when the branch is empty)
    and follows parents, merge sources, and the fork point of a branch once
    its first revision is reached.
    """
    branches = {b.name: b for b in await tx.list_branches(document_id)}
    head = await tx.get_head(document_id, branch.name)

    pending: list[int] = []
    if head is not None:
        pending.append(head.revision_number)
    elif branch.origin_revision_number is not None:
        pending.append(branch.origin_revision_number)

    seen: set[int] = set()
    while pending:
        number = pending.pop()
        if number in seen:
            continue
        revision = await tx.get_revision(document_id, number)
        if revision is None:
            continue
        seen.add(number)

        if revision.parent_revision_number is not None:
            pending.append(revision.parent_revision_number)
        else:
            owner = branches.get(revision.branch)
            if owner is not None and owner.origin_revision_number is not None:
                pending.append(owner.origin_revision_number)
        if revision.merged_from_revision_number is not None:
            pending.append(revision.merged_from_revision_number)

    return seen


class MergeOperator:
    """Merges branches by fast-forward and compares their histories.

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
        self._repository = repository
        self._locks = locks or DocumentLocks()
        self._documents = documents

    async def merge_branch(
        self,
        document_id: str,
        source_branch: str,
        target_branch: str,
        change_reason: Optional[str] = None,
    ) -> Revision:
        """Fast-forward merge one branch into another.

        The merge appends a revision on the target carrying the source head's
        content and metadata. The source branch is left untouched.

        Args:
            document_id: Document identifier
            source_branch: Branch to merge from
            target_branch: Branch to merge into
            change_reason: Description (default: "Merge from {source_branch}")

        Returns:
            The revision appended to the target branch

        Raises:
            BranchNotFoundError: If either branch does not exist
            NotFoundError: If the source branch has no revisions
            MergeConflictError: If the branches are the same, or the target
                moved past the source's fork point
        """
        await ensure_document(self._documents, document_id)

        async with self._locks.hold(document_id):
            async with self._repository.transaction() as tx:
                source = await require_branch(tx, document_id, source_branch)
                await require_branch(tx, document_id, target_branch)

                if source_branch == target_branch:
                    raise MergeConflictError(
                        document_id,
                        source_branch,
                        target_branch,
                        detail="a branch cannot be merged into itself",
                    )

                source_head = await require_head(tx, document_id, source_branch)
                target_head = await tx.get_head(document_id, target_branch)

                if not can_fast_forward(source, source_head, target_head):
                    raise MergeConflictError(
                        document_id,
                        source_branch,
                        target_branch,
                        detail=(
                            f"'{source_branch}' was forked from revision "
                            f"{source.origin_revision_number} but '{target_branch}' "
                            f"is at revision {target_head.revision_number}"
                        ),
                    )

                revision = await append_revision(
                    tx,
                    document_id,
                    target_branch,
                    source_head.content,
                    metadata=source_head.metadata,
                    change_reason=change_reason or f"Merge from {source_branch}",
                    merged_from_revision_number=source_head.revision_number,
                )

        logger.info(
            f"Merged branch '{source_branch}' into '{target_branch}' for document "
            f"{document_id} as revision {revision.revision_number}"
        )
        return revision

    async def compare_branches(
        self, document_id: str, branch_a: str, branch_b: str
    ) -> BranchComparison:
        """Compare the histories of two branches.

        Args:
            document_id: Document identifier
            branch_a: Branch being compared
            branch_b: Branch compared against

        Returns:
            Revisions reachable only from branch_a (ahead) and only from
            branch_b (behind), and whether branch_a can be fast-forward
            merged into branch_b now

        Raises:
            BranchNotFoundError: If either branch does not exist
        """
        async with self._repository.transaction() as tx:
            first = await require_branch(tx, document_id, branch_a)
            second = await require_branch(tx, document_id, branch_b)

            ancestry_a = await _ancestry(tx, document_id, first)
            ancestry_b = await _ancestry(tx, document_id, second)

            can_merge = branch_a != branch_b and can_fast_forward(
                first,
                await tx.get_head(document_id, branch_a),
                await tx.get_head(document_id, branch_b),
            )

        comparison = BranchComparison(
            ahead=len(ancestry_a - ancestry_b),
            behind=len(ancestry_b - ancestry_a),
            can_merge=can_merge,
        )
        logger.debug(
            f"Compared branches '{branch_a}' and '{branch_b}' of document {document_id}: "
            f"ahead={comparison.ahead} behind={comparison.behind}"
        )
        return comparison
