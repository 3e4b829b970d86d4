"""SQLAlchemy implementation of the history repository.

This module provides the repository backed by the async SQLAlchemy engine in
promptline.storage. Each transaction maps to one database session, committed
on success and rolled back on error.
"""

import asyncio
import copy
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from promptline.history.errors import BranchNotFoundError
from promptline.history.models import Branch, Revision
from promptline.storage.database import Database
from promptline.storage.models import BranchModel, RevisionCounterModel, RevisionModel


class SqlHistoryRepository:
    """History storage on a relational database.

    SQLite allows a single writer at a time, so on SQLite every transaction
    also holds a repository-wide lock. Other databases rely on the row lock
    taken by the revision counter UPDATE.

    Example:
        >>> db = Database(DatabaseConfig(url="sqlite+aiosqlite:///./history.db"))
        >>> await db.create_tables()
        >>> repository = SqlHistoryRepository(db)
        >>> async with repository.transaction() as tx:
        ...     head = await tx.get_head("doc-1", "main")
    """

    def __init__(self, database: Database) -> None:
        """Initialize repository with a database.

        Args:
            database: Database providing async sessions
        """
        self._database = database
        self._lock: Optional[asyncio.Lock] = asyncio.Lock() if database.is_sqlite else None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["SqlHistoryTransaction"]:
        """Open a transaction on a new database session.

        Yields:
            Transaction bound to the session
        """
        if self._lock is None:
            async with self._database.session() as session:
                yield SqlHistoryTransaction(session)
        else:
            async with self._lock:
                async with self._database.session() as session:
                    yield SqlHistoryTransaction(session)


class SqlHistoryTransaction:
    """Transaction over one AsyncSession.

    Handles conversion between Pydantic domain models and SQLAlchemy ORM
    models.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize transaction with database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    # Revision Operations
    async def next_revision_number(self, document_id: str) -> int:
        """Atomically allocate the next revision number for a document.

        The counter row is created on first use, seeded from any revisions
        already stored for the document.

        Args:
            document_id: Document identifier

        Returns:
            The allocated revision number
        """
        result = await self.session.execute(
            update(RevisionCounterModel)
            .where(RevisionCounterModel.document_id == document_id)
            .values(last_revision_number=RevisionCounterModel.last_revision_number + 1)
        )

        if result.rowcount == 0:
            current_max = await self.session.scalar(
                select(func.max(RevisionModel.revision_number)).where(
                    RevisionModel.document_id == document_id
                )
            )
            next_number = (current_max or 0) + 1
            self.session.add(
                RevisionCounterModel(document_id=document_id, last_revision_number=next_number)
            )
            await self.session.flush()
            return next_number

        next_number = await self.session.scalar(
            select(RevisionCounterModel.last_revision_number).where(
                RevisionCounterModel.document_id == document_id
            )
        )
        return int(next_number)

    async def add_revision(self, revision: Revision) -> Revision:
        """Store a new revision.

        Args:
            revision: The revision to store

        Returns:
            The stored revision
        """
        self.session.add(
            RevisionModel(
                document_id=revision.document_id,
                revision_number=revision.revision_number,
                branch=revision.branch,
                content=revision.content,
                structured_metadata=revision.metadata,
                parent_revision_number=revision.parent_revision_number,
                merged_from_revision_number=revision.merged_from_revision_number,
                change_reason=revision.change_reason,
                created_at=revision.created_at,
            )
        )
        await self.session.flush()
        return revision

    async def get_revision(self, document_id: str, revision_number: int) -> Optional[Revision]:
        """Retrieve a revision by number.

        Args:
            document_id: Document identifier
            revision_number: Revision number to retrieve

        Returns:
            The revision if found, None otherwise
        """
        stmt = select(RevisionModel).where(
            RevisionModel.document_id == document_id,
            RevisionModel.revision_number == revision_number,
        )
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return self._model_to_revision(model) if model else None

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
        stmt = select(RevisionModel).where(RevisionModel.document_id == document_id)
        if branch is not None:
            stmt = stmt.where(RevisionModel.branch == branch)
        stmt = stmt.order_by(RevisionModel.revision_number.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset:
            stmt = stmt.offset(offset)

        result = await self.session.execute(stmt)
        return [self._model_to_revision(model) for model in result.scalars().all()]

    async def count_revisions(self, document_id: str, branch: str) -> int:
        """Count the revisions on a branch.

        Args:
            document_id: Document identifier
            branch: Branch name

        Returns:
            Number of revisions on the branch
        """
        count = await self.session.scalar(
            select(func.count())
            .select_from(RevisionModel)
            .where(RevisionModel.document_id == document_id, RevisionModel.branch == branch)
        )
        return int(count or 0)

    # Branch Operations
    async def add_branch(self, branch: Branch) -> Branch:
        """Store a new branch.

        Args:
            branch: The branch to store

        Returns:
            The stored branch
        """
        self.session.add(
            BranchModel(
                document_id=branch.document_id,
                name=branch.name,
                created_at=branch.created_at,
                origin_revision_number=branch.origin_revision_number,
                is_active=branch.is_active,
            )
        )
        await self.session.flush()
        return branch

    async def get_branch(self, document_id: str, name: str) -> Optional[Branch]:
        """Retrieve a branch by name.

        Args:
            document_id: Document identifier
            name: Branch name

        Returns:
            The branch if found, None otherwise
        """
        stmt = select(BranchModel).where(
            BranchModel.document_id == document_id, BranchModel.name == name
        )
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return self._model_to_branch(model) if model else None

    async def list_branches(self, document_id: str) -> list[Branch]:
        """List branches of a document.

        Args:
            document_id: Document identifier

        Returns:
            List of branches, sorted by created_at ascending
        """
        stmt = (
            select(BranchModel)
            .where(BranchModel.document_id == document_id)
            .order_by(BranchModel.created_at, BranchModel.id)
        )
        result = await self.session.execute(stmt)
        return [self._model_to_branch(model) for model in result.scalars().all()]

    async def get_active_branch(self, document_id: str) -> Optional[Branch]:
        """Retrieve the branch flagged active.

        Args:
            document_id: Document identifier

        Returns:
            The active branch, or None
        """
        stmt = select(BranchModel).where(
            BranchModel.document_id == document_id, BranchModel.is_active.is_(True)
        )
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return self._model_to_branch(model) if model else None

    async def set_active_branch(self, document_id: str, name: str) -> Branch:
        """Clear every active flag of the document, then flag one branch.

        The two UPDATE statements run in order, so the partial unique index
        never sees two active rows.

        Args:
            document_id: Document identifier
            name: Name of the branch to activate

        Returns:
            The activated branch

        Raises:
            BranchNotFoundError: If the branch does not exist
        """
        if await self.get_branch(document_id, name) is None:
            raise BranchNotFoundError(document_id, name)

        await self.session.execute(
            update(BranchModel)
            .where(BranchModel.document_id == document_id)
            .values(is_active=False)
        )
        await self.session.execute(
            update(BranchModel)
            .where(BranchModel.document_id == document_id, BranchModel.name == name)
            .values(is_active=True)
        )

        activated = await self.get_branch(document_id, name)
        assert activated is not None
        return activated

    async def delete_branch(self, document_id: str, name: str) -> bool:
        """Delete a branch record.

        Args:
            document_id: Document identifier
            name: Branch name

        Returns:
            True if deleted, False if not found
        """
        result = await self.session.execute(
            delete(BranchModel).where(
                BranchModel.document_id == document_id, BranchModel.name == name
            )
        )
        return bool(result.rowcount)

    @staticmethod
    def _as_utc(value: datetime) -> datetime:
        """Attach UTC to timestamps returned without timezone (SQLite)."""
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def _model_to_revision(self, model: RevisionModel) -> Revision:
        """Convert ORM model to Pydantic revision.

        Args:
            model: ORM revision model

        Returns:
            Revision
        """
        return Revision(
            document_id=model.document_id,
            revision_number=model.revision_number,
            branch=model.branch,
            content=model.content,
            metadata=copy.deepcopy(model.structured_metadata or {}),
            parent_revision_number=model.parent_revision_number,
            merged_from_revision_number=model.merged_from_revision_number,
            change_reason=model.change_reason,
            created_at=self._as_utc(model.created_at),
        )

    def _model_to_branch(self, model: BranchModel) -> Branch:
        """Convert ORM model to Pydantic branch.

        Args:
            model: ORM branch model

        Returns:
            Branch
        """
        return Branch(
            document_id=model.document_id,
            name=model.name,
            created_at=self._as_utc(model.created_at),
            origin_revision_number=model.origin_revision_number,
            is_active=model.is_active,
        )
