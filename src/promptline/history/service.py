"""HistoryService - entry point for document history operations.

This module provides the HistoryService facade used by the outer command
layer. It wires the revision store, branch registry, diff engine and the
rollback and merge operators around one repository and one set of
per-document locks, and instruments every call with structured logs and
Prometheus metrics.
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from promptline.config import HistoryConfig, get_default_config
from promptline.history.branching.registry import BranchRegistry
from promptline.history.diff.engine import DiffEngine
from promptline.history.diff.format import format_side_by_side, format_unified
from promptline.history.documents import DocumentLookup
from promptline.history.enums import DEFAULT_BRANCH
from promptline.history.errors import HistoryError
from promptline.history.locks import DocumentLocks
from promptline.history.models import (
    Branch,
    BranchComparison,
    Revision,
    RevisionDiff,
    SideBySideDiff,
    TextDiff,
)
from promptline.history.operations.merge import MergeOperator
from promptline.history.operations.rollback import RollbackOperator
from promptline.history.revisions.store import RevisionStore
from promptline.history.storage.memory import InMemoryHistoryRepository
from promptline.history.storage.repository import HistoryRepository
from promptline.history.storage.sql import SqlHistoryRepository
from promptline.observability.logging import (
    clear_operation_id,
    get_logger,
    set_operation_id,
    setup_logging,
)
from promptline.observability.metrics import get_metrics_collector
from promptline.storage.database import Database, DatabaseConfig
from promptline.storage.model_registry import register_all_models

logger = get_logger(__name__)


class HistoryService:
    """Facade over the document history components.

    Every public coroutine runs under a fresh operation ID, is timed, and is
    counted in history_operations_total with status "success" or the error
    code of the failure. Errors propagate to the caller unchanged.

    Attributes:
        revisions: Revision store
        branches: Branch registry
        diffs: Diff engine
        rollbacks: Rollback operator
        merges: Merge operator
        database: Database backing the repository, None for in-memory storage

    Example:
        >>> service = HistoryService()
        >>> first = await service.create_revision("doc-1", "main", "hello")
        >>> await service.create_branch("doc-1", "feat", first.revision_number)
        >>> await service.create_revision("doc-1", "feat", "hello world")
        >>> merged = await service.merge_branch("doc-1", "feat", "main")
        >>> merged.content
        'hello world'
    """

    def __init__(
        self,
        repository: Optional[HistoryRepository] = None,
        documents: Optional[DocumentLookup] = None,
        context_lines: int = 3,
        ignore_whitespace: bool = False,
        database: Optional[Database] = None,
    ) -> None:
        """Initialize the service.

        Args:
            repository: Storage repository (defaults to InMemoryHistoryRepository)
            documents: Optional document existence check
            context_lines: Default number of diff context lines
            ignore_whitespace: Default diff whitespace handling
            database: Database to close with the service, if any
        """
        self._repository = repository if repository else InMemoryHistoryRepository()
        self._locks = DocumentLocks()
        self.database = database

        self.revisions = RevisionStore(self._repository, self._locks, documents)
        self.branches = BranchRegistry(self._repository, self._locks, documents)
        self.diffs = DiffEngine(
            self._repository, context_lines=context_lines, ignore_whitespace=ignore_whitespace
        )
        self.rollbacks = RollbackOperator(self._repository, self._locks, documents)
        self.merges = MergeOperator(self._repository, self._locks, documents)

    @asynccontextmanager
    async def _track(self, operation: str, document_id: str) -> AsyncGenerator[None, None]:
        """Run one operation under a new operation ID, logging and timing it."""
        set_operation_id(str(uuid.uuid4()))
        start_time = time.perf_counter()
        try:
            yield
        except HistoryError as e:
            self._finish(operation, document_id, start_time, status=e.code, error=e.message)
            raise
        except Exception as e:
            self._finish(operation, document_id, start_time, status="error", error=str(e))
            raise
        else:
            self._finish(operation, document_id, start_time, status="success")
        finally:
            clear_operation_id()

    def _finish(
        self,
        operation: str,
        document_id: str,
        start_time: float,
        status: str,
        error: Optional[str] = None,
    ) -> None:
        duration_seconds = time.perf_counter() - start_time
        get_metrics_collector().record_operation(operation, status, duration_seconds)

        if error is None:
            logger.info(
                "history_operation_completed",
                operation=operation,
                document_id=document_id,
                duration_ms=round(duration_seconds * 1000, 3),
            )
        else:
            logger.warning(
                "history_operation_failed",
                operation=operation,
                document_id=document_id,
                status=status,
                error=error,
                duration_ms=round(duration_seconds * 1000, 3),
            )

    # Revisions

    async def create_revision(
        self,
        document_id: str,
        branch: str,
        content: str,
        metadata: Optional[dict[str, Any]] = None,
        change_reason: Optional[str] = None,
    ) -> Revision:
        """Append a new revision to a branch. See RevisionStore.create_revision."""
        async with self._track("create_revision", document_id):
            return await self.revisions.create_revision(
                document_id, branch, content, metadata=metadata, change_reason=change_reason
            )

    async def get_head(self, document_id: str, branch: str = DEFAULT_BRANCH) -> Revision:
        """Retrieve the most recent revision on a branch."""
        async with self._track("get_head", document_id):
            return await self.revisions.get_head(document_id, branch)

    async def get_revision(self, document_id: str, revision_number: int) -> Revision:
        """Retrieve a specific revision of a document."""
        async with self._track("get_revision", document_id):
            return await self.revisions.get_revision(document_id, revision_number)

    async def list_revisions(
        self,
        document_id: str,
        branch: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Revision]:
        """List revisions of a document, most recent first."""
        async with self._track("list_revisions", document_id):
            return await self.revisions.list_revisions(
                document_id, branch=branch, limit=limit, offset=offset
            )

    # Branches

    async def create_branch(
        self,
        document_id: str,
        name: str,
        from_revision_number: Optional[int] = None,
    ) -> Branch:
        """Create a new, inactive branch. See BranchRegistry.create_branch."""
        async with self._track("create_branch", document_id):
            return await self.branches.create_branch(document_id, name, from_revision_number)

    async def get_branch(self, document_id: str, name: str) -> Branch:
        async with self._track("get_branch", document_id):
            return await self.branches.get_branch(document_id, name)

    async def list_branches(self, document_id: str) -> list[Branch]:
        async with self._track("list_branches", document_id):
            return await self.branches.list_branches(document_id)

    async def get_active_branch(self, document_id: str) -> Branch:
        async with self._track("get_active_branch", document_id):
            return await self.branches.get_active_branch(document_id)

    async def switch_branch(self, document_id: str, name: str) -> Branch:
        async with self._track("switch_branch", document_id):
            return await self.branches.switch_branch(document_id, name)

    async def delete_branch(self, document_id: str, name: str) -> None:
        async with self._track("delete_branch", document_id):
            await self.branches.delete_branch(document_id, name)

    # Diffs

    async def compute_diff(
        self,
        document_id: str,
        from_revision_number: int,
        to_revision_number: int,
        context_lines: Optional[int] = None,
        ignore_whitespace: Optional[bool] = None,
    ) -> RevisionDiff:
        """Compute the diff between two revisions. See DiffEngine.compute_diff."""
        async with self._track("compute_diff", document_id):
            return await self.diffs.compute_diff(
                document_id,
                from_revision_number,
                to_revision_number,
                context_lines=context_lines,
                ignore_whitespace=ignore_whitespace,
            )

    def format_unified(self, diff: TextDiff, header: bool = True) -> str:
        """Render a diff as unified-diff text."""
        return format_unified(diff, header=header)

    def format_side_by_side(self, diff: TextDiff) -> SideBySideDiff:
        """Arrange a diff as side-by-side rows."""
        return format_side_by_side(diff)

    # Rollback and merge

    async def rollback(
        self,
        document_id: str,
        target_revision_number: int,
        branch: Optional[str] = None,
        change_reason: Optional[str] = None,
    ) -> Revision:
        """Restore the content of an earlier revision. See RollbackOperator.rollback."""
        async with self._track("rollback", document_id):
            return await self.rollbacks.rollback(
                document_id, target_revision_number, branch=branch, change_reason=change_reason
            )

    async def merge_branch(
        self,
        document_id: str,
        source_branch: str,
        target_branch: str,
        change_reason: Optional[str] = None,
    ) -> Revision:
        """Fast-forward merge one branch into another. See MergeOperator.merge_branch."""
        async with self._track("merge_branch", document_id):
            return await self.merges.merge_branch(
                document_id, source_branch, target_branch, change_reason=change_reason
            )

    async def compare_branches(
        self, document_id: str, branch_a: str, branch_b: str
    ) -> BranchComparison:
        async with self._track("compare_branches", document_id):
            return await self.merges.compare_branches(document_id, branch_a, branch_b)

    async def close(self) -> None:
        """Dispose of the database engine, if the service owns one."""
        if self.database is not None:
            await self.database.close()


async def create_history_service(
    config: Optional[HistoryConfig] = None,
    documents: Optional[DocumentLookup] = None,
    configure_logging: bool = False,
) -> HistoryService:
    """Build a HistoryService for the configured backend.

    For the "sql" backend the ORM tables are registered and created before
    the service is returned.

    Args:
        config: History configuration (default: get_default_config())
        documents: Optional document existence check
        configure_logging: Whether to apply the config's logging settings

    Returns:
        Ready-to-use HistoryService

    Example:
        >>> config = HistoryConfig(backend="sql")
        >>> service = await create_history_service(config)
        >>> await service.create_revision("doc-1", "main", "hello")
        >>> await service.close()
    """
    config = config or get_default_config()

    if configure_logging:
        setup_logging(log_level=config.log_level, json_logs=config.json_logs)

    database: Optional[Database] = None
    repository: HistoryRepository
    if config.backend == "sql":
        register_all_models()
        database = Database(DatabaseConfig(url=config.database_url, echo=config.database_echo))
        await database.create_tables()
        repository = SqlHistoryRepository(database)
    else:
        repository = InMemoryHistoryRepository()

    logger.info("history_service_created", backend=config.backend)
    return HistoryService(
        repository=repository,
        documents=documents,
        context_lines=config.diff_context_lines,
        ignore_whitespace=config.ignore_whitespace,
        database=database,
    )
