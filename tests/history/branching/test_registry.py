"""Tests for BranchRegistry class."""

import asyncio

import pytest

from promptline.history.branching.registry import BranchRegistry
from promptline.history.enums import BranchErrorReason
from promptline.history.errors import (
    BranchAlreadyExistsError,
    BranchError,
    BranchNotFoundError,
    NotFoundError,
)
from promptline.history.locks import DocumentLocks
from promptline.history.models import Branch
from promptline.history.revisions.store import RevisionStore
from promptline.history.storage.repository import HistoryRepository


@pytest.fixture
def locks() -> DocumentLocks:
    """Create a shared lock registry."""
    return DocumentLocks()


@pytest.fixture
def store(repository: HistoryRepository, locks: DocumentLocks) -> RevisionStore:
    """Create a revision store instance."""
    return RevisionStore(repository, locks)


@pytest.fixture
def registry(repository: HistoryRepository, locks: DocumentLocks) -> BranchRegistry:
    """Create a branch registry instance."""
    return BranchRegistry(repository, locks)


@pytest.fixture
async def document(store: RevisionStore) -> str:
    """Document with two revisions on main."""
    await store.create_revision("doc-1", "main", "v1")
    await store.create_revision("doc-1", "main", "v2")
    return "doc-1"


async def _active_names(registry: BranchRegistry, document_id: str) -> list[str]:
    return [b.name for b in await registry.list_branches(document_id) if b.is_active]


class TestCreateBranch:
    """Tests for create_branch method."""

    async def test_defaults_to_main_head(self, registry: BranchRegistry, document: str) -> None:
        """Without a fork point the branch should start at main's head."""
        branch = await registry.create_branch(document, "feat")

        assert branch.name == "feat"
        assert branch.origin_revision_number == 2
        assert branch.is_active is False

    async def test_explicit_fork_point(self, registry: BranchRegistry, document: str) -> None:
        """An explicit fork revision should become the origin."""
        branch = await registry.create_branch(document, "feat", from_revision_number=1)

        assert branch.origin_revision_number == 1

    async def test_duplicate_name(self, registry: BranchRegistry, document: str) -> None:
        """A taken name should raise BranchAlreadyExistsError."""
        await registry.create_branch(document, "feat")

        with pytest.raises(BranchAlreadyExistsError):
            await registry.create_branch(document, "feat")

        with pytest.raises(BranchAlreadyExistsError):
            await registry.create_branch(document, "main")

    async def test_missing_fork_revision(self, registry: BranchRegistry, document: str) -> None:
        """An unknown fork revision should raise NotFoundError."""
        with pytest.raises(NotFoundError) as exc_info:
            await registry.create_branch(document, "feat", from_revision_number=42)

        assert exc_info.value.revision_number == 42

    async def test_main_without_revisions(self, registry: BranchRegistry) -> None:
        """Forking from an empty main should raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await registry.create_branch("doc-1", "feat")

    async def test_concurrent_duplicate_creation(
        self, registry: BranchRegistry, document: str
    ) -> None:
        """Only one of two concurrent creations of the same name should win."""
        results = await asyncio.gather(
            registry.create_branch(document, "feat"),
            registry.create_branch(document, "feat"),
            return_exceptions=True,
        )

        assert sum(isinstance(r, Branch) for r in results) == 1
        assert sum(isinstance(r, BranchAlreadyExistsError) for r in results) == 1


class TestListAndGetBranches:
    """Tests for list_branches and get_branch."""

    async def test_creation_order(self, registry: BranchRegistry, document: str) -> None:
        """Branches should be listed oldest first."""
        await registry.create_branch(document, "b")
        await registry.create_branch(document, "a")

        names = [b.name for b in await registry.list_branches(document)]

        assert names == ["main", "b", "a"]

    async def test_unknown_document(self, registry: BranchRegistry) -> None:
        """A document without history has no branches."""
        assert await registry.list_branches("doc-404") == []

    async def test_get_branch(self, registry: BranchRegistry, document: str) -> None:
        """get_branch should return the named branch or raise."""
        await registry.create_branch(document, "feat", from_revision_number=1)

        assert (await registry.get_branch(document, "feat")).origin_revision_number == 1
        with pytest.raises(BranchNotFoundError):
            await registry.get_branch(document, "missing")


class TestActiveBranch:
    """Tests for get_active_branch and switch_branch."""

    async def test_main_is_active_initially(self, registry: BranchRegistry, document: str) -> None:
        """The implicit main branch should start out active."""
        assert (await registry.get_active_branch(document)).name == "main"

    async def test_switch_branch(self, registry: BranchRegistry, document: str) -> None:
        """Switching should leave exactly the target active."""
        await registry.create_branch(document, "feat")
        await registry.create_branch(document, "other")

        switched = await registry.switch_branch(document, "feat")

        assert switched.is_active is True
        assert (await registry.get_active_branch(document)).name == "feat"
        assert await _active_names(registry, document) == ["feat"]

    async def test_switch_to_active_branch_is_a_no_op(
        self, registry: BranchRegistry, document: str
    ) -> None:
        """Switching to the already active branch should keep it active."""
        await registry.switch_branch(document, "main")

        assert await _active_names(registry, document) == ["main"]

    async def test_switch_to_missing_branch(self, registry: BranchRegistry, document: str) -> None:
        """Switching to an unknown branch should fail and keep the active branch."""
        with pytest.raises(BranchNotFoundError):
            await registry.switch_branch(document, "missing")

        assert await _active_names(registry, document) == ["main"]

    async def test_concurrent_switches_keep_one_active(
        self, registry: BranchRegistry, document: str
    ) -> None:
        """Racing switches should always leave exactly one active branch."""
        for name in ("a", "b", "c"):
            await registry.create_branch(document, name)

        await asyncio.gather(
            *(registry.switch_branch(document, name) for name in ("a", "b", "c", "main") * 3)
        )

        assert len(await _active_names(registry, document)) == 1

    async def test_self_heals_to_main(
        self, registry: BranchRegistry, repository: HistoryRepository, document: str
    ) -> None:
        """With no active flag, main should be flagged, persisted and returned."""
        await registry.create_branch(document, "feat")
        async with repository.transaction() as tx:
            await tx.set_active_branch(document, "feat")
            await tx.delete_branch(document, "feat")

        healed = await registry.get_active_branch(document)

        assert healed.name == "main"
        assert healed.is_active is True
        assert await _active_names(registry, document) == ["main"]

    async def test_no_active_and_no_main(self, registry: BranchRegistry) -> None:
        """Without any branches the active branch cannot be resolved."""
        with pytest.raises(BranchNotFoundError) as exc_info:
            await registry.get_active_branch("doc-404")

        assert exc_info.value.branch_name == "main"


class TestDeleteBranch:
    """Tests for delete_branch method."""

    async def test_delete_empty_branch(self, registry: BranchRegistry, document: str) -> None:
        """An empty branch should be removed from the listing."""
        await registry.create_branch(document, "feat")

        await registry.delete_branch(document, "feat")

        assert [b.name for b in await registry.list_branches(document)] == ["main"]

    async def test_missing_branch(self, registry: BranchRegistry, document: str) -> None:
        """Deleting an unknown branch should raise BranchNotFoundError."""
        with pytest.raises(BranchNotFoundError):
            await registry.delete_branch(document, "missing")

    async def test_only_branch(self, registry: BranchRegistry, document: str) -> None:
        """The sole branch of a document cannot be deleted."""
        with pytest.raises(BranchError) as exc_info:
            await registry.delete_branch(document, "main")

        assert exc_info.value.reason == BranchErrorReason.ONLY_BRANCH

    async def test_branch_with_revisions(
        self, registry: BranchRegistry, store: RevisionStore, document: str
    ) -> None:
        """A branch holding revisions cannot be deleted."""
        await registry.create_branch(document, "feat")
        await store.create_revision(document, "feat", "x")
        await store.create_revision(document, "feat", "y")

        with pytest.raises(BranchError) as exc_info:
            await registry.delete_branch(document, "feat")

        assert exc_info.value.reason == BranchErrorReason.UNMERGED_CHANGES
        assert exc_info.value.revision_count == 2
        assert "(2 revisions)" in exc_info.value.message
        assert len(await registry.list_branches(document)) == 2

    async def test_deleting_active_branch_reactivates_main(
        self, registry: BranchRegistry, document: str
    ) -> None:
        """Deleting the active branch should move the flag to main."""
        await registry.create_branch(document, "other")
        await registry.create_branch(document, "feat")
        await registry.switch_branch(document, "feat")

        await registry.delete_branch(document, "feat")

        assert await _active_names(registry, document) == ["main"]

    async def test_deleting_active_main_activates_oldest(
        self, registry: BranchRegistry, repository: HistoryRepository
    ) -> None:
        """Deleting an empty active main should activate the oldest remaining branch."""
        async with repository.transaction() as tx:
            await tx.add_branch(Branch(document_id="doc-1", name="main", is_active=True))
        async with repository.transaction() as tx:
            await tx.add_branch(Branch(document_id="doc-1", name="first"))
        async with repository.transaction() as tx:
            await tx.add_branch(Branch(document_id="doc-1", name="second"))

        await registry.delete_branch("doc-1", "main")

        assert await _active_names(registry, "doc-1") == ["first"]

    async def test_deleting_inactive_branch_keeps_active(
        self, registry: BranchRegistry, document: str
    ) -> None:
        """Deleting an inactive branch should not touch the active flag."""
        await registry.create_branch(document, "feat")
        await registry.switch_branch(document, "feat")
        await registry.create_branch(document, "other")

        await registry.delete_branch(document, "other")

        assert await _active_names(registry, document) == ["feat"]
