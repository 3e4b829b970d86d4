"""Tests for per-document locks."""

import asyncio

from promptline.history.locks import DocumentLocks


class TestDocumentLocks:
    """Tests for DocumentLocks."""

    def test_same_document_shares_a_lock(self) -> None:
        """Repeated lookups should return the same lock while it is referenced."""
        locks = DocumentLocks()

        lock = locks.get("doc-1")

        assert locks.get("doc-1") is lock
        assert locks.get("doc-2") is not lock

    async def test_hold_marks_document_locked(self) -> None:
        """A held lock should be reported as locked until released."""
        locks = DocumentLocks()

        async with locks.hold("doc-1"):
            assert locks.get("doc-1").locked()
            assert not locks.get("doc-2").locked()

        assert not locks.get("doc-1").locked()

    async def test_hold_serializes_same_document(self) -> None:
        """Blocks holding the same document's lock should never overlap."""
        locks = DocumentLocks()
        events: list[str] = []

        async def worker(name: str) -> None:
            async with locks.hold("doc-1"):
                events.append(f"{name}-start")
                await asyncio.sleep(0.01)
                events.append(f"{name}-end")

        await asyncio.gather(worker("a"), worker("b"))

        assert events in (
            ["a-start", "a-end", "b-start", "b-end"],
            ["b-start", "b-end", "a-start", "a-end"],
        )

    async def test_different_documents_run_concurrently(self) -> None:
        """Holding one document's lock should not block another document."""
        locks = DocumentLocks()

        async with locks.hold("doc-1"):
            await asyncio.wait_for(self._acquire(locks, "doc-2"), timeout=1)

    @staticmethod
    async def _acquire(locks: DocumentLocks, document_id: str) -> None:
        async with locks.hold(document_id):
            pass

    def test_unreferenced_locks_are_dropped(self) -> None:
        """Locks nobody references should leave the registry."""
        locks = DocumentLocks()
        locks.get("doc-1")

        assert "doc-1" not in locks._locks
