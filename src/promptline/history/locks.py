"""Per-document locks for serializing history mutations.

Revision numbering and the single-active-branch rule both depend on mutations
of one document never interleaving. Every mutating operation holds the
document's lock for its whole transaction.
"""

import asyncio
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator


class DocumentLocks:
    """Registry of asyncio locks keyed by document ID.

    Locks are held in a weak-value mapping, so a document's lock is dropped
    once no coroutine holds or waits on it.

    Example:
        >>> locks = DocumentLocks()
        >>> async with locks.hold("doc-1"):
        ...     ...  # mutate doc-1
    """

    def __init__(self) -> None:
        """Initialize an empty lock registry."""
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def get(self, document_id: str) -> asyncio.Lock:
        """Return the lock for a document, creating it if needed.

        Args:
            document_id: Document identifier

        Returns:
            The document's lock
        """
        lock = self._locks.get(document_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[document_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, document_id: str) -> AsyncIterator[None]:
        """Hold the document's lock for the duration of the block.

        Args:
            document_id: Document identifier
        """
        lock = self.get(document_id)
        async with lock:
            yield
