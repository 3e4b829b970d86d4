"""Document existence checks consumed from the outer document store.

Document IDs are opaque foreign keys to the history core. When a lookup is
configured, operations that start or extend a document's history verify the
document exists first.
"""

from typing import Optional, Protocol

from promptline.history.errors import NotFoundError


class DocumentLookup(Protocol):
    """Protocol for the document store's existence check."""

    async def exists(self, document_id: str) -> bool:
        """Check whether a document exists.

        Args:
            document_id: Document identifier

        Returns:
            True if the document exists
        """
        ...


async def ensure_document(documents: Optional[DocumentLookup], document_id: str) -> None:
    """Raise NotFoundError if the lookup reports the document absent.

    Args:
        documents: Optional document lookup; None accepts every document ID
        document_id: Document identifier

    Raises:
        NotFoundError: If the document does not exist
    """
    if documents is not None and not await documents.exists(document_id):
        raise NotFoundError(document_id)
