"""Revision store for document history."""

from promptline.history.revisions.store import RevisionStore

__all__ = ["RevisionStore"]
