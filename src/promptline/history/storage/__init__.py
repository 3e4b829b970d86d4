"""History storage implementations.

This package provides the repository protocol and its in-memory and SQL
implementations for revisions and branches.
"""

from promptline.history.storage.memory import InMemoryHistoryRepository
from promptline.history.storage.repository import HistoryRepository, HistoryTransaction
from promptline.history.storage.sql import SqlHistoryRepository

__all__ = [
    "HistoryRepository",
    "HistoryTransaction",
    "InMemoryHistoryRepository",
    "SqlHistoryRepository",
]
