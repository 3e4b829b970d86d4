"""Storage layer for promptline persistence.

This package provides SQLAlchemy engine/session management and the ORM
tables backing the SQL history repository.
"""

from promptline.storage.base_model import Base
from promptline.storage.database import Database, DatabaseConfig

__all__ = [
    "Base",
    "Database",
    "DatabaseConfig",
]
