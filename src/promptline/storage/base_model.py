"""Declarative base shared by the history ORM tables.

The branch, revision and revision-counter tables in promptline.storage.models
all inherit from Base, so Database.create_tables() and drop_tables() manage
them through one metadata object.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for the history ORM models."""
