"""SQLAlchemy ORM models for persistence.

This module defines the database tables backing the SQL history repository:
branches, revisions, and the per-document revision counters.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKeyConstraint,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from promptline.storage.base_model import Base


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BranchModel(Base):
    """ORM model for document branches.

    At most one branch per document may be active; a partial unique index
    enforces it at the database level.

    Attributes:
        id: Surrogate key, also used as a creation-order tiebreaker
        document_id: Document identifier
        name: Branch name, unique per document
        created_at: Timestamp when the branch was created
        origin_revision_number: Revision the branch was forked from
        is_active: Whether this is the document's active branch
    """

    __tablename__ = "history_branches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    document_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utc_now
    )
    origin_revision_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("document_id", "name", name="uq_history_branches_document_name"),
        Index(
            "uq_history_branches_one_active",
            "document_id",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )


class RevisionModel(Base):
    """ORM model for immutable revisions.

    Attributes:
        id: Surrogate key
        document_id: Document identifier
        revision_number: Document-wide revision number
        branch: Name of the branch the revision belongs to
        content: Revision content
        structured_metadata: Metadata mapping (stored in the "metadata" column)
        parent_revision_number: Head of the branch when the revision was created
        merged_from_revision_number: Source head copied by a merge
        change_reason: Optional description of the change
        created_at: Timestamp when the revision was created
    """

    __tablename__ = "history_revisions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    document_id: Mapped[str] = mapped_column(String(255), nullable=False)
    revision_number: Mapped[int] = mapped_column(Integer, nullable=False)
    branch: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    structured_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )
    parent_revision_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    merged_from_revision_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    change_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utc_now
    )

    __table_args__ = (
        UniqueConstraint(
            "document_id", "revision_number", name="uq_history_revisions_document_number"
        ),
        ForeignKeyConstraint(
            ["document_id", "branch"],
            ["history_branches.document_id", "history_branches.name"],
            name="fk_history_revisions_branch",
        ),
        Index("idx_history_revisions_branch", "document_id", "branch", "revision_number"),
    )


class RevisionCounterModel(Base):
    """ORM model holding the last allocated revision number per document.

    Incremented with a single UPDATE inside the writing transaction, so two
    writers can never be handed the same number.
    """

    __tablename__ = "history_revision_counters"

    document_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    last_revision_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
