"""SQLAlchemy declarative base for all ORM models."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import JSON


class Base(DeclarativeBase):
    """Base class for all database models."""


class CatalogItemModel(Base):
    """ORM model for catalog records.

    `*_key` columns hold the normalized identity; the unique constraint on
    them is what makes concurrent inserts of one item collide.
    """

    __tablename__ = "catalog_items"

    item_id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    keywords: Mapped[str] = mapped_column(String, nullable=False, default="")
    item_type: Mapped[str] = mapped_column(String, nullable=False)

    name_key: Mapped[str] = mapped_column(String, nullable=False)
    keywords_key: Mapped[str] = mapped_column(String, nullable=False)
    type_key: Mapped[str] = mapped_column(String, nullable=False)

    flags: Mapped[list] = mapped_column(JSON, default=list)
    stats: Mapped[dict] = mapped_column(JSON, nullable=False)
    ego: Mapped[str | None] = mapped_column(String, nullable=True)
    is_artifact: Mapped[bool] = mapped_column(Boolean, default=False)
    raw: Mapped[list] = mapped_column(JSON, default=list)

    submitted_by: Mapped[str | None] = mapped_column(String, nullable=True)
    dropped_by: Mapped[str | None] = mapped_column(String, nullable=True)
    worn: Mapped[list] = mapped_column(JSON, default=list)

    flagged_for_review: Mapped[bool] = mapped_column(Boolean, default=False)
    duplicate_of: Mapped[str | None] = mapped_column(String, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("name_key", "keywords_key", "type_key", name="uq_catalog_identity"),
        Index("idx_catalog_type", "type_key"),
    )
    __mapper_args__ = {"version_id_col": version}


class SubmissionModel(Base):
    """ORM model for submission events. Insert-only."""

    __tablename__ = "submissions"

    event_id: Mapped[str] = mapped_column(String, primary_key=True)
    # Non-owning reference: events outlive a deleted catalog row.
    item_id: Mapped[str] = mapped_column(String, nullable=False)
    name_key: Mapped[str] = mapped_column(String, nullable=False)
    keywords_key: Mapped[str] = mapped_column(String, nullable=False)
    type_key: Mapped[str] = mapped_column(String, nullable=False)

    submitter_key: Mapped[str] = mapped_column(String, nullable=False)
    submitter_name: Mapped[str | None] = mapped_column(String, nullable=True)
    user_id: Mapped[str | None] = mapped_column(String, nullable=True)
    ip_hash: Mapped[str | None] = mapped_column(String, nullable=True)
    raw: Mapped[list] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        Index("idx_submissions_item", "item_id"),
        Index("idx_submissions_submitter", "submitter_key"),
        Index("idx_submissions_user", "user_id"),
    )


class ContributorModel(Base):
    """ORM model for per-submitter running totals."""

    __tablename__ = "contributors"

    submitter_key: Mapped[str] = mapped_column(String, primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String, nullable=True)
    user_id: Mapped[str | None] = mapped_column(String, nullable=True)
    submission_count: Mapped[int] = mapped_column(Integer, default=0)
    first_seen_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    last_seen_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class ContributionModel(Base):
    """ORM model for the set of items each submitter has contributed to."""

    __tablename__ = "contributions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    submitter_key: Mapped[str] = mapped_column(
        String, ForeignKey("contributors.submitter_key", ondelete="CASCADE"), nullable=False
    )
    item_id: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("submitter_key", "item_id", name="uq_contribution"),
    )


class SuggestionModel(Base):
    """ORM model for player-proposed corrections."""

    __tablename__ = "suggestions"

    suggestion_id: Mapped[str] = mapped_column(String, primary_key=True)
    item_id: Mapped[str] = mapped_column(String, nullable=False)
    proposer: Mapped[str | None] = mapped_column(String, nullable=True)
    note: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (Index("idx_suggestions_item", "item_id"),)
