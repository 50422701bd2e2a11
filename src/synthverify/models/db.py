"""
SQLAlchemy database models for SynthVerify.

These models back the item document store, the final verified dataset and
the curation session records that embed analytics snapshots.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Float, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class CurationSession(Base):
    """A curation session; owns one item collection and its analytics."""

    __tablename__ = "curation_sessions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Last persisted AnalyticsSnapshot (JSON), None until first computation
    analytics: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<CurationSession(id={self.id}, name={self.name!r})>"


class StoredItem(Base):
    """Authoritative persisted version of an item (backing document store)."""

    __tablename__ = "items"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    session_id: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, index=True
    )

    # Item fields other than id, as sent by the save coordinator or importer
    payload: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def to_record(self) -> dict:
        """Flatten to a plain item record (payload plus id)."""
        return {**(self.payload or {}), "id": self.id}

    def __repr__(self) -> str:
        return f"<StoredItem(id={self.id!r}, session_id={self.session_id!r})>"


class FinalItem(Base):
    """Row of a verified final dataset collection."""

    __tablename__ = "final_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    collection_name: Mapped[str] = mapped_column(String(255), nullable=False)
    payload: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    final_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    verified_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (Index("idx_final_items_collection", "collection_name"),)

    def __repr__(self) -> str:
        return (
            f"<FinalItem(id={self.id}, collection_name={self.collection_name!r}, "
            f"final_score={self.final_score})>"
        )
