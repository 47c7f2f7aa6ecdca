"""SQLAlchemy models (2.x style) for the sql store backend."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, BigInteger, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class ContactSubmission(Base):
    """Contact submissions table. Rows are insert-only."""
    __tablename__ = "contact_submissions"

    # Insertion order; never exposed outside the store.
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Assigned by the ingestion workflow (epoch milliseconds), not the database.
    id: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)
    # Form fields keep whatever JSON value the client sent.
    name: Mapped[Any] = mapped_column(JSON)
    email: Mapped[Any] = mapped_column(JSON)
    service: Mapped[Any] = mapped_column(JSON)
    message: Mapped[Any] = mapped_column(JSON)
    timestamp: Mapped[str] = mapped_column(String(32), nullable=False)

    __table_args__ = (
        Index("ix_contact_submissions_timestamp", "timestamp"),
    )
