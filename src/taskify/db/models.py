"""SQLAlchemy ORM models — users and tasks stored as documents.

Learn: The client owns the shape of its records, so each row keeps the
submitted body verbatim in a JSON column (`fields`). Only the keys the
backend itself relies on are promoted to real columns:

- users.email: unique, drives idempotent user creation
- tasks.sort_order: numeric copy of the task's `order`, drives listing
- tasks.last_modified: epoch milliseconds, stamped on every update

JSON maps to JSONB on PostgreSQL and plain JSON elsewhere (SQLite in tests).
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, BigInteger, DateTime, Float, String, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

Document = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


class User(Base):
    """A user profile keyed by email."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    fields: Mapped[dict[str, Any]] = mapped_column(Document, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    def to_document(self) -> dict[str, Any]:
        return {**self.fields, "id": str(self.id), "email": self.email}


class Task(Base):
    """A task card. Everything but id/order/lastModified is opaque."""

    __tablename__ = "tasks"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    sort_order: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    last_modified: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    fields: Mapped[dict[str, Any]] = mapped_column(Document, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    def to_document(self) -> dict[str, Any]:
        doc = {**self.fields, "id": str(self.id)}
        if self.last_modified is not None:
            doc["lastModified"] = self.last_modified
        return doc
