"""SQLAlchemy ORM models shared across circulation.

Tables:
- books: Catalog entries with inventory and derived stock
- members: People who borrow books
- audit_logs: One row per write, committed with the write it records
"""

import json
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import CheckConstraint, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..dates import utcnow
from .types import UTCDateTime


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


class Book(Base):
    """Book model - catalog entry with inventory counts."""

    __tablename__ = "books"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    author: Mapped[str] = mapped_column(String(500), nullable=False)
    isbn: Mapped[Optional[str]] = mapped_column(String(13), index=True)

    # Inventory: copies owned, and copies currently on the shelf.
    # stock is derived from active loans and only written by BookStockLedger.
    number_of_copies: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Audit
    created_by_id: Mapped[Optional[str]] = mapped_column(String(36))
    updated_by_id: Mapped[Optional[str]] = mapped_column(String(36))
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("number_of_copies >= 0", name="ck_books_copies_non_negative"),
        CheckConstraint("stock >= 0", name="ck_books_stock_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, title='{self.title}', stock={self.stock})>"


class Member(Base):
    """Member model - people who borrow books."""

    __tablename__ = "members"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(200))
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    def __repr__(self) -> str:
        return f"<Member(id={self.id}, full_name='{self.full_name}')>"


class AuditLog(Base):
    """Audit log entry for a single write."""

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    entity_name: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    created_by_id: Mapped[Optional[str]] = mapped_column(String(36))
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    values: Mapped[Optional[str]] = mapped_column(Text)  # JSON object

    def get_values(self) -> dict[str, Any]:
        """Get recorded values as dict."""
        if self.values:
            return json.loads(self.values)
        return {}

    def set_values(self, values: dict[str, Any]) -> None:
        """Set recorded values from dict."""
        self.values = json.dumps(values, default=str) if values else None
