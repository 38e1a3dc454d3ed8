"""SQLAlchemy models for loans.

Tables:
- loans: Individual loan records
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import ForeignKey, String, and_
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..dates import utcnow
from ..db.models import Base, Book, Member, generate_uuid
from ..db.types import UTCDateTime
from .schemas import LoanStatus


class Loan(Base):
    """Loan model - a book lent to a member."""

    __tablename__ = "loans"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    book_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("books.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    member_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("members.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # Dates
    issue_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    due_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    return_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, index=True)

    # Dedup key for bulk imports
    import_hash: Mapped[Optional[str]] = mapped_column(String(255), unique=True)

    # Audit
    created_by_id: Mapped[Optional[str]] = mapped_column(String(36))
    updated_by_id: Mapped[Optional[str]] = mapped_column(String(36))
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    book: Mapped["Book"] = relationship("Book", lazy="joined")
    member: Mapped["Member"] = relationship("Member", lazy="joined")

    def __repr__(self) -> str:
        return f"<Loan(id={self.id}, book_id={self.book_id}, status={self.status.value})>"

    @property
    def status(self) -> LoanStatus:
        """Status derived from the return and due dates."""
        if self.return_date is not None:
            return LoanStatus.CLOSED
        if self.due_date < utcnow():
            return LoanStatus.OVERDUE
        return LoanStatus.IN_PROGRESS

    @property
    def is_active(self) -> bool:
        """Check if the book is still out on this loan."""
        return self.return_date is None


def status_clause(status: LoanStatus, now: Optional[datetime] = None):
    """SQL criterion matching loans in the given status.

    Mirrors Loan.status so filters and the property agree.
    """
    now = now or utcnow()
    if status == LoanStatus.CLOSED:
        return Loan.return_date.isnot(None)
    if status == LoanStatus.OVERDUE:
        return and_(Loan.return_date.is_(None), Loan.due_date < now)
    return and_(Loan.return_date.is_(None), Loan.due_date >= now)
