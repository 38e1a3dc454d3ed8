"""Persistence of loan records.

Every method accepts an optional session. Writes made with a caller's
session are flushed but not committed, so they land or vanish together
with whatever else that session does.
"""

from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, load_only

from ..db.models import Book
from ..db.schemas import AuditAction
from ..db.sqlite import Database
from ..errors import NotFoundError
from .models import Loan, status_clause
from .schemas import (
    AutocompleteOption,
    DateRange,
    LoanCreate,
    LoanFilter,
    LoanPage,
    LoanQuery,
    LoanUpdate,
)

if TYPE_CHECKING:
    from ..auth import CurrentUser

ENTITY_NAME = "loan"

# Read by Loan.status, so loaded even when not requested
STATUS_ATTRIBUTES = ("due_date", "return_date")


def _audit_values(loan: Loan) -> dict[str, Any]:
    return {
        "book_id": loan.book_id,
        "member_id": loan.member_id,
        "issue_date": loan.issue_date,
        "due_date": loan.due_date,
        "return_date": loan.return_date,
        "import_hash": loan.import_hash,
    }


def _apply_range(stmt, column, date_range: Optional[DateRange]):
    if date_range is None:
        return stmt
    if date_range.start is not None:
        stmt = stmt.where(column >= date_range.start)
    if date_range.end is not None:
        stmt = stmt.where(column <= date_range.end)
    return stmt


def _apply_filter(stmt, loan_filter: LoanFilter):
    if loan_filter.ids is not None:
        stmt = stmt.where(Loan.id.in_(loan_filter.ids))
    if loan_filter.book:
        stmt = stmt.where(Loan.book_id == loan_filter.book)
    if loan_filter.member:
        stmt = stmt.where(Loan.member_id == loan_filter.member)
    if loan_filter.status:
        stmt = stmt.where(status_clause(loan_filter.status))
    stmt = _apply_range(stmt, Loan.issue_date, loan_filter.issue_date_range)
    stmt = _apply_range(stmt, Loan.due_date, loan_filter.due_date_range)
    stmt = _apply_range(stmt, Loan.return_date, loan_filter.return_date_range)
    return stmt


def _order_clause(order_by: Optional[str]):
    name, _, direction = (order_by or "created_at_DESC").rpartition("_")
    column = getattr(Loan, name)
    return column.desc() if direction == "DESC" else column.asc()


class LoanRepository:
    """Loan record store."""

    def __init__(self, db: Database):
        """Initialize repository.

        Args:
            db: Database instance
        """
        self.db = db

    def create(
        self,
        data: LoanCreate,
        due_date,
        session: Session,
        current_user: Optional["CurrentUser"] = None,
    ) -> Loan:
        """Insert a loan inside the caller's session."""
        user_id = current_user.id if current_user else None
        loan = Loan(
            book_id=data.book_id,
            member_id=data.member_id,
            issue_date=data.issue_date,
            due_date=due_date,
            import_hash=data.import_hash,
            created_by_id=user_id,
            updated_by_id=user_id,
        )
        session.add(loan)
        session.flush()

        self.db.audit(session, ENTITY_NAME, loan.id, AuditAction.CREATE, current_user, _audit_values(loan))
        return loan

    def update(
        self,
        loan_id: str,
        data: LoanUpdate,
        session: Session,
        current_user: Optional["CurrentUser"] = None,
        language: Optional[str] = None,
    ) -> Loan:
        """Apply a partial update inside the caller's session.

        Raises:
            NotFoundError: If the loan does not exist
        """
        loan = session.get(Loan, loan_id)
        if loan is None:
            raise NotFoundError("Loan", loan_id, language)

        for name, value in data.model_dump(exclude_unset=True).items():
            setattr(loan, name, value)
        loan.updated_by_id = current_user.id if current_user else None
        session.flush()

        self.db.audit(session, ENTITY_NAME, loan.id, AuditAction.UPDATE, current_user, _audit_values(loan))
        return loan

    def destroy(
        self,
        loan_id: str,
        session: Session,
        current_user: Optional["CurrentUser"] = None,
        language: Optional[str] = None,
    ) -> None:
        """Delete a loan inside the caller's session.

        Raises:
            NotFoundError: If the loan does not exist
        """
        loan = session.get(Loan, loan_id)
        if loan is None:
            raise NotFoundError("Loan", loan_id, language)

        values = _audit_values(loan)
        session.delete(loan)
        session.flush()

        self.db.audit(session, ENTITY_NAME, loan_id, AuditAction.DELETE, current_user, values)

    def find_by_id(self, loan_id: str, session: Optional[Session] = None) -> Optional[Loan]:
        """Get a loan by ID."""

        def _get(s: Session) -> Optional[Loan]:
            return s.get(Loan, loan_id)

        if session:
            return _get(session)
        else:
            with self.db.get_session() as s:
                loan = _get(s)
                if loan:
                    self.detach(s, loan)
                return loan

    def count(self, loan_filter: Optional[LoanFilter] = None, import_hash: Optional[str] = None,
              session: Optional[Session] = None) -> int:
        """Count loans matching a filter and/or an import hash."""

        def _count(s: Session) -> int:
            stmt = select(func.count()).select_from(Loan)
            if loan_filter:
                stmt = _apply_filter(stmt, loan_filter)
            if import_hash is not None:
                stmt = stmt.where(Loan.import_hash == import_hash)
            return s.execute(stmt).scalar() or 0

        if session:
            return _count(session)
        else:
            with self.db.get_session() as s:
                return _count(s)

    def find_all_autocomplete(
        self,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        session: Optional[Session] = None,
    ) -> list[AutocompleteOption]:
        """Find loans whose id starts with, or whose book title contains, the search text."""

        def _find(s: Session) -> list[AutocompleteOption]:
            stmt = select(Loan).join(Book, Loan.book_id == Book.id)
            if search:
                stmt = stmt.where(
                    or_(
                        Loan.id.startswith(search),
                        func.lower(Book.title).contains(search.lower()),
                    )
                )
            stmt = stmt.order_by(Book.title, Loan.issue_date)
            if limit:
                stmt = stmt.limit(limit)

            loans = s.execute(stmt).unique().scalars().all()
            return [
                AutocompleteOption(
                    id=loan.id,
                    label=f"{loan.book.title} - {loan.member.full_name} "
                    f"({loan.issue_date.date().isoformat()})",
                )
                for loan in loans
            ]

        if session:
            return _find(session)
        else:
            with self.db.get_session() as s:
                return _find(s)

    def find_and_count_all(self, query: LoanQuery, session: Optional[Session] = None) -> LoanPage:
        """Search loans, returning the total count and one page of rows."""

        def _find(s: Session) -> LoanPage:
            count_stmt = _apply_filter(select(func.count()).select_from(Loan), query.filter)
            total = s.execute(count_stmt).scalar() or 0

            stmt = _apply_filter(select(Loan), query.filter)
            stmt = stmt.order_by(_order_clause(query.order_by), Loan.id)
            if query.requested_attributes:
                names = dict.fromkeys((*query.requested_attributes, *STATUS_ATTRIBUTES))
                stmt = stmt.options(load_only(*(getattr(Loan, name) for name in names)))
            if query.limit:
                stmt = stmt.limit(query.limit)
            if query.offset:
                stmt = stmt.offset(query.offset)

            rows = list(s.execute(stmt).unique().scalars().all())
            return LoanPage(count=total, rows=rows)

        if session:
            return _find(session)
        else:
            with self.db.get_session() as s:
                page = _find(s)
                for loan in page.rows:
                    self.detach(s, loan)
                return page

    @staticmethod
    def detach(session: Session, loan: Loan) -> Loan:
        """Detach a loan and its book and member from the session.

        The returned object keeps its loaded state after the session
        commits or closes.
        """
        for obj in (loan.book, loan.member, loan):
            if obj is not None and obj in session:
                session.expunge(obj)
        return loan
