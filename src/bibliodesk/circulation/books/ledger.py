"""Book stock ledger.

Book.stock is a cached value, never adjusted by increments: it is
recomputed from the number of copies owned minus the loans still out.
"""

import logging
from typing import TYPE_CHECKING, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..db.models import Book
from ..db.schemas import AuditAction, BookCreate
from ..db.sqlite import Database, get_db
from ..errors import NotFoundError, ValidationError

if TYPE_CHECKING:
    from ..auth import CurrentUser

logger = logging.getLogger(__name__)

ENTITY_NAME = "book"


class BookStockLedger:
    """Owns book inventory and the only writer of Book.stock."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize ledger.

        Args:
            db: Database instance
        """
        self.db = db or get_db()

    def find_by_id(self, book_id: str, session: Optional[Session] = None) -> Optional[Book]:
        """Get a book by ID."""

        def _get(s: Session) -> Optional[Book]:
            return s.get(Book, book_id)

        if session:
            return _get(session)
        else:
            with self.db.get_session() as s:
                book = _get(s)
                if book:
                    s.expunge(book)
                return book

    def count_active_loans(self, book_id: str, session: Session) -> int:
        """Count loans of a book that have not been returned."""
        from ..loans.models import Loan

        stmt = select(func.count()).select_from(Loan).where(
            Loan.book_id == book_id,
            Loan.return_date.is_(None),
        )
        return session.execute(stmt).scalar() or 0

    def refresh_stock(
        self,
        book_id: str,
        session: Session,
        current_user: Optional["CurrentUser"] = None,
        language: Optional[str] = None,
    ) -> int:
        """Recompute and persist a book's stock inside the caller's session.

        Does not commit. Calling it again with no loan change in between
        yields the same value.

        Args:
            book_id: Book ID
            session: Open session of the enclosing transaction
            current_user: Acting user, for audit attribution
            language: Language for error messages

        Returns:
            The new stock value

        Raises:
            NotFoundError: If the book does not exist
            ValidationError: bookOutOfStock if more copies are on loan than owned
        """
        # Pending loan writes must be visible to the count below
        session.flush()

        book = session.get(Book, book_id)
        if book is None:
            raise NotFoundError("Book", book_id, language)

        stock = book.number_of_copies - self.count_active_loans(book_id, session)
        if stock < 0:
            raise ValidationError(language, "entities.loan.validation.bookOutOfStock")

        if book.stock != stock:
            previous = book.stock
            book.stock = stock
            book.updated_by_id = current_user.id if current_user else None
            session.flush()
            self.db.audit(
                session,
                ENTITY_NAME,
                book.id,
                AuditAction.UPDATE,
                current_user,
                {"stock": stock, "previous_stock": previous},
            )
            logger.debug("Stock of book %s: %s -> %s", book_id, previous, stock)

        return stock

    def add_book(self, data: BookCreate, current_user: Optional["CurrentUser"] = None) -> Book:
        """Register a book and compute its initial stock.

        Args:
            data: Book creation data
            current_user: Acting user, for audit attribution

        Returns:
            Created book
        """
        user_id = current_user.id if current_user else None
        with self.db.get_session() as session:
            book = Book(
                title=data.title,
                author=data.author,
                isbn=data.isbn,
                number_of_copies=data.number_of_copies,
                stock=0,
                created_by_id=user_id,
                updated_by_id=user_id,
            )
            session.add(book)
            session.flush()
            self.db.audit(
                session,
                ENTITY_NAME,
                book.id,
                AuditAction.CREATE,
                current_user,
                {"title": book.title, "number_of_copies": book.number_of_copies},
            )

            self.refresh_stock(book.id, session, current_user)

            session.refresh(book)
            session.expunge(book)
            return book
