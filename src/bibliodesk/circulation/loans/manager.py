"""Loan lifecycle coordinator.

Creating, closing and deleting loans each run as one transaction that
covers both the loan write and the stock recompute of its book, so the
two always land or roll back together.
"""

import asyncio
import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Generator, Iterable, Optional

from sqlalchemy.orm import Session

from ..auth import CurrentUser
from ..books.ledger import BookStockLedger
from ..config import get_config
from ..db.sqlite import Database, get_db
from ..errors import NotFoundError, NotificationDispatchError, ValidationError
from ..notifications.emails import LoanEmail, LoanInProgressEmail, LoanOverdueEmail
from ..notifications.sender import (
    DispatchReport,
    EmailFailurePolicy,
    EmailSender,
    Transport,
)
from ..settings.manager import SettingsManager
from .access import scope_query
from .models import Loan
from .repository import LoanRepository
from .schemas import (
    AutocompleteOption,
    LoanCreate,
    LoanFilter,
    LoanPage,
    LoanQuery,
    LoanStatus,
    LoanUpdate,
)

logger = logging.getLogger(__name__)


class LoanManager:
    """Manages the lifecycle of loans on behalf of one acting user."""

    def __init__(
        self,
        current_user: CurrentUser,
        db: Optional[Database] = None,
        language: Optional[str] = None,
        transport: Optional[Transport] = None,
        email_failure_policy: Optional[EmailFailurePolicy] = None,
    ):
        """Initialize loan manager.

        Args:
            current_user: Acting user, for audit attribution and access scoping
            db: Database instance
            language: Language for errors and emails; defaults to the
                user's language, then the configured one
            transport: Email transport used by send_emails
            email_failure_policy: Whether failed sends raise or are only logged
        """
        config = get_config()
        self.db = db or get_db()
        self.current_user = current_user
        self.language = language or current_user.language or config.language
        self.transport = transport
        self.email_failure_policy = email_failure_policy or EmailFailurePolicy(
            config.email_failure_policy
        )

        self.repository = LoanRepository(self.db)
        self.book_ledger = BookStockLedger(self.db)
        self.settings = SettingsManager(self.db)

    @contextmanager
    def _transaction(self, operation: str) -> Generator[Session, None, None]:
        """One session for the whole operation; commit on success, roll back on error."""
        try:
            with self.db.get_session() as session:
                yield session
        except Exception as e:
            logger.warning("Aborted loan %s: %s: %s", operation, type(e).__name__, e)
            raise
        logger.info("Committed loan %s", operation)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create(self, data: LoanCreate) -> Loan:
        """Create a loan and take a copy of its book out of stock.

        Args:
            data: Loan creation data

        Returns:
            Created loan, with its book and member loaded

        Raises:
            ValidationError: bookOutOfStock if no copy is available
            NotFoundError: If the book or member does not exist
        """
        if not self._has_book_in_stock(data):
            raise ValidationError(self.language, "entities.loan.validation.bookOutOfStock")

        due_date = self._calculate_due_date(data)

        with self._transaction("create") as session:
            if self.db.get_member(data.member_id, session=session) is None:
                raise NotFoundError("Member", data.member_id, self.language)

            loan = self.repository.create(
                data,
                due_date,
                session=session,
                current_user=self.current_user,
            )

            self.book_ledger.refresh_stock(
                loan.book_id,
                session=session,
                current_user=self.current_user,
                language=self.language,
            )

            session.refresh(loan)
            loan = self.repository.detach(session, loan)

        return loan

    def update(self, loan_id: str, data: LoanUpdate) -> Loan:
        """Close a loan by setting its return date, returning the copy to stock.

        Args:
            loan_id: Loan ID
            data: Update data; return_date is required

        Returns:
            Updated loan

        Raises:
            ValidationError: returnDateRequired, or loanAlreadyClosed
            NotFoundError: If the loan does not exist
        """
        if not data.return_date:
            raise ValidationError(self.language, "entities.loan.validation.returnDateRequired")

        with self._transaction("update") as session:
            existing = self.repository.find_by_id(loan_id, session=session)
            if existing is None:
                raise NotFoundError("Loan", loan_id, self.language)
            if existing.return_date is not None:
                raise ValidationError(self.language, "entities.loan.validation.loanAlreadyClosed")

            loan = self.repository.update(
                loan_id,
                data,
                session=session,
                current_user=self.current_user,
                language=self.language,
            )

            self.book_ledger.refresh_stock(
                loan.book_id,
                session=session,
                current_user=self.current_user,
                language=self.language,
            )

            session.refresh(loan)
            loan = self.repository.detach(session, loan)

        return loan

    def destroy_all(self, ids: Iterable[str]) -> None:
        """Delete loans and recompute their books' stock, all in one transaction.

        Repeated ids are processed once. If any id fails, nothing is deleted.

        Raises:
            NotFoundError: If any loan does not exist
        """
        unique_ids = list(dict.fromkeys(ids))
        if not unique_ids:
            return

        with self._transaction("destroy_all") as session:
            for loan_id in unique_ids:
                loan = self.repository.find_by_id(loan_id, session=session)
                if loan is None:
                    raise NotFoundError("Loan", loan_id, self.language)
                book_id = loan.book_id

                self.repository.destroy(
                    loan_id,
                    session=session,
                    current_user=self.current_user,
                    language=self.language,
                )

                self.book_ledger.refresh_stock(
                    book_id,
                    session=session,
                    current_user=self.current_user,
                    language=self.language,
                )

    def import_loan(self, data: LoanCreate, import_hash: Optional[str]) -> Loan:
        """Create a loan from an import run, at most once per import hash.

        Raises:
            ValidationError: importHashRequired, importHashExistent, or any
                error from create
        """
        if not import_hash:
            raise ValidationError(self.language, "importer.errors.importHashRequired")

        if self._is_import_hash_existent(import_hash):
            raise ValidationError(self.language, "importer.errors.importHashExistent")

        return self.create(data.model_copy(update={"import_hash": import_hash}))

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def find_by_id(self, loan_id: str) -> Loan:
        """Get a loan by ID.

        Raises:
            NotFoundError: If the loan does not exist
        """
        loan = self.repository.find_by_id(loan_id)
        if loan is None:
            raise NotFoundError("Loan", loan_id, self.language)
        return loan

    def find_all_autocomplete(
        self, search: Optional[str] = None, limit: Optional[int] = None
    ) -> list[AutocompleteOption]:
        """Autocomplete options for loans matching the search text."""
        return self.repository.find_all_autocomplete(search, limit)

    def find_and_count_all(self, query: Optional[LoanQuery] = None) -> LoanPage:
        """Search loans visible to the acting user."""
        return self.repository.find_and_count_all(
            scope_query(self.current_user, query or LoanQuery())
        )

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    async def send_emails(self, ids: list[str]) -> DispatchReport:
        """Email the members of the selected loans.

        Every loan is checked before anything is sent. Emails then go out
        concurrently; one failed send does not stop the others.

        Raises:
            ValidationError: closedLoansSelectedForEmail if any loan is closed
            NotificationDispatchError: If sends failed under the raise policy
        """
        # Blocking read, kept off the event loop
        page = await asyncio.to_thread(
            self.repository.find_and_count_all,
            LoanQuery(filter=LoanFilter(ids=list(ids))),
        )
        loans = page.rows

        if any(loan.status == LoanStatus.CLOSED for loan in loans):
            raise ValidationError(
                self.language, "entities.loan.validation.closedLoansSelectedForEmail"
            )

        overdue_emails: list[LoanEmail] = [
            LoanOverdueEmail(self.language, loan)
            for loan in loans
            if loan.status == LoanStatus.OVERDUE
        ]
        in_progress_emails: list[LoanEmail] = [
            LoanInProgressEmail(self.language, loan)
            for loan in loans
            if loan.status == LoanStatus.IN_PROGRESS
        ]
        emails = overdue_emails + in_progress_emails

        results = await asyncio.gather(
            *(EmailSender(email, self.transport).send() for email in emails),
            return_exceptions=True,
        )

        report = DispatchReport()
        failures: dict[str, BaseException] = {}
        for email, result in zip(emails, results):
            if isinstance(result, BaseException):
                failures[email.loan.id] = result
                report.failed[email.loan.id] = str(result)
                logger.warning("Failed to email loan %s: %s", email.loan.id, result)
            else:
                report.sent.append(email.loan.id)

        logger.info("Sent %d loan email(s), %d failed", len(report.sent), len(report.failed))

        if failures and self.email_failure_policy == EmailFailurePolicy.RAISE:
            raise NotificationDispatchError(failures)

        return report

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _is_import_hash_existent(self, import_hash: str) -> bool:
        return self.repository.count(import_hash=import_hash) > 0

    def _has_book_in_stock(self, data: LoanCreate) -> bool:
        book = self.book_ledger.find_by_id(data.book_id)
        if book is None:
            raise NotFoundError("Book", data.book_id, self.language)
        return book.stock > 0

    def _calculate_due_date(self, data: LoanCreate) -> datetime:
        """Issue date plus the tenant's loan period in calendar days.

        Adding days keeps the wall-clock time of an aware issue date, so
        a period never drifts by an hour across a DST change.
        """
        settings = self.settings.find_or_create_default(self.current_user)
        return data.issue_date + timedelta(days=settings.loan_period_in_days)
