"""Pytest configuration and shared fixtures.

Provides in-memory databases, acting users and sample books and members
for testing the circulation services.
"""

import os
from datetime import datetime, timezone
from typing import Generator

import pytest

from bibliodesk.circulation.auth import CurrentUser, Roles
from bibliodesk.circulation.books import BookStockLedger
from bibliodesk.circulation.config import reset_config
from bibliodesk.circulation.db import BookCreate, MemberCreate
from bibliodesk.circulation.db.sqlite import Database, reset_db
from bibliodesk.circulation.loans import LoanCreate, LoanManager
from bibliodesk.circulation.notifications import OutgoingMessage

ENV_VARS = (
    "BIBLIODESK_DB_PATH",
    "BIBLIODESK_LOAN_PERIOD_DAYS",
    "BIBLIODESK_LANGUAGE",
    "BIBLIODESK_EMAIL_FROM",
    "BIBLIODESK_EMAIL_FAILURE_POLICY",
    "BIBLIODESK_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_environment() -> Generator[None, None, None]:
    """Run each test with default configuration and no global database."""
    saved = {name: os.environ.pop(name) for name in ENV_VARS if name in os.environ}
    reset_db()
    reset_config()
    yield
    for name in ENV_VARS:
        os.environ.pop(name, None)
    os.environ.update(saved)
    reset_db()
    reset_config()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def db() -> Database:
    """Create an in-memory database for testing."""
    database = Database(":memory:")
    database.create_tables()
    return database


@pytest.fixture
def ledger(db: Database) -> BookStockLedger:
    """Create a BookStockLedger with test database."""
    return BookStockLedger(db)


# ============================================================================
# Users
# ============================================================================


@pytest.fixture
def librarian() -> CurrentUser:
    """A librarian acting user."""
    return CurrentUser(id="librarian-1", roles=[Roles.LIBRARIAN])


@pytest.fixture
def manager(db: Database, librarian: CurrentUser) -> LoanManager:
    """Create a LoanManager acting as a librarian."""
    return LoanManager(librarian, db)


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def sample_book(ledger: BookStockLedger, librarian: CurrentUser):
    """A book with two copies."""
    return ledger.add_book(
        BookCreate(title="Dune", author="Frank Herbert", number_of_copies=2),
        librarian,
    )


@pytest.fixture
def other_book(ledger: BookStockLedger, librarian: CurrentUser):
    """A book with one copy."""
    return ledger.add_book(
        BookCreate(title="Emma", author="Jane Austen", number_of_copies=1),
        librarian,
    )


@pytest.fixture
def out_of_stock_book(ledger: BookStockLedger, librarian: CurrentUser):
    """A book with no copies."""
    return ledger.add_book(
        BookCreate(title="Lost Manuscript", author="Nobody", number_of_copies=0),
        librarian,
    )


@pytest.fixture
def sample_member(db: Database):
    """A member with an email address."""
    return db.create_member(
        MemberCreate(id="member-1", full_name="Alice Reader", email="alice@example.com")
    )


@pytest.fixture
def other_member(db: Database):
    """A second member."""
    return db.create_member(
        MemberCreate(id="member-2", full_name="Bob Borrower", email="bob@example.com")
    )


@pytest.fixture
def issue_date() -> datetime:
    """A fixed issue date."""
    return datetime(2024, 1, 31, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def loan_data(sample_book, sample_member, issue_date) -> LoanCreate:
    """Loan creation data for the sample book and member."""
    return LoanCreate(
        book_id=sample_book.id,
        member_id=sample_member.id,
        issue_date=issue_date,
    )


# ============================================================================
# Notification Fixtures
# ============================================================================


class RecordingTransport:
    """Transport that keeps delivered messages in memory."""

    def __init__(self, fail_for: tuple[str, ...] = ()):
        self.messages: list[OutgoingMessage] = []
        self.fail_for = fail_for

    async def deliver(self, message: OutgoingMessage) -> None:
        if message.to in self.fail_for:
            raise ConnectionError(f"Mail server rejected {message.to}")
        self.messages.append(message)


@pytest.fixture
def transport() -> RecordingTransport:
    """A transport that records messages."""
    return RecordingTransport()


@pytest.fixture
def failing_transport() -> RecordingTransport:
    """A transport that rejects mail for the second member."""
    return RecordingTransport(fail_for=("bob@example.com",))
