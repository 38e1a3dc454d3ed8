"""Tests for loan email templates and EmailSender."""

import asyncio
from datetime import datetime, timezone

import pytest

from bibliodesk.circulation.db.models import Book, Member
from bibliodesk.circulation.loans.models import Loan
from bibliodesk.circulation.notifications import (
    DispatchReport,
    EmailSender,
    LoanInProgressEmail,
    LoanOverdueEmail,
)


@pytest.fixture
def detached_loan():
    """An unsaved loan with its book and member attached."""
    loan = Loan(
        id="loan-1",
        book_id="book-1",
        member_id="member-1",
        issue_date=datetime(2024, 1, 31, tzinfo=timezone.utc),
        due_date=datetime(2024, 2, 14, tzinfo=timezone.utc),
    )
    loan.book = Book(id="book-1", title="Dune", author="Frank Herbert")
    loan.member = Member(id="member-1", full_name="Alice Reader", email="alice@example.com")
    return loan


class TestTemplates:
    """Tests for email rendering."""

    def test_overdue_email(self, detached_loan):
        """Test the overdue template."""
        email = LoanOverdueEmail("en", detached_loan)

        assert email.to == "alice@example.com"
        assert email.subject == "Overdue: please return Dune"
        assert "Hello Alice Reader" in email.text
        assert "2024-02-14" in email.text

    def test_in_progress_email(self, detached_loan):
        """Test the reminder template."""
        email = LoanInProgressEmail("en", detached_loan)

        assert email.subject == "Reminder: Dune is due on 2024-02-14"

    def test_spanish_email(self, detached_loan):
        """Test templates are localized."""
        email = LoanOverdueEmail("es", detached_loan)

        assert email.subject == "Atrasado: por favor devuelva Dune"
        assert email.text.startswith("Hola Alice Reader")

    def test_unknown_language_falls_back(self, detached_loan):
        """Test an unknown language uses English."""
        assert LoanOverdueEmail("fr", detached_loan).subject.startswith("Overdue")


class TestEmailSender:
    """Tests for sending a single email."""

    def test_send(self, detached_loan, transport):
        """Test the rendered message reaches the transport."""
        sender = EmailSender(LoanOverdueEmail("en", detached_loan), transport, sender="desk@lib.org")

        message = asyncio.run(sender.send())

        assert transport.messages == [message]
        assert message.sender == "desk@lib.org"
        assert message.to == "alice@example.com"
        assert message.loan_id == "loan-1"

    def test_default_sender_from_config(self, detached_loan, transport, monkeypatch):
        """Test the sender address comes from configuration."""
        monkeypatch.setenv("BIBLIODESK_EMAIL_FROM", "circulation@lib.org")

        message = asyncio.run(EmailSender(LoanOverdueEmail("en", detached_loan), transport).send())

        assert message.sender == "circulation@lib.org"

    def test_send_without_address(self, detached_loan, transport):
        """Test a member without email cannot be notified."""
        detached_loan.member.email = None

        with pytest.raises(ValueError, match="no email address"):
            asyncio.run(EmailSender(LoanInProgressEmail("en", detached_loan), transport).send())

        assert transport.messages == []

    def test_logging_transport(self, detached_loan, caplog):
        """Test the default transport logs the message."""
        caplog.set_level("INFO")

        asyncio.run(EmailSender(LoanOverdueEmail("en", detached_loan)).send())

        assert "alice@example.com" in caplog.text


def test_dispatch_report_total():
    """Test the report totals sent and failed."""
    report = DispatchReport(sent=["a", "b"], failed={"c": "boom"})

    assert report.total == 3
