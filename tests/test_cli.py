"""Tests for the CLI interface."""

import re
from pathlib import Path

import pytest
from typer.testing import CliRunner

from bibliodesk.circulation.cli import app
from bibliodesk.circulation.db import BookCreate, MemberCreate, get_db
from bibliodesk.circulation.books import BookStockLedger


@pytest.fixture(autouse=True)
def setup_test_db(tmp_path, monkeypatch):
    """Point the CLI at a temporary database for each test."""
    monkeypatch.setenv("BIBLIODESK_DB_PATH", str(tmp_path / "library.db"))


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def book():
    """A book with one copy in the CLI's database."""
    return BookStockLedger(get_db()).add_book(
        BookCreate(title="Dune", author="Frank Herbert", number_of_copies=1)
    )


@pytest.fixture
def members():
    """Two members in the CLI's database."""
    db = get_db()
    return [
        db.create_member(MemberCreate(id="alice", full_name="Alice Reader", email="alice@example.com")),
        db.create_member(MemberCreate(id="bob", full_name="Bob Borrower", email="bob@example.com")),
    ]


def loan_id_from(output: str) -> str:
    match = re.search(r"Loan ID: ([0-9a-f-]{36})", output)
    assert match, output
    return match.group(1)


class TestCLIBasics:
    """Tests for basic CLI functionality."""

    def test_help(self, runner: CliRunner):
        """Test that help command works."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "Lend books" in result.stdout

    def test_version(self, runner: CliRunner):
        """Test version command."""
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.stdout

    def test_unknown_role(self, runner: CliRunner):
        """Test an unknown role is rejected."""
        result = runner.invoke(app, ["--role", "admin", "version"])
        assert result.exit_code == 2
        assert "Unknown role" in result.stdout


class TestBookAndMemberCommands:
    """Tests for seeding commands."""

    def test_books_add_and_show(self, runner: CliRunner):
        """Test adding a book and showing its stock."""
        result = runner.invoke(app, ["books", "add", "--title", "Emma", "--author", "Jane Austen", "--copies", "3"])
        assert result.exit_code == 0
        assert "3/3 in stock" in result.stdout

        book_id = re.search(r"ID: ([0-9a-f-]{36})", result.stdout).group(1)
        result = runner.invoke(app, ["books", "show", book_id])
        assert result.exit_code == 0
        assert "Stock: 3 of 3" in result.stdout

    def test_books_show_missing(self, runner: CliRunner):
        """Test showing an unknown book."""
        result = runner.invoke(app, ["books", "show", "missing"])
        assert result.exit_code == 1
        assert "not found" in result.stdout

    def test_members_add(self, runner: CliRunner):
        """Test adding a member."""
        result = runner.invoke(app, ["members", "add", "Carol", "--email", "c@example.com", "--id", "carol"])
        assert result.exit_code == 0
        assert get_db().get_member("carol").email == "c@example.com"


class TestSettingsCommands:
    """Tests for settings commands."""

    def test_settings_show_defaults(self, runner: CliRunner):
        """Test showing default settings."""
        result = runner.invoke(app, ["settings", "show"])
        assert result.exit_code == 0
        assert "Loan period: 14 days" in result.stdout

    def test_settings_set(self, runner: CliRunner):
        """Test changing the loan period."""
        result = runner.invoke(app, ["settings", "set", "--loan-period", "21"])
        assert result.exit_code == 0

        result = runner.invoke(app, ["settings", "show"])
        assert "Loan period: 21 days" in result.stdout

    def test_settings_set_invalid(self, runner: CliRunner):
        """Test a non-positive loan period is rejected."""
        result = runner.invoke(app, ["settings", "set", "--loan-period", "0"])
        assert result.exit_code == 1


class TestLoanCommands:
    """Tests for loan commands."""

    def test_loan_lifecycle(self, runner: CliRunner, book, members):
        """Test lending, listing, returning and deleting a loan."""
        result = runner.invoke(app, ["loans", "create", book.id, "alice", "--issued", "2024-01-31"])
        assert result.exit_code == 0
        assert "Lent Dune to Alice Reader" in result.stdout
        assert "Due: 2024-02-14" in result.stdout
        loan_id = loan_id_from(result.stdout)

        result = runner.invoke(app, ["loans", "list"])
        assert result.exit_code == 0
        assert "Loans (1 total)" in result.stdout

        result = runner.invoke(app, ["loans", "return", loan_id])
        assert result.exit_code == 0
        assert "1 now in stock" in result.stdout

        result = runner.invoke(app, ["loans", "show", loan_id, "--json"])
        assert result.exit_code == 0
        assert '"status": "closed"' in result.stdout

        result = runner.invoke(app, ["loans", "delete", loan_id, "--force"])
        assert result.exit_code == 0
        assert "Deleted 1 loan(s)" in result.stdout

        result = runner.invoke(app, ["loans", "audit", loan_id])
        assert result.exit_code == 0
        assert "delete" in result.stdout

    def test_create_out_of_stock(self, runner: CliRunner, book, members):
        """Test lending the last copy twice fails the second time."""
        runner.invoke(app, ["loans", "create", book.id, "alice"])

        result = runner.invoke(app, ["loans", "create", book.id, "bob"])

        assert result.exit_code == 1
        assert "out of stock" in result.stdout

    def test_return_twice(self, runner: CliRunner, book, members):
        """Test returning a closed loan fails."""
        loan_id = loan_id_from(runner.invoke(app, ["loans", "create", book.id, "alice"]).stdout)
        runner.invoke(app, ["loans", "return", loan_id])

        result = runner.invoke(app, ["loans", "return", loan_id])

        assert result.exit_code == 1
        assert "already closed" in result.stdout

    def test_delete_cancelled(self, runner: CliRunner, book, members):
        """Test declining the confirmation keeps the loan."""
        loan_id = loan_id_from(runner.invoke(app, ["loans", "create", book.id, "alice"]).stdout)

        result = runner.invoke(app, ["loans", "delete", loan_id], input="n\n")

        assert "Cancelled" in result.stdout
        assert runner.invoke(app, ["loans", "show", loan_id]).exit_code == 0

    def test_member_list_is_scoped(self, runner: CliRunner, members):
        """Test a member only lists their own loans."""
        ledger = BookStockLedger(get_db())
        book = ledger.add_book(BookCreate(title="Emma", author="Jane Austen", number_of_copies=2))
        runner.invoke(app, ["loans", "create", book.id, "alice"])
        runner.invoke(app, ["loans", "create", book.id, "bob"])

        result = runner.invoke(
            app, ["--user", "alice", "--role", "member", "loans", "list", "--member", "bob"]
        )

        assert result.exit_code == 0
        assert "Loans (1 total)" in result.stdout
        assert "Alice Reader" in result.stdout
        assert "Bob Borrower" not in result.stdout

    def test_email(self, runner: CliRunner, book, members):
        """Test emailing an active loan."""
        loan_id = loan_id_from(runner.invoke(app, ["loans", "create", book.id, "alice"]).stdout)

        result = runner.invoke(app, ["loans", "email", loan_id])

        assert result.exit_code == 0
        assert "Sent 1 email(s)" in result.stdout

    def test_import(self, runner: CliRunner, book, members, tmp_path: Path):
        """Test importing a CSV twice only creates loans once."""
        path = tmp_path / "loans.csv"
        path.write_text(f"book,member,issue_date\n{book.id},alice,2024-01-31\n")

        result = runner.invoke(app, ["loans", "import", str(path)])
        assert result.exit_code == 0
        assert "Imported: 1" in result.stdout

        result = runner.invoke(app, ["loans", "import", str(path)])
        assert result.exit_code == 0
        assert "Skipped: 1" in result.stdout
