"""Command-line interface for library circulation.

Built with Typer for commands and Rich for output.
"""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .auth import CurrentUser, Roles
from .config import get_config
from .dates import parse_instant
from .db import get_db
from .errors import CirculationError
from .log import configure_logging

# Create the main app
app = typer.Typer(
    name="bibliodesk",
    help="Lend books to members and keep stock in step.",
    no_args_is_help=True,
)

# Create sub-apps for command groups
books_app = typer.Typer(help="Register and inspect books.")
members_app = typer.Typer(help="Register members.")
settings_app = typer.Typer(help="Tenant settings.")
loans_app = typer.Typer(help="Create, return, delete and search loans.")
app.add_typer(books_app, name="books")
app.add_typer(members_app, name="members")
app.add_typer(settings_app, name="settings")
app.add_typer(loans_app, name="loans")

# Rich console for pretty output
console = Console()

# Acting user, set by the main callback
_state: dict[str, CurrentUser] = {}


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[bold yellow]Warning:[/bold yellow] {message}")


def current_user() -> CurrentUser:
    """Acting user for this invocation."""
    return _state.get("user") or CurrentUser(id="cli", roles=[Roles.LIBRARIAN])


def get_manager():
    """Create a LoanManager for the acting user."""
    from .loans import LoanManager

    return LoanManager(current_user(), get_db())


def fail(error: Exception) -> None:
    """Report an error and exit with status 1."""
    print_error(str(error))
    raise typer.Exit(code=1)


STATUS_STYLES = {
    "inProgress": "[green]IN PROGRESS[/green]",
    "overdue": "[bold red]OVERDUE[/bold red]",
    "closed": "[dim]CLOSED[/dim]",
}


@app.callback()
def main(
    user: str = typer.Option("cli", "--user", "-u", help="Acting user / member ID"),
    role: list[str] = typer.Option(
        [Roles.LIBRARIAN.value], "--role", "-r", help="librarian or member (repeatable)"
    ),
    tenant: str = typer.Option("default", "--tenant", help="Tenant ID"),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Message language"),
) -> None:
    """Lend books to members and keep stock in step."""
    from pydantic import ValidationError as SchemaError

    configure_logging(get_config().log_level)
    try:
        _state["user"] = CurrentUser(id=user, roles=role, tenant_id=tenant, language=language)
    except SchemaError:
        print_error(f"Unknown role in: {', '.join(role)}")
        raise typer.Exit(code=2)


@app.command()
def version() -> None:
    """Show version information."""
    from bibliodesk import __version__

    console.print(f"bibliodesk version {__version__}")


# ============================================================================
# Book Commands
# ============================================================================


@books_app.command("add")
def books_add(
    title: str = typer.Option(..., "--title", "-t", help="Book title"),
    author: str = typer.Option(..., "--author", "-a", help="Author name"),
    copies: int = typer.Option(1, "--copies", "-c", help="Number of copies owned"),
    isbn: Optional[str] = typer.Option(None, "--isbn", help="ISBN"),
) -> None:
    """Register a book and its copies."""
    from .books import BookStockLedger
    from .db import BookCreate

    ledger = BookStockLedger(get_db())
    book = ledger.add_book(
        BookCreate(title=title, author=author, isbn=isbn, number_of_copies=copies),
        current_user(),
    )
    print_success(f"Added: {book.title} ({book.stock}/{book.number_of_copies} in stock)")
    console.print(f"[dim]ID: {book.id}[/dim]")


@books_app.command("show")
def books_show(book_id: str = typer.Argument(..., help="Book ID")) -> None:
    """Show a book's stock."""
    from .books import BookStockLedger

    book = BookStockLedger(get_db()).find_by_id(book_id)
    if not book:
        print_error(f"Book not found: {book_id}")
        raise typer.Exit(code=1)

    console.print(f"[bold cyan]{book.title}[/bold cyan] by {book.author}")
    console.print(f"Stock: {book.stock} of {book.number_of_copies}")


# ============================================================================
# Member Commands
# ============================================================================


@members_app.command("add")
def members_add(
    name: str = typer.Argument(..., help="Full name"),
    email: Optional[str] = typer.Option(None, "--email", "-e", help="Email address"),
    member_id: Optional[str] = typer.Option(None, "--id", help="Member ID (default: generated)"),
) -> None:
    """Register a member."""
    from .db import MemberCreate

    member = get_db().create_member(MemberCreate(id=member_id, full_name=name, email=email))
    print_success(f"Added member: {member.full_name}")
    console.print(f"[dim]ID: {member.id}[/dim]")


# ============================================================================
# Settings Commands
# ============================================================================


@settings_app.command("show")
def settings_show() -> None:
    """Show the tenant's settings."""
    from .settings import SettingsManager

    settings = SettingsManager(get_db()).find_or_create_default(current_user())
    console.print(f"Tenant: {settings.tenant_id}")
    console.print(f"Loan period: {settings.loan_period_in_days} days")


@settings_app.command("set")
def settings_set(
    loan_period: int = typer.Option(..., "--loan-period", "-p", help="Loan period in days"),
) -> None:
    """Change the tenant's loan period."""
    from pydantic import ValidationError as SchemaError

    from .settings import SettingsManager, SettingsUpdate

    try:
        data = SettingsUpdate(loan_period_in_days=loan_period)
    except SchemaError:
        print_error(f"Invalid loan period: {loan_period}")
        raise typer.Exit(code=1)

    settings = SettingsManager(get_db()).update(current_user(), data)
    print_success(f"Loan period set to {settings.loan_period_in_days} days")


# ============================================================================
# Loan Commands
# ============================================================================


@loans_app.command("create")
def loans_create(
    book_id: str = typer.Argument(..., help="Book ID to lend"),
    member_id: str = typer.Argument(..., help="Member ID borrowing the book"),
    issued: Optional[str] = typer.Option(
        None, "--issued", "-i", help="Issue date (YYYY-MM-DD or ISO datetime, default: now)"
    ),
) -> None:
    """Lend a book to a member."""
    from .dates import utcnow
    from .loans import LoanCreate

    try:
        issue_date = parse_instant(issued) if issued else utcnow()
        loan = get_manager().create(
            LoanCreate(book_id=book_id, member_id=member_id, issue_date=issue_date)
        )
    except (CirculationError, ValueError) as e:
        fail(e)

    print_success(f"Lent {loan.book.title} to {loan.member.full_name}")
    console.print(f"[dim]Loan ID: {loan.id}[/dim]")
    console.print(f"[dim]Due: {loan.due_date.date().isoformat()}[/dim]")


@loans_app.command("return")
def loans_return(
    loan_id: str = typer.Argument(..., help="Loan ID to close"),
    returned: Optional[str] = typer.Option(
        None, "--returned", help="Return date (default: now)"
    ),
) -> None:
    """Mark a loan as returned."""
    from .dates import utcnow
    from .loans import LoanUpdate

    try:
        return_date = parse_instant(returned) if returned else utcnow()
        loan = get_manager().update(loan_id, LoanUpdate(return_date=return_date))
    except (CirculationError, ValueError) as e:
        fail(e)

    print_success(f"Returned {loan.book.title} ({loan.book.stock} now in stock)")


@loans_app.command("delete")
def loans_delete(
    loan_ids: list[str] = typer.Argument(..., help="Loan IDs to delete"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
) -> None:
    """Delete loans. Either all are deleted or none."""
    if not force:
        confirm = typer.confirm(f"Delete {len(loan_ids)} loan(s)?")
        if not confirm:
            console.print("[dim]Cancelled[/dim]")
            return

    try:
        get_manager().destroy_all(loan_ids)
    except CirculationError as e:
        fail(e)

    print_success(f"Deleted {len(set(loan_ids))} loan(s)")


@loans_app.command("show")
def loans_show(
    loan_id: str = typer.Argument(..., help="Loan ID"),
    as_json: bool = typer.Option(False, "--json", help="Print as JSON"),
) -> None:
    """Show a loan."""
    from .loans import LoanResponse

    try:
        loan = get_manager().find_by_id(loan_id)
    except CirculationError as e:
        fail(e)

    response = LoanResponse.from_loan(loan)
    if as_json:
        console.print_json(response.model_dump_json())
        return

    console.print(f"[bold cyan]{response.book_title}[/bold cyan] -> {response.member_name}")
    console.print(f"Status: {STATUS_STYLES[response.status.value]}")
    console.print(f"Issued: {response.issue_date.isoformat()}")
    console.print(f"Due: {response.due_date.isoformat()}")
    if response.return_date:
        console.print(f"Returned: {response.return_date.isoformat()}")


@loans_app.command("list")
def loans_list(
    member: Optional[str] = typer.Option(None, "--member", "-m", help="Filter by member ID"),
    book: Optional[str] = typer.Option(None, "--book", "-b", help="Filter by book ID"),
    status: Optional[str] = typer.Option(
        None, "--status", "-s", help="inProgress, overdue or closed"
    ),
    limit: int = typer.Option(20, "--limit", "-n", help="Page size"),
    offset: int = typer.Option(0, "--offset", help="Rows to skip"),
    order_by: str = typer.Option("created_at_DESC", "--order-by", help="<field>_ASC|DESC"),
) -> None:
    """List loans visible to the acting user."""
    from .loans import LoanFilter, LoanQuery, LoanStatus

    try:
        query = LoanQuery(
            filter=LoanFilter(
                member=member,
                book=book,
                status=LoanStatus(status) if status else None,
            ),
            limit=limit,
            offset=offset,
            order_by=order_by,
        )
    except ValueError as e:
        fail(e)

    page = get_manager().find_and_count_all(query)

    if not page.rows:
        console.print("[dim]No loans found[/dim]")
        return

    table = Table(title=f"Loans ({page.count} total)", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", max_width=8)
    table.add_column("Book", style="cyan", max_width=30)
    table.add_column("Member")
    table.add_column("Issued")
    table.add_column("Due")
    table.add_column("Status")

    for loan in page.rows:
        table.add_row(
            loan.id[:8],
            loan.book.title,
            loan.member.full_name,
            loan.issue_date.date().isoformat(),
            loan.due_date.date().isoformat(),
            STATUS_STYLES[loan.status.value],
        )

    console.print(table)


@loans_app.command("email")
def loans_email(
    loan_ids: list[str] = typer.Argument(..., help="Loan IDs to notify"),
) -> None:
    """Email members about overdue and in-progress loans."""
    try:
        report = asyncio.run(get_manager().send_emails(loan_ids))
    except CirculationError as e:
        fail(e)

    print_success(f"Sent {len(report.sent)} email(s)")
    for loan_id, error in report.failed.items():
        print_warning(f"Loan {loan_id}: {error}")


@loans_app.command("import")
def loans_import(
    file_path: Path = typer.Argument(..., help="CSV file with book, member, issue_date"),
    progress: bool = typer.Option(False, "--progress", help="Show a progress bar"),
) -> None:
    """Import loans from CSV. Rows already imported are skipped."""
    from .imports import LoanCsvImporter

    result = LoanCsvImporter(get_manager()).import_file(file_path, show_progress=progress)

    for message in result.error_messages:
        print_warning(message)

    if result.success:
        print_success(result.summary)
    else:
        print_error(result.summary)
        raise typer.Exit(code=1)


@loans_app.command("audit")
def loans_audit(loan_id: str = typer.Argument(..., help="Loan ID")) -> None:
    """Show the audit trail of a loan."""
    entries = get_db().list_audit_logs(entity_name="loan", entity_id=loan_id)
    if not entries:
        console.print("[dim]No audit entries[/dim]")
        return

    for entry in entries:
        console.print(
            f"{entry.timestamp.isoformat()} [bold]{entry.action}[/bold] "
            f"by {entry.created_by_id or '-'} {json.dumps(entry.get_values())}"
        )


if __name__ == "__main__":
    app()
