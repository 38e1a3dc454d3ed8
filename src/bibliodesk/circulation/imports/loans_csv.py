"""Bulk import of loans from CSV files.

Each row's import hash is derived from its content, so re-running an
import over the same file skips the rows that already made it in.
"""

import csv
import hashlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from ..dates import parse_instant
from ..errors import CirculationError, ValidationError
from ..loans.manager import LoanManager
from ..loans.models import Loan
from ..loans.schemas import LoanCreate

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("book", "member", "issue_date")


@dataclass
class ImportRecord:
    """A single loan row from an import file."""

    line_number: int
    book_id: str
    member_id: str
    issue_date: str

    @property
    def import_hash(self) -> str:
        """SHA-256 of the normalized row values."""
        key = "|".join(
            [self.book_id, self.member_id, parse_instant(self.issue_date).isoformat()]
        )
        return hashlib.sha256(key.encode("utf-8")).hexdigest()

    def to_loan_create(self) -> LoanCreate:
        """Convert to LoanCreate schema."""
        return LoanCreate(
            book_id=self.book_id,
            member_id=self.member_id,
            issue_date=parse_instant(self.issue_date),
        )


@dataclass
class ImportResult:
    """Result of an import operation."""

    success: bool
    source_file: Optional[Path] = None
    total_records: int = 0
    imported: int = 0
    skipped: int = 0
    errors: int = 0
    error_messages: list[str] = field(default_factory=list)
    imported_loans: list[Loan] = field(default_factory=list)

    @property
    def summary(self) -> str:
        """Get summary string."""
        return (
            f"Imported: {self.imported}, "
            f"Skipped: {self.skipped}, "
            f"Errors: {self.errors}"
        )


class LoanCsvImporter:
    """Imports loans from a CSV file with book, member and issue_date columns."""

    def __init__(self, manager: LoanManager):
        """Initialize importer.

        Args:
            manager: LoanManager acting for the importing user
        """
        self.manager = manager

    def validate_file(self, file_path: Path) -> tuple[bool, Optional[str]]:
        """Validate CSV file."""
        if not file_path.exists():
            return False, f"File not found: {file_path}"

        if not file_path.suffix.lower() == ".csv":
            return False, "File must be a CSV file"

        try:
            with open(file_path, "r", encoding="utf-8-sig", newline="") as f:
                reader = csv.DictReader(f)
                columns = reader.fieldnames or []

                if not columns:
                    return False, "CSV file has no columns"

                missing = [c for c in REQUIRED_COLUMNS if c not in columns]
                if missing:
                    return False, f"Missing columns: {', '.join(missing)}"

            return True, None

        except (csv.Error, UnicodeDecodeError) as e:
            return False, f"CSV parsing error: {e}"

    def parse_file(self, file_path: Path) -> list[ImportRecord]:
        """Parse CSV file, skipping rows with blank required values."""
        records = []

        with open(file_path, "r", encoding="utf-8-sig", newline="") as f:
            reader = csv.DictReader(f)
            # Header is line 1
            for line_number, row in enumerate(reader, start=2):
                values = [(row.get(c) or "").strip() for c in REQUIRED_COLUMNS]
                if not all(values):
                    logger.debug("Skipping incomplete row on line %d", line_number)
                    continue
                records.append(ImportRecord(line_number, *values))

        return records

    def import_file(self, file_path: Path, show_progress: bool = False) -> ImportResult:
        """Import loans from file.

        Rows already imported (same import hash) are counted as skipped.
        Other failures are counted and do not stop the run; each row is
        its own transaction.

        Args:
            file_path: Path to import file
            show_progress: Show tqdm progress bar

        Returns:
            ImportResult with counts and errors
        """
        result = ImportResult(success=False, source_file=file_path)

        is_valid, error = self.validate_file(file_path)
        if not is_valid:
            result.error_messages.append(f"Invalid file: {error}")
            return result

        records = self.parse_file(file_path)
        result.total_records = len(records)

        for record in tqdm(records, desc="Importing loans", disable=not show_progress):
            try:
                loan = self.manager.import_loan(record.to_loan_create(), record.import_hash)
            except ValidationError as e:
                if e.code == "importHashExistent":
                    result.skipped += 1
                    continue
                result.errors += 1
                result.error_messages.append(f"Line {record.line_number}: {e.message}")
            except (CirculationError, ValueError) as e:
                result.errors += 1
                result.error_messages.append(f"Line {record.line_number}: {e}")
            else:
                result.imported += 1
                result.imported_loans.append(loan)

        logger.info("Loan import from %s: %s", file_path, result.summary)
        result.success = result.errors == 0
        return result
