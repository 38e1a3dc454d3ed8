"""Settings read from BIBLIODESK_* environment variables, or a .env file."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

EMAIL_FAILURE_POLICIES = ("raise", "ignore")


@dataclass
class Config:
    """Process-wide settings; tenant settings live in the database."""

    # Database
    db_path: Path

    # Loans
    loan_period_days: int  # used when tenant settings are first created

    # Localization
    language: str

    # Notifications
    email_from: str
    email_failure_policy: str  # raise | ignore

    # Logging
    log_level: str

    @classmethod
    def from_env(cls) -> "Config":
        """Read every setting from the environment, falling back to defaults."""
        db_path_str = os.environ.get(
            "BIBLIODESK_DB_PATH",
            str(Path.home() / ".bibliodesk" / "library.db"),
        )
        db_path = Path(db_path_str).expanduser()

        return cls(
            db_path=db_path,
            loan_period_days=int(os.environ.get("BIBLIODESK_LOAN_PERIOD_DAYS", "14")),
            language=os.environ.get("BIBLIODESK_LANGUAGE", "en"),
            email_from=os.environ.get("BIBLIODESK_EMAIL_FROM", "library@example.com"),
            email_failure_policy=os.environ.get(
                "BIBLIODESK_EMAIL_FAILURE_POLICY", "raise"
            ).lower(),
            log_level=os.environ.get("BIBLIODESK_LOG_LEVEL", "WARNING").upper(),
        )

    @property
    def is_memory_db(self) -> bool:
        """Check if the database lives in memory."""
        return str(self.db_path) == ":memory:"

    def validate(self) -> list[str]:
        """Return a list of problems; empty when the config is usable."""
        errors = []

        if self.loan_period_days <= 0:
            errors.append(
                f"Loan period must be a positive number of days: {self.loan_period_days}"
            )

        if self.email_failure_policy not in EMAIL_FAILURE_POLICIES:
            errors.append(
                f"Unknown email failure policy: {self.email_failure_policy} "
                f"(expected one of {', '.join(EMAIL_FAILURE_POLICIES)})"
            )

        if not self.is_memory_db and not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        return errors


# Shared instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Config of this process, read on first use."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Forget the cached config so the next call re-reads the environment."""
    global _config
    _config = None
