"""Loan lifecycle module.

Provides functionality for:
- Creating, closing and bulk-deleting loans with their stock updates
- Paginated search scoped to the acting user
- Overdue and reminder emails
- Idempotent imports keyed by an import hash
"""

from .manager import LoanManager
from .models import Loan
from .repository import LoanRepository
from .schemas import (
    AutocompleteOption,
    DateRange,
    LoanCreate,
    LoanFilter,
    LoanPage,
    LoanQuery,
    LoanResponse,
    LoanStatus,
    LoanUpdate,
)

__all__ = [
    "LoanManager",
    "Loan",
    "LoanRepository",
    "AutocompleteOption",
    "DateRange",
    "LoanCreate",
    "LoanFilter",
    "LoanPage",
    "LoanQuery",
    "LoanResponse",
    "LoanStatus",
    "LoanUpdate",
]
