"""Book inventory module.

Provides the stock ledger that keeps Book.stock consistent with loans.
"""

from .ledger import BookStockLedger

__all__ = ["BookStockLedger"]
