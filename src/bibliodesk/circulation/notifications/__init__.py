"""Loan notification module.

Provides functionality for:
- Overdue and in-progress email templates
- Concurrent dispatch through a pluggable transport
"""

from .emails import LoanEmail, LoanInProgressEmail, LoanOverdueEmail
from .sender import (
    DispatchReport,
    EmailFailurePolicy,
    EmailSender,
    LoggingTransport,
    OutgoingMessage,
    Transport,
)

__all__ = [
    "LoanEmail",
    "LoanInProgressEmail",
    "LoanOverdueEmail",
    "DispatchReport",
    "EmailFailurePolicy",
    "EmailSender",
    "LoggingTransport",
    "OutgoingMessage",
    "Transport",
]
