"""Email templates for loan notifications."""

from typing import TYPE_CHECKING, Optional

from ..i18n import translate

if TYPE_CHECKING:
    from ..loans.models import Loan


class LoanEmail:
    """Base class for emails about a single loan."""

    subject_key: str = ""
    body_key: str = ""

    def __init__(self, language: Optional[str], loan: "Loan"):
        self.language = language
        self.loan = loan

    @property
    def to(self) -> Optional[str]:
        """Recipient address: the borrowing member's email."""
        return self.loan.member.email if self.loan.member else None

    def _params(self) -> dict[str, str]:
        return {
            "book": self.loan.book.title if self.loan.book else self.loan.book_id,
            "member": self.loan.member.full_name if self.loan.member else self.loan.member_id,
            "due_date": self.loan.due_date.date().isoformat(),
        }

    @property
    def subject(self) -> str:
        return translate(self.language, self.subject_key, **self._params())

    @property
    def text(self) -> str:
        return translate(self.language, self.body_key, **self._params())


class LoanOverdueEmail(LoanEmail):
    """Asks the member to return an overdue book."""

    subject_key = "emails.loanOverdue.subject"
    body_key = "emails.loanOverdue.body"


class LoanInProgressEmail(LoanEmail):
    """Reminds the member of an upcoming due date."""

    subject_key = "emails.loanInProgress.subject"
    body_key = "emails.loanInProgress.body"
