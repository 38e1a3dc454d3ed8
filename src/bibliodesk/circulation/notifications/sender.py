"""Email dispatch.

Delivery itself is delegated to a transport, any object with an
``async deliver(message)`` method.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol

from ..config import get_config
from .emails import LoanEmail

logger = logging.getLogger(__name__)


class EmailFailurePolicy(str, Enum):
    """What send_emails does when some dispatches fail."""

    RAISE = "raise"  # Raise NotificationDispatchError once all sends settle
    IGNORE = "ignore"  # Log the failures and return


@dataclass
class OutgoingMessage:
    """A rendered email ready for delivery."""

    sender: str
    to: str
    subject: str
    text: str
    loan_id: str


class Transport(Protocol):
    async def deliver(self, message: OutgoingMessage) -> None: ...


class LoggingTransport:
    """Transport that only logs messages. Used when no mail service is wired in."""

    async def deliver(self, message: OutgoingMessage) -> None:
        logger.info("Email to %s: %s", message.to, message.subject)


class EmailSender:
    """Sends one email through a transport."""

    def __init__(
        self,
        email: LoanEmail,
        transport: Optional[Transport] = None,
        sender: Optional[str] = None,
    ):
        self.email = email
        self.transport = transport or LoggingTransport()
        self.sender = sender or get_config().email_from

    async def send(self) -> OutgoingMessage:
        """Render and deliver the email.

        Raises:
            ValueError: If the member has no email address
        """
        if not self.email.to:
            raise ValueError(f"Member of loan {self.email.loan.id} has no email address")

        message = OutgoingMessage(
            sender=self.sender,
            to=self.email.to,
            subject=self.email.subject,
            text=self.email.text,
            loan_id=self.email.loan.id,
        )
        await self.transport.deliver(message)
        return message


@dataclass
class DispatchReport:
    """Outcome of a notification fan-out."""

    sent: list[str] = field(default_factory=list)  # loan ids
    failed: dict[str, str] = field(default_factory=dict)  # loan id -> error

    @property
    def total(self) -> int:
        return len(self.sent) + len(self.failed)
