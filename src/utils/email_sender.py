"""Outgoing email delivery.

``EmailSender`` implementations deliver a rendered message or raise
``EmailDeliveryError``. ``Notifier`` renders the application's messages
and decides which failures matter: verification and reset codes propagate
delivery errors to the caller, purchase approval notices are best effort.
"""

import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import Optional

from config import (
    APP_NAME,
    SMTP_HOST,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_TIMEOUT_SECONDS,
    SMTP_USE_TLS,
    SMTP_USER,
    is_smtp_configured,
)
from core.exceptions import EmailDeliveryError
from utils.email_templates import (
    PasswordResetEmailAssembler,
    PurchaseApprovedEmailAssembler,
    VerificationEmailAssembler,
)

logger = logging.getLogger(__name__)


class EmailSender(ABC):
    """Delivers one HTML email."""

    @abstractmethod
    def send(self, to: str, subject: str, html: str) -> None:
        """Send a message.

        Raises:
            EmailDeliveryError: If the message could not be handed off.
        """
        pass


class SMTPEmailSender(EmailSender):
    """Sends mail through an authenticated SMTP relay."""

    def __init__(
        self,
        host: str = SMTP_HOST,
        port: int = SMTP_PORT,
        user: Optional[str] = SMTP_USER,
        password: Optional[str] = SMTP_PASSWORD,
        use_tls: bool = SMTP_USE_TLS,
        timeout: float = SMTP_TIMEOUT_SECONDS,
    ):
        if not user or not password:
            raise EmailDeliveryError(
                "SMTP credentials not configured. Set SMTP_USER and SMTP_PASSWORD."
            )
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, to: str, subject: str, html: str) -> None:
        message = EmailMessage()
        message["From"] = f'"{APP_NAME}" <{self.user}>'
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(html, subtype="html")

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                smtp.login(self.user, self.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise EmailDeliveryError(f"Failed to send email: {e}") from e
        logger.info("Email sent to %s", to)


class NullEmailSender(EmailSender):
    """Drops messages; used when SMTP is not configured."""

    def send(self, to: str, subject: str, html: str) -> None:
        logger.warning("SMTP not configured, dropping email to %s: %s", to, subject)


def get_default_sender() -> EmailSender:
    """Build the sender matching the current configuration."""
    if is_smtp_configured():
        return SMTPEmailSender()
    return NullEmailSender()


class Notifier:
    """Renders and sends the application's emails."""

    def __init__(self, sender: EmailSender):
        self.sender = sender
        self._verification = VerificationEmailAssembler()
        self._password_reset = PasswordResetEmailAssembler()
        self._purchase_approved = PurchaseApprovedEmailAssembler()

    def send_verification_code(
        self, email: str, code: str, name: Optional[str] = None
    ) -> None:
        """Send an email verification code.

        Raises:
            EmailDeliveryError: If delivery failed.
        """
        subject, html = self._verification.assemble(code, name)
        self.sender.send(email, subject, html)

    def send_password_reset_code(
        self, email: str, code: str, name: Optional[str] = None
    ) -> None:
        """Send a password reset code.

        Raises:
            EmailDeliveryError: If delivery failed.
        """
        subject, html = self._password_reset.assemble(code, name)
        self.sender.send(email, subject, html)

    def notify_purchase_approved(
        self,
        email: str,
        item_type: str,
        item_title: str,
        name: Optional[str] = None,
        expires_at: Optional[str] = None,
    ) -> bool:
        """Tell a requester their access was granted.

        Delivery failures are logged and reported through the return value;
        the approval they follow is already committed.

        Returns:
            True if the message was handed off.
        """
        subject, html = self._purchase_approved.assemble(
            item_type, item_title, name, expires_at
        )
        try:
            self.sender.send(email, subject, html)
        except EmailDeliveryError as e:
            logger.warning("Purchase approval email to %s failed: %s", email, e)
            return False
        return True
