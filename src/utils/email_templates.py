"""Email template assembly module.

This module provides classes for assembling Jinja2 email templates with
dynamic content for verification codes, password reset codes and purchase
approvals.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Tuple

import jinja2

from config import (
    APP_NAME,
    EMAIL_TEMPLATE_DIR,
    PASSWORD_RESET_CODE_TTL_MINUTES,
    VERIFICATION_CODE_TTL_MINUTES,
)


def load_template(name: str, template_dir: Path = EMAIL_TEMPLATE_DIR) -> str:
    """Read a template file from the email template directory.

    Args:
        name: File name inside the template directory.
        template_dir: Directory to read from.

    Returns:
        The raw template string.
    """
    return (template_dir / name).read_text(encoding="utf-8")


class TemplateAssembler(ABC):
    """Abstract base class for assembling email templates.

    Subclasses render a (subject, html) pair for one kind of message.
    """

    template_name: str = ""

    def __init__(self, template_string: Optional[str] = None):
        """Initialize the assembler with a Jinja2 template.

        Args:
            template_string: Jinja2 template string; read from
                ``template_name`` when omitted.
        """
        if template_string is None:
            template_string = load_template(self.template_name)
        self.template = jinja2.Template(template_string, autoescape=True)

    @abstractmethod
    def assemble(self, *args, **kwargs) -> Tuple[str, str]:
        """Assemble a message.

        Returns:
            Tuple of (subject, html body).
        """
        pass


class VerificationEmailAssembler(TemplateAssembler):
    """Email carrying the code that confirms a new account's address."""

    template_name = "verification_code.html.j2"

    def assemble(self, code: str, name: Optional[str] = None) -> Tuple[str, str]:
        subject = f"Your verification code: {code} - {APP_NAME}"
        html = self.template.render(
            app_name=APP_NAME,
            name=name,
            code=code,
            ttl_minutes=VERIFICATION_CODE_TTL_MINUTES,
        )
        return subject, html


class PasswordResetEmailAssembler(TemplateAssembler):
    """Email carrying a password reset code."""

    template_name = "password_reset_code.html.j2"

    def assemble(self, code: str, name: Optional[str] = None) -> Tuple[str, str]:
        subject = f"Password reset code - {APP_NAME}"
        html = self.template.render(
            app_name=APP_NAME,
            name=name,
            code=code,
            ttl_minutes=PASSWORD_RESET_CODE_TTL_MINUTES,
        )
        return subject, html


class PurchaseApprovedEmailAssembler(TemplateAssembler):
    """Email telling a requester that access has been granted."""

    template_name = "purchase_approved.html.j2"

    def assemble(
        self,
        item_type: str,
        item_title: str,
        name: Optional[str] = None,
        expires_at: Optional[str] = None,
    ) -> Tuple[str, str]:
        subject = f"Your {item_type} access is ready - {APP_NAME}"
        html = self.template.render(
            app_name=APP_NAME,
            name=name,
            item_type=item_type,
            item_title=item_title,
            expires_at=expires_at,
        )
        return subject, html
