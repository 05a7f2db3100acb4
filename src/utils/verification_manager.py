"""One-time code management.

Six digit codes for email verification (keyed by the email) and password
reset (keyed by ``password-reset:<email>``). Issuing a code replaces any
earlier code for the same identifier.
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

import pytz
from sqlalchemy.orm import Session

from config import PASSWORD_RESET_CODE_TTL_MINUTES, VERIFICATION_CODE_TTL_MINUTES
from core.exceptions import ValidationError
from models.verification_token import VerificationTokenModel

logger = logging.getLogger(__name__)

PASSWORD_RESET_PREFIX = "password-reset:"


def password_reset_identifier(email: str) -> str:
    return f"{PASSWORD_RESET_PREFIX}{email}"


def generate_code() -> str:
    """Return a random six digit code."""
    return str(100000 + secrets.randbelow(900000))


class VerificationManager:
    """Issues and checks one-time codes using SQLAlchemy.

    Methods do not commit; the calling manager owns the transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def issue(self, identifier: str, ttl_minutes: int) -> str:
        """Replace any code for ``identifier`` with a new one.

        Args:
            identifier: Email, or a password reset identifier.
            ttl_minutes: Minutes until the code expires.

        Returns:
            The new code.
        """
        self.delete_all(identifier)
        code = generate_code()
        expires_at = datetime.now(pytz.utc) + timedelta(minutes=ttl_minutes)
        self.db.add(
            VerificationTokenModel(
                identifier=identifier,
                token=code,
                expires_at=expires_at.isoformat(),
            )
        )
        self.db.flush()
        return code

    def issue_email_code(self, email: str) -> str:
        return self.issue(email, VERIFICATION_CODE_TTL_MINUTES)

    def issue_password_reset_code(self, email: str) -> str:
        return self.issue(
            password_reset_identifier(email), PASSWORD_RESET_CODE_TTL_MINUTES
        )

    def check(self, identifier: str, code: str) -> VerificationTokenModel:
        """Validate a code without consuming it.

        Expired codes are deleted (flushed, not committed).

        Raises:
            ValidationError: If the code is unknown or expired.
        """
        model = self._get(identifier, code)
        if model is None:
            raise ValidationError("Invalid code")

        expires_at = datetime.fromisoformat(model.expires_at.replace("Z", "+00:00"))
        if datetime.now(pytz.utc) > expires_at:
            self.db.delete(model)
            self.db.flush()
            raise ValidationError("Code has expired")
        return model

    def consume(self, identifier: str, code: str) -> None:
        """Validate a code and delete it.

        Raises:
            ValidationError: If the code is unknown or expired.
        """
        model = self.check(identifier, code)
        self.db.delete(model)
        self.db.flush()

    def delete_all(self, identifier: str) -> None:
        self.db.query(VerificationTokenModel).filter(
            VerificationTokenModel.identifier == identifier
        ).delete(synchronize_session=False)

    def _get(self, identifier: str, code: str) -> Optional[VerificationTokenModel]:
        return (
            self.db.query(VerificationTokenModel)
            .filter(
                VerificationTokenModel.identifier == identifier,
                VerificationTokenModel.token == code,
            )
            .first()
        )
