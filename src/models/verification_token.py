"""Verification code database model.

Holds short-lived numeric codes for email verification and password reset.
Password reset codes use the identifier ``password-reset:<email>``.
"""

from sqlalchemy import Column, String
from .base import Base


class VerificationTokenModel(Base):
    """One-time code database model, keyed by (identifier, token)."""

    __tablename__ = "verification_tokens"

    identifier = Column(String, primary_key=True, index=True)
    token = Column(String, primary_key=True)
    expires_at = Column(String, nullable=False)  # ISO format string
