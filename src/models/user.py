"""User database model.

This module defines the User database model using SQLAlchemy.
"""

from sqlalchemy import Boolean, Column, Integer, String
from .base import Base


class UserModel(Base):
    """User database model."""

    __tablename__ = "users"

    user_id = Column(String, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)  # lower-cased
    name = Column(String, nullable=True)
    password_hash = Column(String, nullable=True)  # None for external identities
    role = Column(String, nullable=False, default="student")  # 'student' or 'admin'
    image = Column(String, nullable=True)

    # Bumped to revoke every credential issued for this account
    session_version = Column(Integer, nullable=False, default=0)

    email_verified_at = Column(String, nullable=True)  # ISO format string
    profile_verified = Column(Boolean, nullable=False, default=False)
    is_banned = Column(Boolean, nullable=False, default=False)
    ban_reason = Column(String, nullable=True)
    banned_at = Column(String, nullable=True)  # ISO format string
    is_frozen = Column(Boolean, nullable=False, default=False)

    created_at = Column(String, nullable=False)  # ISO format string
    updated_at = Column(String, nullable=False)  # ISO format string
