"""Password hashing helpers.

Uses bcrypt directly instead of passlib to avoid initialization issues.
"""

import logging
from typing import Optional, Union

import bcrypt

from config import BCRYPT_ROUNDS

logger = logging.getLogger(__name__)

# bcrypt ignores everything past this many bytes
BCRYPT_MAX_BYTES = 72


def _to_bytes(password: Union[str, bytes]) -> bytes:
    if isinstance(password, str):
        password = password.encode("utf-8")
    if len(password) > BCRYPT_MAX_BYTES:
        password = password[:BCRYPT_MAX_BYTES]
    return password


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a password using bcrypt.

    Args:
        password: Plain text password.
        rounds: Bcrypt cost factor.

    Returns:
        Hashed password (bcrypt hash string).
    """
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        logger.warning("Password exceeds %d bytes, truncating", BCRYPT_MAX_BYTES)
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_to_bytes(password), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a password against a bcrypt hash.

    Args:
        plain_password: Plain text password to verify.
        hashed_password: Bcrypt hash string, or None for accounts without one.

    Returns:
        True if password matches, False otherwise.
    """
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(
            _to_bytes(plain_password), hashed_password.encode("utf-8")
        )
    except ValueError as e:
        # Malformed hash stored for this account
        logger.error("Password verification error: %s", e)
        return False
