"""Session authority.

Issues signed session credentials and re-validates them on every request.
Credentials are never stored server side. Each one embeds the account's
``session_version`` at issue time, and a credential is valid only while
that snapshot equals the stored counter. Incrementing the counter revokes
every outstanding credential for the account at once.

The counter is read from the database on every verification and must
never be cached.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

import pytz
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.orm import Session

from config import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    JWT_ALGORITHM,
    JWT_SECRET_KEY,
    SUPER_ADMIN_EMAIL,
)
from core.exceptions import (
    BannedError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    NotFoundError,
    SessionExpiredError,
    SessionInvalidatedError,
)
from models.user import UserModel
from schemas.session import Credential, Identity
from utils.passwords import verify_password
from utils.permissions import is_admin_tier, is_super_admin_email, normalize_email

logger = logging.getLogger(__name__)

# Claim carrying the session version snapshot
SESSION_VERSION_CLAIM = "sv"


def bump_session_version(db: Session, user_id: str) -> None:
    """Increment an account's session version inside the caller's transaction.

    The increment is a single ``UPDATE ... SET session_version =
    session_version + 1`` so concurrent bumps never lose an increment.
    Nothing is committed here.

    Args:
        db: SQLAlchemy Session.
        user_id: Account whose credentials are revoked.

    Raises:
        NotFoundError: If the account does not exist.
    """
    updated = (
        db.query(UserModel)
        .filter(UserModel.user_id == user_id)
        .update(
            {UserModel.session_version: UserModel.session_version + 1},
            synchronize_session=False,
        )
    )
    if not updated:
        raise NotFoundError("User", user_id)


class SessionAuthority:
    """Issues, verifies and revokes session credentials."""

    def __init__(
        self,
        db: Session,
        secret_key: str = JWT_SECRET_KEY,
        algorithm: str = JWT_ALGORITHM,
        expire_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES,
        super_admin_email: Optional[str] = SUPER_ADMIN_EMAIL,
    ):
        """Initialize SessionAuthority.

        Args:
            db: SQLAlchemy Session.
            secret_key: HMAC key used to sign credentials.
            algorithm: JWT signing algorithm.
            expire_minutes: Credential lifetime.
            super_admin_email: Email identifying the super admin, if any.
        """
        self.db = db
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes
        self.super_admin_email = super_admin_email

    def is_super_admin(self, email: Optional[str]) -> bool:
        return is_super_admin_email(email, self.super_admin_email)

    def authenticate(self, email: str, password: str) -> Credential:
        """Check an email/password pair and issue a credential.

        Args:
            email: Account email (any case, surrounding whitespace ignored).
            password: Plain text password.

        Returns:
            A freshly signed Credential.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password.
            EmailNotVerifiedError: A student account with an unverified email.
            BannedError: The account is banned or frozen.
        """
        model = (
            self.db.query(UserModel)
            .filter(UserModel.email == normalize_email(email))
            .first()
        )
        if model is None or not verify_password(password, model.password_hash):
            raise InvalidCredentialsError()

        admin_tier = is_admin_tier(model.role, self.is_super_admin(model.email))
        if not admin_tier and not model.email_verified_at:
            raise EmailNotVerifiedError(model.user_id)
        if model.is_banned:
            raise BannedError(model.user_id, model.ban_reason)
        if model.is_frozen:
            raise BannedError(model.user_id, "account is frozen")

        logger.info("Authenticated user %s", model.user_id)
        return self.issue(model)

    def issue(self, model: UserModel) -> Credential:
        """Sign a credential for an account's current session version.

        Args:
            model: The account, freshly loaded.

        Returns:
            Credential embedding id, role, email and session version.
        """
        issued_at = datetime.now(pytz.utc)
        expires_at = issued_at + timedelta(minutes=self.expire_minutes)
        claims = {
            "sub": model.user_id,
            "email": model.email,
            "role": model.role,
            SESSION_VERSION_CLAIM: model.session_version,
            "iat": issued_at,
            "exp": expires_at,
        }
        token = jwt.encode(claims, self.secret_key, algorithm=self.algorithm)
        return Credential(
            token=token,
            user_id=model.user_id,
            session_version=model.session_version,
            issued_at=issued_at.isoformat(),
            expires_at=expires_at.isoformat(),
        )

    def verify(self, token: str) -> Identity:
        """Validate a credential and resolve the caller.

        Signature and expiry are checked from the token alone; the session
        version is compared against a live read of the account.

        Args:
            token: Encoded credential.

        Returns:
            Identity of the caller, using the account's stored role and email.

        Raises:
            SessionExpiredError: Bad signature, malformed claims or past expiry.
            SessionInvalidatedError: Session version mismatch or account gone.
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise SessionExpiredError()
        except JWTError:
            raise SessionExpiredError("Invalid session credential")

        user_id = payload.get("sub")
        version = payload.get(SESSION_VERSION_CLAIM)
        if not isinstance(user_id, str) or not isinstance(version, int):
            raise SessionExpiredError("Invalid session credential")

        # Column query: always hits the database, never the identity map
        row = (
            self.db.query(UserModel.session_version, UserModel.role, UserModel.email)
            .filter(UserModel.user_id == user_id)
            .first()
        )
        if row is None or row.session_version != version:
            logger.info("Rejected stale credential for user %s", user_id)
            raise SessionInvalidatedError(user_id)

        return Identity(
            user_id=user_id,
            email=row.email,
            role=row.role,
            is_super_admin=self.is_super_admin(row.email),
        )

    def invalidate_all(self, user_id: str) -> None:
        """Revoke every outstanding credential of an account.

        Args:
            user_id: Account whose sessions end now.

        Raises:
            NotFoundError: If the account does not exist.
        """
        try:
            bump_session_version(self.db, user_id)
            self.db.commit()
        except NotFoundError:
            self.db.rollback()
            raise
        logger.info("Invalidated all sessions for user %s", user_id)
