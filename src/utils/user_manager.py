"""User management utilities.

This module provides account management including registration with email
verification, password reset, profile edits and the administrative actions
(ban, freeze, delete, admin provisioning). Every change that must end a
user's existing sessions bumps the account's session version inside the
same transaction.
"""

import logging
import re
from datetime import datetime
from typing import Dict, List, Optional

import pytz
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import DISPOSABLE_EMAIL_DOMAINS, SUPER_ADMIN_EMAIL
from core.exceptions import (
    BannedError,
    ConflictError,
    EmailDeliveryError,
    ForbiddenError,
    InvalidCredentialsError,
    NotFoundError,
    ValidationError,
)
from models.enrollment import EnrollmentModel
from models.payment import PaymentModel
from models.purchase_request import PurchaseRequestModel
from models.resource_purchase import ResourcePurchaseModel
from models.user import UserModel
from schemas.session import Identity
from schemas.user import User, UserListItem
from utils.converters import model_to_user, user_to_list_item, user_to_model
from utils.email_sender import Notifier
from utils.passwords import hash_password, verify_password
from utils.permissions import (
    Role,
    is_super_admin_email,
    normalize_email,
    require_admin,
    require_super_admin,
)
from utils.session_authority import bump_session_version
from utils.verification_manager import VerificationManager, password_reset_identifier

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9]([a-zA-Z0-9._-]*[a-zA-Z0-9])?"
    r"@[a-zA-Z0-9]([a-zA-Z0-9-]*[a-zA-Z0-9])?(\.[a-zA-Z]{2,})+$"
)


def validate_email(email: str) -> str:
    """Normalize an email address and reject malformed or throwaway ones.

    Args:
        email: Address as typed by the user.

    Returns:
        The lower-cased, trimmed address.

    Raises:
        ValidationError: If the address is not acceptable.
    """
    normalized = normalize_email(email)
    if not EMAIL_PATTERN.match(normalized):
        raise ValidationError("Please enter a valid email address")
    if len(normalized) > 254 or len(normalized) < 5:
        raise ValidationError("Email address is invalid")

    local_part, domain = normalized.split("@", 1)
    if len(local_part) > 64 or ".." in local_part:
        raise ValidationError("Email format is invalid")
    if domain in DISPOSABLE_EMAIL_DOMAINS:
        raise ValidationError(
            "Temporary email addresses are not allowed. Please use a valid email address"
        )
    return normalized


def _now() -> str:
    return datetime.now(pytz.utc).isoformat()


class UserManager:
    """Manages user data persistence and operations using SQLAlchemy."""

    def __init__(
        self,
        db: Session,
        super_admin_email: Optional[str] = SUPER_ADMIN_EMAIL,
    ):
        """Initialize UserManager.

        Args:
            db: SQLAlchemy Session.
            super_admin_email: Email identifying the super admin, if any.
        """
        self.db = db
        self.super_admin_email = super_admin_email
        self.verification = VerificationManager(db)

    def is_super_admin(self, user: User) -> bool:
        return is_super_admin_email(user.email, self.super_admin_email)

    # --- Lookups ---

    def get_user_by_id(self, user_id: str) -> User:
        """Get a user by user ID.

        Raises:
            NotFoundError: If no such user exists.
        """
        return model_to_user(self._get_model(user_id))

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Get a user by email, or None."""
        model = self._get_model_by_email(email)
        if model:
            return model_to_user(model)
        return None

    def list_users(self, role: Optional[str] = None) -> List[UserListItem]:
        """List users, newest first, with their enrollment counts.

        Args:
            role: Optional role filter ('student' or 'admin').
        """
        query = self.db.query(UserModel)
        if role:
            query = query.filter(UserModel.role == role)
        models = query.order_by(UserModel.created_at.desc()).all()

        counts: Dict[str, int] = dict(
            self.db.query(EnrollmentModel.user_id, func.count(EnrollmentModel.enrollment_id))
            .group_by(EnrollmentModel.user_id)
            .all()
        )
        return [
            user_to_list_item(
                model_to_user(m), counts.get(m.user_id, 0), self.super_admin_email
            )
            for m in models
        ]

    # --- Creation ---

    def create_user(
        self,
        email: str,
        password: Optional[str],
        name: Optional[str] = None,
        role: str = Role.STUDENT.value,
        email_verified: bool = False,
        commit: bool = True,
        allow_super_admin_email: bool = False,
    ) -> User:
        """Create a new user.

        Args:
            email: Email address (validated and normalized).
            password: Plain text password, or None for external identities.
            name: Display name.
            role: 'student' or 'admin'.
            email_verified: Mark the email verified immediately.
            commit: Commit the transaction; False leaves it to the caller.
            allow_super_admin_email: Permit the configured super-admin email.

        Returns:
            Created User object.

        Raises:
            ValidationError: If the email is not acceptable.
            ForbiddenError: If the email is the reserved super-admin email.
            ConflictError: If the email is already registered.
        """
        normalized = validate_email(email)
        if not allow_super_admin_email:
            self._check_email_not_reserved(normalized)
        if self._get_model_by_email(normalized):
            raise ConflictError("An account with this email already exists")

        user = User(
            email=normalized,
            name=name.strip() if name else None,
            password_hash=hash_password(password) if password else None,
            role=role,
            email_verified_at=_now() if email_verified else None,
            profile_verified=role == Role.ADMIN.value,
        )

        # Two concurrent registrations can both pass the check above; the
        # unique index on email catches the second one.
        try:
            self.db.add(user_to_model(user))
            self.db.flush()
            if commit:
                self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("An account with this email already exists") from e

        logger.info("Created user %s with role %s", user.user_id, role)
        return user

    def register(self, name: str, email: str, password: str, notifier: Notifier) -> User:
        """Register a student and email a verification code.

        The account, the code and the email are one unit: if the email cannot
        be sent, nothing is persisted.

        Raises:
            ValidationError: If the email is not acceptable.
            ConflictError: If the email is already registered.
            EmailDeliveryError: If the verification email failed.
        """
        user = self.create_user(email, password, name=name, commit=False)
        try:
            code = self.verification.issue_email_code(user.email)
            notifier.send_verification_code(user.email, code, user.name)
        except Exception:
            self.db.rollback()
            logger.warning("Registration of %s rolled back", user.user_id)
            raise
        self.db.commit()
        return user

    def ensure_super_admin(self, email: str, password: str, name: str) -> User:
        """Create or repair the configured super admin account.

        The account ends up an unbanned, unfrozen, verified admin with the
        given password and name.
        """
        normalized = normalize_email(email)
        model = self._get_model_by_email(normalized)
        if model is None:
            return self.create_user(
                normalized,
                password,
                name=name,
                role=Role.ADMIN.value,
                email_verified=True,
                allow_super_admin_email=True,
            )

        model.password_hash = hash_password(password)
        model.name = name
        model.role = Role.ADMIN.value
        model.is_banned = False
        model.ban_reason = None
        model.banned_at = None
        model.is_frozen = False
        model.profile_verified = True
        model.email_verified_at = model.email_verified_at or _now()
        model.updated_at = _now()
        bump_session_version(self.db, model.user_id)
        self.db.commit()
        logger.info("Updated super admin account %s", model.user_id)
        return model_to_user(model)

    # --- Email verification and password reset ---

    def resend_verification(self, email: str, notifier: Notifier) -> None:
        """Send a fresh verification code.

        Unknown emails are ignored silently so callers cannot enumerate
        accounts.

        Raises:
            ValidationError: If the email is already verified.
            EmailDeliveryError: If the email failed.
        """
        model = self._get_model_by_email(email)
        if model is None:
            return
        if model.email_verified_at:
            raise ValidationError("Email is already verified")

        code = self.verification.issue_email_code(model.email)
        self.db.commit()
        notifier.send_verification_code(model.email, code, model.name)

    def verify_email(self, email: str, code: str) -> User:
        """Consume a verification code and mark the email verified.

        Raises:
            ValidationError: If the code is unknown or expired.
        """
        normalized = normalize_email(email)
        try:
            self.verification.consume(normalized, code)
        except ValidationError:
            # Keeps the deletion of an expired code
            self.db.commit()
            raise

        model = self._get_model_by_email(normalized)
        if model is None:
            self.db.rollback()
            raise ValidationError("Invalid code")
        model.email_verified_at = _now()
        model.updated_at = model.email_verified_at
        self.db.commit()
        logger.info("Verified email for user %s", model.user_id)
        return model_to_user(model)

    def request_password_reset(self, email: str, notifier: Notifier) -> None:
        """Issue and email a password reset code.

        Unknown emails are ignored silently. Delivery failures are logged; the
        issued code stays valid.

        Raises:
            BannedError: If the account is banned.
        """
        model = self._get_model_by_email(email)
        if model is None:
            return
        if model.is_banned:
            raise BannedError(model.user_id, model.ban_reason)

        code = self.verification.issue_password_reset_code(model.email)
        self.db.commit()
        try:
            notifier.send_password_reset_code(model.email, code, model.name)
        except EmailDeliveryError as e:
            logger.warning("Password reset email for user %s failed: %s", model.user_id, e)

    def reset_password(self, email: str, code: str, new_password: str) -> User:
        """Set a new password using a reset code and end all sessions.

        Raises:
            ValidationError: If the code is unknown or expired.
            NotFoundError: If the account no longer exists.
            BannedError: If the account is banned.
        """
        normalized = normalize_email(email)
        identifier = password_reset_identifier(normalized)
        try:
            self.verification.check(identifier, code)
        except ValidationError:
            self.db.commit()
            raise

        model = self._get_model_by_email(normalized)
        if model is None:
            raise NotFoundError("User", normalized)
        if model.is_banned:
            raise BannedError(model.user_id, model.ban_reason)

        model.password_hash = hash_password(new_password)
        model.updated_at = _now()
        self.verification.consume(identifier, code)
        bump_session_version(self.db, model.user_id)
        self.db.commit()
        logger.info("Password reset for user %s", model.user_id)
        return model_to_user(model)

    # --- Self service ---

    def update_profile(
        self,
        user_id: str,
        name: str,
        email: str,
        image: Optional[str] = None,
    ) -> User:
        """Update the caller's own name, email and image.

        Changing the name or the email ends all of the user's sessions.

        Raises:
            ValidationError: If the new email is not acceptable.
            ForbiddenError: If the new email is the reserved super-admin email.
            ConflictError: If the new email belongs to another account.
        """
        model = self._get_model(user_id)
        changed = self._apply_identity_change(model, name, email)
        model.image = image or None
        model.updated_at = _now()
        self._commit_identity_change(model, changed)
        return model_to_user(model)

    def change_password(self, user_id: str, current_password: str, new_password: str) -> User:
        """Change the caller's password and end all of their sessions.

        Raises:
            InvalidCredentialsError: If the current password is wrong.
        """
        model = self._get_model(user_id)
        if not verify_password(current_password, model.password_hash):
            raise InvalidCredentialsError()
        model.password_hash = hash_password(new_password)
        model.updated_at = _now()
        bump_session_version(self.db, model.user_id)
        self.db.commit()
        logger.info("Password changed for user %s", user_id)
        return model_to_user(model)

    # --- Administration ---

    def admin_update_user(
        self,
        actor: Identity,
        user_id: str,
        name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> User:
        """Edit another user's name or email (admin or super admin).

        Raises:
            ForbiddenError: If the actor may not edit this account.
        """
        require_admin(actor)
        model = self._get_model(user_id)
        self._guard_target(actor, model)
        changed = self._apply_identity_change(
            model, name if name is not None else model.name, email or model.email
        )
        model.updated_at = _now()
        self._commit_identity_change(model, changed)
        return model_to_user(model)

    def ban_user(self, actor: Identity, user_id: str, reason: Optional[str] = None) -> User:
        """Ban an account and end all of its sessions.

        Admins may ban students; only the super admin may ban admins; nobody
        may ban the super admin.

        Raises:
            ForbiddenError: If the actor may not ban this account.
        """
        require_admin(actor)
        model = self._get_model(user_id)
        self._guard_target(actor, model)
        model.is_banned = True
        model.ban_reason = reason
        model.banned_at = _now()
        model.updated_at = model.banned_at
        bump_session_version(self.db, model.user_id)
        self.db.commit()
        logger.info("User %s banned by %s", user_id, actor.user_id)
        return model_to_user(model)

    def unban_user(self, actor: Identity, user_id: str) -> User:
        require_admin(actor)
        model = self._get_model(user_id)
        self._guard_target(actor, model)
        model.is_banned = False
        model.ban_reason = None
        model.banned_at = None
        model.updated_at = _now()
        self.db.commit()
        logger.info("User %s unbanned by %s", user_id, actor.user_id)
        return model_to_user(model)

    def set_frozen(self, actor: Identity, user_id: str, freeze: bool) -> User:
        """Freeze or unfreeze an account (super admin only).

        Freezing ends all of the account's sessions.

        Raises:
            ForbiddenError: If the actor is not the super admin, or the target is.
        """
        require_super_admin(actor)
        model = self._get_model(user_id)
        self._guard_target(actor, model)
        model.is_frozen = freeze
        model.updated_at = _now()
        if freeze:
            bump_session_version(self.db, model.user_id)
        self.db.commit()
        logger.info("User %s frozen=%s by %s", user_id, freeze, actor.user_id)
        return model_to_user(model)

    def verify_profile(self, actor: Identity, user_id: str) -> User:
        """Mark a student's profile as verified (super admin only)."""
        require_super_admin(actor)
        model = self._get_model(user_id)
        self._guard_target(actor, model)
        if model.role != Role.STUDENT.value:
            raise ForbiddenError("Only student profiles can be verified")
        model.profile_verified = True
        model.updated_at = _now()
        self.db.commit()
        return model_to_user(model)

    def admin_reset_password(self, actor: Identity, user_id: str, password: str) -> User:
        """Set another user's password and end all of their sessions."""
        require_admin(actor)
        model = self._get_model(user_id)
        self._guard_target(actor, model)
        model.password_hash = hash_password(password)
        model.updated_at = _now()
        bump_session_version(self.db, model.user_id)
        self.db.commit()
        logger.info("Password of user %s reset by %s", user_id, actor.user_id)
        return model_to_user(model)

    def delete_user(self, actor: Identity, user_id: str) -> None:
        """Delete an account and its grants and requests.

        Payments are kept with their user reference cleared.

        Raises:
            ForbiddenError: If the actor may not delete this account.
        """
        require_admin(actor)
        model = self._get_model(user_id)
        self._guard_target(actor, model)

        self.db.query(EnrollmentModel).filter(
            EnrollmentModel.user_id == user_id
        ).delete(synchronize_session=False)
        self.db.query(ResourcePurchaseModel).filter(
            ResourcePurchaseModel.user_id == user_id
        ).delete(synchronize_session=False)
        self.db.query(PurchaseRequestModel).filter(
            PurchaseRequestModel.user_id == user_id
        ).delete(synchronize_session=False)
        self.db.query(PaymentModel).filter(PaymentModel.user_id == user_id).update(
            {PaymentModel.user_id: None}, synchronize_session=False
        )
        self.verification.delete_all(model.email)
        self.verification.delete_all(password_reset_identifier(model.email))
        self.db.delete(model)
        self.db.commit()
        logger.info("User %s deleted by %s", user_id, actor.user_id)

    def list_admins(self, actor: Identity) -> List[User]:
        """List admin accounts other than the super admin (super admin only)."""
        require_super_admin(actor)
        models = (
            self.db.query(UserModel)
            .filter(UserModel.role == Role.ADMIN.value)
            .order_by(UserModel.created_at.desc())
            .all()
        )
        return [
            model_to_user(m)
            for m in models
            if not is_super_admin_email(m.email, self.super_admin_email)
        ]

    def create_admin(self, actor: Identity, name: str, email: str, password: str) -> User:
        """Provision a verified admin account (super admin only)."""
        require_super_admin(actor)
        user = self.create_user(
            email, password, name=name, role=Role.ADMIN.value, email_verified=True
        )
        logger.info("Admin %s created by %s", user.user_id, actor.user_id)
        return user

    def delete_admin(self, actor: Identity, user_id: str) -> None:
        """Remove an admin account (super admin only)."""
        require_super_admin(actor)
        model = self._get_model(user_id)
        if model.role != Role.ADMIN.value:
            raise NotFoundError("Admin", user_id)
        self.delete_user(actor, user_id)

    # --- Helpers ---

    def _get_model(self, user_id: str) -> UserModel:
        model = self.db.query(UserModel).filter(UserModel.user_id == user_id).first()
        if not model:
            raise NotFoundError("User", user_id)
        return model

    def _get_model_by_email(self, email: str) -> Optional[UserModel]:
        return (
            self.db.query(UserModel)
            .filter(UserModel.email == normalize_email(email))
            .first()
        )

    def _guard_target(self, actor: Identity, model: UserModel) -> None:
        """Apply the rules protecting privileged accounts from other actors."""
        if is_super_admin_email(model.email, self.super_admin_email):
            raise ForbiddenError("The super admin account cannot be modified")
        if model.user_id == actor.user_id:
            raise ForbiddenError("You cannot perform this action on your own account")
        if model.role == Role.ADMIN.value and not actor.is_super_admin:
            raise ForbiddenError("Only the super admin can manage admin accounts")

    def _apply_identity_change(
        self, model: UserModel, name: Optional[str], email: str
    ) -> bool:
        """Set name and email on ``model``; return True if either changed."""
        new_email = validate_email(email)
        if new_email != model.email:
            self._check_email_not_reserved(new_email)
        new_name = name.strip() if name else None
        if new_email != model.email and self._get_model_by_email(new_email):
            raise ConflictError("Email is already in use")

        changed = new_email != model.email or new_name != model.name
        model.email = new_email
        model.name = new_name
        return changed

    def _check_email_not_reserved(self, email: str) -> None:
        """Refuse the super-admin email to anyone but the provisioning path."""
        if is_super_admin_email(email, self.super_admin_email):
            raise ForbiddenError("This email address is reserved")

    def _commit_identity_change(self, model: UserModel, changed: bool) -> None:
        if changed:
            bump_session_version(self.db, model.user_id)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("Email is already in use") from e
        if changed:
            logger.info("Identity of user %s changed, sessions invalidated", model.user_id)
