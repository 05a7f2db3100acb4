"""Conversions between database models and schema objects."""

from typing import Optional

from models.user import UserModel
from schemas.user import PublicUser, User, UserListItem
from utils.permissions import is_super_admin_email


def user_to_model(user: User) -> UserModel:
    return UserModel(
        user_id=user.user_id,
        email=user.email,
        name=user.name,
        password_hash=user.password_hash,
        role=user.role,
        image=user.image,
        session_version=user.session_version,
        email_verified_at=user.email_verified_at,
        profile_verified=user.profile_verified,
        is_banned=user.is_banned,
        ban_reason=user.ban_reason,
        banned_at=user.banned_at,
        is_frozen=user.is_frozen,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def model_to_user(model: UserModel) -> User:
    return User(
        user_id=model.user_id,
        email=model.email,
        name=model.name,
        password_hash=model.password_hash,
        role=model.role,
        image=model.image,
        session_version=model.session_version,
        email_verified_at=model.email_verified_at,
        profile_verified=model.profile_verified,
        is_banned=model.is_banned,
        ban_reason=model.ban_reason,
        banned_at=model.banned_at,
        is_frozen=model.is_frozen,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def user_to_public(user: User, super_admin_email: Optional[str]) -> PublicUser:
    """Strip credentials and counters from a user before returning it."""
    return PublicUser(
        user_id=user.user_id,
        email=user.email,
        name=user.name,
        role=user.role,
        image=user.image,
        is_super_admin=is_super_admin_email(user.email, super_admin_email),
        email_verified=user.email_verified_at is not None,
        profile_verified=user.profile_verified,
        is_banned=user.is_banned,
        ban_reason=user.ban_reason,
        banned_at=user.banned_at,
        is_frozen=user.is_frozen,
        created_at=user.created_at,
    )


def user_to_list_item(
    user: User, enrollment_count: int, super_admin_email: Optional[str]
) -> UserListItem:
    public = user_to_public(user, super_admin_email)
    return UserListItem(**public.model_dump(), enrollment_count=enrollment_count)
