"""User schema definitions.

This module defines the User domain object and the request/response bodies
of the authentication, profile and account administration endpoints.
"""

import uuid
from datetime import datetime
from typing import List, Literal, Optional

import pytz
from pydantic import BaseModel, Field

from config import MIN_PASSWORD_LENGTH

RoleName = Literal["student", "admin"]


class User(BaseModel):
    """An account as seen by the managers (includes the password hash)."""

    user_id: str = Field(
        description="The unique identifier for the user.",
        default_factory=lambda: str(uuid.uuid4()),
    )
    email: str = Field(description="Lower-cased, trimmed email address.")
    name: Optional[str] = None
    password_hash: Optional[str] = Field(
        default=None,
        description="Bcrypt hash; None for accounts linked to an external identity.",
    )
    role: RoleName = "student"
    image: Optional[str] = None
    session_version: int = 0
    email_verified_at: Optional[str] = None
    profile_verified: bool = False
    is_banned: bool = False
    ban_reason: Optional[str] = None
    banned_at: Optional[str] = None
    is_frozen: bool = False
    created_at: str = Field(
        default_factory=lambda: datetime.now(pytz.utc).isoformat()
    )
    updated_at: str = Field(
        default_factory=lambda: datetime.now(pytz.utc).isoformat()
    )


class PublicUser(BaseModel):
    """User information safe to return to clients."""

    user_id: str
    email: str
    name: Optional[str] = None
    role: RoleName
    image: Optional[str] = None
    is_super_admin: bool = False
    email_verified: bool = False
    profile_verified: bool = False
    is_banned: bool = False
    ban_reason: Optional[str] = None
    banned_at: Optional[str] = None
    is_frozen: bool = False
    created_at: str


class UserListItem(PublicUser):
    """Row of the admin user listing."""

    enrollment_count: int = 0


# --- Authentication ---


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=1)
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)


class RegisterResponse(BaseModel):
    user: PublicUser
    message: str
    requires_verification: bool = True


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    user: PublicUser
    token: str
    expires_at: str


class CurrentUserResponse(BaseModel):
    user: PublicUser


class VerifyEmailRequest(BaseModel):
    """Verify a code, or (any other action) resend a fresh one."""

    email: str
    code: Optional[str] = None
    action: Literal["verify", "resend"] = "resend"


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    email: str
    code: str
    new_password: str = Field(min_length=MIN_PASSWORD_LENGTH)


class MessageResponse(BaseModel):
    success: bool = True
    message: str


# --- Profile ---


class UpdateProfileRequest(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=1)
    image: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=MIN_PASSWORD_LENGTH)


# --- Administration ---


class AdminUpdateUserRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = Field(default=None, min_length=1)


class BanUserRequest(BaseModel):
    reason: Optional[str] = None


class FreezeUserRequest(BaseModel):
    freeze: bool


class AdminResetPasswordRequest(BaseModel):
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)


class CreateAdminRequest(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=1)
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)


class UserListResponse(BaseModel):
    users: List[UserListItem]
