"""Authentication routes.

This module handles HTTP endpoints for registration, email verification,
password reset, login and session invalidation.
"""

import logging

from fastapi import APIRouter, status

from core.dependencies import (
    CurrentIdentity,
    NotifierDep,
    SessionAuthorityDep,
    SuperAdminEmailDep,
    UserManagerDep,
)
from core.exceptions import PortalError, ValidationError
from core.http_errors import to_http_exception
from schemas.user import (
    CurrentUserResponse,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    VerifyEmailRequest,
)
from utils.converters import user_to_public

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a student account",
)
def register(
    req: RegisterRequest,
    notifier: NotifierDep,
    super_admin_email: SuperAdminEmailDep,
    user_manager: UserManagerDep = None,
) -> RegisterResponse:
    """Register a new student and email a verification code.

    The account is not created if the verification email cannot be sent.

    Args:
        req: Registration request with name, email and password.
        notifier: Injected email notifier.
        super_admin_email: Configured super admin email.
        user_manager: Injected UserManager instance.

    Returns:
        RegisterResponse with the new user.

    Raises:
        HTTPException: 400 for unacceptable emails, 409 for taken ones,
            502 if the verification email failed.
    """
    try:
        user = user_manager.register(req.name, req.email, req.password, notifier)
    except PortalError as e:
        raise to_http_exception(e)

    return RegisterResponse(
        user=user_to_public(user, super_admin_email),
        message="Account created successfully! Please check your email for the verification code.",
    )


@router.post("/verify-email", response_model=MessageResponse, summary="Verify or resend email code")
def verify_email(
    req: VerifyEmailRequest,
    notifier: NotifierDep,
    user_manager: UserManagerDep = None,
) -> MessageResponse:
    """Verify an email code, or send a new one.

    Resending for an unknown email reports success.
    """
    try:
        if req.action == "verify":
            if not req.code:
                raise ValidationError("Verification code is required")
            user_manager.verify_email(req.email, req.code)
            return MessageResponse(message="Email verified successfully")

        user_manager.resend_verification(req.email, notifier)
    except PortalError as e:
        raise to_http_exception(e)
    return MessageResponse(
        message="If an account exists with this email, a verification code has been sent"
    )


@router.post("/forgot-password", response_model=MessageResponse, summary="Request a password reset code")
def forgot_password(
    req: ForgotPasswordRequest,
    notifier: NotifierDep,
    user_manager: UserManagerDep = None,
) -> MessageResponse:
    try:
        user_manager.request_password_reset(req.email, notifier)
    except PortalError as e:
        raise to_http_exception(e)
    return MessageResponse(
        message="If an account exists with this email, you will receive a password reset code"
    )


@router.post("/reset-password", response_model=MessageResponse, summary="Reset password with a code")
def reset_password(
    req: ResetPasswordRequest,
    user_manager: UserManagerDep = None,
) -> MessageResponse:
    """Set a new password using an emailed code.

    Every session of the account ends.
    """
    try:
        user_manager.reset_password(req.email, req.code, req.new_password)
    except PortalError as e:
        raise to_http_exception(e)
    return MessageResponse(message="Password has been reset successfully")


@router.post("/login", response_model=LoginResponse, summary="Log in")
def login(
    req: LoginRequest,
    authority: SessionAuthorityDep,
    super_admin_email: SuperAdminEmailDep,
    user_manager: UserManagerDep = None,
) -> LoginResponse:
    """Login with email and password.

    Args:
        req: Login request with email and password.
        authority: Injected SessionAuthority.
        super_admin_email: Configured super admin email.
        user_manager: Injected UserManager instance.

    Returns:
        LoginResponse with user information and session token.

    Raises:
        HTTPException: 401 for bad credentials, 403 for unverified, banned
            or frozen accounts.
    """
    try:
        credential = authority.authenticate(req.email, req.password)
        user = user_manager.get_user_by_id(credential.user_id)
    except PortalError as e:
        raise to_http_exception(e)

    return LoginResponse(
        user=user_to_public(user, super_admin_email),
        token=credential.token,
        expires_at=credential.expires_at,
    )


@router.post("/logout", response_model=MessageResponse, summary="Log out")
def logout() -> MessageResponse:
    """Logout endpoint.

    Credentials are stateless, so logout is handled client-side by dropping
    the token. Use sign-out-everywhere to revoke every credential.
    """
    return MessageResponse(message="Logged out successfully")


@router.post(
    "/sign-out-everywhere",
    response_model=MessageResponse,
    summary="Invalidate every session",
)
def sign_out_everywhere(
    identity: CurrentIdentity,
    authority: SessionAuthorityDep,
) -> MessageResponse:
    try:
        authority.invalidate_all(identity.user_id)
    except PortalError as e:
        raise to_http_exception(e)
    return MessageResponse(message="Signed out of all sessions")


@router.get("/me", response_model=CurrentUserResponse, summary="Get the current user")
def get_current_user_info(
    identity: CurrentIdentity,
    super_admin_email: SuperAdminEmailDep,
    user_manager: UserManagerDep = None,
) -> CurrentUserResponse:
    try:
        user = user_manager.get_user_by_id(identity.user_id)
    except PortalError as e:
        raise to_http_exception(e)
    return CurrentUserResponse(user=user_to_public(user, super_admin_email))
