"""Account administration routes.

Each route states the tier it requires: ``AdminIdentity`` admits admins and
the super admin, ``SuperAdminIdentity`` only the super admin. Rules about
which targets an actor may touch live in ``UserManager``.
"""

from typing import List, Literal, Optional

from fastapi import APIRouter, status

from core.dependencies import (
    AdminIdentity,
    SuperAdminEmailDep,
    SuperAdminIdentity,
    UserManagerDep,
)
from core.exceptions import PortalError
from core.http_errors import to_http_exception
from schemas.user import (
    AdminResetPasswordRequest,
    AdminUpdateUserRequest,
    BanUserRequest,
    CreateAdminRequest,
    FreezeUserRequest,
    MessageResponse,
    PublicUser,
    UserListResponse,
)
from utils.converters import user_to_public

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/users", response_model=UserListResponse, summary="List users")
def list_users(
    admin: AdminIdentity,
    role: Optional[Literal["student", "admin"]] = None,
    user_manager: UserManagerDep = None,
) -> UserListResponse:
    return UserListResponse(users=user_manager.list_users(role=role))


@router.put("/users/{user_id}", response_model=PublicUser, summary="Edit a user")
def update_user(
    user_id: str,
    req: AdminUpdateUserRequest,
    admin: AdminIdentity,
    super_admin_email: SuperAdminEmailDep,
    user_manager: UserManagerDep = None,
) -> PublicUser:
    """Edit another user's name or email. Their sessions end if either changes."""
    try:
        user = user_manager.admin_update_user(admin, user_id, req.name, req.email)
    except PortalError as e:
        raise to_http_exception(e)
    return user_to_public(user, super_admin_email)


@router.post("/users/{user_id}/ban", response_model=PublicUser, summary="Ban a user")
def ban_user(
    user_id: str,
    req: BanUserRequest,
    admin: AdminIdentity,
    super_admin_email: SuperAdminEmailDep,
    user_manager: UserManagerDep = None,
) -> PublicUser:
    """Ban a user and end all of their sessions.

    Args:
        user_id: Target account.
        req: Optional ban reason.
        admin: Calling admin.
        super_admin_email: Configured super admin email.
        user_manager: Injected UserManager instance.

    Returns:
        The banned user.

    Raises:
        HTTPException: 403 if the target is the super admin, another admin
            (unless the caller is the super admin) or the caller.
    """
    try:
        user = user_manager.ban_user(admin, user_id, req.reason)
    except PortalError as e:
        raise to_http_exception(e)
    return user_to_public(user, super_admin_email)


@router.post("/users/{user_id}/unban", response_model=PublicUser, summary="Unban a user")
def unban_user(
    user_id: str,
    admin: AdminIdentity,
    super_admin_email: SuperAdminEmailDep,
    user_manager: UserManagerDep = None,
) -> PublicUser:
    try:
        user = user_manager.unban_user(admin, user_id)
    except PortalError as e:
        raise to_http_exception(e)
    return user_to_public(user, super_admin_email)


@router.post("/users/{user_id}/freeze", response_model=PublicUser, summary="Freeze or unfreeze an account")
def freeze_user(
    user_id: str,
    req: FreezeUserRequest,
    super_admin: SuperAdminIdentity,
    super_admin_email: SuperAdminEmailDep,
    user_manager: UserManagerDep = None,
) -> PublicUser:
    try:
        user = user_manager.set_frozen(super_admin, user_id, req.freeze)
    except PortalError as e:
        raise to_http_exception(e)
    return user_to_public(user, super_admin_email)


@router.post(
    "/users/{user_id}/verify-profile",
    response_model=PublicUser,
    summary="Verify a student profile",
)
def verify_profile(
    user_id: str,
    super_admin: SuperAdminIdentity,
    super_admin_email: SuperAdminEmailDep,
    user_manager: UserManagerDep = None,
) -> PublicUser:
    try:
        user = user_manager.verify_profile(super_admin, user_id)
    except PortalError as e:
        raise to_http_exception(e)
    return user_to_public(user, super_admin_email)


@router.post(
    "/users/{user_id}/reset-password",
    response_model=MessageResponse,
    summary="Reset a user's password",
)
def reset_user_password(
    user_id: str,
    req: AdminResetPasswordRequest,
    admin: AdminIdentity,
    user_manager: UserManagerDep = None,
) -> MessageResponse:
    try:
        user_manager.admin_reset_password(admin, user_id, req.password)
    except PortalError as e:
        raise to_http_exception(e)
    return MessageResponse(message="Password reset successfully")


@router.delete("/users/{user_id}", response_model=MessageResponse, summary="Delete a user")
def delete_user(
    user_id: str,
    admin: AdminIdentity,
    user_manager: UserManagerDep = None,
) -> MessageResponse:
    """Delete an account with its grants and requests.

    Admins may delete students; deleting an admin requires the super admin;
    the super admin cannot be deleted.
    """
    try:
        user_manager.delete_user(admin, user_id)
    except PortalError as e:
        raise to_http_exception(e)
    return MessageResponse(message="User deleted successfully")


@router.get("/admins", response_model=List[PublicUser], summary="List admins")
def list_admins(
    super_admin: SuperAdminIdentity,
    super_admin_email: SuperAdminEmailDep,
    user_manager: UserManagerDep = None,
) -> List[PublicUser]:
    return [
        user_to_public(user, super_admin_email)
        for user in user_manager.list_admins(super_admin)
    ]


@router.post(
    "/admins",
    response_model=PublicUser,
    status_code=status.HTTP_201_CREATED,
    summary="Create an admin",
)
def create_admin(
    req: CreateAdminRequest,
    super_admin: SuperAdminIdentity,
    super_admin_email: SuperAdminEmailDep,
    user_manager: UserManagerDep = None,
) -> PublicUser:
    try:
        user = user_manager.create_admin(super_admin, req.name, req.email, req.password)
    except PortalError as e:
        raise to_http_exception(e)
    return user_to_public(user, super_admin_email)


@router.delete("/admins/{user_id}", response_model=MessageResponse, summary="Remove an admin")
def delete_admin(
    user_id: str,
    super_admin: SuperAdminIdentity,
    user_manager: UserManagerDep = None,
) -> MessageResponse:
    try:
        user_manager.delete_admin(super_admin, user_id)
    except PortalError as e:
        raise to_http_exception(e)
    return MessageResponse(message="Admin removed successfully")
