"""Self-service account routes."""

from typing import List

from fastapi import APIRouter

from core.dependencies import (
    CurrentIdentity,
    EnrollmentManagerDep,
    SuperAdminEmailDep,
    UserManagerDep,
)
from core.exceptions import PortalError
from core.http_errors import to_http_exception
from schemas.grant import ResourcePurchase
from schemas.user import (
    ChangePasswordRequest,
    CurrentUserResponse,
    MessageResponse,
    UpdateProfileRequest,
)
from utils.converters import user_to_public

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.put("/me", response_model=CurrentUserResponse, summary="Update own profile")
def update_profile(
    req: UpdateProfileRequest,
    identity: CurrentIdentity,
    super_admin_email: SuperAdminEmailDep,
    user_manager: UserManagerDep = None,
) -> CurrentUserResponse:
    """Update the caller's name, email and image.

    Changing the name or email signs the user out everywhere, including
    the credential used for this request.

    Raises:
        HTTPException: 400 for an unacceptable email, 403 for the reserved
            super-admin email, 409 if it is taken.
    """
    try:
        user = user_manager.update_profile(
            identity.user_id, req.name, req.email, req.image
        )
    except PortalError as e:
        raise to_http_exception(e)
    return CurrentUserResponse(user=user_to_public(user, super_admin_email))


@router.post("/me/password", response_model=MessageResponse, summary="Change own password")
def change_password(
    req: ChangePasswordRequest,
    identity: CurrentIdentity,
    user_manager: UserManagerDep = None,
) -> MessageResponse:
    try:
        user_manager.change_password(
            identity.user_id, req.current_password, req.new_password
        )
    except PortalError as e:
        raise to_http_exception(e)
    return MessageResponse(message="Password changed. Please sign in again.")


@router.get(
    "/me/resource-purchases",
    response_model=List[ResourcePurchase],
    summary="List own resource purchases",
)
def list_resource_purchases(
    identity: CurrentIdentity,
    enrollment_manager: EnrollmentManagerDep = None,
) -> List[ResourcePurchase]:
    models = enrollment_manager.list_resource_purchases(identity.user_id)
    return [ResourcePurchase.model_validate(m) for m in models]
