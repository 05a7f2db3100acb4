"""Resource checkout routes."""

from typing import List

from fastapi import APIRouter

from core.dependencies import AdminIdentity, CurrentIdentity, ResourcePurchaseManagerDep
from core.exceptions import PortalError
from core.http_errors import to_http_exception
from schemas.grant import CheckoutRequest, CheckoutResponse, ResourcePurchase
from schemas.user import MessageResponse

router = APIRouter(prefix="/api/resources", tags=["Resource Purchases"])
admin_router = APIRouter(prefix="/api/admin/resource-purchases", tags=["Resource Purchases"])


@router.post("/purchase", response_model=CheckoutResponse, summary="Start a resource checkout")
def checkout(
    req: CheckoutRequest,
    identity: CurrentIdentity,
    purchase_manager: ResourcePurchaseManagerDep = None,
) -> CheckoutResponse:
    """Open a pending purchase for a paid resource.

    Calling again while a checkout is open returns the open one.

    Raises:
        HTTPException: 404 if the resource does not exist, 400 if it is
            free, inactive, already owned or the amount is wrong.
    """
    try:
        model, created = purchase_manager.checkout(identity.user_id, req.resource_id, req.amount)
    except PortalError as e:
        raise to_http_exception(e)
    return CheckoutResponse(
        message="Purchase request submitted. Please complete payment."
        if created
        else "You already have an open checkout for this resource",
        purchase=ResourcePurchase.model_validate(model),
        created=created,
    )


@admin_router.get("", response_model=List[ResourcePurchase], summary="List resource purchases")
def list_resource_purchases(
    admin: AdminIdentity,
    purchase_manager: ResourcePurchaseManagerDep = None,
) -> List[ResourcePurchase]:
    return [ResourcePurchase.model_validate(m) for m in purchase_manager.list_all()]


@admin_router.post(
    "/{purchase_id}/approve",
    response_model=ResourcePurchase,
    summary="Approve a pending resource purchase",
)
def approve_resource_purchase(
    purchase_id: str,
    admin: AdminIdentity,
    purchase_manager: ResourcePurchaseManagerDep = None,
) -> ResourcePurchase:
    try:
        model = purchase_manager.approve(purchase_id)
    except PortalError as e:
        raise to_http_exception(e)
    return ResourcePurchase.model_validate(model)


@admin_router.post(
    "/{purchase_id}/reject",
    response_model=MessageResponse,
    summary="Reject and remove a pending resource purchase",
)
def reject_resource_purchase(
    purchase_id: str,
    admin: AdminIdentity,
    purchase_manager: ResourcePurchaseManagerDep = None,
) -> MessageResponse:
    try:
        purchase_manager.reject(purchase_id)
    except PortalError as e:
        raise to_http_exception(e)
    return MessageResponse(message="Purchase rejected and removed successfully")
