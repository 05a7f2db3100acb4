"""Purchase request routes.

Users open and cancel requests for paid items; administrators approve,
reject or delete them.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, status

from core.dependencies import AdminIdentity, CurrentIdentity, PurchaseRequestManagerDep
from core.exceptions import PortalError
from core.http_errors import to_http_exception
from schemas.purchase_request import (
    CreatePurchaseRequest,
    PurchaseRequest,
    PurchaseRequestListResponse,
    ReviewPurchaseRequest,
    ReviewResult,
)
from schemas.user import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/purchase-requests", tags=["Purchase Requests"])
admin_router = APIRouter(prefix="/api/admin/purchase-requests", tags=["Purchase Requests"])


@router.post(
    "",
    response_model=PurchaseRequest,
    status_code=status.HTTP_201_CREATED,
    summary="Request a paid course or resource",
)
def create_purchase_request(
    req: CreatePurchaseRequest,
    identity: CurrentIdentity,
    request_manager: PurchaseRequestManagerDep = None,
) -> PurchaseRequest:
    """Open a pending purchase request for the caller.

    Args:
        req: Item type, item ID and an optional message.
        identity: The requesting user.
        request_manager: Injected PurchaseRequestManager instance.

    Returns:
        The created request.

    Raises:
        HTTPException: 404 if the item does not exist, 400 if it cannot be
            bought or the caller already has access to it.
    """
    try:
        model = request_manager.create(
            identity.user_id, req.item_type, req.item_id, req.message
        )
    except PortalError as e:
        raise to_http_exception(e)
    return PurchaseRequest.model_validate(model)


@router.get("", response_model=List[PurchaseRequest], summary="List own purchase requests")
def list_own_purchase_requests(
    identity: CurrentIdentity,
    request_manager: PurchaseRequestManagerDep = None,
) -> List[PurchaseRequest]:
    models = request_manager.list_for_user(identity.user_id)
    return [PurchaseRequest.model_validate(m) for m in models]


@router.get("/{request_id}", response_model=PurchaseRequest, summary="Get a purchase request")
def get_purchase_request(
    request_id: str,
    identity: CurrentIdentity,
    request_manager: PurchaseRequestManagerDep = None,
) -> PurchaseRequest:
    try:
        model = request_manager.get(request_id, identity)
    except PortalError as e:
        raise to_http_exception(e)
    return PurchaseRequest.model_validate(model)


@router.delete("/{request_id}", response_model=MessageResponse, summary="Cancel a pending request")
def cancel_purchase_request(
    request_id: str,
    identity: CurrentIdentity,
    request_manager: PurchaseRequestManagerDep = None,
) -> MessageResponse:
    try:
        request_manager.cancel(request_id, identity.user_id)
    except PortalError as e:
        raise to_http_exception(e)
    return MessageResponse(message="Request canceled successfully")


@admin_router.get("", response_model=PurchaseRequestListResponse, summary="List purchase requests")
def list_purchase_requests(
    admin: AdminIdentity,
    status: Optional[str] = None,
    item_type: Optional[str] = None,
    request_manager: PurchaseRequestManagerDep = None,
) -> PurchaseRequestListResponse:
    """List requests with per-status counts.

    Args:
        admin: Calling admin.
        status: Optional status filter ('all' disables it).
        item_type: Optional item type filter ('all' disables it).
        request_manager: Injected PurchaseRequestManager instance.
    """
    models = request_manager.list_all(status=status, item_type=item_type)
    return PurchaseRequestListResponse(
        requests=[PurchaseRequest.model_validate(m) for m in models],
        stats=request_manager.stats(),
    )


@admin_router.patch("/{request_id}", response_model=ReviewResult, summary="Approve or reject a request")
def review_purchase_request(
    request_id: str,
    req: ReviewPurchaseRequest,
    admin: AdminIdentity,
    request_manager: PurchaseRequestManagerDep = None,
) -> ReviewResult:
    """Approve or reject a pending request.

    Approval grants access and records the payment in one transaction.

    Raises:
        HTTPException: 404 if the request does not exist, 400 if it was
            already processed, 409 if the grant could not be recorded.
    """
    try:
        return request_manager.review(
            request_id, admin.user_id, req.action, req.admin_note
        )
    except PortalError as e:
        raise to_http_exception(e)


@admin_router.delete("/{request_id}", response_model=MessageResponse, summary="Delete a request")
def delete_purchase_request(
    request_id: str,
    admin: AdminIdentity,
    request_manager: PurchaseRequestManagerDep = None,
) -> MessageResponse:
    try:
        request_manager.delete(request_id)
    except PortalError as e:
        raise to_http_exception(e)
    return MessageResponse(message="Request deleted successfully")
