"""Purchase request schema definitions."""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ItemType = Literal["course", "resource"]
RequestStatus = Literal["pending", "approved", "rejected"]
ReviewAction = Literal["approve", "reject"]


class PurchaseRequest(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    request_id: str
    user_id: str
    item_type: ItemType
    item_id: str
    item_title: str
    amount: int
    currency: str
    message: Optional[str] = None
    status: RequestStatus
    admin_note: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[str] = None
    created_at: str


class CreatePurchaseRequest(BaseModel):
    item_type: ItemType
    item_id: str = Field(min_length=1)
    message: Optional[str] = None


class ReviewPurchaseRequest(BaseModel):
    action: ReviewAction
    admin_note: Optional[str] = None


class ReviewResult(BaseModel):
    """Outcome of an admin decision on a purchase request."""

    request: PurchaseRequest
    grant_created: bool = False
    payment_created: bool = False
    message: str


class PurchaseRequestStats(BaseModel):
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0


class PurchaseRequestListResponse(BaseModel):
    requests: List[PurchaseRequest]
    stats: PurchaseRequestStats
