"""Grant and payment schema definitions.

Grants are the durable proof of access: an Enrollment for a course or a
ResourcePurchase for a resource.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Enrollment(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    enrollment_id: str
    user_id: str
    course_id: str
    enrolled_at: str
    expires_at: Optional[str] = None
    progress: int = 0
    is_active: bool = True


class ResourcePurchase(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    purchase_id: str
    user_id: str
    resource_id: str
    amount: int
    currency: str
    status: Literal["pending", "completed"]
    created_at: str


class Payment(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payment_id: str
    user_id: Optional[str] = None
    course_id: str
    amount: int
    currency: str
    status: str
    created_at: str


class ExtendEnrollmentRequest(BaseModel):
    months: int = Field(ge=1, le=120)


class CheckoutRequest(BaseModel):
    resource_id: str = Field(..., min_length=1)
    amount: int = Field(..., ge=0, description="Price shown to the buyer")


class CheckoutResponse(BaseModel):
    message: str
    purchase: ResourcePurchase
    created: bool = Field(..., description="False when an open checkout was returned")
