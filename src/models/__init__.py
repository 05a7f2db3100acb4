"""Database models.

Importing this package registers every model with ``Base.metadata``.
"""

from .base import Base
from .user import UserModel
from .verification_token import VerificationTokenModel
from .course import CourseModel
from .resource import ResourceModel
from .enrollment import EnrollmentModel
from .resource_purchase import ResourcePurchaseModel
from .payment import PaymentModel
from .purchase_request import PurchaseRequestModel

__all__ = [
    "Base",
    "UserModel",
    "VerificationTokenModel",
    "CourseModel",
    "ResourceModel",
    "EnrollmentModel",
    "ResourcePurchaseModel",
    "PaymentModel",
    "PurchaseRequestModel",
]
