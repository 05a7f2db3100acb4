"""Grant and payment queries."""

import logging
from datetime import datetime
from typing import Callable, List

from sqlalchemy.orm import Session

from core.exceptions import NotFoundError
from models.enrollment import EnrollmentModel
from models.payment import PaymentModel
from models.resource_purchase import ResourcePurchaseModel
from schemas.grant import Enrollment
from utils.purchase_request_manager import add_months, utc_now

logger = logging.getLogger(__name__)


def parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class EnrollmentManager:
    """Reads and adjusts enrollments, resource purchases and payments."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock

    def list_enrollments(self, user_id: str) -> List[Enrollment]:
        """List a user's enrollments with ``is_active`` derived from expiry."""
        models = (
            self.db.query(EnrollmentModel)
            .filter(EnrollmentModel.user_id == user_id)
            .order_by(EnrollmentModel.enrolled_at.desc())
            .all()
        )
        return [self._to_schema(m) for m in models]

    def list_resource_purchases(self, user_id: str) -> List[ResourcePurchaseModel]:
        return (
            self.db.query(ResourcePurchaseModel)
            .filter(ResourcePurchaseModel.user_id == user_id)
            .order_by(ResourcePurchaseModel.created_at.desc())
            .all()
        )

    def list_payments(self) -> List[PaymentModel]:
        return (
            self.db.query(PaymentModel)
            .order_by(PaymentModel.created_at.desc())
            .all()
        )

    def extend(self, enrollment_id: str, months: int) -> Enrollment:
        """Push an enrollment's expiry back by ``months`` thirty-day months.

        The extension starts from the current expiry, or from now when the
        enrollment has none.

        Raises:
            NotFoundError: If the enrollment does not exist.
        """
        model = (
            self.db.query(EnrollmentModel)
            .filter(EnrollmentModel.enrollment_id == enrollment_id)
            .first()
        )
        if not model:
            raise NotFoundError("Enrollment", enrollment_id)

        start = parse_timestamp(model.expires_at) if model.expires_at else self.clock()
        model.expires_at = add_months(start, months).isoformat()
        self.db.commit()
        logger.info("Extended enrollment %s by %s months", enrollment_id, months)
        return self._to_schema(model)

    def _to_schema(self, model: EnrollmentModel) -> Enrollment:
        enrollment = Enrollment.model_validate(model)
        if model.expires_at:
            enrollment.is_active = parse_timestamp(model.expires_at) > self.clock()
        return enrollment
