"""Direct resource checkout.

A student can start a checkout for a paid resource, which leaves a
``pending`` ResourcePurchase while the payment happens out of band. An
administrator then approves it (the row becomes ``completed`` and grants
access) or rejects it (the row is removed). A purchase request approved for
the same resource completes the pending row instead of adding a second one.
"""

import logging
import uuid
from datetime import datetime
from typing import Callable, List, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.exceptions import (
    AlreadyGrantedError,
    AlreadyReviewedError,
    NotFoundError,
    ValidationError,
)
from models.resource_purchase import ResourcePurchaseModel
from utils.catalog_manager import CatalogManager
from utils.purchase_request_manager import COMPLETED, PENDING, utc_now

logger = logging.getLogger(__name__)


class ResourcePurchaseManager:
    """Starts, approves and rejects resource checkouts."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock
        self.catalog = CatalogManager(db)

    def checkout(
        self, user_id: str, resource_id: str, amount: int
    ) -> Tuple[ResourcePurchaseModel, bool]:
        """Open a pending purchase, or return the user's open one.

        Args:
            user_id: The buying user.
            resource_id: Resource being bought.
            amount: Amount the client shows; must equal the resource price.

        Returns:
            (purchase, created) where ``created`` is False when an existing
            pending purchase was returned.

        Raises:
            ItemNotFoundError: If the resource does not exist.
            InvalidStateError: If the resource is inactive or free.
            AlreadyGrantedError: If the user already owns the resource.
            ValidationError: If ``amount`` does not match the price.
        """
        resource = self.catalog.get_resource(resource_id)
        self.catalog.ensure_purchasable(resource)

        existing = self._find(user_id, resource_id)
        if existing:
            if existing.status == COMPLETED:
                raise AlreadyGrantedError("resource", resource_id)
            return existing, False

        if amount != resource.price:
            raise ValidationError("Invalid amount")

        model = ResourcePurchaseModel(
            purchase_id=str(uuid.uuid4()),
            user_id=user_id,
            resource_id=resource_id,
            amount=resource.price,
            currency=resource.currency,
            status=PENDING,
            created_at=self.clock().isoformat(),
        )
        try:
            self.db.add(model)
            self.db.commit()
        except IntegrityError:
            # A concurrent checkout by the same user got there first
            self.db.rollback()
            existing = self._find(user_id, resource_id)
            if existing is None:
                raise
            if existing.status == COMPLETED:
                raise AlreadyGrantedError("resource", resource_id)
            return existing, False

        self.db.refresh(model)
        logger.info("User %s started checkout %s for resource %s", user_id, model.purchase_id, resource_id)
        return model, True

    def list_all(self) -> List[ResourcePurchaseModel]:
        return (
            self.db.query(ResourcePurchaseModel)
            .order_by(ResourcePurchaseModel.created_at.desc())
            .all()
        )

    def approve(self, purchase_id: str) -> ResourcePurchaseModel:
        """Complete a pending purchase.

        Raises:
            NotFoundError: If the purchase does not exist.
            AlreadyReviewedError: If it is already completed.
        """
        model = self._get_model(purchase_id)
        updated = (
            self.db.query(ResourcePurchaseModel)
            .filter(
                ResourcePurchaseModel.purchase_id == purchase_id,
                ResourcePurchaseModel.status == PENDING,
            )
            .update({ResourcePurchaseModel.status: COMPLETED}, synchronize_session=False)
        )
        self.db.commit()
        self.db.refresh(model)
        if updated != 1:
            raise AlreadyReviewedError(purchase_id, model.status)
        logger.info("Resource purchase %s approved", purchase_id)
        return model

    def reject(self, purchase_id: str) -> None:
        """Remove a pending purchase.

        Raises:
            NotFoundError: If the purchase does not exist.
            AlreadyReviewedError: If it is already completed.
        """
        self._get_model(purchase_id)
        deleted = (
            self.db.query(ResourcePurchaseModel)
            .filter(
                ResourcePurchaseModel.purchase_id == purchase_id,
                ResourcePurchaseModel.status == PENDING,
            )
            .delete(synchronize_session=False)
        )
        self.db.commit()
        if deleted != 1:
            raise AlreadyReviewedError(purchase_id, COMPLETED)
        logger.info("Resource purchase %s rejected and removed", purchase_id)

    def _find(self, user_id: str, resource_id: str):
        return (
            self.db.query(ResourcePurchaseModel)
            .filter(
                ResourcePurchaseModel.user_id == user_id,
                ResourcePurchaseModel.resource_id == resource_id,
            )
            .first()
        )

    def _get_model(self, purchase_id: str) -> ResourcePurchaseModel:
        model = (
            self.db.query(ResourcePurchaseModel)
            .filter(ResourcePurchaseModel.purchase_id == purchase_id)
            .first()
        )
        if not model:
            raise NotFoundError("Resource purchase", purchase_id)
        return model
