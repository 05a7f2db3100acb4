"""Purchase request workflow.

A purchase request asks for access to a paid course or resource that was
paid for out of band. It starts ``pending`` and an administrator moves it
once to ``approved`` or ``rejected``.

Approval is a single transaction: the status change, the grant (an
Enrollment or a completed ResourcePurchase) and, for a new course grant, a
Payment row are committed together or not at all. At most one grant row
exists per (user, item), enforced by unique constraints on the grant
tables. An approval that loses a race on that constraint is rolled back and
retried once; the retry finds the winner's grant and skips the grant step.
The status change itself is a conditional update on ``status = 'pending'``,
so of two reviewers racing on the same request exactly one wins.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

import pytz
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import DAYS_PER_MONTH, DEFAULT_ACCESS_DURATION_MONTHS
from core.exceptions import (
    AlreadyGrantedError,
    AlreadyReviewedError,
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
)
from models.enrollment import EnrollmentModel
from models.payment import PaymentModel
from models.purchase_request import PurchaseRequestModel
from models.resource_purchase import ResourcePurchaseModel
from models.user import UserModel
from schemas.purchase_request import PurchaseRequest, PurchaseRequestStats, ReviewResult
from schemas.session import Identity
from utils.catalog_manager import CatalogManager
from utils.email_sender import Notifier
from utils.permissions import is_admin_tier

logger = logging.getLogger(__name__)

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"
COMPLETED = "completed"

# Attempts made for one approval before a grant conflict is reported
MAX_APPROVAL_ATTEMPTS = 2


def utc_now() -> datetime:
    return datetime.now(pytz.utc)


def add_months(start: datetime, months: int) -> datetime:
    """Advance ``start`` by ``months`` thirty-day months."""
    return start + timedelta(days=months * DAYS_PER_MONTH)


class PurchaseRequestManager:
    """Creates, reviews and cancels purchase requests."""

    def __init__(
        self,
        db: Session,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize PurchaseRequestManager.

        Args:
            db: SQLAlchemy Session.
            notifier: Sends the approval email; None disables it.
            clock: Returns the current UTC time.
        """
        self.db = db
        self.notifier = notifier
        self.clock = clock
        self.catalog = CatalogManager(db)

    # --- Requester operations ---

    def create(
        self,
        requester_id: str,
        item_type: str,
        item_id: str,
        message: Optional[str] = None,
    ) -> PurchaseRequestModel:
        """Open a pending request for a course or resource.

        Title, amount and currency are copied from the item. Several pending
        requests for the same item may coexist.

        Args:
            requester_id: The requesting user.
            item_type: 'course' or 'resource'.
            item_id: ID of the course or resource.
            message: Optional note to the reviewer (e.g. a transfer reference).

        Returns:
            The new request.

        Raises:
            ItemNotFoundError: If the item does not exist.
            InvalidStateError: If the item is unpublished, inactive or free.
            AlreadyGrantedError: If the requester already has access.
        """
        if item_type == "course":
            item = self.catalog.get_course(item_id)
            if not item.is_published:
                raise InvalidStateError("Course is not available")
            if self._find_enrollment(requester_id, item_id):
                raise AlreadyGrantedError(item_type, item_id)
        else:
            item = self.catalog.get_resource(item_id)
            self.catalog.ensure_purchasable(item)
            purchase = self._find_resource_purchase(requester_id, item_id)
            if purchase and purchase.status == COMPLETED:
                raise AlreadyGrantedError(item_type, item_id)

        model = PurchaseRequestModel(
            request_id=str(uuid.uuid4()),
            user_id=requester_id,
            item_type=item_type,
            item_id=item_id,
            item_title=item.title,
            amount=item.price or 0,
            currency=item.currency,
            message=message or None,
            status=PENDING,
            created_at=self.clock().isoformat(),
        )
        self.db.add(model)
        self.db.commit()
        self.db.refresh(model)
        logger.info(
            "User %s requested %s %s (request %s)",
            requester_id,
            item_type,
            item_id,
            model.request_id,
        )
        return model

    def list_for_user(self, user_id: str) -> List[PurchaseRequestModel]:
        return (
            self.db.query(PurchaseRequestModel)
            .filter(PurchaseRequestModel.user_id == user_id)
            .order_by(PurchaseRequestModel.created_at.desc())
            .all()
        )

    def get(self, request_id: str, viewer: Identity) -> PurchaseRequestModel:
        """Get a request visible to ``viewer`` (its owner or an admin).

        Raises:
            NotFoundError: If the request does not exist.
            ForbiddenError: If the viewer may not see it.
        """
        model = self._get_model(request_id)
        if model.user_id != viewer.user_id and not is_admin_tier(
            viewer.role, viewer.is_super_admin
        ):
            raise ForbiddenError("You cannot view this request")
        return model

    def cancel(self, request_id: str, requester_id: str) -> None:
        """Withdraw a pending request. The request is deleted.

        Raises:
            NotFoundError: If the request does not exist.
            ForbiddenError: If the caller did not make the request.
            InvalidStateError: If the request is no longer pending.
        """
        model = self._get_model(request_id)
        if model.user_id != requester_id:
            raise ForbiddenError("You can only cancel your own requests")
        if model.status != PENDING:
            raise InvalidStateError("Can only cancel pending requests")
        self.db.delete(model)
        self.db.commit()
        logger.info("Request %s cancelled by requester", request_id)

    # --- Administrator operations ---

    def list_all(
        self, status: Optional[str] = None, item_type: Optional[str] = None
    ) -> List[PurchaseRequestModel]:
        """List requests newest first; 'all' or None disables a filter."""
        query = self.db.query(PurchaseRequestModel)
        if status and status != "all":
            query = query.filter(PurchaseRequestModel.status == status)
        if item_type and item_type != "all":
            query = query.filter(PurchaseRequestModel.item_type == item_type)
        return query.order_by(PurchaseRequestModel.created_at.desc()).all()

    def stats(self) -> PurchaseRequestStats:
        """Count requests per status across all requests."""
        counts: Dict[str, int] = dict(
            self.db.query(PurchaseRequestModel.status, func.count(PurchaseRequestModel.request_id))
            .group_by(PurchaseRequestModel.status)
            .all()
        )
        return PurchaseRequestStats(
            total=sum(counts.values()),
            pending=counts.get(PENDING, 0),
            approved=counts.get(APPROVED, 0),
            rejected=counts.get(REJECTED, 0),
        )

    def delete(self, request_id: str) -> None:
        """Remove a request in any state. Grants it produced are kept."""
        model = self._get_model(request_id)
        self.db.delete(model)
        self.db.commit()
        logger.info("Request %s deleted", request_id)

    def review(
        self,
        request_id: str,
        reviewer_id: str,
        action: str,
        note: Optional[str] = None,
    ) -> ReviewResult:
        """Approve or reject a pending request.

        Args:
            request_id: The request to decide.
            reviewer_id: The deciding administrator.
            action: 'approve' or 'reject'.
            note: Optional note stored on the request.

        Returns:
            ReviewResult describing the request and any rows created.

        Raises:
            NotFoundError: If the request does not exist.
            AlreadyReviewedError: If the request is not pending.
            ItemNotFoundError: If an approved course no longer exists.
            ConflictError: If the grant insert kept conflicting.
        """
        for attempt in range(1, MAX_APPROVAL_ATTEMPTS + 1):
            try:
                model, grant_created, payment_created, expires_at = self._apply_review(
                    request_id, reviewer_id, action, note
                )
                self.db.commit()
                break
            except IntegrityError as e:
                self.db.rollback()
                if attempt == MAX_APPROVAL_ATTEMPTS:
                    logger.error("Approval of request %s kept conflicting", request_id)
                    raise ConflictError("Could not record the grant, please retry") from e
                logger.info(
                    "Grant conflict approving request %s, retrying (attempt %s)",
                    request_id,
                    attempt,
                )
            except Exception:
                self.db.rollback()
                raise

        logger.info("Request %s %s by %s", request_id, model.status, reviewer_id)
        if model.status == APPROVED:
            self._notify_approved(model, expires_at)

        return ReviewResult(
            request=PurchaseRequest.model_validate(model),
            grant_created=grant_created,
            payment_created=payment_created,
            message=f"Request {model.status} successfully",
        )

    # --- Helpers ---

    def _apply_review(
        self,
        request_id: str,
        reviewer_id: str,
        action: str,
        note: Optional[str],
    ) -> Tuple[PurchaseRequestModel, bool, bool, Optional[str]]:
        """Stage one review attempt in the current transaction.

        Returns:
            (request, grant_created, payment_created, enrollment expiry)
        """
        model = self._get_model(request_id)
        if model.status != PENDING:
            raise AlreadyReviewedError(request_id, model.status)

        # The row may have been decided since it was loaded; only a row that
        # is still pending in the database may change.
        now = self.clock()
        updated = (
            self.db.query(PurchaseRequestModel)
            .filter(
                PurchaseRequestModel.request_id == request_id,
                PurchaseRequestModel.status == PENDING,
            )
            .update(
                {
                    PurchaseRequestModel.status: APPROVED if action == "approve" else REJECTED,
                    PurchaseRequestModel.admin_note: note or None,
                    PurchaseRequestModel.reviewed_by: reviewer_id,
                    PurchaseRequestModel.reviewed_at: now.isoformat(),
                },
                synchronize_session=False,
            )
        )
        self.db.refresh(model)
        if updated != 1:
            raise AlreadyReviewedError(request_id, model.status)

        grant_created = payment_created = False
        expires_at = None
        if model.status == APPROVED:
            if model.item_type == "course":
                grant_created, expires_at = self._grant_course(model, now)
                payment_created = grant_created
            else:
                grant_created = self._grant_resource(model, now)

        self.db.flush()
        return model, grant_created, payment_created, expires_at

    def _grant_course(
        self, request: PurchaseRequestModel, now: datetime
    ) -> Tuple[bool, Optional[str]]:
        existing = self._find_enrollment(request.user_id, request.item_id)
        if existing:
            return False, existing.expires_at

        course = self.catalog.get_course(request.item_id)
        months = course.access_duration_months or DEFAULT_ACCESS_DURATION_MONTHS
        expires_at = add_months(now, months).isoformat()
        self.db.add(
            EnrollmentModel(
                enrollment_id=str(uuid.uuid4()),
                user_id=request.user_id,
                course_id=request.item_id,
                enrolled_at=now.isoformat(),
                expires_at=expires_at,
                progress=0,
            )
        )
        self.db.add(
            PaymentModel(
                payment_id=str(uuid.uuid4()),
                user_id=request.user_id,
                course_id=request.item_id,
                amount=request.amount,
                currency=request.currency,
                status=COMPLETED,
                created_at=now.isoformat(),
            )
        )
        return True, expires_at

    def _grant_resource(self, request: PurchaseRequestModel, now: datetime) -> bool:
        existing = self._find_resource_purchase(request.user_id, request.item_id)
        if existing:
            if existing.status == COMPLETED:
                return False
            # An earlier checkout left a pending row; it becomes the grant
            existing.status = COMPLETED
            existing.amount = request.amount
            existing.currency = request.currency
            return True

        self.db.add(
            ResourcePurchaseModel(
                purchase_id=str(uuid.uuid4()),
                user_id=request.user_id,
                resource_id=request.item_id,
                amount=request.amount,
                currency=request.currency,
                status=COMPLETED,
                created_at=now.isoformat(),
            )
        )
        return True

    def _notify_approved(
        self, request: PurchaseRequestModel, expires_at: Optional[str]
    ) -> None:
        if self.notifier is None:
            return
        user = (
            self.db.query(UserModel)
            .filter(UserModel.user_id == request.user_id)
            .first()
        )
        if user is None:
            return
        self.notifier.notify_purchase_approved(
            user.email, request.item_type, request.item_title, user.name, expires_at
        )

    def _find_enrollment(self, user_id: str, course_id: str) -> Optional[EnrollmentModel]:
        return (
            self.db.query(EnrollmentModel)
            .filter(
                EnrollmentModel.user_id == user_id,
                EnrollmentModel.course_id == course_id,
            )
            .first()
        )

    def _find_resource_purchase(
        self, user_id: str, resource_id: str
    ) -> Optional[ResourcePurchaseModel]:
        return (
            self.db.query(ResourcePurchaseModel)
            .filter(
                ResourcePurchaseModel.user_id == user_id,
                ResourcePurchaseModel.resource_id == resource_id,
            )
            .first()
        )

    def _get_model(self, request_id: str) -> PurchaseRequestModel:
        model = (
            self.db.query(PurchaseRequestModel)
            .filter(PurchaseRequestModel.request_id == request_id)
            .first()
        )
        if not model:
            raise NotFoundError("Purchase request", request_id)
        return model
