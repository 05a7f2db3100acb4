"""Course and resource catalog management."""

import logging
import uuid
from datetime import datetime
from typing import List, Optional

import pytz
from sqlalchemy.orm import Session

from config import DEFAULT_ACCESS_DURATION_MONTHS, DEFAULT_CURRENCY
from core.exceptions import InvalidStateError, ItemNotFoundError
from models.course import CourseModel
from models.resource import ResourceModel

logger = logging.getLogger(__name__)


class CatalogManager:
    """Manages courses and resources."""

    def __init__(self, db: Session):
        self.db = db

    def create_course(
        self,
        title: str,
        price: int,
        currency: Optional[str] = None,
        access_duration_months: Optional[int] = None,
        is_published: bool = True,
    ) -> CourseModel:
        model = CourseModel(
            course_id=str(uuid.uuid4()),
            title=title.strip(),
            price=price,
            currency=currency or DEFAULT_CURRENCY,
            access_duration_months=access_duration_months or DEFAULT_ACCESS_DURATION_MONTHS,
            is_published=is_published,
            created_at=datetime.now(pytz.utc).isoformat(),
        )
        self.db.add(model)
        self.db.commit()
        self.db.refresh(model)
        logger.info("Created course %s", model.course_id)
        return model

    def create_resource(
        self,
        title: str,
        price: int,
        currency: Optional[str] = None,
        is_free: bool = False,
        is_active: bool = True,
    ) -> ResourceModel:
        model = ResourceModel(
            resource_id=str(uuid.uuid4()),
            title=title.strip(),
            price=0 if is_free else price,
            currency=currency or DEFAULT_CURRENCY,
            is_free=is_free,
            is_active=is_active,
            created_at=datetime.now(pytz.utc).isoformat(),
        )
        self.db.add(model)
        self.db.commit()
        self.db.refresh(model)
        logger.info("Created resource %s", model.resource_id)
        return model

    def get_course(self, course_id: str) -> CourseModel:
        """Get a course by ID.

        Raises:
            ItemNotFoundError: If the course does not exist.
        """
        model = (
            self.db.query(CourseModel)
            .filter(CourseModel.course_id == course_id)
            .first()
        )
        if not model:
            raise ItemNotFoundError("course", course_id)
        return model

    def get_resource(self, resource_id: str) -> ResourceModel:
        """Get a resource by ID.

        Raises:
            ItemNotFoundError: If the resource does not exist.
        """
        model = (
            self.db.query(ResourceModel)
            .filter(ResourceModel.resource_id == resource_id)
            .first()
        )
        if not model:
            raise ItemNotFoundError("resource", resource_id)
        return model

    def ensure_purchasable(self, resource: ResourceModel) -> None:
        """Raise InvalidStateError unless ``resource`` can be bought."""
        if not resource.is_active:
            raise InvalidStateError("Resource is not available")
        if resource.is_free:
            raise InvalidStateError("This resource is free")

    def list_courses(self, include_unpublished: bool = False) -> List[CourseModel]:
        query = self.db.query(CourseModel)
        if not include_unpublished:
            query = query.filter(CourseModel.is_published.is_(True))
        return query.order_by(CourseModel.created_at.desc()).all()

    def list_resources(self, include_inactive: bool = False) -> List[ResourceModel]:
        query = self.db.query(ResourceModel)
        if not include_inactive:
            query = query.filter(ResourceModel.is_active.is_(True))
        return query.order_by(ResourceModel.created_at.desc()).all()
