"""Enrollment database model.

An enrollment is the grant record for a course. At most one row exists per
(user, course) pair.
"""

from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint
from .base import Base


class EnrollmentModel(Base):
    """Course grant database model."""

    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "course_id",
            name="uq_enrollments_user_course",
        ),
    )

    enrollment_id = Column(String, primary_key=True, index=True)
    user_id = Column(
        String,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    course_id = Column(
        String,
        ForeignKey("courses.course_id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    enrolled_at = Column(String, nullable=False)  # ISO format string
    expires_at = Column(String, nullable=True)  # ISO format string
    progress = Column(Integer, nullable=False, default=0)
