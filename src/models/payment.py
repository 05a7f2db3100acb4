"""Payment ledger database model.

Payments are append-only. They outlive the paying account: deleting a user
nulls ``user_id`` and keeps the row for revenue reporting.
"""

from sqlalchemy import Column, ForeignKey, Integer, String
from .base import Base


class PaymentModel(Base):
    """Completed payment database model."""

    __tablename__ = "payments"

    payment_id = Column(String, primary_key=True, index=True)
    user_id = Column(
        String,
        ForeignKey("users.user_id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    course_id = Column(String, index=True, nullable=False)
    amount = Column(Integer, nullable=False)
    currency = Column(String, nullable=False)
    status = Column(String, nullable=False, default="completed")
    created_at = Column(String, nullable=False)  # ISO format string
