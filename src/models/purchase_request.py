"""Purchase request database model.

A request to obtain a paid course or resource through an out-of-band
transfer, waiting for an administrator's decision.
"""

from sqlalchemy import Column, ForeignKey, Integer, String, Text
from .base import Base


class PurchaseRequestModel(Base):
    """Purchase request database model."""

    __tablename__ = "purchase_requests"

    request_id = Column(String, primary_key=True, index=True)
    user_id = Column(
        String,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    item_type = Column(String, nullable=False)  # 'course' or 'resource'
    item_id = Column(String, index=True, nullable=False)
    item_title = Column(String, nullable=False)  # snapshot at creation
    amount = Column(Integer, nullable=False, default=0)
    currency = Column(String, nullable=False)
    message = Column(Text, nullable=True)
    status = Column(String, index=True, nullable=False, default="pending")
    admin_note = Column(Text, nullable=True)
    reviewed_by = Column(String, nullable=True)
    reviewed_at = Column(String, nullable=True)  # ISO format string
    created_at = Column(String, nullable=False)  # ISO format string
