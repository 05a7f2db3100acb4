from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint
from .base import Base


class ResourcePurchaseModel(Base):
    __tablename__ = "resource_purchases"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "resource_id",
            name="uq_resource_purchases_user_resource",
        ),
    )

    purchase_id = Column(String, primary_key=True, index=True)
    user_id = Column(
        String,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    resource_id = Column(
        String,
        ForeignKey("resources.resource_id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    amount = Column(Integer, nullable=False, default=0)
    currency = Column(String, nullable=False)
    status = Column(String, nullable=False, default="pending")  # 'pending' or 'completed'
    created_at = Column(String, nullable=False)
