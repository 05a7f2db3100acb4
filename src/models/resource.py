from sqlalchemy import Boolean, Column, Integer, String
from .base import Base


class ResourceModel(Base):
    __tablename__ = "resources"

    resource_id = Column(String, primary_key=True, index=True)
    title = Column(String, nullable=False)
    price = Column(Integer, nullable=False, default=0)
    currency = Column(String, nullable=False)
    is_free = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(String, nullable=False)
