from sqlalchemy import Boolean, Column, Integer, String
from .base import Base


class CourseModel(Base):
    __tablename__ = "courses"

    course_id = Column(String, primary_key=True, index=True)
    title = Column(String, nullable=False)
    price = Column(Integer, nullable=False, default=0)
    currency = Column(String, nullable=False)
    access_duration_months = Column(Integer, nullable=False)
    is_published = Column(Boolean, nullable=False, default=True)
    created_at = Column(String, nullable=False)
