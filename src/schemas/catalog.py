"""Course and resource schema definitions."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Course(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    course_id: str
    title: str
    price: int
    currency: str
    access_duration_months: int
    is_published: bool
    created_at: str


class Resource(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    resource_id: str
    title: str
    price: int
    currency: str
    is_free: bool
    is_active: bool
    created_at: str


class CreateCourseRequest(BaseModel):
    title: str = Field(min_length=1)
    price: int = Field(ge=0)
    currency: Optional[str] = None
    access_duration_months: Optional[int] = Field(default=None, ge=1)
    is_published: bool = True


class CreateResourceRequest(BaseModel):
    title: str = Field(min_length=1)
    price: int = Field(ge=0)
    currency: Optional[str] = None
    is_free: bool = False
    is_active: bool = True
