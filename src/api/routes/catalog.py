"""Course and resource catalog routes."""

from typing import List

from fastapi import APIRouter, status

from core.dependencies import AdminIdentity, CatalogManagerDep
from schemas.catalog import Course, CreateCourseRequest, CreateResourceRequest, Resource

router = APIRouter(tags=["Catalog"])


@router.get("/api/courses", response_model=List[Course], summary="List published courses")
def list_courses(catalog_manager: CatalogManagerDep = None) -> List[Course]:
    return [Course.model_validate(m) for m in catalog_manager.list_courses()]


@router.get("/api/resources", response_model=List[Resource], summary="List active resources")
def list_resources(catalog_manager: CatalogManagerDep = None) -> List[Resource]:
    return [Resource.model_validate(m) for m in catalog_manager.list_resources()]


@router.post(
    "/api/admin/courses",
    response_model=Course,
    status_code=status.HTTP_201_CREATED,
    summary="Create a course",
)
def create_course(
    req: CreateCourseRequest,
    admin: AdminIdentity,
    catalog_manager: CatalogManagerDep = None,
) -> Course:
    model = catalog_manager.create_course(
        title=req.title,
        price=req.price,
        currency=req.currency,
        access_duration_months=req.access_duration_months,
        is_published=req.is_published,
    )
    return Course.model_validate(model)


@router.post(
    "/api/admin/resources",
    response_model=Resource,
    status_code=status.HTTP_201_CREATED,
    summary="Create a resource",
)
def create_resource(
    req: CreateResourceRequest,
    admin: AdminIdentity,
    catalog_manager: CatalogManagerDep = None,
) -> Resource:
    model = catalog_manager.create_resource(
        title=req.title,
        price=req.price,
        currency=req.currency,
        is_free=req.is_free,
        is_active=req.is_active,
    )
    return Resource.model_validate(model)
