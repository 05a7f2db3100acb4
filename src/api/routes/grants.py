"""Enrollment and payment routes."""

from typing import List

from fastapi import APIRouter

from core.dependencies import AdminIdentity, CurrentIdentity, EnrollmentManagerDep
from core.exceptions import PortalError
from core.http_errors import to_http_exception
from schemas.grant import Enrollment, ExtendEnrollmentRequest, Payment

router = APIRouter(tags=["Grants"])


@router.get("/api/enrollments", response_model=List[Enrollment], summary="List own enrollments")
def list_enrollments(
    identity: CurrentIdentity,
    enrollment_manager: EnrollmentManagerDep = None,
) -> List[Enrollment]:
    return enrollment_manager.list_enrollments(identity.user_id)


@router.patch(
    "/api/admin/enrollments/{enrollment_id}/extend",
    response_model=Enrollment,
    summary="Extend an enrollment",
)
def extend_enrollment(
    enrollment_id: str,
    req: ExtendEnrollmentRequest,
    admin: AdminIdentity,
    enrollment_manager: EnrollmentManagerDep = None,
) -> Enrollment:
    """Extend an enrollment's access by a number of months.

    Args:
        enrollment_id: Enrollment to extend.
        req: Number of months to add.
        admin: Calling admin.
        enrollment_manager: Injected EnrollmentManager instance.

    Returns:
        The updated enrollment.

    Raises:
        HTTPException: 404 if the enrollment does not exist.
    """
    try:
        return enrollment_manager.extend(enrollment_id, req.months)
    except PortalError as e:
        raise to_http_exception(e)


@router.get("/api/admin/payments", response_model=List[Payment], summary="List payments")
def list_payments(
    admin: AdminIdentity,
    enrollment_manager: EnrollmentManagerDep = None,
) -> List[Payment]:
    return [Payment.model_validate(m) for m in enrollment_manager.list_payments()]
