"""Role tiers and authorization checks.

Tiers are ordered student < admin < super-admin. The super-admin is not a
stored role: it is whichever account's email matches the configured
super-admin email. Each route states the tier it needs explicitly; some
operations gate at admin, others only at super-admin.
"""

from enum import Enum
from typing import Optional

from core.exceptions import ForbiddenError
from schemas.session import Identity


class Role(str, Enum):
    """Roles stored on accounts."""

    STUDENT = "student"
    ADMIN = "admin"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_super_admin_email(email: Optional[str], super_admin_email: Optional[str]) -> bool:
    """Return True when ``email`` is the configured super-admin email.

    Args:
        email: Email to test.
        super_admin_email: Configured super-admin email; None disables the tier.
    """
    if not email or not super_admin_email:
        return False
    return normalize_email(email) == normalize_email(super_admin_email)


def is_admin_tier(role: str, is_super_admin: bool) -> bool:
    return is_super_admin or role == Role.ADMIN.value


def require_admin(identity: Identity) -> Identity:
    """Allow admins and the super-admin.

    Raises:
        ForbiddenError: If the caller is a student.
    """
    if not is_admin_tier(identity.role, identity.is_super_admin):
        raise ForbiddenError("Admin access required")
    return identity


def require_super_admin(identity: Identity) -> Identity:
    """Allow only the super-admin.

    Raises:
        ForbiddenError: If the caller is not the super-admin.
    """
    if not identity.is_super_admin:
        raise ForbiddenError("Only the super admin can perform this action")
    return identity
