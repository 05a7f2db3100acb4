"""Dependency injection module for FastAPI.

This module provides dependency injection functions for FastAPI routes:
request-scoped managers, the mail sender, and the caller's identity at
each authorization tier.
"""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from config import SUPER_ADMIN_EMAIL
from core.database import get_db
from core.exceptions import ForbiddenError, SessionExpiredError, SessionInvalidatedError
from schemas.session import Identity
from utils import catalog_manager
from utils import email_sender
from utils import enrollment_manager
from utils import permissions
from utils import purchase_request_manager
from utils import resource_purchase_manager
from utils import session_authority
from utils import user_manager

# HTTP Bearer token security; missing headers are reported as 401 below
security = HTTPBearer(auto_error=False)


def get_super_admin_email() -> Optional[str]:
    """Get the configured super admin email."""
    return SUPER_ADMIN_EMAIL


def get_email_sender() -> email_sender.EmailSender:
    """Get the mail sender matching the SMTP configuration."""
    return email_sender.get_default_sender()


def get_notifier(
    sender: email_sender.EmailSender = Depends(get_email_sender),
) -> email_sender.Notifier:
    return email_sender.Notifier(sender)


def get_session_authority(
    db: Session = Depends(get_db),
    super_admin_email: Optional[str] = Depends(get_super_admin_email),
) -> session_authority.SessionAuthority:
    """Get SessionAuthority instance with request-scoped DB session.

    Args:
        db: Database session.
        super_admin_email: Configured super admin email.

    Returns:
        SessionAuthority instance.
    """
    return session_authority.SessionAuthority(db, super_admin_email=super_admin_email)


def get_user_manager(
    db: Session = Depends(get_db),
    super_admin_email: Optional[str] = Depends(get_super_admin_email),
) -> user_manager.UserManager:
    """Get UserManager instance with request-scoped DB session.

    Args:
        db: Database session.
        super_admin_email: Configured super admin email.

    Returns:
        UserManager instance.
    """
    return user_manager.UserManager(db, super_admin_email=super_admin_email)


def get_catalog_manager(db: Session = Depends(get_db)) -> catalog_manager.CatalogManager:
    """Get CatalogManager instance with request-scoped DB session."""
    return catalog_manager.CatalogManager(db)


def get_enrollment_manager(
    db: Session = Depends(get_db),
) -> enrollment_manager.EnrollmentManager:
    """Get EnrollmentManager instance with request-scoped DB session."""
    return enrollment_manager.EnrollmentManager(db)


def get_purchase_request_manager(
    db: Session = Depends(get_db),
    notifier: email_sender.Notifier = Depends(get_notifier),
) -> purchase_request_manager.PurchaseRequestManager:
    """Get PurchaseRequestManager instance with request-scoped DB session."""
    return purchase_request_manager.PurchaseRequestManager(db, notifier=notifier)


def get_resource_purchase_manager(
    db: Session = Depends(get_db),
) -> resource_purchase_manager.ResourcePurchaseManager:
    """Get ResourcePurchaseManager instance with request-scoped DB session."""
    return resource_purchase_manager.ResourcePurchaseManager(db)


def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    authority: session_authority.SessionAuthority = Depends(get_session_authority),
) -> Identity:
    """Resolve the caller from the bearer credential.

    Expired and invalidated credentials both make the caller
    unauthenticated.

    Raises:
        HTTPException: 401 if the credential is missing or no longer valid.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return authority.verify(credentials.credentials)
    except (SessionExpiredError, SessionInvalidatedError) as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_admin_identity(identity: Identity = Depends(get_current_identity)) -> Identity:
    """Require an admin or the super admin.

    Raises:
        HTTPException: 403 for students.
    """
    try:
        return permissions.require_admin(identity)
    except ForbiddenError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))


def get_super_admin_identity(
    identity: Identity = Depends(get_current_identity),
) -> Identity:
    """Require the super admin.

    Raises:
        HTTPException: 403 for everyone else.
    """
    try:
        return permissions.require_super_admin(identity)
    except ForbiddenError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))


# Type aliases for dependency injection
SessionAuthorityDep = Annotated[
    session_authority.SessionAuthority, Depends(get_session_authority)
]
UserManagerDep = Annotated[
    user_manager.UserManager, Depends(get_user_manager)
]
CatalogManagerDep = Annotated[
    catalog_manager.CatalogManager, Depends(get_catalog_manager)
]
EnrollmentManagerDep = Annotated[
    enrollment_manager.EnrollmentManager, Depends(get_enrollment_manager)
]
PurchaseRequestManagerDep = Annotated[
    purchase_request_manager.PurchaseRequestManager,
    Depends(get_purchase_request_manager),
]
ResourcePurchaseManagerDep = Annotated[
    resource_purchase_manager.ResourcePurchaseManager,
    Depends(get_resource_purchase_manager),
]
NotifierDep = Annotated[email_sender.Notifier, Depends(get_notifier)]
SuperAdminEmailDep = Annotated[Optional[str], Depends(get_super_admin_email)]
CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
AdminIdentity = Annotated[Identity, Depends(get_admin_identity)]
SuperAdminIdentity = Annotated[Identity, Depends(get_super_admin_identity)]
