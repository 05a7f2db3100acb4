"""Translation of domain errors into HTTP errors."""

from fastapi import HTTPException, status

from core.exceptions import (
    AlreadyGrantedError,
    AlreadyReviewedError,
    BannedError,
    ConflictError,
    EmailDeliveryError,
    EmailNotVerifiedError,
    ForbiddenError,
    InvalidCredentialsError,
    InvalidStateError,
    NotFoundError,
    PortalError,
    SessionExpiredError,
    SessionInvalidatedError,
    ValidationError,
)

# Checked in order; subclasses must come before their bases
STATUS_BY_ERROR = (
    (InvalidCredentialsError, status.HTTP_401_UNAUTHORIZED),
    (SessionExpiredError, status.HTTP_401_UNAUTHORIZED),
    (SessionInvalidatedError, status.HTTP_401_UNAUTHORIZED),
    (EmailNotVerifiedError, status.HTTP_403_FORBIDDEN),
    (BannedError, status.HTTP_403_FORBIDDEN),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AlreadyGrantedError, status.HTTP_400_BAD_REQUEST),
    (AlreadyReviewedError, status.HTTP_400_BAD_REQUEST),
    (InvalidStateError, status.HTTP_400_BAD_REQUEST),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ConflictError, status.HTTP_409_CONFLICT),
    (EmailDeliveryError, status.HTTP_502_BAD_GATEWAY),
)


def to_http_exception(error: PortalError) -> HTTPException:
    """Build the HTTPException reported for a domain error.

    Args:
        error: Error raised by a manager.

    Returns:
        HTTPException carrying the error message as detail.
    """
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error)
    )
