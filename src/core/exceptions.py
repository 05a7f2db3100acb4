"""Custom exception classes for the Course Portal access service.

This module defines the domain error taxonomy shared by the session
authority, the account managers and the purchase request workflow,
following Google Python Style Guide.
"""

from typing import Optional


class PortalError(Exception):
    """Base exception for all Course Portal errors."""

    pass


# --- Session layer ---


class InvalidCredentialsError(PortalError):
    """Raised when an email/password pair does not authenticate.

    The message is identical for unknown accounts and wrong passwords.
    """

    def __init__(self):
        super().__init__("Invalid credentials")


class EmailNotVerifiedError(PortalError):
    """Raised when a non-admin account signs in before verifying its email."""

    def __init__(self, user_id: str):
        """Initialize the exception.

        Args:
            user_id: The account that is not verified yet.
        """
        self.user_id = user_id
        super().__init__("Please verify your email before signing in")


class BannedError(PortalError):
    """Raised when a banned or frozen account tries to authenticate."""

    def __init__(self, user_id: str, reason: Optional[str] = None):
        """Initialize the exception.

        Args:
            user_id: The refused account.
            reason: Ban reason recorded by an administrator, if any.
        """
        self.user_id = user_id
        self.reason = reason
        message = "This account has been banned"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class SessionExpiredError(PortalError):
    """Raised when a credential is malformed, badly signed or past expiry."""

    def __init__(self, detail: str = "Session expired"):
        super().__init__(detail)


class SessionInvalidatedError(PortalError):
    """Raised when a credential's session version no longer matches."""

    def __init__(self, user_id: str):
        """Initialize the exception.

        Args:
            user_id: The account whose sessions were invalidated.
        """
        self.user_id = user_id
        super().__init__("Session has been invalidated")


# --- Authorization and lookups ---


class ForbiddenError(PortalError):
    """Raised when the caller's tier does not allow the operation."""

    pass


class NotFoundError(PortalError):
    """Raised when a requested record does not exist."""

    def __init__(self, kind: str, record_id: str):
        """Initialize the exception.

        Args:
            kind: Human readable record type, e.g. "Purchase request".
            record_id: The ID that was looked up.
        """
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} '{record_id}' not found")


class ConflictError(PortalError):
    """Raised when a uniqueness constraint is violated."""

    pass


# --- Purchase request workflow ---


class ItemNotFoundError(NotFoundError):
    """Raised when a purchase request references a missing course/resource."""

    def __init__(self, item_type: str, item_id: str):
        self.item_type = item_type
        super().__init__(item_type.capitalize(), item_id)


class AlreadyGrantedError(PortalError):
    """Raised when the requester already holds a grant for the item."""

    def __init__(self, item_type: str, item_id: str):
        self.item_type = item_type
        self.item_id = item_id
        if item_type == "course":
            message = "You are already enrolled in this course"
        else:
            message = "You have already purchased this resource"
        super().__init__(message)


class AlreadyReviewedError(PortalError):
    """Raised when reviewing a request that is no longer pending."""

    def __init__(self, request_id: str, status: str):
        self.request_id = request_id
        self.status = status
        super().__init__(f"Request already processed ({status})")


class InvalidStateError(PortalError):
    """Raised when an operation is not allowed in the record's current state."""

    pass


# --- Validation and delivery ---


class ValidationError(PortalError):
    """Raised when data validation fails."""

    pass


class EmailDeliveryError(PortalError):
    """Raised when an outgoing email could not be delivered."""

    pass
