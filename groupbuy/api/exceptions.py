"""Custom exceptions for the GroupBuy API.

Every error a handler can report is a ``GroupBuyException`` subclass carrying
the HTTP status code; the application converts them to the response envelope.
"""

from typing import Any, Dict, List, Optional


class GroupBuyException(Exception):
    """Base exception for GroupBuy errors."""

    error_code = "internal_error"

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize exception.

        Args:
            message: Human-readable error message
            status_code: HTTP status code for API responses
            details: Additional error details for debugging
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class ValidationFailedError(GroupBuyException):
    """Raised when request fields fail validation."""

    error_code = "validation_error"

    def __init__(self, errors: List[Dict[str, Any]], message: str = "Validation errors"):
        super().__init__(
            message=message,
            status_code=400,
            details={"errors": errors},
        )
        self.errors = errors


class AuthenticationError(GroupBuyException):
    """Raised when credentials or tokens are missing or invalid."""

    error_code = "authentication_error"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message=message, status_code=401)


class PermissionDeniedError(AuthenticationError):
    """Raised when an authenticated user lacks the role an action needs."""

    error_code = "authorization_error"

    def __init__(self, message: str = "Not authorized to perform this action"):
        super().__init__(message=message)


class ResourceNotFoundError(GroupBuyException):
    """Raised when a referenced document does not exist."""

    error_code = "not_found"

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        message = f"{resource} not found"
        super().__init__(
            message=message,
            status_code=404,
            details={"resource": resource, "id": resource_id} if resource_id else {},
        )


class StateConflictError(GroupBuyException):
    """Raised when an operation is not allowed in the current document state.

    Duplicate joins, inactive groups and capacity overflows all land here.
    """

    error_code = "state_conflict"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=400, details=details)


class ConcurrentModificationError(StateConflictError):
    """Raised when a compare-and-swap update lost against another writer."""

    error_code = "concurrent_modification"

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            message=f"{resource} was modified by another request, please retry",
            details={"resource": resource, "id": resource_id},
        )


class RateLimitExceededError(GroupBuyException):
    """Raised when a client exceeds the request budget for the window."""

    error_code = "rate_limited"

    def __init__(self, retry_after: int):
        super().__init__(
            message="Too many requests, please try again later",
            status_code=429,
            details={"retry_after": retry_after},
        )
        self.retry_after = retry_after
