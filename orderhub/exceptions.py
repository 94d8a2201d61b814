"""
OrderHub - Custom Exception Hierarchy

Provides structured, typed exceptions with error codes for consistent
error handling across the application. Every exception is recovered at the
HTTP boundary (see orderhub.main) and turned into a JSON body; nothing here
is retried.

Usage:
    from orderhub.exceptions import NotFoundError, ValidationError

    raise NotFoundError("Order", order_id)
    raise ValidationError("Quantity cannot be negative", field="quantity", value=-1)
"""
from typing import Any, Dict, List, Optional


class OrderHubException(Exception):
    """
    Base exception for all OrderHub errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., "NOT_FOUND", "VALIDATION_ERROR")
        status_code: HTTP status code to return
        details: Additional context for debugging
    """

    error_code: str = "ORDERHUB_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# ===================
# 400 Bad Request Errors
# ===================


class ValidationError(OrderHubException):
    """Raised when input validation fails. The message is returned verbatim."""

    error_code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        *,
        field: Optional[str] = None,
        value: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details=details)


class InvalidStateError(ValidationError):
    """Raised when an operation is invalid for the current state."""

    error_code = "INVALID_STATE"
    status_code = 400

    def __init__(
        self,
        message: str = "Operation not allowed in current state",
        *,
        current_state: Optional[str] = None,
        allowed_states: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if current_state:
            details["current_state"] = current_state
        if allowed_states is not None:
            details["allowed_states"] = allowed_states
        super().__init__(message, details=details)


# ===================
# 401 Unauthorized Errors
# ===================


class AuthenticationError(OrderHubException):
    """Raised when authentication fails."""

    error_code = "AUTHENTICATION_ERROR"
    status_code = 401

    def __init__(
        self,
        message: str = "Authentication required",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


class InvalidTokenError(AuthenticationError):
    """Raised when token is invalid or expired."""

    error_code = "INVALID_TOKEN"

    def __init__(
        self,
        message: str = "Invalid token",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


# ===================
# 403 Forbidden Errors
# ===================


class AuthorizationError(OrderHubException):
    """
    Raised when the actor's role may not perform an action.

    The caller only ever sees the generic message; action/resource/role
    details are kept for the server-side log.
    """

    error_code = "NOT_PERMITTED"
    status_code = 403

    def __init__(
        self,
        message: str = "Not permitted",
        *,
        action: Optional[str] = None,
        resource: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if action:
            details["action"] = action
        if resource:
            details["resource"] = resource
        super().__init__(message, details=details)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error_code, "message": "Not permitted"}


# ===================
# 404 Not Found Errors
# ===================


class NotFoundError(OrderHubException):
    """Raised when a resource is not found."""

    error_code = "NOT_FOUND"
    status_code = 404

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Any = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["resource"] = resource
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(message, details=details)


# ===================
# 409 Conflict Errors
# ===================


class ConflictError(OrderHubException):
    """Raised when there's a resource conflict (e.g. re-deciding an approval)."""

    error_code = "CONFLICT"
    status_code = 409

    def __init__(
        self,
        message: str = "Resource conflict",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


class ConcurrencyError(ConflictError):
    """Raised when concurrent modification is detected."""

    error_code = "CONCURRENCY_ERROR"

    def __init__(
        self,
        message: str = "Resource was modified by another user",
        *,
        expected_version: Optional[int] = None,
        current_version: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if expected_version is not None:
            details["expected_version"] = expected_version
        if current_version is not None:
            details["current_version"] = current_version
        super().__init__(message, details=details)


class ReferentialIntegrityError(ConflictError):
    """Raised when a delete is blocked by dependent rows."""

    error_code = "REFERENTIAL_INTEGRITY_ERROR"

    def __init__(
        self,
        message: str = "There are still related records",
        *,
        blocking: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if blocking:
            details["blocking"] = blocking
        super().__init__(message, details=details)


# ===================
# 5xx Errors
# ===================


class UpstreamFailure(OrderHubException):
    """Raised when an external collaborator (blob store) rejects a file."""

    error_code = "UPSTREAM_FAILURE"
    status_code = 502

    def __init__(
        self,
        filename: str,
        message: str = "Upload failed",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["filename"] = filename
        self.filename = filename
        super().__init__(f"{filename}: {message}", details=details)


class DatabaseError(OrderHubException):
    """Raised when a database operation fails."""

    error_code = "DATABASE_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str = "Database operation failed",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


class CascadeDeleteError(DatabaseError):
    """Raised when a mandatory step of an order delete fails for a non-FK reason."""

    error_code = "CASCADE_DELETE_FAILED"

    def __init__(
        self,
        step: str,
        message: str = "Order deletion failed",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["step"] = step
        self.step = step
        super().__init__(message, details=details)
