"""
Common API Response Schemas

Standardized error responses and pagination models shared by every router.
"""
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field


# ============================================================================
# Error Response Models
# ============================================================================

class ErrorResponse(BaseModel):
    """
    Standardized error response for all API errors.

    Error Codes:
        - VALIDATION_ERROR: Request validation failed (400/422)
        - INVALID_STATE: Operation not allowed in the current state (400)
        - AUTHENTICATION_ERROR / INVALID_TOKEN: Missing or bad bearer token (401)
        - NOT_PERMITTED: Role may not perform the action (403)
        - NOT_FOUND: Resource not found (404)
        - CONFLICT: Decision already made (409)
        - CONCURRENCY_ERROR: Draft changed since it was loaded (409)
        - REFERENTIAL_INTEGRITY_ERROR: Delete blocked by related records (409)
        - UPSTREAM_FAILURE: Blob store rejected a file (502)
        - DATABASE_ERROR / CASCADE_DELETE_FAILED: Database operation failed (500)
        - INTERNAL_ERROR: Unexpected internal error (500)

    Example:
        {
            "error": "NOT_FOUND",
            "message": "Order with ID 12 not found",
            "details": {"resource": "Order", "resource_id": "12"},
            "timestamp": "2026-03-02T10:30:00Z"
        }
    """
    error: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error context")
    timestamp: datetime = Field(
        default_factory=datetime.utcnow, description="When the error occurred (UTC)"
    )


# ============================================================================
# Pagination Models
# ============================================================================

class PaginationMeta(BaseModel):
    total: int = Field(..., description="Total number of records matching the query")
    offset: int = Field(..., description="Number of records skipped")
    limit: int = Field(..., description="Maximum records per page")
    returned: int = Field(..., description="Number of records in this response")


T = TypeVar("T")


class ListResponse(BaseModel, Generic[T]):
    """List response wrapper with pagination metadata."""
    items: List[T]
    pagination: PaginationMeta


class MessageResponse(BaseModel):
    message: str
