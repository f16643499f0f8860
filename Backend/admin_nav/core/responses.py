"""
Standardized API Response Module

Provides consistent response formatting across the admin API.

RESPONSE FORMAT:
    Success:
        {
            "success": true,
            <payload key>: <response data>
        }

    Error:
        {
            "success": false,
            "error": {
                "code": "ERROR_CODE",
                "message": "Human-readable message",
                "details": {...}  # Optional extra context
            }
        }

ERROR CODES:
    - STORE_NOT_FOUND: Tenant store could not be resolved
    - INVALID_DESCRIPTOR: A plugin navigation descriptor could not be parsed
    - NAVIGATION_LOAD_FAILED: A navigation collaborator could not be read
    - DATABASE_ERROR: A navigation write could not be stored
"""

from typing import Any, Optional
from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Structured error information."""
    code: str
    message: str
    details: Optional[dict[str, Any]] = None


# ============================================================================
# COMMON ERROR CODES
# ============================================================================

class ErrorCodes:
    """Standard error codes for API responses."""

    # Not found errors (404)
    STORE_NOT_FOUND = "STORE_NOT_FOUND"
    NAV_ITEM_NOT_FOUND = "NAV_ITEM_NOT_FOUND"

    # Validation errors (422)
    INVALID_DESCRIPTOR = "INVALID_DESCRIPTOR"

    # Server errors (500)
    DATABASE_ERROR = "DATABASE_ERROR"
    NAVIGATION_LOAD_FAILED = "NAVIGATION_LOAD_FAILED"


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def success_response(**payload: Any) -> dict:
    """
    Create a standardized success response dict.

    Usage:
        return success_response(navigation=[...])
    """
    return {"success": True, **payload}


def error_response(
    code: str,
    message: str,
    details: Optional[dict] = None,
) -> dict:
    """
    Create a standardized error response dict.
    """
    error = ErrorDetail(code=code, message=message, details=details)
    return {
        "success": False,
        "error": error.model_dump(exclude_none=True),
    }
