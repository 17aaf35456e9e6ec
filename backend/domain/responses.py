"""
Standard API response helpers for consistent response formatting.

All endpoints use these helpers to keep one envelope:
- Success: { "success": true, "data": <payload>, "meta": {...} }
- Error: { "success": false, "error": { "code": "...", "message": "...", "details": ... } }
"""
from typing import Any

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Standard error detail structure."""
    code: str = Field(..., description="Error code (e.g., 'order_not_found', 'insufficient_stock')")
    message: str = Field(..., description="Human-readable error message")
    details: Any = Field(default=None, description="Additional error context")


class StandardErrorResponse(BaseModel):
    """Standard error response envelope."""
    success: bool = Field(False, description="Always false for errors")
    error: ErrorDetail = Field(..., description="Error details")


def success_response(data: Any, meta: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Create a standardized success response.

    Returns:
        dict: { "success": true, "data": <data>, "meta": <meta> }
    """
    response = {"success": True, "data": data}
    if meta:
        response["meta"] = meta
    return response


def error_response(code: str, message: str, details: Any = None) -> dict[str, Any]:
    """Create a standardized error body."""
    return StandardErrorResponse(
        error=ErrorDetail(code=code, message=message, details=details)
    ).model_dump()


def paginated_response(items: list[Any], limit: int, offset: int = 0) -> dict[str, Any]:
    """
    Create a standardized offset-paginated response.

    hasMore is true when the page came back full, so the client should ask
    for the next offset.
    """
    meta = {
        "limit": limit,
        "offset": offset,
        "count": len(items),
        "hasMore": len(items) >= limit,
    }
    return success_response(data=items, meta=meta)
