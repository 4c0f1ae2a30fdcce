"""
Product API: Custom Exception Hierarchy
==========================================

What:  Application-specific exceptions for every failure a request can hit.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with the matching status code.
Who:   Raised by dependencies and ProductService; caught by global handlers.

Exception Hierarchy:
    ProductAPIError (base)  → 500 Internal Server Error
    ├── ValidationError     → 400 Bad Request (client can fix)
    ├── NotFoundError       → 404 Not Found
    ├── NotReadyError       → 503 Service Unavailable (store not connected yet)
    └── DatabaseError       → 500 Internal Server Error (details logged only)
"""

from typing import Any, Dict, Optional


class ProductAPIError(Exception):
    """
    Base exception for all Product API errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged; only ValidationError returns it)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(ProductAPIError):
    """
    Raised when client input fails validation.

    When:    Malformed product id, non-numeric minPrice, empty update body.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "minPrice must be a number",
            "details": {"field": "minPrice", "value": "abc"}
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(ProductAPIError):
    """
    Raised when a requested product does not exist.

    The driver returns None (find_one) or a zero count (delete_one) for
    missing documents; ProductService turns both into this exception.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class NotReadyError(ProductAPIError):
    """
    Raised when a product route is hit before the store connection exists.

    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        message: str = "Database not ready yet",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(ProductAPIError):
    """
    Raised when a MongoDB operation fails unexpectedly.

    When:    Server selection timeout, network error, write error, etc.
    HTTP:    500 Internal Server Error

    The message returned to the client is always generic. The driver error
    is logged server-side and kept in `context`, never sent to the caller.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
