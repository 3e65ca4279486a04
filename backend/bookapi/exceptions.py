"""
BookAPI Backend - Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions for the error classes the API exposes.
How:   Each exception carries a message and an optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with the right status code.
Who:   Raised by the gateway and the route handlers; caught by global handlers.

Exception Hierarchy:
    BookAPIError (base)
    ├── ValidationError          → 400 Bad Request
    ├── NotFoundError            → 404 Not Found
    └── DatabaseError            → 500 Internal Server Error
        ├── QueryExecutionError  → statement or connection failed
        └── RowDecodeError       → a row could not be mapped to a Book

QueryExecutionError and RowDecodeError look identical to clients (an opaque
500). They are separate types so logs, spans and metrics can tell them apart.
"""

from typing import Any, Dict, Optional


class BookAPIError(Exception):
    """
    Base exception for all BookAPI application errors.

    Attributes:
        message:  Client-facing error description
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(BookAPIError):
    """
    Raised when client input fails validation.

    When:    Missing `id` query parameter on update/delete.
    HTTP:    400 Bad Request

    Malformed JSON bodies and non-integer ids are rejected by FastAPI before
    the handler runs; main.py maps those (RequestValidationError) to 400 too.
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


class NotFoundError(BookAPIError):
    """
    Raised when a requested resource does not exist.

    When:    UPDATE or DELETE affected zero rows.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id is not None:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class DatabaseError(BookAPIError):
    """
    Raised when database operations fail.

    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always generic. Driver messages,
        SQL text and constraint names are logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class QueryExecutionError(DatabaseError):
    """The statement could not be executed (connection lost, SQL error, ...)."""

    reason = "query_failed"


class RowDecodeError(DatabaseError):
    """A result row could not be converted into a Book."""

    reason = "decode_failed"
