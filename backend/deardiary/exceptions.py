"""
Dear Diary Backend — Custom Exception Hierarchy
=================================================

What:  Defines application-specific exceptions for every failure the diary
       contract distinguishes.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
       The client library raises the same classes when it decodes an error
       response, so callers handle one taxonomy on both sides of the wire.
Who:   Raised by services, dependencies, middleware and the client library.
When:  During request processing when recoverable errors occur.

Exception Hierarchy:
    DearDiaryError (base)
    ├── ValidationError           → 400 Bad Request (field-scoped errors)
    ├── AuthenticationError       → 401 (bad credentials at login)
    ├── UnauthorizedError         → 401 (missing/invalid/expired session)
    ├── NotFoundError             → 404 (absent or not owned by the caller)
    ├── ConflictError             → 409 (username already taken)
    ├── DatabaseError             → 500 (generic message only)
    ├── RateLimitExceededError    → 429 Too Many Requests
    ├── ServerError               → client side: 5xx or unreadable response
    ├── NetworkError              → client side: transport failure
    │   └── RequestTimeoutError   → client side: request exceeded its timeout
    └── OperationInProgressError  → client side: same operation already running
"""

from typing import Any, Dict, Optional


class DearDiaryError(Exception):
    """
    Base exception for all Dear Diary application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
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


class ValidationError(DearDiaryError):
    """
    Raised when client input fails validation.

    HTTP:    400 Bad Request

    `errors` maps a wire field name (camelCase) to its message, so a form can
    put each message next to the right input. A single-field error can be
    raised with `field=`; several at once with `errors=`.

    Example response:
        {
            "error": "validation_error",
            "message": "Title must be 200 characters or less",
            "errors": {"title": "Title must be 200 characters or less"}
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        errors: Optional[Dict[str, str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        field_errors = dict(errors or {})
        if field and field not in field_errors:
            field_errors[field] = message
        super().__init__(message=message, context=context)
        self.field = field
        self.errors = field_errors


class AuthenticationError(DearDiaryError):
    """
    Raised when login credentials are rejected.

    HTTP:    401
    The message never says which half of the credentials was wrong.
    """

    def __init__(
        self,
        message: str = "Invalid username or password",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UnauthorizedError(DearDiaryError):
    """
    Raised when a request needs a session and has no valid one.

    HTTP:    401
    When:    Cookie missing, token unknown, token expired, or the session was
             destroyed by logout. The client treats this as "log in again".
    """

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(DearDiaryError):
    """
    Raised when a requested resource does not exist for the caller.

    HTTP:    404 Not Found

    An entry owned by somebody else produces exactly the same error as an
    entry that does not exist; the message never echoes the identifier.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource[:1].upper()}{resource[1:]} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource


class ConflictError(DearDiaryError):
    """
    Raised when a write collides with existing state.

    HTTP:    409 Conflict
    When:    Registering a username that is already taken.
    """

    def __init__(
        self,
        message: str = "Resource already exists",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.field = field
        self.errors = {field: message} if field else {}


class DatabaseError(DearDiaryError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always generic. SQL text and
        constraint names are logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(DearDiaryError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests
    Response includes a Retry-After header.
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


# ── Client-side errors ────────────────────────────────────────────────────


class ServerError(DearDiaryError):
    """The server answered with a 5xx status or a body the client cannot read."""

    def __init__(
        self,
        message: str = "The server encountered an error. Please try again later.",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.status_code = status_code


class NetworkError(DearDiaryError):
    """The request never produced a response (DNS, refused connection, reset)."""

    def __init__(
        self,
        message: str = "Network error. Please check your connection.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RequestTimeoutError(NetworkError):
    """The request exceeded its timeout. Distinct from other network failures."""

    def __init__(
        self,
        message: str = "The request timed out. Please try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class OperationInProgressError(DearDiaryError):
    """
    Raised by the client when the same kind of operation is already running.

    Nothing is sent for the rejected call; the one already in flight keeps going.
    """

    def __init__(self, operation: str):
        super().__init__(
            message=f"A {operation} operation is already in progress",
            context={"operation": operation},
        )
        self.operation = operation
