"""
SportConnect Backend — Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for the scorer, the toggle reconciler,
       the services and the outbound geocoding client.
How:   Each exception carries a message and optional context dict.
       Global exception handlers (registered in main.py) map them to HTTP
       status codes and structured JSON error bodies.
Who:   Raised by schemas, services and stores; caught by global handlers,
       or by the reconciler which rolls back local state before re-raising.

Exception Hierarchy:
    SportConnectError (base)
    ├── ValidationError            → 400 Bad Request (client can fix)
    ├── NotFoundError              → 404 Not Found
    ├── TransactionConflictError   → 409 Conflict (target vanished mid-toggle)
    ├── GeocodingServiceError      → 503 Service Unavailable (retry later)
    ├── CircuitBreakerOpenError    → 503 Service Unavailable (circuit open)
    └── DatabaseError              → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class SportConnectError(Exception):
    """
    Base exception for all SportConnect application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, only returned for client errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(SportConnectError):
    """
    Raised when input fails validation.

    When:    Out-of-range latitude/longitude, NaN coordinates, unknown sport,
             rating outside its sport's range, empty or oversized post text,
             following yourself.
    HTTP:    400 Bad Request

    The scorer raises this synchronously, before computing anything, so a
    caller never sees a partial ranking.
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


class NotFoundError(SportConnectError):
    """
    Raised when a requested resource does not exist.

    When:    GET of an unknown post or profile, comment on a deleted post.
    HTTP:    404 Not Found

    Not used for a missing toggle counter-entity: stores create a default
    profile for it instead.
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


class TransactionConflictError(SportConnectError):
    """
    Raised when the authoritative store cannot apply a toggle.

    What:    The toggle's target entity no longer exists (or no longer has
             the expected shape) when the transaction reads it.
    When:    Liking a post that was deleted mid-flight, following a user
             whose profile is gone.
    HTTP:    409 Conflict

    The reconciler restores the caller's pre-toggle view before this
    propagates. It is never retried automatically.
    """

    def __init__(
        self,
        message: str = "The item changed before your action could be saved",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class GeocodingServiceError(SportConnectError):
    """
    Raised when the geocoding API fails after all retries.

    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        message: str = "Location lookup is temporarily unavailable",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(SportConnectError):
    """
    Raised when the geocoding circuit breaker is in OPEN state.

    How circuit breaker works:
        CLOSED (normal) → failures increment counter
        → After N failures → OPEN (reject all calls for recovery_timeout seconds)
        → After timeout → HALF-OPEN (allow one test call)
        → Test succeeds → CLOSED; test fails → OPEN again
    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Location lookup is temporarily unavailable due to repeated failures. "
            f"Please try again in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time


class DatabaseError(SportConnectError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error

    The message returned to the client is always generic. Details (statement,
    constraint name) are logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
