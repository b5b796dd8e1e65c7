from __future__ import annotations

from typing import Optional


class TaskmasterError(Exception):
    """
    Base class for errors that map onto a uniform JSON error body.

    Attributes:
    - status_code: HTTP status used when the error reaches the API boundary
    - error: short error kind rendered as the "error" field
    - message: client-safe message rendered as the "message" field
    """

    status_code: int = 500
    error: str = "InternalError"
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message}


# PUBLIC_INTERFACE
class ValidationError(TaskmasterError):
    """Client input problem (e.g. empty task text). Never retried automatically."""

    status_code = 400
    error = "ValidationError"
    default_message = "text is required"


# PUBLIC_INTERFACE
class NotAllowedError(TaskmasterError):
    """Request origin is not on the allow-list."""

    status_code = 403
    error = "NotAllowedError"
    default_message = "Not allowed by CORS"


# PUBLIC_INTERFACE
class StorageError(TaskmasterError):
    """
    The task store is unreachable or an operation failed.

    The message is generic and must never carry store internals; the original
    exception is chained and logged server-side only.
    """

    status_code = 500
    error = "StorageError"
    default_message = "Storage unavailable"


# PUBLIC_INTERFACE
class StartupError(TaskmasterError):
    """Missing or invalid configuration, or an unreachable store at boot. Fatal."""

    error = "StartupError"
    default_message = "Service failed to start"


# PUBLIC_INTERFACE
class ApiError(TaskmasterError):
    """
    Raised by the HTTP client when a request fails.

    status_code is None for transport failures (connection refused, timeout),
    otherwise the non-success status returned by the service.
    """

    error = "ApiError"
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code  # type: ignore[assignment]
