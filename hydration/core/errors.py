"""Domain error taxonomy for the water-task lifecycle."""

from enum import Enum

from pydantic import BaseModel


class ErrorCode:
    """Error codes for specific error conditions."""

    # Request errors
    ERR_VALIDATION = "ERR_VALIDATION"

    # Task errors
    ERR_TASK_NOT_FOUND = "ERR_TASK_NOT_FOUND"
    ERR_NO_PENDING_TASK = "ERR_NO_PENDING_TASK"
    ERR_INVALID_STATE_TRANSITION = "ERR_INVALID_STATE_TRANSITION"

    # Permission errors
    ERR_PERMISSION_DENIED = "ERR_PERMISSION_DENIED"

    # User errors
    ERR_USER_NOT_FOUND = "ERR_USER_NOT_FOUND"

    # Upstream errors
    ERR_UPSTREAM = "ERR_UPSTREAM"

    # Generic errors
    ERR_STORAGE = "ERR_STORAGE"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorResponse(BaseModel):
    """Error body returned to HTTP clients."""

    success: bool = False
    error: str
    code: str


class HydrationError(Exception):
    """Base class for errors surfaced to clients."""

    status_code: int = 400
    default_code: str = ErrorCode.ERR_UNKNOWN
    severity: ErrorSeverity = ErrorSeverity.LOW

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_response(self) -> ErrorResponse:
        """Build the client-facing error body."""
        return ErrorResponse(error=self.message, code=self.code)


class ValidationError(HydrationError):
    """A required field is missing or malformed."""

    status_code = 400
    default_code = ErrorCode.ERR_VALIDATION


class NotFoundError(HydrationError):
    """The task or user does not exist, or no task qualifies."""

    status_code = 404
    default_code = ErrorCode.ERR_TASK_NOT_FOUND


class ForbiddenError(HydrationError):
    """The caller does not own the task."""

    status_code = 403
    default_code = ErrorCode.ERR_PERMISSION_DENIED
    severity = ErrorSeverity.MEDIUM


class InvalidStateError(HydrationError):
    """The requested transition is not allowed from the task's current state."""

    status_code = 400
    default_code = ErrorCode.ERR_INVALID_STATE_TRANSITION


class UpstreamServiceError(HydrationError):
    """A call to the WeChat API failed."""

    status_code = 502
    default_code = ErrorCode.ERR_UPSTREAM
    severity = ErrorSeverity.HIGH


def require_field(value: str | None, field_name: str) -> str:
    """Return ``value`` or raise ValidationError when it is missing or blank."""
    if value is None or not str(value).strip():
        raise ValidationError(f"Missing required parameter: {field_name}")
    return value
