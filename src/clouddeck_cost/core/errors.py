"""Error types raised by the CloudDeck cost analytics service.

Every domain error carries a stable ``ErrorCode`` and the HTTP status the API
layer maps it to. Store and driver errors are not wrapped: they propagate to
the generic 500 handler registered in ``main``.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Stable machine-readable error codes returned in API error bodies."""

    INVALID_DATE_RANGE = "INVALID_DATE_RANGE"
    INVALID_REQUEST = "INVALID_REQUEST"
    REPORT_TIMEOUT = "REPORT_TIMEOUT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class CloudDeckError(Exception):
    """Base class for errors surfaced to API callers.

    Args:
        message: Human-readable description.
        error_code: Stable error code.
        status_code: HTTP status the error maps to.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict[str, str]:
        """Render the error body returned by the API."""
        return {"code": self.error_code.value, "message": self.message}


class InvalidDateRangeError(CloudDeckError):
    """Raised when a report window is missing, inverted, or too wide."""

    status_code = 422

    def __init__(self, message: str) -> None:
        super().__init__(message, error_code=ErrorCode.INVALID_DATE_RANGE)


class ReportTimeoutError(CloudDeckError):
    """Raised when report generation exceeds report_timeout_seconds."""

    status_code = 504

    def __init__(self, message: str) -> None:
        super().__init__(message, error_code=ErrorCode.REPORT_TIMEOUT)
