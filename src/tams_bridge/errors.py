"""
Exception hierarchy for TAMS Bridge.

All errors raised by clients, the factory and the selection state derive
from ``TamsApiError`` so callers can catch one type.
"""


class TamsApiError(Exception):
    """Base exception for backend API errors."""

    def __init__(
        self,
        message: str,
        backend: str | None = None,
        status_code: int | None = None,
    ):
        """
        Initialize the error.

        Args:
            message: Error message
            backend: Identifier of the backend that raised the error
            status_code: HTTP status code (if applicable)
        """
        super().__init__(message)
        self.backend = backend
        self.status_code = status_code


class HttpStatusError(TamsApiError):
    """Raised when a backend answers with a non-success status."""

    def __init__(
        self,
        status_code: int,
        reason: str | None = None,
        backend: str | None = None,
        url: str | None = None,
        body: str | None = None,
    ):
        reason = reason or ""
        message = f"HTTP {status_code} {reason}".rstrip()
        if url:
            message = f"{message} ({url})"
        super().__init__(message, backend=backend, status_code=status_code)
        self.reason = reason
        self.url = url
        self.body = body


class UnsupportedOperationError(TamsApiError):
    """Raised before any I/O when a backend lacks an operation."""

    def __init__(
        self,
        operation: str,
        backend: str | None = None,
        capability: str | None = None,
    ):
        message = f"Operation '{operation}' is not supported by backend '{backend or 'unknown'}'"
        if capability:
            message += f" (requires {capability})"
        super().__init__(message, backend=backend)
        self.operation = operation
        self.capability = capability


class ConfigurationError(TamsApiError):
    """Raised when a backend configuration is invalid."""

    def __init__(self, message: str, backend: str | None = None, errors: list[str] | None = None):
        super().__init__(message, backend=backend)
        self.errors = list(errors or [])
