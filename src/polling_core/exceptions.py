"""
Custom exceptions for polling_core.

This module defines the exception hierarchy used throughout
the library. Request-level failures are never raised to the caller
of a request; they are delivered as the argument of the request's
``error`` outcome.
"""

from typing import Any, Optional


class PollingError(Exception):
    """Base exception for all polling_core errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class RequestError(PollingError):
    """
    Base exception for failures of a single polling request.

    ``context`` holds the native request handle for diagnostics, or
    None when no handle could be created.
    """

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        context: Any = None,
    ) -> None:
        super().__init__(message, cause)
        self.context = context


class CreationError(RequestError):
    """Raised when the native request could not be created or sent."""

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        context: Any = None,
    ) -> None:
        super().__init__(f"Creation error: {message}", cause, context)


class NetworkError(RequestError):
    """Raised when a request finished with a status outside the success set."""

    def __init__(self, status: int, context: Any = None, cause: Optional[Exception] = None) -> None:
        super().__init__(f"Network error: status {status}", cause, context)
        self.status = status


class TimeoutError(NetworkError):
    """Raised when the native request's own timeout fired."""

    def __init__(
        self,
        status: int = 0,
        context: Any = None,
        timeout: Optional[float] = None,
    ) -> None:
        super().__init__(status, context)
        if timeout is not None:
            self.message = f"{self.message} (timeout: {timeout}s)"
            self.args = (self.message,)
        self.timeout = timeout


class ConnectionError(PollingError):
    """Raised when there's an error with network connections."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(f"Connection error: {message}", cause)


class ProtocolError(PollingError):
    """Raised when there's an error with HTTP protocol handling."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(f"Protocol error: {message}", cause)
