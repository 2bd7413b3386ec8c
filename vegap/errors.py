"""
Vegap client errors.

Every failure surfaces as exactly one exception carrying one
human-readable message. Nothing is retried, nothing is swallowed.

    VegapError
    ├── VegapConfigError     invalid call, detected before any I/O
    ├── VegapTransportError  network failure or timeout
    ├── VegapAPIError        non-2xx response from the service
    └── VegapDecodeError     2xx response that could not be decoded
"""

from typing import Any, Optional


class VegapError(Exception):
    """Base class for all Vegap client failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class VegapConfigError(VegapError, ValueError):
    """Client or call is misconfigured. Raised before any request is sent."""
    pass


class VegapTransportError(VegapError):
    """The request never produced a response (connection error, timeout)."""
    pass


class VegapAPIError(VegapError):
    """The service answered with a non-success status."""

    def __init__(
        self,
        message: str,
        status_code: int,
        body: Optional[Any] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class VegapDecodeError(VegapError):
    """A success response could not be decoded into the expected shape."""
    pass
