"""Exception hierarchy with structured error details."""

from typing import Any


class MalRatingsError(Exception):
    """Base exception with structured details."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable


class ConfigurationError(MalRatingsError):
    """Invalid or incomplete configuration."""

    pass


class ApiError(MalRatingsError):
    """Remote API failures (transport, HTTP status, malformed payload)."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        details: dict[str, Any] | None = None,
        recoverable: bool = True,
    ):
        super().__init__(message, details=details, recoverable=recoverable)
        self.status = status

    @property
    def is_rate_limited(self) -> bool:
        return self.status == 429
