"""
Retry engine exceptions.

The engine itself only raises for misconfiguration, and always before the
first attempt runs. Failures of the protected operation are never wrapped:
they reach the caller as the identical exception object.
"""

from typing import Any


class RetryConfigurationError(ValueError):
    """
    Raised when a retry run is configured incorrectly.

    Examples:
    - max_attempts is not a positive integer
    - a retry policy handler is passed to protected-execution

    Attributes:
        message: Human-readable error description
        details: Structured error data for logging
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message
