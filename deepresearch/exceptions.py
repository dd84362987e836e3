"""Exceptions raised by the research clients and orchestrator."""
from __future__ import annotations


class DeepResearchError(Exception):
    """Base exception for deep research errors."""

    pass


class ValidationError(DeepResearchError):
    """Raised when caller input is rejected before any network call."""

    pass


class TransportError(DeepResearchError):
    """Raised when a provider request fails at the network or HTTP level."""

    pass


class FormatError(DeepResearchError):
    """Raised when a provider response does not have the expected shape."""

    pass


class ExhaustedRetriesError(DeepResearchError):
    """Raised when every attempt of a retried operation has failed."""

    def __init__(self, operation: str, attempts: int, last_error: Exception | None):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"{operation} failed after {attempts} attempts: {last_error}")


# Errors worth another attempt; anything else propagates immediately.
RETRYABLE_ERRORS: tuple[type[Exception], ...] = (TransportError, FormatError)
