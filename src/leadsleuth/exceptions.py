"""Exception hierarchy for the enrichment core.

Errors fall into four groups:

- transient: timeouts, connection resets, 429/502/503/504 (retried per policy)
- fatal for this call: 400/401/403/404/422, malformed input, blocked access
- exhausted: retries used up, wrapped in :class:`RetryError`
- circuit open: short-circuited by a breaker, see :class:`CircuitOpenError`
"""

from typing import Any


class LeadSleuthError(Exception):
    """Base class for all enrichment errors."""


class InvalidRequestError(LeadSleuthError):
    """Enrichment request cannot be processed at all."""


class FetchError(LeadSleuthError):
    """HTTP request failed."""

    def __init__(self, message: str, status_code: int | None = None, url: str | None = None):
        self.message = message
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class FetchTimeoutError(FetchError):
    """Request timed out."""


class ConnectionResetFetchError(FetchError):
    """Connection was reset or refused before a response arrived."""


class BlockedError(FetchError):
    """Request was blocked by anti-bot protection (captcha, auth wall)."""


class ProviderError(LeadSleuthError):
    """Error from a third-party API (verification providers, OpenAI)."""

    def __init__(self, message: str, status_code: int | None = None, error_code: str | None = None):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)


class RetryError(LeadSleuthError):
    """Operation failed after one or more attempts."""

    def __init__(self, message: str, attempts: int, last_error: BaseException):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(message)

    @property
    def status_code(self) -> int | None:
        return getattr(self.last_error, "status_code", None)


class CircuitOpenError(LeadSleuthError):
    """Call rejected because the dependency's circuit is open."""

    def __init__(self, name: str, retry_after: float = 0.0):
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"circuit open: '{name}' (retry in {retry_after:.0f}s)")


class NoCandidatesError(LeadSleuthError):
    """Batch item whose enrichment ran but no source produced anything."""

    def __init__(self, message: str, result: Any = None):
        self.result = result
        super().__init__(message)


class BatchFailedError(LeadSleuthError):
    """Batch success rate fell below the caller's hard-fail threshold."""

    def __init__(self, message: str, summary: Any):
        self.summary = summary
        super().__init__(message)


def describe_error(error: BaseException) -> str:
    """Short human-readable description used in ``SourceResult.errors``."""
    if isinstance(error, RetryError):
        return f"{error.last_error} (after {error.attempts} attempts)"
    return str(error) or type(error).__name__
