"""Shared types for email verification steps."""

from dataclasses import dataclass


@dataclass(frozen=True)
class VerificationOutcome:
    """Answer from one verification step.

    ``error`` is set when no step could give a definitive answer; the
    candidate then stays unverified and the email source is degraded.
    """

    is_valid: bool
    method: str
    details: str | None = None
    error: str | None = None

    @classmethod
    def unverified(cls, error: str) -> "VerificationOutcome":
        return cls(is_valid=False, method="unverified", details=error, error=error)
