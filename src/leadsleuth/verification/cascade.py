"""Email verification cascade.

Steps run in priority order and stop at the first definitive answer:

1. syntax check (invalid addresses are rejected without any network call)
2. Hunter.io, when configured
3. EmailListVerify, when configured
4. DNS MX lookup, always available

API steps run under the generic API retry preset, the MX step under the
email verification preset, all behind the ``email_verification`` breaker.
A failing API step is logged and skipped; a failing MX step leaves the
address unverified.
"""

from typing import Protocol

from leadsleuth.exceptions import LeadSleuthError, describe_error
from leadsleuth.extractors.email import EmailExtractor
from leadsleuth.logging_config import get_logger
from leadsleuth.models import EmailCandidate
from leadsleuth.resilience.circuit_breaker import EMAIL_VERIFICATION as EMAIL_VERIFICATION_BREAKER
from leadsleuth.resilience.guard import ResilienceGuard
from leadsleuth.resilience.retry import API_CALL, EMAIL_VERIFICATION
from leadsleuth.verification.base import VerificationOutcome
from leadsleuth.verification.dns_mx import MXVerifier

logger = get_logger(__name__)


class VerificationProvider(Protocol):
    name: str
    enabled: bool

    async def verify(self, email: str) -> VerificationOutcome | None:
        ...


class EmailVerifier:
    """Run the verification cascade for single addresses."""

    def __init__(
        self,
        guard: ResilienceGuard,
        providers: list[VerificationProvider] | None = None,
        mx: MXVerifier | None = None,
    ):
        """Initialize verifier.

        Args:
            guard: Breaker/retry wrapper
            providers: Third-party APIs in priority order (disabled ones are skipped)
            mx: MX verifier (dnspython-backed by default)
        """
        self.guard = guard
        self.providers = [p for p in (providers or []) if p.enabled]
        self.mx = mx or MXVerifier()
        self.syntax = EmailExtractor()

    async def verify(self, email: str) -> VerificationOutcome:
        """Verify one address.

        Returns:
            First definitive outcome, or an unverified outcome carrying the
            MX failure when nothing could answer
        """
        if not self.syntax.validate_format(email):
            return VerificationOutcome(is_valid=False, method="syntax_check", details="Invalid email format")

        for provider in self.providers:
            try:
                outcome = await self.guard.call(
                    EMAIL_VERIFICATION_BREAKER,
                    API_CALL,
                    f"{provider.name}_verify",
                    provider.verify,
                    email,
                )
            except LeadSleuthError as e:
                logger.warning(
                    "email_provider_failed",
                    provider=provider.name,
                    email=email,
                    error=describe_error(e),
                )
                continue
            if outcome is not None:
                return outcome

        try:
            return await self.guard.call(
                EMAIL_VERIFICATION_BREAKER,
                EMAIL_VERIFICATION,
                "mx_verify",
                self.mx.verify,
                email,
            )
        except LeadSleuthError as e:
            error = f"{email}: MX check failed: {describe_error(e)}"
            logger.warning("email_mx_check_failed", email=email, error=describe_error(e))
            return VerificationOutcome.unverified(error)

    async def verify_candidate(self, candidate: EmailCandidate) -> str | None:
        """Verify and mark a candidate.

        Returns:
            Error text when the candidate had to be left unverified
        """
        outcome = await self.verify(candidate.address)
        candidate.mark_verified(outcome.is_valid, outcome.method, outcome.details)
        return outcome.error
