"""Email discovery: pattern-generated candidates, verified and ranked."""

import asyncio
import re

from leadsleuth.exceptions import describe_error
from leadsleuth.extractors.normalizers import clean_domain, domain_from_business_name
from leadsleuth.models import EmailCandidate, EnrichmentRequest, SourceName, SourceResult
from leadsleuth.resilience.circuit_breaker import EMAIL_VERIFICATION as EMAIL_VERIFICATION_BREAKER
from leadsleuth.resilience.guard import ResilienceGuard
from leadsleuth.resilience.retry import EMAIL_VERIFICATION
from leadsleuth.sources.base import BaseSourceAdapter, SourceConfig
from leadsleuth.verification.cascade import EmailVerifier


class EmailPatternGenerator:
    """Generate common business email patterns for a domain."""

    # (local part template, pattern name, confidence)
    GENERIC_PATTERNS = [
        ("owner", "owner@domain", 50),
        ("info", "info@domain", 40),
        ("contact", "contact@domain", 35),
        ("admin", "admin@domain", 30),
    ]

    PERSONAL_PATTERNS = [
        ("{first}.{last}", "firstname.lastname@domain", 90),
        ("{first}{last}", "firstnamelastname@domain", 80),
        ("{first}", "firstname@domain", 70),
        ("{f}{last}", "flastname@domain", 60),
        ("{first}{l}", "firstnamel@domain", 55),
    ]

    @staticmethod
    def parse_owner_name(name: str | None) -> tuple[str, str] | None:
        """Split an owner name into lowercase letter-only first and last parts.

        Returns:
            (first, last), or None unless both are present
        """
        if not name:
            return None
        parts = [re.sub(r"[^a-z]", "", part) for part in name.lower().split()]
        parts = [p for p in parts if p]
        if len(parts) < 2:
            return None
        return parts[0], parts[-1]

    def generate(self, owner_name: str | None, domain: str) -> list[EmailCandidate]:
        """Generate ranked, unverified candidates.

        Args:
            owner_name: Owner's full name, if known
            domain: Mail domain (already cleaned)

        Returns:
            Candidates, highest pattern confidence first
        """
        if not domain:
            return []

        templates = list(self.GENERIC_PATTERNS)
        values: dict[str, str] = {}
        parsed = self.parse_owner_name(owner_name)
        if parsed:
            first, last = parsed
            values = {"first": first, "last": last, "f": first[0], "l": last[0]}
            templates += self.PERSONAL_PATTERNS

        candidates: dict[str, EmailCandidate] = {}
        for template, pattern, confidence in templates:
            address = f"{template.format(**values)}@{domain}"
            existing = candidates.get(address)
            if existing is None or existing.pattern_confidence < confidence:
                candidates[address] = EmailCandidate(
                    address=address,
                    pattern_used=pattern,
                    pattern_confidence=confidence,
                )

        return sorted(candidates.values(), key=lambda c: c.pattern_confidence, reverse=True)


class EmailDiscoverer(BaseSourceAdapter):
    """Generate candidate addresses and verify them concurrently."""

    config = SourceConfig(
        name=SourceName.EMAIL.value,
        dependency=EMAIL_VERIFICATION_BREAKER,
        retry_policy=EMAIL_VERIFICATION,
    )

    def __init__(
        self,
        guard: ResilienceGuard,
        verifier: EmailVerifier | None = None,
        generator: EmailPatternGenerator | None = None,
    ):
        super().__init__(guard)
        self.verifier = verifier or EmailVerifier(guard)
        self.generator = generator or EmailPatternGenerator()

    @staticmethod
    def resolve_domain(request: EnrichmentRequest) -> str:
        """Mail domain from the website, else guessed from the business name."""
        return clean_domain(request.website_url) or domain_from_business_name(request.business_name)

    async def _enrich(self, request: EnrichmentRequest) -> SourceResult:
        domain = self.resolve_domain(request)
        if not domain:
            return SourceResult.failed(self.source_name, "no domain to generate email patterns for")

        candidates = self.generator.generate(request.owner_name_hint, domain)

        outcomes = await asyncio.gather(
            *(self.verifier.verify_candidate(c) for c in candidates),
            return_exceptions=True,
        )

        errors = []
        for candidate, outcome in zip(candidates, outcomes):
            if isinstance(outcome, BaseException):
                error = f"{candidate.address}: {describe_error(outcome)}"
                if not candidate.is_checked:
                    candidate.mark_verified(False, "unverified", error)
                errors.append(error)
            elif outcome:
                errors.append(outcome)

        ranked = sorted(candidates, key=lambda c: c.rank_score, reverse=True)

        return SourceResult(
            source_name=self.source_name,
            emails=tuple(ranked),
            owner_name_guess=request.owner_name_hint,
            confidence=self.calculate_confidence(ranked),
            degraded=bool(errors),
            errors=tuple(errors),
        )

    @staticmethod
    def calculate_confidence(candidates: list[EmailCandidate]) -> int:
        """Best verified candidate's pattern confidence, else a quarter of the best guess."""
        verified = [c.pattern_confidence for c in candidates if c.verified]
        if verified:
            return max(verified)
        if not candidates:
            return 0
        return max(c.pattern_confidence for c in candidates) // 4
