"""Deterministic merge of per-source results into one EnrichmentResult."""

from leadsleuth.extractors.normalizers import normalize_profile_url, phone_digits
from leadsleuth.logging_config import get_logger
from leadsleuth.models import (
    EmailCandidate,
    EnrichmentRequest,
    EnrichmentResult,
    Profile,
    SourceName,
    SourceResult,
    clamp_confidence,
)

logger = get_logger(__name__)

# Merged confidence weights; they sum to 1 so the result stays within [0, 100]
SOURCE_WEIGHTS: dict[str, float] = {
    SourceName.WEBSITE.value: 0.4,
    SourceName.EMAIL.value: 0.35,
    SourceName.LINKEDIN.value: 0.25,
}

# Owner name precedence: LinkedIn decision maker, website guess, email owner hint
OWNER_PRECEDENCE = [SourceName.LINKEDIN.value, SourceName.WEBSITE.value, SourceName.EMAIL.value]

SOURCE_ORDER = [SourceName.WEBSITE.value, SourceName.EMAIL.value, SourceName.LINKEDIN.value]


class ResultMerger:
    """Merge source results: dedup, owner resolution, weighted confidence."""

    def __init__(self, weights: dict[str, float] | None = None):
        self.weights = dict(SOURCE_WEIGHTS if weights is None else weights)

    def merge(self, request: EnrichmentRequest, source_results: dict[str, SourceResult]) -> EnrichmentResult:
        """Build the merged result.

        Args:
            request: The enrichment request
            source_results: Result per source name

        Returns:
            Merged, confidence-scored result
        """
        ordered = self._ordered(source_results)
        used = [r for r in ordered if r.has_candidates]
        failed = [r for r in ordered if not r.has_candidates]

        owner_name, owner_title = self.resolve_owner(source_results)

        result = EnrichmentResult(
            business_name=request.business_name,
            owner_name=owner_name,
            owner_title=owner_title,
            emails=tuple(self.merge_emails(used)),
            phones=tuple(self.merge_phones(used)),
            profiles=tuple(self.merge_profiles(used)),
            social_urls=tuple(self.merge_social_urls(used)),
            company=next((r.company for r in used if r.company), None),
            confidence=self.confidence(used),
            sources_used=tuple(r.source_name for r in used),
            sources_failed=tuple(r.source_name for r in failed),
            source_results=dict(source_results),
        )

        logger.debug(
            "results_merged",
            business=request.label,
            emails=len(result.emails),
            phones=len(result.phones),
            profiles=len(result.profiles),
            confidence=result.confidence,
        )
        return result

    def confidence(self, used: list[SourceResult]) -> int:
        """Weighted sum of per-source confidences; failed sources count as 0."""
        total = sum(self.weights.get(r.source_name, 0.0) * r.confidence for r in used)
        return clamp_confidence(total)

    @staticmethod
    def resolve_owner(source_results: dict[str, SourceResult]) -> tuple[str | None, str | None]:
        for name in OWNER_PRECEDENCE:
            result = source_results.get(name)
            if result and result.owner_name_guess:
                return result.owner_name_guess, result.owner_title_guess
        return None, None

    @staticmethod
    def merge_emails(results: list[SourceResult]) -> list[EmailCandidate]:
        """Dedup by lowercase address: verified wins, highest confidence kept.

        Returns new candidates, ranked by ``rank_score``; source results are
        left untouched.
        """
        best: dict[str, EmailCandidate] = {}
        top_confidence: dict[str, int] = {}
        for result in results:
            for candidate in result.emails:
                key = candidate.address.lower()
                top_confidence[key] = max(top_confidence.get(key, 0), candidate.pattern_confidence)
                current = best.get(key)
                if current is None or (candidate.verified and not current.verified):
                    best[key] = candidate

        merged = [_copy_candidate(c, top_confidence[key]) for key, c in best.items()]
        return sorted(merged, key=lambda c: c.rank_score, reverse=True)

    @staticmethod
    def merge_phones(results: list[SourceResult]) -> list[str]:
        seen = set()
        phones = []
        for result in results:
            for phone in result.phones:
                key = phone_digits(phone)
                if key and key not in seen:
                    seen.add(key)
                    phones.append(phone)
        return phones

    @staticmethod
    def merge_profiles(results: list[SourceResult]) -> list[Profile]:
        best: dict[str, Profile] = {}
        for result in results:
            for profile in result.profiles:
                if not profile.is_complete:
                    continue
                key = normalize_profile_url(profile.profile_url)
                current = best.get(key)
                if current is None or (profile.verified and not current.verified):
                    best[key] = profile
        return list(best.values())

    @staticmethod
    def merge_social_urls(results: list[SourceResult]) -> list[str]:
        seen = set()
        urls = []
        for result in results:
            for url in result.social_urls:
                key = normalize_profile_url(url)
                if key not in seen:
                    seen.add(key)
                    urls.append(url)
        return urls

    @staticmethod
    def _ordered(source_results: dict[str, SourceResult]) -> list[SourceResult]:
        known = [source_results[name] for name in SOURCE_ORDER if name in source_results]
        extra = [r for name, r in source_results.items() if name not in SOURCE_ORDER]
        return known + extra


def _copy_candidate(candidate: EmailCandidate, confidence: int) -> EmailCandidate:
    copy = EmailCandidate(
        address=candidate.address.lower(),
        pattern_used=candidate.pattern_used,
        pattern_confidence=confidence,
        verification_method=candidate.verification_method,
    )
    if candidate.is_checked:
        copy.mark_verified(candidate.verified, candidate.verification_method, candidate.details)
    return copy
