"""Data model for enrichment requests, per-source results and merged results."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from leadsleuth.exceptions import InvalidRequestError


class SourceName(str, Enum):
    """Adapters contributing to an enrichment."""
    WEBSITE = "website"
    EMAIL = "email"
    LINKEDIN = "linkedin"


@dataclass(frozen=True)
class EnrichmentRequest:
    """Input for one enrichment."""

    business_name: str
    website_url: str | None = None
    owner_name_hint: str | None = None
    business_type: str | None = None
    location: str | None = None

    @property
    def label(self) -> str:
        """Identifier used in logs and batch reports."""
        return (self.business_name or self.website_url or "").strip() or "<empty>"

    def validate(self) -> None:
        """Raise InvalidRequestError when there is nothing to enrich."""
        if not (self.business_name or "").strip() and not (self.website_url or "").strip():
            raise InvalidRequestError("request needs a business name or a website URL")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EnrichmentRequest":
        """Build a request from loosely-keyed input (CSV rows, JSON lines)."""
        def pick(*keys: str) -> str | None:
            for key in keys:
                value = data.get(key)
                if value is not None and str(value).strip():
                    return str(value).strip()
            return None

        return cls(
            business_name=pick("business_name", "businessName", "name", "company") or "",
            website_url=pick("website_url", "websiteURL", "website", "url"),
            owner_name_hint=pick("owner_name_hint", "ownerNameHint", "owner_name", "owner"),
            business_type=pick("business_type", "businessType", "type"),
            location=pick("location", "city"),
        )


@dataclass
class EmailCandidate:
    """A candidate email address.

    Created unverified by the pattern generator (or a scraper), marked once
    by the verification step, then treated as read-only.
    """

    address: str
    pattern_used: str
    pattern_confidence: int
    verified: bool = False
    verification_method: str = "unverified"
    details: str | None = None
    _checked: bool = field(default=False, repr=False, compare=False)

    @property
    def rank_score(self) -> int:
        return (100 if self.verified else 0) + self.pattern_confidence

    @property
    def is_checked(self) -> bool:
        return self._checked

    def mark_verified(self, verified: bool, method: str, details: str | None = None) -> None:
        """Record the verification outcome. Allowed exactly once."""
        if self._checked:
            raise ValueError(f"email candidate {self.address} already verified")
        self.verified = verified
        self.verification_method = method
        self.details = details
        self._checked = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "pattern_used": self.pattern_used,
            "pattern_confidence": self.pattern_confidence,
            "verified": self.verified,
            "verification_method": self.verification_method,
            "details": self.details,
        }


@dataclass(frozen=True)
class Profile:
    """A LinkedIn-style person profile."""

    name: str
    title: str
    company: str
    profile_url: str
    verified: bool = False
    email: str | None = None
    phone: str | None = None
    website: str | None = None
    location: str | None = None
    contact_methods: tuple[str, ...] = ()

    @property
    def is_complete(self) -> bool:
        return bool(self.name.strip()) and bool(self.title.strip())

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["contact_methods"] = list(self.contact_methods)
        return data


@dataclass(frozen=True)
class CompanyInfo:
    """Company page details found during LinkedIn lookup."""

    name: str
    industry: str | None = None
    size: str | None = None
    url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class OwnerGuess:
    """Owner name/title guessed from free text."""

    name: str | None = None
    title: str | None = None
    method: str = "none"


def clamp_confidence(value: float) -> int:
    return int(max(0, min(100, round(value))))


@dataclass(frozen=True)
class SourceResult:
    """Output of one adapter invocation. Never mutated after return."""

    source_name: str
    emails: tuple[EmailCandidate, ...] = ()
    phones: tuple[str, ...] = ()
    profiles: tuple[Profile, ...] = ()
    social_urls: tuple[str, ...] = ()
    owner_name_guess: str | None = None
    owner_title_guess: str | None = None
    company: CompanyInfo | None = None
    confidence: int = 0
    degraded: bool = False
    errors: tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "confidence", clamp_confidence(self.confidence))
        object.__setattr__(
            self, "profiles", tuple(p for p in self.profiles if p.is_complete)
        )

    @property
    def has_candidates(self) -> bool:
        return bool(
            self.emails
            or self.phones
            or self.profiles
            or self.social_urls
            or self.owner_name_guess
            or self.company
        )

    @classmethod
    def failed(cls, source_name: str, *errors: str) -> "SourceResult":
        """Empty degraded result for a source that produced nothing."""
        return cls(source_name=source_name, degraded=True, errors=tuple(errors))

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_name": self.source_name,
            "emails": [e.to_dict() for e in self.emails],
            "phones": list(self.phones),
            "profiles": [p.to_dict() for p in self.profiles],
            "social_urls": list(self.social_urls),
            "owner_name_guess": self.owner_name_guess,
            "owner_title_guess": self.owner_title_guess,
            "company": self.company.to_dict() if self.company else None,
            "confidence": self.confidence,
            "degraded": self.degraded,
            "errors": list(self.errors),
        }


@dataclass(frozen=True)
class EnrichmentResult:
    """Merged, confidence-scored contact record."""

    business_name: str
    owner_name: str | None = None
    owner_title: str | None = None
    emails: tuple[EmailCandidate, ...] = ()
    phones: tuple[str, ...] = ()
    profiles: tuple[Profile, ...] = ()
    social_urls: tuple[str, ...] = ()
    company: CompanyInfo | None = None
    confidence: int = 0
    sources_used: tuple[str, ...] = ()
    sources_failed: tuple[str, ...] = ()
    source_results: dict[str, SourceResult] = field(default_factory=dict)

    @property
    def best_email(self) -> EmailCandidate | None:
        return self.emails[0] if self.emails else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "business_name": self.business_name,
            "owner_name": self.owner_name,
            "owner_title": self.owner_title,
            "emails": [e.to_dict() for e in self.emails],
            "phones": list(self.phones),
            "profiles": [p.to_dict() for p in self.profiles],
            "social_urls": list(self.social_urls),
            "company": self.company.to_dict() if self.company else None,
            "confidence": self.confidence,
            "sources_used": list(self.sources_used),
            "sources_failed": list(self.sources_failed),
            "source_results": {
                name: result.to_dict() for name, result in self.source_results.items()
            },
        }
