"""Business website scraper for owner and contact information."""

import asyncio
from dataclasses import dataclass, field
from urllib.parse import urlparse

from leadsleuth.core.http_client import HTTPClient
from leadsleuth.exceptions import describe_error
from leadsleuth.extractors.email import EmailExtractor
from leadsleuth.extractors.links import SocialLinkExtractor
from leadsleuth.extractors.normalizers import TextCleaner, WebsiteNormalizer
from leadsleuth.extractors.owner import OwnerExtractor, RegexOwnerExtractor
from leadsleuth.extractors.phone import PhoneExtractor
from leadsleuth.models import EmailCandidate, EnrichmentRequest, OwnerGuess, SourceName, SourceResult
from leadsleuth.resilience.circuit_breaker import WEBSITE_SCRAPING
from leadsleuth.resilience.guard import ResilienceGuard
from leadsleuth.resilience.retry import WEBSITE_FETCH
from leadsleuth.settings import settings
from leadsleuth.sources.base import BaseSourceAdapter, SourceConfig

# Scraped addresses appear on the site itself, so they outrank generic guesses
WEBSITE_EMAIL_CONFIDENCE = 75


@dataclass
class PageContent:
    """Contact data pulled from one page."""

    path: str
    emails: list[str] = field(default_factory=list)
    phones: list[str] = field(default_factory=list)
    linkedin_urls: list[str] = field(default_factory=list)
    facebook_urls: list[str] = field(default_factory=list)
    text: str = ""


class WebsiteScraper(BaseSourceAdapter):
    """Scrape a business website's home, contact, about and team pages.

    Pages are fetched concurrently; each fetch goes through the
    ``website_scraping`` breaker and the website retry preset. Whatever
    pages succeed are merged, and every failed page degrades the result.
    """

    config = SourceConfig(
        name=SourceName.WEBSITE.value,
        dependency=WEBSITE_SCRAPING,
        retry_policy=WEBSITE_FETCH,
    )

    PAGE_TEXT_LIMIT = 5000

    # Owner text is read in this order: about, team, contact, home
    TEXT_ORDER = ["/about", "/team", "/contact", ""]

    def __init__(
        self,
        http: HTTPClient,
        guard: ResilienceGuard,
        owner_extractor: OwnerExtractor | None = None,
        pages: list[str] | None = None,
    ):
        """Initialize website scraper.

        Args:
            http: Shared HTTP client
            guard: Breaker/retry wrapper
            owner_extractor: Owner name strategy (regex by default)
            pages: Paths to fetch, relative to the site root
        """
        super().__init__(guard)
        self.http = http
        self.owner_extractor = owner_extractor or RegexOwnerExtractor()
        self.pages = list(settings.website_pages if pages is None else pages)
        self.email_extractor = EmailExtractor()
        self.phone_extractor = PhoneExtractor()
        self.link_extractor = SocialLinkExtractor()

    async def _enrich(self, request: EnrichmentRequest) -> SourceResult:
        normalized = WebsiteNormalizer.normalize(request.website_url or "")
        if not normalized:
            return SourceResult.failed(self.source_name, "no usable website URL")
        parsed = urlparse(normalized)
        base_url = f"{parsed.scheme}://{parsed.netloc}"

        outcomes = await asyncio.gather(
            *(self.scrape_page(base_url, path) for path in self.pages),
            return_exceptions=True,
        )

        pages: list[PageContent] = []
        errors: list[str] = []
        for path, outcome in zip(self.pages, outcomes):
            if isinstance(outcome, BaseException):
                errors.append(f"{path or '/'}: {describe_error(outcome)}")
                self.logger.debug("website_page_failed", url=f"{base_url}{path}", error=describe_error(outcome))
            else:
                pages.append(outcome)

        emails = _union(page.emails for page in pages)
        phones = _union(page.phones for page in pages)
        linkedin_urls = _union(page.linkedin_urls for page in pages)
        facebook_urls = _union(page.facebook_urls for page in pages)

        owner = await self._extract_owner(pages)

        confidence = self.calculate_confidence(
            has_email=bool(emails),
            has_phone=bool(phones),
            owner=owner,
            has_linkedin=bool(linkedin_urls),
            has_facebook=bool(facebook_urls),
            failed_pages=len(errors),
        )

        return SourceResult(
            source_name=self.source_name,
            emails=tuple(
                EmailCandidate(
                    address=email,
                    pattern_used="website",
                    pattern_confidence=WEBSITE_EMAIL_CONFIDENCE,
                    verification_method="website_scrape",
                )
                for email in emails
            ),
            phones=tuple(phones),
            social_urls=tuple(linkedin_urls + facebook_urls),
            owner_name_guess=owner.name,
            owner_title_guess=owner.title,
            confidence=confidence,
            degraded=bool(errors),
            errors=tuple(errors),
        )

    async def scrape_page(self, base_url: str, path: str) -> PageContent:
        """Fetch one page and extract its contact data.

        Raises:
            RetryError: Page could not be fetched
            CircuitOpenError: Website breaker is open
        """
        url = f"{base_url}{path}"
        response = await self.call("fetch_page", self.http.get, url)
        return self.parse_page(path, response.text)

    def parse_page(self, path: str, html: str) -> PageContent:
        visible_text = TextCleaner.clean_html(html)
        linkedin_urls, facebook_urls = self.link_extractor.extract(html)
        return PageContent(
            path=path,
            emails=self.email_extractor.extract_from_html(html),
            phones=self.phone_extractor.extract_and_normalize(visible_text, html),
            linkedin_urls=linkedin_urls,
            facebook_urls=facebook_urls,
            text=TextCleaner.clean_html(html, drop_layout=True)[: self.PAGE_TEXT_LIMIT],
        )

    async def _extract_owner(self, pages: list[PageContent]) -> OwnerGuess:
        by_path = {page.path: page.text for page in pages}
        ordered = [by_path[p] for p in self.TEXT_ORDER if by_path.get(p)]
        ordered += [text for path, text in by_path.items() if path not in self.TEXT_ORDER and text]
        combined = "\n\n".join(ordered)
        if not combined:
            return OwnerGuess()
        return await self.owner_extractor.extract(combined)

    @staticmethod
    def calculate_confidence(
        has_email: bool,
        has_phone: bool,
        owner: OwnerGuess,
        has_linkedin: bool,
        has_facebook: bool,
        failed_pages: int,
    ) -> int:
        """Score the scrape by what it found.

        +30 email, +25 phone, +25 owner name, +10 LinkedIn URL,
        +5 Facebook URL, +5 owner title, -10 per failed page; clamped
        to [0, 100] by ``SourceResult``.
        """
        score = 0
        if has_email:
            score += 30
        if has_phone:
            score += 25
        if owner.name:
            score += 25
        if has_linkedin:
            score += 10
        if has_facebook:
            score += 5
        if owner.title:
            score += 5
        score -= 10 * failed_pages
        return max(0, min(100, score))


def _union(groups) -> list[str]:
    seen = set()
    merged = []
    for group in groups:
        for value in group:
            key = value.lower()
            if key not in seen:
                seen.add(key)
                merged.append(value)
    return merged
