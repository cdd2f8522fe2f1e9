"""LinkedIn prospecting for business decision makers.

Most of LinkedIn sits behind an auth wall, so people are found through
three tiers, tried in order until one yields decision makers:

1. Google ``site:linkedin.com/in/`` search
2. Direct LinkedIn people search page (usually blocked)
3. Bing ``site:linkedin.com/in/`` search

The company page lookup runs once per request, alongside the tiers.
"""

import asyncio
import re
from urllib.parse import urlparse

from selectolax.parser import HTMLParser

from leadsleuth.core.http_client import HTTPClient
from leadsleuth.exceptions import BlockedError, LeadSleuthError, describe_error
from leadsleuth.extractors.email import EmailExtractor
from leadsleuth.extractors.normalizers import TextCleaner, clean_domain, normalize_profile_url
from leadsleuth.extractors.phone import PhoneExtractor
from leadsleuth.models import CompanyInfo, EnrichmentRequest, Profile, SourceName, SourceResult
from leadsleuth.resilience.circuit_breaker import LINKEDIN, SEARCH_ENGINE
from leadsleuth.resilience.guard import ResilienceGuard
from leadsleuth.resilience.retry import LINKEDIN_SEARCH
from leadsleuth.settings import settings
from leadsleuth.sources.base import BaseSourceAdapter, SourceConfig
from leadsleuth.sources.search_engines import BingSearch, GoogleSearch, SearchEngine, SearchHit

DECISION_MAKER_TITLES = [
    "ceo", "president", "owner", "founder", "principal", "partner",
    "director", "manager", "vp", "vice president", "chief", "head of",
    "lead", "supervisor", "coordinator", "business owner", "company owner",
    "small business owner", "co-founder", "managing director", "general manager",
    "operations manager", "sales manager", "marketing manager", "hr manager",
    "finance manager", "executive", "administrator",
]

# Lower index wins when choosing the owner among decision makers
OWNER_TITLE_PRIORITY = ["owner", "founder", "ceo", "president", "principal", "partner", "director", "manager"]

PEOPLE_ROLES = (
    '(CEO OR President OR Owner OR Founder OR Director OR Manager OR "Business Owner" '
    'OR "Company Owner" OR "Small Business Owner")'
)

UNKNOWN_COMPANY = "Unknown Company"

_RESULT_TITLE_RE = re.compile(r"^([^|]+?)(?:\s+[-–]\s+(.+?))?\s*\|\s*LinkedIn\s*$", re.IGNORECASE)
_SNIPPET_COMPANY_RES = [
    re.compile(r"works?\s+at\s+([^.·]+)", re.IGNORECASE),
    re.compile(r"employed\s+by\s+([^.·]+)", re.IGNORECASE),
    re.compile(r"\s+at\s+([A-Z][^.·]+)"),
]
_SNIPPET_TITLE_RE = re.compile(
    r"(?:^|\s)((?:CEO|President|Owner|Founder|Manager|Director|VP|Chief)[^.·]*)", re.IGNORECASE
)
_WEBSITE_RE = re.compile(r"https?://[^\s\"'<>]+")
_SOCIAL_DOMAINS = ("linkedin.com", "facebook.com", "twitter.com", "instagram.com", "x.com")


def is_decision_maker(title: str | None) -> bool:
    """Case-insensitive substring match against the decision maker keywords."""
    if not title:
        return False
    normalized = title.lower()
    return any(keyword in normalized for keyword in DECISION_MAKER_TITLES)


def owner_rank(profile: Profile) -> int:
    title = profile.title.lower()
    for index, keyword in enumerate(OWNER_TITLE_PRIORITY):
        if keyword in title:
            return index
    return len(OWNER_TITLE_PRIORITY)


def clean_name(name: str) -> str:
    name = re.sub(r"\s+", " ", name)
    return re.sub(r"[^\w\s.'-]", "", name).strip()


def clean_title(title: str) -> str:
    title = re.sub(r"\s+", " ", title)
    return re.sub(r"\|\s*LinkedIn.*$", "", title, flags=re.IGNORECASE).strip()


def normalize_linkedin_url(url: str, base_url: str = "https://www.linkedin.com") -> str:
    """Absolute profile URL without query string or trailing slash."""
    url = url.strip()
    if url.startswith("/"):
        url = f"{base_url.rstrip('/')}{url}"
    return url.split("?", 1)[0].split("#", 1)[0].rstrip("/")


def company_from_snippet(snippet: str) -> str:
    for pattern in _SNIPPET_COMPANY_RES:
        match = pattern.search(snippet or "")
        if match:
            return match.group(1).strip()
    return ""


def parse_search_result(hit: SearchHit) -> Profile | None:
    """Parse a "Name - Title at Company | LinkedIn" style search hit.

    Also handles "Name - Title - Company", "Name - Title | Company" and
    titles with no company (company then comes from the snippet).
    """
    match = _RESULT_TITLE_RE.match(hit.title.strip())
    if not match:
        return None

    name = clean_name(match.group(1))
    title_part = (match.group(2) or "").strip()

    if " at " in title_part:
        title, company = title_part.split(" at ", 1)
    elif re.search(r"\s[-–]\s", title_part):
        title, company = re.split(r"\s[-–]\s", title_part, maxsplit=1)
    elif " | " in title_part:
        title, company = title_part.split(" | ", 1)
    else:
        title, company = title_part, company_from_snippet(hit.snippet)

    title = clean_title(title)
    company = company.strip()
    if not name or not (title or company):
        return None

    return Profile(
        name=name,
        title=title,
        company=company or UNKNOWN_COMPANY,
        profile_url=normalize_linkedin_url(hit.url),
    )


def parse_bing_result(hit: SearchHit, company_name: str) -> Profile | None:
    """Bing hit: the standard title format, else name from title and role from snippet."""
    profile = parse_search_result(hit)
    if profile and profile.title:
        return profile

    name = clean_name(re.split(r"\s[-–]\s|\|", hit.title, maxsplit=1)[0])
    title_match = _SNIPPET_TITLE_RE.search(hit.snippet or "")
    if not name or not title_match:
        return None
    return Profile(
        name=name,
        title=clean_title(title_match.group(1)),
        company=company_name,
        profile_url=normalize_linkedin_url(hit.url),
    )


def confidence_score(profiles: list[Profile], company: CompanyInfo | None) -> int:
    """20 per profile, 20 for the company, 10 per verified profile, 15 per decision maker."""
    score = 20 * len(profiles)
    if company:
        score += 20
    score += 10 * sum(1 for p in profiles if p.verified)
    score += 15 * sum(1 for p in profiles if is_decision_maker(p.title))
    return max(0, min(100, score))


class LinkedInProspector(BaseSourceAdapter):
    """Find decision makers and the company page for a business."""

    config = SourceConfig(
        name=SourceName.LINKEDIN.value,
        dependency=LINKEDIN,
        retry_policy=LINKEDIN_SEARCH,
    )

    AUTH_WALL_MARKERS = ("authwall", "/login", "/checkpoint/", "uas/login")

    def __init__(
        self,
        http: HTTPClient,
        guard: ResilienceGuard,
        google: SearchEngine | None = None,
        bing: SearchEngine | None = None,
        base_url: str | None = None,
        max_results: int | None = None,
    ):
        """Initialize prospector.

        Args:
            http: Shared HTTP client (rotates User-Agents)
            guard: Breaker/retry wrapper
            google: Primary search engine
            bing: Fallback search engine
            base_url: LinkedIn root URL
            max_results: Search hits examined per tier
        """
        super().__init__(guard)
        self.http = http
        self.google = google or GoogleSearch(http)
        self.bing = bing or BingSearch(http)
        self.base_url = (base_url or settings.linkedin_base_url).rstrip("/")
        self.max_results = max_results or settings.linkedin_max_results
        self.email_extractor = EmailExtractor()
        self.phone_extractor = PhoneExtractor()

    async def _enrich(self, request: EnrichmentRequest) -> SourceResult:
        company_name = (request.business_name or "").strip() or clean_domain(request.website_url)
        if not company_name:
            return SourceResult.failed(self.source_name, "no company name to search for")

        (company, company_errors), (profiles, tier, tier_errors) = await asyncio.gather(
            self.lookup_company(company_name, request.business_type),
            self.find_decision_makers(company_name, request),
        )

        errors = tier_errors + company_errors
        owner = min(profiles, key=owner_rank) if profiles else None

        self.logger.debug("linkedin_tier_used", tier=tier, profiles=len(profiles))

        return SourceResult(
            source_name=self.source_name,
            profiles=tuple(profiles),
            owner_name_guess=owner.name if owner else None,
            owner_title_guess=owner.title if owner else None,
            company=company,
            confidence=confidence_score(profiles, company),
            degraded=bool(errors),
            errors=tuple(errors),
        )

    async def find_decision_makers(
        self, company_name: str, request: EnrichmentRequest
    ) -> tuple[list[Profile], str | None, list[str]]:
        """Try each tier until one yields decision makers.

        Returns:
            (profiles, tier name or None, per-tier errors)
        """
        tiers = [
            ("google", self._search_google),
            ("linkedin_direct", self._search_direct),
            ("bing", self._search_bing),
        ]
        errors: list[str] = []
        for tier_name, tier in tiers:
            try:
                profiles = await tier(company_name, request)
            except LeadSleuthError as e:
                errors.append(f"{tier_name}: {describe_error(e)}")
                self.logger.warning("linkedin_tier_failed", tier=tier_name, error=describe_error(e))
                continue
            if profiles:
                return profiles, tier_name, errors
        return [], None, errors

    async def _search_google(self, company_name: str, request: EnrichmentRequest) -> list[Profile]:
        query = self.people_query(company_name, request.location)
        hits = await self.call(
            "google_linkedin_people_search",
            self.google.search,
            query,
            self.max_results,
            dependency=SEARCH_ENGINE,
        )
        return await self._profiles_from_hits(hits, parse_search_result)

    async def _search_bing(self, company_name: str, request: EnrichmentRequest) -> list[Profile]:
        query = f'site:linkedin.com/in/ "{company_name}" (CEO OR President OR Owner) {request.business_type or ""}'.strip()
        hits = await self.call(
            "bing_linkedin_people_search",
            self.bing.search,
            query,
            self.max_results,
            dependency=SEARCH_ENGINE,
        )
        return await self._profiles_from_hits(hits, lambda hit: parse_bing_result(hit, company_name))

    async def _search_direct(self, company_name: str, request: EnrichmentRequest) -> list[Profile]:
        response = await self.call(
            "linkedin_direct_search",
            self.http.get,
            f"{self.base_url}/search/results/people/",
            {"keywords": company_name},
        )
        self._check_auth_wall(str(response.url), response.text)

        parser = HTMLParser(response.text)
        profiles = []
        for element in parser.css('[data-test-id*="people"], [data-test-id*="profile"]'):
            name_elem = element.css_first('[data-test-id*="name"], .name')
            title_elem = element.css_first('[data-test-id*="headline"], .headline')
            link = element.css_first('a[href*="/in/"]')
            if not (name_elem and title_elem and link):
                continue
            profile = Profile(
                name=clean_name(name_elem.text()),
                title=clean_title(title_elem.text()),
                company=company_name,
                profile_url=normalize_linkedin_url(link.attributes.get("href") or "", self.base_url),
            )
            if profile.is_complete and is_decision_maker(profile.title):
                profiles.append(profile)
        return _dedupe_profiles(profiles)

    async def _profiles_from_hits(self, hits: list[SearchHit], parse) -> list[Profile]:
        profiles = []
        for hit in hits[: self.max_results]:
            if "linkedin.com/in/" not in hit.url:
                continue
            profile = parse(hit)
            if profile is None or not profile.is_complete:
                profile = await self.fetch_public_profile(hit)
            if profile and profile.is_complete and is_decision_maker(profile.title):
                profiles.append(profile)
        return _dedupe_profiles(profiles)

    async def fetch_public_profile(self, hit: SearchHit) -> Profile | None:
        """Best-effort public profile fetch for hits that could not be parsed.

        Most profiles are behind the auth wall, so failure is expected and
        only logged.
        """
        url = normalize_linkedin_url(hit.url, self.base_url)
        try:
            response = await self.call("linkedin_profile_fetch", self.http.get, url)
            self._check_auth_wall(str(response.url), response.text)
        except LeadSleuthError as e:
            self.logger.debug("linkedin_profile_unavailable", url=url, error=describe_error(e))
            return None

        parser = HTMLParser(response.text)
        name_elem = parser.css_first('[data-test-id*="name"], .name, h1')
        title_elem = parser.css_first('[data-test-id*="headline"], .headline, .sub-nav')
        if not (name_elem and title_elem):
            return None
        title = clean_title(title_elem.text())
        at_match = re.search(r"\s+at\s+(.+)$", title, re.IGNORECASE)

        email, phone, website, methods = self._contact_info(response.text)
        return Profile(
            name=clean_name(name_elem.text()),
            title=title,
            company=at_match.group(1).strip() if at_match else UNKNOWN_COMPANY,
            profile_url=url,
            verified=True,
            email=email,
            phone=phone,
            website=website,
            contact_methods=tuple(methods),
        )

    def _contact_info(self, html: str) -> tuple[str | None, str | None, str | None, list[str]]:
        text = TextCleaner.clean_html(html)
        methods = []

        emails = self.email_extractor.extract_from_text(text)
        email = emails[0] if emails else None
        if email:
            methods.append("email")

        phones = self.phone_extractor.extract_and_normalize(text)
        phone = phones[0] if phones else None
        if phone:
            methods.append("phone")

        website = None
        for candidate in _WEBSITE_RE.findall(text):
            domain = urlparse(candidate).netloc.lower()
            if not any(domain == d or domain.endswith(f".{d}") for d in _SOCIAL_DOMAINS):
                website = candidate
                methods.append("website")
                break

        return email, phone, website, methods

    async def lookup_company(
        self, company_name: str, business_type: str | None = None
    ) -> tuple[CompanyInfo | None, list[str]]:
        """Find the company page through Google and read name/industry/size.

        Returns:
            (company or None, errors)
        """
        query = f'site:linkedin.com/company/ "{company_name}" {business_type or ""}'.strip()
        try:
            hits = await self.call(
                "google_linkedin_company_search",
                self.google.search,
                query,
                self.max_results,
                dependency=SEARCH_ENGINE,
            )
        except LeadSleuthError as e:
            return None, [f"company_lookup: {describe_error(e)}"]

        hit = next((h for h in hits if "linkedin.com/company/" in h.url), None)
        if hit is None:
            return None, []

        url = normalize_linkedin_url(hit.url, self.base_url)
        fallback = CompanyInfo(name=clean_title(hit.title) or company_name, url=url)
        try:
            response = await self.call("linkedin_company_page", self.http.get, url)
            self._check_auth_wall(str(response.url), response.text)
        except LeadSleuthError as e:
            # The search hit alone still identifies the company
            return fallback, [f"company_page: {describe_error(e)}"]

        parser = HTMLParser(response.text)
        name_elem = parser.css_first("h1")
        industry_elem = parser.css_first(".company-industries")
        size_elem = parser.css_first(".company-size")
        return (
            CompanyInfo(
                name=(name_elem.text().strip() if name_elem else "") or fallback.name,
                industry=(industry_elem.text().strip() if industry_elem else "") or None,
                size=(size_elem.text().strip() if size_elem else "") or None,
                url=url,
            ),
            [],
        )

    @staticmethod
    def people_query(company_name: str, location: str | None = None) -> str:
        return f'site:linkedin.com/in/ "{company_name}" {PEOPLE_ROLES} {location or ""}'.strip()

    def _check_auth_wall(self, final_url: str, html: str) -> None:
        if any(marker in final_url for marker in self.AUTH_WALL_MARKERS) or "authwall" in html[:5000].lower():
            raise BlockedError("LinkedIn auth wall", url=final_url)


def _dedupe_profiles(profiles: list[Profile]) -> list[Profile]:
    seen = set()
    unique = []
    for profile in profiles:
        key = normalize_profile_url(profile.profile_url)
        if key not in seen:
            seen.add(key)
            unique.append(profile)
    return unique
