from unittest.mock import AsyncMock

import httpx
import pytest

from leadsleuth.extractors.owner import OwnerExtractor
from leadsleuth.models import EnrichmentRequest, OwnerGuess
from leadsleuth.resilience.circuit_breaker import (
    WEBSITE_SCRAPING,
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
)
from leadsleuth.resilience.guard import ResilienceGuard
from leadsleuth.sources.website import WebsiteScraper

from conftest import make_http

PAGES = {
    "/": """
        <html><body>
        <header><nav>Home | About Us | Contact</nav></header>
        <h1>Acme HVAC</h1><p>Heating and cooling in Austin. Call (512) 555-0142.</p>
        <footer>
          <a href="https://www.facebook.com/AcmeHVAC">Facebook</a>
          <a href="https://www.linkedin.com/company/acme-hvac">LinkedIn</a>
        </footer>
        </body></html>
    """,
    "/contact": """
        <html><body>
        <a href="mailto:info@acme-hvac.com">info@acme-hvac.com</a>
        <a href="tel:+15125550142">(512) 555-0142</a>
        <script>var tracker = "noreply@wixpress.com";</script>
        </body></html>
    """,
    "/about": "<html><body><p>Acme HVAC is owned and operated by John Smith.</p></body></html>",
    "/team": "<html><body><p>Meet the crew.</p></body></html>",
}


def site(overrides=None):
    overrides = overrides or {}
    requested = []

    def handler(request):
        path = request.url.path
        requested.append(path)
        if path in overrides:
            return overrides[path](request)
        if path in PAGES:
            return httpx.Response(200, html=PAGES[path])
        return httpx.Response(404)

    return handler, requested


def timeout(request):
    raise httpx.ReadTimeout("timed out", request=request)


REQUEST = EnrichmentRequest("Acme HVAC", website_url="acme-hvac.com")


@pytest.mark.asyncio
async def test_all_pages_scraped(guard):
    handler, requested = site()
    async with make_http(handler) as http:
        result = await WebsiteScraper(http, guard).enrich(REQUEST)

    assert sorted(requested) == ["/", "/about", "/contact", "/team"]
    assert [e.address for e in result.emails] == ["info@acme-hvac.com"]
    email = result.emails[0]
    assert (email.pattern_confidence, email.verification_method, email.verified) == (75, "website_scrape", False)
    assert result.phones == ("(512) 555-0142",)
    assert result.social_urls == (
        "https://www.linkedin.com/company/acme-hvac",
        "https://www.facebook.com/AcmeHVAC",
    )
    assert (result.owner_name_guess, result.owner_title_guess) == ("John Smith", "Owner")
    assert result.confidence == 100
    assert not result.degraded
    assert result.errors == ()


@pytest.mark.asyncio
async def test_failed_pages_degrade_result(guard, sleep):
    handler, requested = site({"/": timeout, "/team": lambda request: httpx.Response(404)})
    async with make_http(handler) as http:
        result = await WebsiteScraper(http, guard).enrich(REQUEST)

    assert result.degraded
    assert len(result.errors) == 2
    assert any(e.startswith("/: ") for e in result.errors)
    assert any(e.startswith("/team: ") and "404" in e for e in result.errors)
    # Timeouts are retried, 404s are not
    assert requested.count("/") == 3
    assert requested.count("/team") == 1
    assert result.emails and result.phones
    assert result.owner_name_guess == "John Smith"
    # email + phone + owner + title, minus two failed pages
    assert result.confidence == 30 + 25 + 25 + 5 - 20


@pytest.mark.asyncio
async def test_missing_website_fails_source(guard):
    async with make_http(lambda request: httpx.Response(200)) as http:
        result = await WebsiteScraper(http, guard).enrich(EnrichmentRequest("Acme HVAC"))

    assert result.degraded
    assert result.errors == ("no usable website URL",)
    assert not result.has_candidates


@pytest.mark.asyncio
async def test_every_page_failing_yields_empty_result(guard):
    async with make_http(lambda request: httpx.Response(503)) as http:
        result = await WebsiteScraper(http, guard).enrich(REQUEST)

    assert not result.has_candidates
    assert result.confidence == 0
    assert len(result.errors) == 4


@pytest.mark.asyncio
async def test_open_breaker_short_circuits_fetches(executor):
    registry = CircuitBreakerRegistry(configs={WEBSITE_SCRAPING: CircuitBreakerConfig(failure_threshold=1)})
    with pytest.raises(RuntimeError):
        await registry[WEBSITE_SCRAPING].execute(AsyncMock(side_effect=RuntimeError("down")))

    handler, requested = site()
    async with make_http(handler) as http:
        result = await WebsiteScraper(http, ResilienceGuard(registry, executor)).enrich(REQUEST)

    assert requested == []
    assert len(result.errors) == 4
    assert all("circuit open" in e for e in result.errors)


@pytest.mark.asyncio
async def test_owner_text_passed_to_strategy_about_first(guard):
    class RecordingExtractor(OwnerExtractor):
        method = "ai"

        def __init__(self):
            self.texts = []

        async def extract(self, text):
            self.texts.append(text)
            return OwnerGuess(name="Jane Roe", title="CEO", method=self.method)

    extractor = RecordingExtractor()
    handler, _ = site()
    async with make_http(handler) as http:
        result = await WebsiteScraper(http, guard, owner_extractor=extractor).enrich(REQUEST)

    assert result.owner_name_guess == "Jane Roe"
    assert len(extractor.texts) == 1
    assert extractor.texts[0].startswith("Acme HVAC is owned and operated by John Smith.")
    # Layout blocks are not part of the owner text
    assert "About Us" not in extractor.texts[0]


def test_confidence_rules():
    owner = OwnerGuess(name="John Smith", title="Owner")
    assert WebsiteScraper.calculate_confidence(True, True, owner, True, True, 0) == 100
    assert WebsiteScraper.calculate_confidence(True, False, OwnerGuess(), False, False, 0) == 30
    assert WebsiteScraper.calculate_confidence(False, False, OwnerGuess(), False, False, 3) == 0
