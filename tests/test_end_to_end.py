"""Full pipeline against an in-process fake web: website, search engine, LinkedIn."""

from unittest.mock import AsyncMock

import httpx
import pytest

from leadsleuth.models import EnrichmentRequest
from leadsleuth.pipeline.aggregator import build_aggregator
from leadsleuth.resilience.retry import RetryExecutor
from leadsleuth.settings import Settings

from conftest import FakeMXResolver, make_http

SITE = {
    "/": "<html><body><h1>Acme HVAC</h1><p>Heating and cooling in Austin. Call (512) 555-0142.</p></body></html>",
    "/contact": """
        <html><body>
        <a href="mailto:info@acme-hvac.com">info@acme-hvac.com</a>
        <a href="tel:+15125550142">(512) 555-0142</a>
        </body></html>
    """,
    "/about": "<html><body><p>Acme HVAC is owned and operated by John Smith.</p></body></html>",
}

PEOPLE_SERP = """
<div class="g"><a href="https://www.linkedin.com/in/johnsmith"><h3>John Smith - Owner - Acme HVAC | LinkedIn</h3></a>
<div class="VwiC3b">Owner at Acme HVAC. Austin, Texas.</div></div>
"""

COMPANY_SERP = """
<div class="g"><a href="https://www.linkedin.com/company/acme-hvac"><h3>Acme HVAC | LinkedIn</h3></a></div>
"""

COMPANY_PAGE = "<html><body><h1>Acme HVAC</h1><div class='company-industries'>Construction</div></body></html>"


def fake_web(request):
    host, path = request.url.host, request.url.path
    if host == "acme-hvac.com":
        if path == "/team":
            raise httpx.ReadTimeout("timed out", request=request)
        if path in SITE:
            return httpx.Response(200, html=SITE[path])
    elif host == "www.google.com":
        query = request.url.params.get("q", "")
        return httpx.Response(200, html=COMPANY_SERP if "linkedin.com/company/" in query else PEOPLE_SERP)
    elif host == "www.linkedin.com" and path == "/company/acme-hvac":
        return httpx.Response(200, html=COMPANY_PAGE)
    return httpx.Response(404)


def make_aggregator(http):
    settings = Settings(
        _env_file=None,
        owner_extraction="regex",
        openai_api_key=None,
        hunter_api_key=None,
        emaillistverify_api_key=None,
    )
    return build_aggregator(
        settings=settings,
        http=http,
        executor=RetryExecutor(sleep=AsyncMock()),
        mx_resolver=FakeMXResolver(default=["mail.acme-hvac.com"]),
    )


REQUEST = EnrichmentRequest("Acme HVAC", website_url="https://acme-hvac.com", location="Austin")


@pytest.mark.asyncio
async def test_enrich_acme_hvac():
    async with make_http(fake_web) as http:
        result = await make_aggregator(http).enrich(REQUEST)

    website = result.source_results["website"]
    assert website.degraded
    assert [e.split(":", 1)[0] for e in website.errors] == ["/team"]

    assert result.sources_used == ("website", "email", "linkedin")
    assert result.sources_failed == ()

    best = result.best_email
    assert best.address == "info@acme-hvac.com"
    assert best.verified
    assert best.pattern_confidence == 75
    assert [e.address for e in result.emails] == [
        "info@acme-hvac.com",
        "owner@acme-hvac.com",
        "contact@acme-hvac.com",
        "admin@acme-hvac.com",
    ]
    assert all(e.verification_method == "dns_mx_check" for e in result.emails)

    assert result.phones == ("(512) 555-0142",)
    assert (result.owner_name, result.owner_title) == ("John Smith", "Owner")
    assert [p.profile_url for p in result.profiles] == ["https://www.linkedin.com/in/johnsmith"]
    assert result.company.name == "Acme HVAC"
    assert result.company.industry == "Construction"

    # website 75, email 50, linkedin 55
    assert result.confidence == 61


@pytest.mark.asyncio
async def test_repeated_enrichment_is_stable():
    async with make_http(fake_web) as http:
        first = await make_aggregator(http).enrich(REQUEST)
        second = await make_aggregator(http).enrich(REQUEST)

    assert {e.address for e in first.emails} == {e.address for e in second.emails}
    assert set(first.phones) == set(second.phones)
    assert {p.profile_url for p in first.profiles} == {p.profile_url for p in second.profiles}
    assert first.confidence == second.confidence
