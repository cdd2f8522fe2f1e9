import pytest

from leadsleuth.exceptions import ProviderError
from leadsleuth.models import EnrichmentRequest
from leadsleuth.sources.email_discovery import EmailDiscoverer, EmailPatternGenerator
from leadsleuth.verification.cascade import EmailVerifier
from leadsleuth.verification.dns_mx import MXVerifier

from conftest import FakeMXResolver


class TestEmailPatternGenerator:
    def setup_method(self):
        self.generator = EmailPatternGenerator()

    def test_personal_patterns_ranked_first(self):
        candidates = self.generator.generate("John Smith", "acme.com")
        assert [(c.address, c.pattern_confidence) for c in candidates] == [
            ("john.smith@acme.com", 90),
            ("johnsmith@acme.com", 80),
            ("john@acme.com", 70),
            ("jsmith@acme.com", 60),
            ("johns@acme.com", 55),
            ("owner@acme.com", 50),
            ("info@acme.com", 40),
            ("contact@acme.com", 35),
            ("admin@acme.com", 30),
        ]
        assert all(not c.verified and not c.is_checked for c in candidates)

    @pytest.mark.parametrize("owner", [None, "", "Cher"])
    def test_generic_patterns_without_full_name(self, owner):
        candidates = self.generator.generate(owner, "acme.com")
        assert [c.address for c in candidates] == [
            "owner@acme.com",
            "info@acme.com",
            "contact@acme.com",
            "admin@acme.com",
        ]

    def test_no_domain_no_candidates(self):
        assert self.generator.generate("John Smith", "") == []

    def test_name_punctuation_stripped(self):
        assert self.generator.parse_owner_name("Mary-Jane O'Neil") == ("maryjane", "oneil")
        assert self.generator.parse_owner_name("Dr. John Q. Smith") == ("dr", "smith")

    def test_duplicate_addresses_keep_highest_confidence(self):
        candidates = self.generator.generate("Owner Smith", "acme.com")
        owner = [c for c in candidates if c.address == "owner@acme.com"]
        assert len(owner) == 1
        assert owner[0].pattern_confidence == 70
        assert owner[0].pattern_used == "firstname@domain"


def make_discoverer(guard, resolver):
    return EmailDiscoverer(guard, verifier=EmailVerifier(guard, mx=MXVerifier(resolver)))


@pytest.mark.asyncio
async def test_verified_candidates_ranked_and_scored(guard):
    resolver = FakeMXResolver(default=["mx1.acme-hvac.com"])
    discoverer = make_discoverer(guard, resolver)
    request = EnrichmentRequest("Acme HVAC", website_url="https://www.acme-hvac.com/", owner_name_hint="John Smith")

    result = await discoverer.enrich(request)

    assert result.source_name == "email"
    assert len(result.emails) == 9
    assert all(c.verified and c.verification_method == "dns_mx_check" for c in result.emails)
    assert result.emails[0].address == "john.smith@acme-hvac.com"
    assert result.confidence == 90
    assert result.owner_name_guess == "John Smith"
    assert not result.degraded
    assert resolver.calls == ["acme-hvac.com"]


@pytest.mark.asyncio
async def test_no_mx_records_leaves_candidates_unverified(guard):
    discoverer = make_discoverer(guard, FakeMXResolver(default=[]))
    request = EnrichmentRequest("Acme HVAC", website_url="acme-hvac.com", owner_name_hint="John Smith")

    result = await discoverer.enrich(request)

    assert not any(c.verified for c in result.emails)
    assert {c.details for c in result.emails} == {"No MX records found"}
    assert result.confidence == 90 // 4
    assert not result.degraded


@pytest.mark.asyncio
async def test_mx_failure_degrades_source(guard):
    error = ProviderError("no nameservers answered for acme-hvac.com", error_code="no_nameservers")
    discoverer = make_discoverer(guard, FakeMXResolver(default=error))
    request = EnrichmentRequest("Acme HVAC", website_url="acme-hvac.com")

    result = await discoverer.enrich(request)

    assert result.degraded
    assert len(result.errors) == 4
    assert all("MX check failed" in e for e in result.errors)
    assert all(c.verification_method == "unverified" and not c.verified for c in result.emails)
    assert result.confidence == 50 // 4


@pytest.mark.asyncio
async def test_domain_guessed_from_business_name(guard):
    resolver = FakeMXResolver(default=["mx.acmehvac.com"])
    discoverer = make_discoverer(guard, resolver)

    result = await discoverer.enrich(EnrichmentRequest("Acme HVAC, LLC"))

    assert result.emails[0].address.endswith("@acmehvac.com")
    assert resolver.calls == ["acmehvac.com"]
