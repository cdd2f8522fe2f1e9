"""Enrichment orchestration: fan out to sources, merge, batch."""

import asyncio
from typing import Iterable

from leadsleuth.core.http_client import HTTPClient
from leadsleuth.exceptions import LeadSleuthError, NoCandidatesError, describe_error
from leadsleuth.extractors.owner import OwnerExtractor, build_owner_extractor
from leadsleuth.logging_config import get_logger
from leadsleuth.models import EnrichmentRequest, EnrichmentResult, SourceResult
from leadsleuth.pipeline.merge import ResultMerger
from leadsleuth.resilience.batch import BatchErrorAggregator, BatchSummary
from leadsleuth.resilience.circuit_breaker import CircuitBreakerRegistry
from leadsleuth.resilience.guard import ResilienceGuard
from leadsleuth.resilience.retry import RetryExecutor
from leadsleuth.settings import Settings
from leadsleuth.settings import settings as default_settings
from leadsleuth.sources.base import BaseSourceAdapter
from leadsleuth.sources.email_discovery import EmailDiscoverer
from leadsleuth.sources.linkedin import LinkedInProspector
from leadsleuth.sources.search_engines import BingSearch, GoogleSearch
from leadsleuth.sources.website import WebsiteScraper
from leadsleuth.verification.cascade import EmailVerifier
from leadsleuth.verification.dns_mx import DnsPythonResolver, MXResolver, MXVerifier
from leadsleuth.verification.emaillistverify import EmailListVerifyVerifier
from leadsleuth.verification.hunter import HunterVerifier

logger = get_logger(__name__)

DEADLINE_EXCEEDED = "deadline exceeded"


class Aggregator:
    """Runs every source for a request and merges what comes back.

    Adapter failures never escape: they arrive as degraded source results.
    The only error ``enrich`` raises is ``InvalidRequestError``.
    """

    def __init__(
        self,
        adapters: list[BaseSourceAdapter],
        merger: ResultMerger | None = None,
        timeout: float | None = None,
        concurrency: int = 5,
        registry: CircuitBreakerRegistry | None = None,
        http: HTTPClient | None = None,
    ):
        """Initialize aggregator.

        Args:
            adapters: Source adapters, run concurrently per request
            merger: Result merger
            timeout: Default per-request deadline in seconds (None = no deadline)
            concurrency: Default number of requests in flight during a batch
            registry: Breaker registry shared by the adapters (for reporting)
            http: HTTP client owned by this aggregator, closed by ``close()``
        """
        self.adapters = list(adapters)
        self.merger = merger or ResultMerger()
        self.timeout = timeout
        self.concurrency = concurrency
        self.registry = registry
        self.http = http

    async def enrich(self, request: EnrichmentRequest, timeout: float | None = None) -> EnrichmentResult:
        """Enrich one business.

        Args:
            request: Enrichment request
            timeout: Deadline in seconds; unfinished sources are cancelled and
                reported as failed (defaults to the aggregator's timeout)

        Returns:
            Merged result

        Raises:
            InvalidRequestError: Neither business name nor website given
        """
        request.validate()
        timeout = self.timeout if timeout is None else timeout

        logger.info("enrichment_started", business=request.label, sources=len(self.adapters))
        source_results = await self._run_adapters(request, timeout)
        result = self.merger.merge(request, source_results)

        logger.info(
            "enrichment_completed",
            business=request.label,
            confidence=result.confidence,
            sources_used=list(result.sources_used),
            sources_failed=list(result.sources_failed),
        )
        return result

    async def _run_adapters(self, request: EnrichmentRequest, timeout: float | None) -> dict[str, SourceResult]:
        if not self.adapters:
            return {}

        tasks = {
            adapter.source_name: asyncio.create_task(adapter.enrich(request), name=f"enrich:{adapter.source_name}")
            for adapter in self.adapters
        }
        try:
            _, pending = await asyncio.wait(tasks.values(), timeout=timeout)
        finally:
            for task in tasks.values():
                if not task.done():
                    task.cancel()

        if pending:
            # Let cancelled adapters unwind before their breakers are read again
            await asyncio.gather(*pending, return_exceptions=True)

        results: dict[str, SourceResult] = {}
        for name, task in tasks.items():
            if task in pending or task.cancelled():
                logger.warning("source_deadline_exceeded", source=name, business=request.label, timeout=timeout)
                results[name] = SourceResult.failed(name, DEADLINE_EXCEEDED)
            elif task.exception() is not None:
                results[name] = SourceResult.failed(name, describe_error(task.exception()))
            else:
                results[name] = task.result()
        return results

    async def enrich_many(
        self,
        requests: Iterable[EnrichmentRequest],
        concurrency: int | None = None,
        hard_fail_threshold: float | None = None,
        timeout: float | None = None,
    ) -> BatchSummary:
        """Enrich a batch without letting one item abort the rest.

        An item fails when its request is invalid or when no source produced
        any candidate.

        Args:
            requests: Requests to enrich
            concurrency: Maximum requests in flight
            hard_fail_threshold: Minimum success rate (0-1); below it the
                batch raises instead of returning
            timeout: Per-request deadline in seconds

        Returns:
            Per-item breakdown, successful results in request order

        Raises:
            BatchFailedError: Success rate below ``hard_fail_threshold``
        """
        requests = list(requests)
        semaphore = asyncio.Semaphore(concurrency or self.concurrency)

        async def run_one(request: EnrichmentRequest) -> EnrichmentResult | LeadSleuthError:
            async with semaphore:
                try:
                    result = await self.enrich(request, timeout=timeout)
                except LeadSleuthError as e:
                    return e
            if not result.sources_used:
                errors = [e for r in result.source_results.values() for e in r.errors]
                return NoCandidatesError(
                    "no source produced candidates" + (f": {'; '.join(errors)}" if errors else ""),
                    result=result,
                )
            return result

        logger.info("batch_started", total=len(requests), concurrency=concurrency or self.concurrency)
        outcomes = await asyncio.gather(*(run_one(r) for r in requests))

        batch = BatchErrorAggregator()
        for request, outcome in zip(requests, outcomes):
            if isinstance(outcome, LeadSleuthError):
                batch.add_error(request.label, outcome)
            else:
                batch.add_success(request.label, outcome)

        logger.info(
            "batch_completed",
            total=len(requests),
            failed=len(outcomes) - sum(1 for o in outcomes if isinstance(o, EnrichmentResult)),
            success_rate=round(batch.success_rate, 3),
        )
        return batch.check_threshold(hard_fail_threshold)

    async def close(self) -> None:
        if self.http is not None:
            await self.http.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


def build_aggregator(
    settings: Settings | None = None,
    registry: CircuitBreakerRegistry | None = None,
    http: HTTPClient | None = None,
    executor: RetryExecutor | None = None,
    mx_resolver: MXResolver | None = None,
    owner_extractor: OwnerExtractor | None = None,
) -> Aggregator:
    """Wire the default website, email and LinkedIn sources.

    Args:
        settings: Configuration (module settings by default)
        registry: Breaker registry, shared process-wide
        http: HTTP client; one is created (and owned) when omitted
        executor: Retry executor (inject a no-sleep one in tests)
        mx_resolver: MX resolver (dnspython by default)
        owner_extractor: Owner strategy (picked from settings by default)

    Returns:
        Ready-to-use aggregator
    """
    settings = settings or default_settings
    registry = registry or CircuitBreakerRegistry()
    owned_http = http is None
    http = http or HTTPClient(
        timeout=settings.request_timeout_seconds,
        user_agents=settings.user_agents,
        request_delay_ms=settings.request_delay_ms,
    )
    guard = ResilienceGuard(registry, executor)

    owner_extractor = owner_extractor or build_owner_extractor(settings, http, guard)
    verifier = EmailVerifier(
        guard,
        providers=[
            HunterVerifier(settings.hunter_api_key, http, settings.hunter_base_url),
            EmailListVerifyVerifier(settings.emaillistverify_api_key, http, settings.emaillistverify_url),
        ],
        mx=MXVerifier(
            mx_resolver or DnsPythonResolver(settings.dns_timeout_seconds),
            cache_size=settings.mx_cache_size,
            cache_ttl=settings.mx_cache_ttl_seconds,
        ),
    )

    adapters: list[BaseSourceAdapter] = [
        WebsiteScraper(http, guard, owner_extractor=owner_extractor, pages=settings.website_pages),
        EmailDiscoverer(guard, verifier=verifier),
        LinkedInProspector(
            http,
            guard,
            google=GoogleSearch(http, settings.google_search_url),
            bing=BingSearch(http, settings.bing_search_url),
            base_url=settings.linkedin_base_url,
            max_results=settings.linkedin_max_results,
        ),
    ]

    return Aggregator(
        adapters,
        timeout=settings.enrichment_timeout_seconds,
        concurrency=settings.batch_concurrency,
        registry=registry,
        http=http if owned_http else None,
    )
