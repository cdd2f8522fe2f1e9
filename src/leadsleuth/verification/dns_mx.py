"""DNS MX record verification (always available, no API key)."""

import asyncio
import time
from collections import OrderedDict
from typing import Callable, Protocol

import dns.asyncresolver
import dns.exception
import dns.resolver

from leadsleuth.exceptions import ProviderError
from leadsleuth.logging_config import get_logger
from leadsleuth.settings import settings
from leadsleuth.verification.base import VerificationOutcome

logger = get_logger(__name__)


class MXResolver(Protocol):
    """Looks up mail exchangers for a domain."""

    async def resolve_mx(self, domain: str) -> list[str]:
        """Return MX hostnames ordered by preference ([] when none exist)."""
        ...


class DnsPythonResolver:
    """MX lookups through dnspython's async resolver."""

    def __init__(self, timeout: float | None = None):
        self.timeout = settings.dns_timeout_seconds if timeout is None else timeout
        self._resolver: dns.asyncresolver.Resolver | None = None

    async def resolve_mx(self, domain: str) -> list[str]:
        """Get MX records for domain.

        Args:
            domain: Domain name

        Returns:
            List of MX record hostnames, lowest preference first

        Raises:
            ProviderError: Lookup could not complete (timeout, no nameservers)
        """
        try:
            # Reads resolv.conf, so built on first use
            if self._resolver is None:
                self._resolver = dns.asyncresolver.Resolver()
            answers = await self._resolver.resolve(domain, "MX", lifetime=self.timeout)
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
            return []
        except dns.exception.Timeout as e:
            raise ProviderError(f"DNS lookup timed out for {domain}", error_code="timeout") from e
        except dns.resolver.NoNameservers as e:
            raise ProviderError(f"no nameservers answered for {domain}", error_code="no_nameservers") from e
        except dns.exception.DNSException as e:
            raise ProviderError(f"DNS lookup failed for {domain}: {e}", error_code="dns_error") from e

        records = sorted(
            [(r.preference, str(r.exchange).rstrip(".")) for r in answers],
            key=lambda x: x[0],
        )
        return [host for _, host in records]


class MXVerifier:
    """Valid iff the address's domain has at least one MX record.

    Answers are cached per domain in a bounded LRU with a TTL. Concurrent
    checks for the same domain share one lookup, which is forgotten once it
    finishes. Failed lookups are not cached.
    """

    name = "dns_mx"
    method = "dns_mx_check"

    def __init__(
        self,
        resolver: MXResolver | None = None,
        cache_size: int | None = None,
        cache_ttl: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize MX verifier.

        Args:
            resolver: MX resolver (dnspython by default)
            cache_size: Maximum domains kept in the cache
            cache_ttl: Seconds a cached answer stays valid
            clock: Monotonic clock
        """
        self.resolver = resolver or DnsPythonResolver()
        self.cache_size = settings.mx_cache_size if cache_size is None else cache_size
        self.cache_ttl = settings.mx_cache_ttl_seconds if cache_ttl is None else cache_ttl
        self._clock = clock
        # domain -> (stored at, records), least recently used first
        self._mx_cache: OrderedDict[str, tuple[float, list[str]]] = OrderedDict()
        self._inflight: dict[str, asyncio.Task[list[str]]] = {}

    async def lookup(self, domain: str) -> list[str]:
        domain = domain.lower()
        cached = self._cache_get(domain)
        if cached is not None:
            return cached

        task = self._inflight.get(domain)
        if task is None:
            task = asyncio.ensure_future(self._resolve(domain))
            task.add_done_callback(_consume_exception)
            self._inflight[domain] = task
        # A cancelled caller must not cancel the lookup other callers share
        return await asyncio.shield(task)

    async def _resolve(self, domain: str) -> list[str]:
        try:
            mx_records = await self.resolver.resolve_mx(domain)
        finally:
            self._inflight.pop(domain, None)
        self._cache_put(domain, mx_records)
        logger.debug("mx_lookup", domain=domain, records=len(mx_records))
        return mx_records

    def _cache_get(self, domain: str) -> list[str] | None:
        entry = self._mx_cache.get(domain)
        if entry is None:
            return None
        stored_at, records = entry
        if self._clock() - stored_at >= self.cache_ttl:
            del self._mx_cache[domain]
            return None
        self._mx_cache.move_to_end(domain)
        return records

    def _cache_put(self, domain: str, records: list[str]) -> None:
        if self.cache_size <= 0:
            return
        self._mx_cache[domain] = (self._clock(), records)
        self._mx_cache.move_to_end(domain)
        while len(self._mx_cache) > self.cache_size:
            self._mx_cache.popitem(last=False)

    async def verify(self, email: str) -> VerificationOutcome:
        """Check the address's domain for MX records.

        Raises:
            ProviderError: DNS lookup failed
        """
        domain = email.rsplit("@", 1)[-1]
        mx_records = await self.lookup(domain)
        if not mx_records:
            return VerificationOutcome(
                is_valid=False,
                method=self.method,
                details="No MX records found",
            )
        return VerificationOutcome(
            is_valid=True,
            method=self.method,
            details=f"MX records: {len(mx_records)}",
        )


def _consume_exception(task: asyncio.Task) -> None:
    # Every waiter may have been cancelled; mark the error as retrieved
    if not task.cancelled():
        task.exception()
