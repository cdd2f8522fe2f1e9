"""HTTP client with rate limiting and User-Agent rotation."""

import asyncio
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any
from urllib.parse import urlparse

import httpx

from leadsleuth.exceptions import (
    BlockedError,
    ConnectionResetFetchError,
    FetchError,
    FetchTimeoutError,
)
from leadsleuth.logging_config import get_logger
from leadsleuth.settings import settings

logger = get_logger(__name__)

# LinkedIn answers scrapers with a non-standard 999
BLOCKED_STATUS_CODES = frozenset({999})


class RateLimiter:
    """Rate limiter for HTTP requests."""

    def __init__(self, global_limit: int, per_domain_limit: int, delay_ms: int):
        self.global_semaphore = asyncio.Semaphore(global_limit)
        self.domain_semaphores: dict[str, asyncio.Semaphore] = defaultdict(
            lambda: asyncio.Semaphore(per_domain_limit)
        )
        self.last_request: dict[str, datetime] = {}
        self.delay = timedelta(milliseconds=delay_ms)

    async def acquire(self, domain: str) -> None:
        """Acquire rate limit for domain."""
        async with self.global_semaphore:
            async with self.domain_semaphores[domain]:
                # Enforce minimum delay between requests
                if domain in self.last_request:
                    elapsed = datetime.now() - self.last_request[domain]
                    if elapsed < self.delay:
                        wait_time = (self.delay - elapsed).total_seconds()
                        await asyncio.sleep(wait_time)

                self.last_request[domain] = datetime.now()


class HTTPClient:
    """Shared async HTTP client.

    Converts transport failures and error statuses into the ``FetchError``
    family so retry conditions and breakers can classify them.
    """

    DEFAULT_HEADERS = {
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "DNT": "1",
    }

    def __init__(
        self,
        timeout: float | None = None,
        user_agents: list[str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        request_delay_ms: int | None = None,
    ):
        """Initialize HTTP client.

        Args:
            timeout: Request timeout in seconds
            user_agents: User-Agent pool to rotate through
            transport: Optional httpx transport (``httpx.MockTransport`` in tests)
            request_delay_ms: Minimum delay between requests to one domain
        """
        self.user_agents = list(user_agents or settings.user_agents)
        self._user_agent_index = 0
        self.rate_limiter = RateLimiter(
            global_limit=settings.global_max_concurrent_requests,
            per_domain_limit=settings.per_domain_max_concurrent,
            delay_ms=settings.request_delay_ms if request_delay_ms is None else request_delay_ms,
        )
        self.client = httpx.AsyncClient(
            timeout=timeout or settings.request_timeout_seconds,
            follow_redirects=True,
            transport=transport,
        )

    def next_user_agent(self) -> str:
        """Get next user agent in rotation."""
        ua = self.user_agents[self._user_agent_index]
        self._user_agent_index = (self._user_agent_index + 1) % len(self.user_agents)
        return ua

    async def close(self) -> None:
        """Close HTTP client."""
        await self.client.aclose()

    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """GET request with rate limiting.

        Raises:
            FetchError: On transport failure or a 4xx/5xx status
        """
        return await self._request("GET", url, params=params, headers=headers)

    async def post_json(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """POST a JSON body with rate limiting."""
        return await self._request("POST", url, json=payload, headers=headers)

    async def _request(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        domain = urlparse(url).netloc
        await self.rate_limiter.acquire(domain)

        merged_headers = {**self.DEFAULT_HEADERS, "User-Agent": self.next_user_agent()}
        if headers:
            merged_headers.update(headers)

        logger.debug("http_request", method=method, url=url, domain=domain)
        try:
            response = await self.client.request(method, url, headers=merged_headers, **kwargs)
        except httpx.TimeoutException as e:
            raise FetchTimeoutError(f"timeout fetching {url}", url=url) from e
        except (httpx.ConnectError, httpx.ReadError, httpx.RemoteProtocolError) as e:
            raise ConnectionResetFetchError(f"connection reset fetching {url}: {e}", url=url) from e
        except httpx.HTTPError as e:
            raise FetchError(f"request failed for {url}: {e}", url=url) from e

        self._raise_for_status(response, url)
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response, url: str) -> None:
        status = response.status_code
        if status in BLOCKED_STATUS_CODES:
            raise BlockedError(f"blocked by {urlparse(url).netloc} (HTTP {status})", status_code=status, url=url)
        if status == 429:
            raise FetchError(f"HTTP 429 rate limit exceeded for {url}", status_code=status, url=url)
        if status >= 400:
            raise FetchError(f"HTTP {status} for {url}", status_code=status, url=url)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
