"""Shared fixtures: no-sleep retries, fresh breakers, fake network and DNS."""

from unittest.mock import AsyncMock

import httpx
import pytest

from leadsleuth.core.http_client import HTTPClient
from leadsleuth.resilience.circuit_breaker import CircuitBreakerRegistry
from leadsleuth.resilience.guard import ResilienceGuard
from leadsleuth.resilience.retry import RetryExecutor


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeMXResolver:
    """MX resolver answering from a dict; raises when the value is an exception."""

    def __init__(self, records: dict | None = None, default: list[str] | None = None):
        self.records = records or {}
        self.default = default if default is not None else []
        self.calls: list[str] = []

    async def resolve_mx(self, domain: str) -> list[str]:
        self.calls.append(domain)
        answer = self.records.get(domain, self.default)
        if isinstance(answer, Exception):
            raise answer
        return list(answer)


def make_http(handler) -> HTTPClient:
    """HTTP client backed by an in-process handler, no per-domain delay."""
    return HTTPClient(timeout=5.0, transport=httpx.MockTransport(handler), request_delay_ms=0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.fixture
def executor(sleep):
    return RetryExecutor(sleep=sleep)


@pytest.fixture
def registry(clock):
    return CircuitBreakerRegistry(clock=clock)


@pytest.fixture
def guard(registry, executor):
    return ResilienceGuard(registry, executor)
