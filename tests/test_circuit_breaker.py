import asyncio
from unittest.mock import AsyncMock

import pytest

from leadsleuth.exceptions import CircuitOpenError, FetchError, FetchTimeoutError, RetryError
from leadsleuth.resilience.circuit_breaker import (
    DEFAULT_BREAKER_CONFIGS,
    LINKEDIN,
    WEBSITE_SCRAPING,
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
)
from leadsleuth.resilience.retry import WEBSITE_FETCH


def make_breaker(clock, threshold=3, recovery=60.0, ignored=frozenset()):
    config = CircuitBreakerConfig(
        failure_threshold=threshold,
        recovery_timeout=recovery,
        ignored_status_codes=frozenset(ignored),
    )
    return CircuitBreaker("test", config, clock=clock)


async def fail():
    raise FetchError("HTTP 503", status_code=503)


async def succeed():
    return "ok"


async def trip(breaker, times):
    for _ in range(times):
        with pytest.raises(FetchError):
            await breaker.execute(fail)


@pytest.mark.asyncio
async def test_opens_after_threshold(clock):
    breaker = make_breaker(clock, threshold=3)
    await trip(breaker, 2)
    assert breaker.state == CircuitState.CLOSED
    assert breaker.failure_count == 2

    await trip(breaker, 1)
    assert breaker.state == CircuitState.OPEN
    assert breaker.snapshot().last_failure_time == clock.now


@pytest.mark.asyncio
async def test_open_circuit_fails_fast_without_calling(clock):
    breaker = make_breaker(clock, threshold=1)
    await trip(breaker, 1)

    operation = AsyncMock(return_value="ok")
    with pytest.raises(CircuitOpenError) as exc_info:
        await breaker.execute(operation)

    operation.assert_not_awaited()
    assert exc_info.value.name == "test"
    assert "circuit open" in str(exc_info.value)


@pytest.mark.asyncio
async def test_success_resets_failure_count(clock):
    breaker = make_breaker(clock, threshold=3)
    await trip(breaker, 2)
    assert await breaker.execute(succeed) == "ok"
    assert breaker.failure_count == 0


@pytest.mark.asyncio
async def test_half_open_probe_success_closes(clock):
    breaker = make_breaker(clock, threshold=1, recovery=60.0)
    await trip(breaker, 1)

    clock.advance(59)
    with pytest.raises(CircuitOpenError):
        await breaker.execute(succeed)

    clock.advance(1)
    assert await breaker.execute(succeed) == "ok"
    assert breaker.state == CircuitState.CLOSED
    assert breaker.failure_count == 0


@pytest.mark.asyncio
async def test_half_open_probe_failure_reopens(clock):
    breaker = make_breaker(clock, threshold=1, recovery=60.0)
    await trip(breaker, 1)

    clock.advance(61)
    await trip(breaker, 1)
    assert breaker.state == CircuitState.OPEN
    assert breaker.snapshot().last_failure_time == clock.now

    # Recovery window restarts from the failed probe
    clock.advance(30)
    with pytest.raises(CircuitOpenError):
        await breaker.execute(succeed)


@pytest.mark.asyncio
async def test_half_open_allows_single_probe(clock):
    breaker = make_breaker(clock, threshold=1, recovery=10.0)
    await trip(breaker, 1)
    clock.advance(10)

    release = asyncio.Event()

    async def slow_probe():
        await release.wait()
        return "probe"

    probe = asyncio.create_task(breaker.execute(slow_probe))
    await asyncio.sleep(0)
    assert breaker.state == CircuitState.HALF_OPEN

    second = AsyncMock(return_value="second")
    with pytest.raises(CircuitOpenError):
        await breaker.execute(second)
    second.assert_not_awaited()

    release.set()
    assert await probe == "probe"
    assert breaker.state == CircuitState.CLOSED


@pytest.mark.asyncio
async def test_cancelled_probe_releases_slot(clock):
    breaker = make_breaker(clock, threshold=1, recovery=10.0)
    await trip(breaker, 1)
    clock.advance(10)

    probe = asyncio.create_task(breaker.execute(lambda: asyncio.sleep(10)))
    await asyncio.sleep(0)
    probe.cancel()
    with pytest.raises(asyncio.CancelledError):
        await probe

    assert await breaker.execute(succeed) == "ok"
    assert breaker.state == CircuitState.CLOSED


@pytest.mark.asyncio
async def test_ignored_statuses_do_not_count(clock):
    breaker = make_breaker(clock, threshold=1, ignored={404})

    async def not_found():
        raise RetryError("gone", attempts=1, last_error=FetchError("HTTP 404", status_code=404))

    with pytest.raises(RetryError):
        await breaker.execute(not_found)
    assert breaker.state == CircuitState.CLOSED
    assert breaker.failure_count == 0


@pytest.mark.asyncio
async def test_concurrent_failures_open_exactly_once(clock):
    breaker = make_breaker(clock, threshold=5)
    operation = AsyncMock(side_effect=FetchError("HTTP 503", status_code=503))

    outcomes = await asyncio.gather(*(breaker.execute(operation) for _ in range(20)), return_exceptions=True)

    assert breaker.state == CircuitState.OPEN
    assert operation.await_count == 5
    assert sum(isinstance(o, CircuitOpenError) for o in outcomes) == 15


def test_default_configs():
    assert DEFAULT_BREAKER_CONFIGS[LINKEDIN].failure_threshold == 2
    assert DEFAULT_BREAKER_CONFIGS[LINKEDIN].recovery_timeout == 1800
    assert DEFAULT_BREAKER_CONFIGS[WEBSITE_SCRAPING].failure_threshold == 8
    assert DEFAULT_BREAKER_CONFIGS[WEBSITE_SCRAPING].recovery_timeout == 120


def test_registry_returns_shared_instances(registry):
    assert registry.get(LINKEDIN) is registry[LINKEDIN]
    assert set(DEFAULT_BREAKER_CONFIGS) <= set(registry.names())

    custom = registry.get("custom_dependency")
    assert custom.config == CircuitBreakerConfig()
    assert registry.snapshot()["custom_dependency"].state == CircuitState.CLOSED


@pytest.mark.asyncio
async def test_registry_reset_all(registry):
    breaker = registry.get(LINKEDIN)
    await trip(breaker, 2)
    assert breaker.state == CircuitState.OPEN

    registry.reset_all()
    assert breaker.state == CircuitState.CLOSED
    assert breaker.failure_count == 0


@pytest.mark.asyncio
async def test_guard_counts_exhausted_retries_as_one_failure(guard, registry):
    operation = AsyncMock(side_effect=FetchTimeoutError("timeout"))

    with pytest.raises(RetryError):
        await guard.call(LINKEDIN, WEBSITE_FETCH, "probe", operation)
    assert operation.await_count == 3
    assert registry[LINKEDIN].failure_count == 1

    with pytest.raises(RetryError):
        await guard.call(LINKEDIN, WEBSITE_FETCH, "probe", operation)
    assert registry[LINKEDIN].state == CircuitState.OPEN

    with pytest.raises(CircuitOpenError):
        await guard.call(LINKEDIN, WEBSITE_FETCH, "probe", operation)
    assert operation.await_count == 6
