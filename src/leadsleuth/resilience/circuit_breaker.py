"""Circuit breaker pattern implementation for graceful degradation."""

import time
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from typing import Any, Awaitable, Callable, TypeVar

from leadsleuth.exceptions import CircuitOpenError
from leadsleuth.logging_config import get_logger
from leadsleuth.resilience.retry import status_code_of

T = TypeVar("T")


class CircuitState(Enum):
    """Circuit breaker states"""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, blocking requests
    HALF_OPEN = "half_open"  # One probe allowed through


@dataclass(frozen=True)
class CircuitBreakerConfig:
    """Circuit breaker configuration"""

    failure_threshold: int = 5  # Failures before opening
    recovery_timeout: float = 60.0  # Seconds before probing recovery
    # Errors with these statuses prove the dependency answered; not failures
    ignored_status_codes: frozenset[int] = field(default_factory=frozenset)


@dataclass(frozen=True)
class CircuitBreakerState:
    """Point-in-time view of one breaker."""

    name: str
    state: CircuitState
    failure_count: int
    last_failure_time: float
    failure_threshold: int
    recovery_timeout: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "last_failure_time": self.last_failure_time,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout": self.recovery_timeout,
        }


class CircuitBreaker:
    """Circuit breaker for one external dependency.

    ``execute`` is the only way state changes. The lock covers state checks
    and transitions only; it is never held while the wrapped call runs.
    """

    def __init__(
        self,
        name: str,
        config: CircuitBreakerConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self.logger = get_logger(f"circuit_breaker.{name}")
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time = 0.0
        self._probe_in_flight = False
        self._lock = Lock()

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    @property
    def failure_count(self) -> int:
        with self._lock:
            return self._failure_count

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` unless the circuit is open.

        Raises:
            CircuitOpenError: Circuit is open, or a half-open probe is in flight
        """
        is_probe = self._before_call()
        try:
            result = await operation()
        except BaseException as e:
            if isinstance(e, Exception) and status_code_of(e) in self.config.ignored_status_codes:
                self._on_success(is_probe)
            elif isinstance(e, Exception):
                self._on_failure(is_probe, e)
            else:
                # Cancelled: the probe told us nothing
                self._release_probe(is_probe)
            raise
        self._on_success(is_probe)
        return result

    def _before_call(self) -> bool:
        with self._lock:
            if self._state == CircuitState.CLOSED:
                return False

            now = self._clock()
            if self._state == CircuitState.OPEN:
                elapsed = now - self._last_failure_time
                if elapsed < self.config.recovery_timeout:
                    raise CircuitOpenError(self.name, self.config.recovery_timeout - elapsed)
                self._state = CircuitState.HALF_OPEN
                self.logger.info("circuit_half_open", breaker=self.name)

            # HALF_OPEN: exactly one probe at a time
            if self._probe_in_flight:
                raise CircuitOpenError(self.name, 0.0)
            self._probe_in_flight = True
            return True

    def _on_success(self, is_probe: bool) -> None:
        with self._lock:
            if is_probe:
                self._probe_in_flight = False
                self._state = CircuitState.CLOSED
                self.logger.info("circuit_closed", breaker=self.name)
            self._failure_count = 0

    def _on_failure(self, is_probe: bool, error: Exception) -> None:
        with self._lock:
            now = self._clock()
            if is_probe:
                self._probe_in_flight = False
                self._state = CircuitState.OPEN
                self._last_failure_time = now
                self.logger.warning("circuit_reopened", breaker=self.name, error=str(error))
                return

            if self._state != CircuitState.CLOSED:
                # Opened by another caller while this call was in flight
                return

            self._failure_count += 1
            self._last_failure_time = now
            if self._failure_count >= self.config.failure_threshold:
                self._state = CircuitState.OPEN
                self.logger.warning(
                    "circuit_opened",
                    breaker=self.name,
                    failures=self._failure_count,
                    threshold=self.config.failure_threshold,
                    error=str(error),
                )

    def _release_probe(self, is_probe: bool) -> None:
        if not is_probe:
            return
        with self._lock:
            self._probe_in_flight = False

    def snapshot(self) -> CircuitBreakerState:
        with self._lock:
            return CircuitBreakerState(
                name=self.name,
                state=self._state,
                failure_count=self._failure_count,
                last_failure_time=self._last_failure_time,
                failure_threshold=self.config.failure_threshold,
                recovery_timeout=self.config.recovery_timeout,
            )

    def reset(self) -> None:
        """Reset circuit breaker to closed state"""
        with self._lock:
            self.logger.info("circuit_reset", breaker=self.name)
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._last_failure_time = 0.0
            self._probe_in_flight = False


# Dependency names shared by adapters and the registry
GOOGLE_PLACES = "google_places"
OPENAI = "openai"
EMAIL_VERIFICATION = "email_verification"
WEBSITE_SCRAPING = "website_scraping"
LINKEDIN = "linkedin"
SEARCH_ENGINE = "search_engine"

DEFAULT_BREAKER_CONFIGS: dict[str, CircuitBreakerConfig] = {
    GOOGLE_PLACES: CircuitBreakerConfig(failure_threshold=3, recovery_timeout=300),
    OPENAI: CircuitBreakerConfig(failure_threshold=5, recovery_timeout=180),
    EMAIL_VERIFICATION: CircuitBreakerConfig(failure_threshold=10, recovery_timeout=600),
    # Individual site failures are common and cheap to retry later
    WEBSITE_SCRAPING: CircuitBreakerConfig(
        failure_threshold=8,
        recovery_timeout=120,
        ignored_status_codes=frozenset({404, 410}),
    ),
    # Anti-bot blocking is aggressive
    LINKEDIN: CircuitBreakerConfig(failure_threshold=2, recovery_timeout=1800),
    SEARCH_ENGINE: CircuitBreakerConfig(failure_threshold=5, recovery_timeout=300),
}


class CircuitBreakerRegistry:
    """Process-wide set of breakers, one per dependency name.

    Built once at startup and passed to each adapter.
    """

    def __init__(
        self,
        configs: dict[str, CircuitBreakerConfig] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._configs = dict(DEFAULT_BREAKER_CONFIGS if configs is None else configs)
        self._clock = clock
        self._breakers: dict[str, CircuitBreaker] = {}
        self._lock = Lock()
        for name in self._configs:
            self.get(name)

    def get(self, name: str) -> CircuitBreaker:
        with self._lock:
            breaker = self._breakers.get(name)
            if breaker is None:
                breaker = CircuitBreaker(name, self._configs.get(name), clock=self._clock)
                self._breakers[name] = breaker
            return breaker

    def __getitem__(self, name: str) -> CircuitBreaker:
        return self.get(name)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._breakers)

    def snapshot(self) -> dict[str, CircuitBreakerState]:
        return {name: self.get(name).snapshot() for name in self.names()}

    def reset_all(self) -> None:
        for name in self.names():
            self.get(name).reset()
