"""Resilience primitives: backoff, retry, circuit breakers, batch error tracking."""

from leadsleuth.resilience.backoff import BackoffPolicy, backoff_delay
from leadsleuth.resilience.batch import BatchErrorAggregator, BatchSummary
from leadsleuth.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
    CircuitState,
)
from leadsleuth.resilience.guard import ResilienceGuard
from leadsleuth.resilience.retry import (
    API_CALL,
    DATABASE_OP,
    EMAIL_VERIFICATION,
    LINKEDIN_SEARCH,
    WEBSITE_FETCH,
    IdempotentCall,
    RetryExecutor,
    RetryPolicy,
    default_retry_condition,
    idempotent,
    with_retry,
)

__all__ = [
    "API_CALL",
    "DATABASE_OP",
    "EMAIL_VERIFICATION",
    "LINKEDIN_SEARCH",
    "WEBSITE_FETCH",
    "BackoffPolicy",
    "BatchErrorAggregator",
    "BatchSummary",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerRegistry",
    "CircuitState",
    "IdempotentCall",
    "ResilienceGuard",
    "RetryExecutor",
    "RetryPolicy",
    "backoff_delay",
    "default_retry_condition",
    "idempotent",
    "with_retry",
]
