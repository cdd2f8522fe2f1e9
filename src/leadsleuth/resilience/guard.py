"""Circuit breaker + retry wrapping for calls to external dependencies."""

from typing import Any, Awaitable, Callable, TypeVar

from leadsleuth.resilience.circuit_breaker import CircuitBreakerRegistry
from leadsleuth.resilience.retry import RetryExecutor, RetryPolicy, idempotent

T = TypeVar("T")


class ResilienceGuard:
    """Runs a call inside its dependency's breaker, retried under a policy.

    The breaker wraps the whole retry sequence, so one exhausted operation
    counts as one failure and an open circuit is never retried.
    """

    def __init__(self, registry: CircuitBreakerRegistry, executor: RetryExecutor | None = None):
        self.registry = registry
        self.executor = executor or RetryExecutor()

    async def call(
        self,
        dependency: str,
        policy: RetryPolicy,
        name: str,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        operation = idempotent(name, func, *args, **kwargs)
        breaker = self.registry.get(dependency)
        return await breaker.execute(lambda: self.executor.execute(operation, policy))
