"""Base classes for enrichment source adapters."""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from leadsleuth.exceptions import describe_error
from leadsleuth.logging_config import get_logger
from leadsleuth.models import EnrichmentRequest, SourceResult
from leadsleuth.resilience.guard import ResilienceGuard
from leadsleuth.resilience.retry import RetryPolicy

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class SourceConfig:
    """Configuration for a source adapter."""
    name: str
    dependency: str  # circuit breaker guarding this source's calls
    retry_policy: RetryPolicy
    enabled: bool = True


class BaseSourceAdapter(ABC):
    """Base class for enrichment sources.

    ``enrich`` never raises: any failure the adapter does not handle itself
    becomes an empty degraded ``SourceResult``.
    """

    # Subclasses should override this
    config: SourceConfig

    def __init__(self, guard: ResilienceGuard):
        """Initialize adapter.

        Args:
            guard: Shared breaker registry + retry executor
        """
        self.guard = guard
        self.source_name = self.config.name
        self.logger = get_logger(f"{__name__}.{self.source_name}")

    async def enrich(self, request: EnrichmentRequest) -> SourceResult:
        """Run the adapter for one request.

        Args:
            request: Validated enrichment request

        Returns:
            Source result (degraded on failure)
        """
        try:
            result = await self._enrich(request)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.log_error("enrich", e)
            return SourceResult.failed(self.source_name, describe_error(e))

        self.log_result(request, result)
        return result

    @abstractmethod
    async def _enrich(self, request: EnrichmentRequest) -> SourceResult:
        """Collect candidates for ``request``."""

    async def call(
        self,
        name: str,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        dependency: str | None = None,
        policy: RetryPolicy | None = None,
        **kwargs: Any,
    ) -> T:
        """Call an external dependency through its breaker and retry policy.

        Defaults to this source's own breaker and policy.
        """
        return await self.guard.call(
            dependency or self.config.dependency,
            policy or self.config.retry_policy,
            name,
            func,
            *args,
            **kwargs,
        )

    def log_result(self, request: EnrichmentRequest, result: SourceResult) -> None:
        """Log adapter outcome.

        Args:
            request: Enrichment request
            result: Adapter result
        """
        event = "source_degraded" if result.degraded else "source_completed"
        log = self.logger.warning if result.degraded else self.logger.info
        log(
            event,
            source=self.source_name,
            business=request.label,
            emails=len(result.emails),
            phones=len(result.phones),
            profiles=len(result.profiles),
            confidence=result.confidence,
            errors=list(result.errors),
        )

    def log_error(self, operation: str, error: Exception) -> None:
        """Log error.

        Args:
            operation: Operation that failed
            error: Exception
        """
        self.logger.error(
            "source_error",
            source=self.source_name,
            operation=operation,
            error=describe_error(error),
            error_type=type(error).__name__,
        )
