"""Retry executor with pluggable retry conditions and per-use-case presets."""

import asyncio
import random
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Mapping, TypeVar

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt
from tenacity import RetryError as TenacityRetryError

from leadsleuth.exceptions import (
    BlockedError,
    CircuitOpenError,
    ConnectionResetFetchError,
    FetchTimeoutError,
    RetryError,
)
from leadsleuth.logging_config import get_logger
from leadsleuth.resilience.backoff import BackoffPolicy

logger = get_logger(__name__)

T = TypeVar("T")

RetryCondition = Callable[[BaseException], bool]

RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})
FATAL_STATUS_CODES = frozenset({400, 401, 403, 404, 422})

_FATAL_STATUS_RE = re.compile(r"\b(400|401|403|404|422)\b")
_RETRYABLE_STATUS_RE = re.compile(r"\b(429|502|503|504)\b")
_SERVER_ERROR_RE = re.compile(r"\b5\d\d\b")

_FATAL_MARKERS = ("invalid", "malformed", "syntax error", "blocked", "captcha")
_TIMEOUT_MARKERS = ("timeout", "timed out")
_CONNECTION_MARKERS = (
    "connection reset",
    "connection refused",
    "connection error",
    "econnreset",
    "econnrefused",
    "network",
)
_RATE_LIMIT_MARKERS = ("rate limit", "rate_limit", "too many requests")
_UNAVAILABLE_MARKERS = ("service unavailable", "bad gateway", "gateway timeout")


def status_code_of(error: BaseException) -> int | None:
    """HTTP status carried by an error, if any."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    status = getattr(error, "status_code", None)
    return status if isinstance(status, int) else None


def _text(error: BaseException) -> str:
    return f"{type(error).__name__}: {error}".lower()


def is_timeout(error: BaseException) -> bool:
    if isinstance(error, (FetchTimeoutError, httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)):
        return True
    return any(marker in _text(error) for marker in _TIMEOUT_MARKERS)


def is_connection_error(error: BaseException) -> bool:
    if isinstance(
        error,
        (ConnectionResetFetchError, httpx.ConnectError, httpx.ReadError, httpx.RemoteProtocolError, ConnectionError),
    ):
        return True
    return any(marker in _text(error) for marker in _CONNECTION_MARKERS)


def is_rate_limited(error: BaseException) -> bool:
    if status_code_of(error) == 429:
        return True
    return any(marker in _text(error) for marker in _RATE_LIMIT_MARKERS)


def is_blocked(error: BaseException) -> bool:
    if isinstance(error, BlockedError):
        return True
    text = _text(error)
    return "blocked" in text or "captcha" in text


def is_server_error(error: BaseException) -> bool:
    status = status_code_of(error)
    if status is not None:
        return 500 <= status < 600
    return bool(_SERVER_ERROR_RE.search(_text(error))) or any(
        marker in _text(error) for marker in _UNAVAILABLE_MARKERS
    )


def default_retry_condition(error: BaseException) -> bool:
    """Classify an error as retryable.

    Non-retryable markers are checked first. Errors matching neither list
    are not retried, so programming errors surface instead of being masked
    as transient failures.
    """
    if isinstance(error, CircuitOpenError) or is_blocked(error):
        return False

    status = status_code_of(error)
    if status is not None:
        return status in RETRYABLE_STATUS_CODES

    text = _text(error)
    if _FATAL_STATUS_RE.search(text) or any(marker in text for marker in _FATAL_MARKERS):
        return False

    return (
        is_timeout(error)
        or is_connection_error(error)
        or is_rate_limited(error)
        or bool(_RETRYABLE_STATUS_RE.search(text))
        or any(marker in text for marker in _UNAVAILABLE_MARKERS)
    )


def website_fetch_condition(error: BaseException) -> bool:
    """Retry transient fetch failures, never 403/404."""
    if status_code_of(error) in (403, 404):
        return False
    return default_retry_condition(error)


def email_verification_condition(error: BaseException) -> bool:
    """Verification is deterministic: retry only timeouts and rate limits."""
    if isinstance(error, CircuitOpenError) or is_blocked(error):
        return False
    return is_timeout(error) or is_rate_limited(error)


def linkedin_search_condition(error: BaseException) -> bool:
    """LinkedIn blocks aggressively: retry rate limits only, never blocks."""
    if isinstance(error, CircuitOpenError) or is_blocked(error):
        return False
    return is_rate_limited(error)


def api_call_condition(error: BaseException) -> bool:
    if isinstance(error, CircuitOpenError):
        return False
    return is_server_error(error) or is_timeout(error) or is_rate_limited(error)


def database_condition(error: BaseException) -> bool:
    if isinstance(error, CircuitOpenError):
        return False
    return is_connection_error(error) or "connection" in _text(error)


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try, how long to wait, and which errors to retry."""

    name: str
    max_attempts: int = 3
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)
    retry_condition: RetryCondition = default_retry_condition

    def should_retry(self, error: BaseException) -> bool:
        return self.retry_condition(error)


WEBSITE_FETCH = RetryPolicy(
    name="website_fetch",
    max_attempts=3,
    backoff=BackoffPolicy(base=2.0),
    retry_condition=website_fetch_condition,
)
EMAIL_VERIFICATION = RetryPolicy(
    name="email_verification",
    max_attempts=2,
    backoff=BackoffPolicy(base=1.0),
    retry_condition=email_verification_condition,
)
LINKEDIN_SEARCH = RetryPolicy(
    name="linkedin_search",
    max_attempts=2,
    backoff=BackoffPolicy(base=5.0, maximum=15.0),
    retry_condition=linkedin_search_condition,
)
API_CALL = RetryPolicy(
    name="api_call",
    max_attempts=4,
    backoff=BackoffPolicy(base=1.0, maximum=10.0),
    retry_condition=api_call_condition,
)
DATABASE_OP = RetryPolicy(
    name="database_op",
    max_attempts=3,
    backoff=BackoffPolicy(base=0.5, maximum=5.0),
    retry_condition=database_condition,
)


@dataclass(frozen=True, eq=False)
class IdempotentCall(Generic[T]):
    """An operation that is safe to repeat.

    Only these can be handed to :class:`RetryExecutor`; wrapping a call in
    one is the caller's statement that repeating it has no extra effect.
    """

    name: str
    func: Callable[..., Awaitable[T]]
    args: tuple[Any, ...] = ()
    kwargs: Mapping[str, Any] = field(default_factory=dict)

    async def __call__(self) -> T:
        return await self.func(*self.args, **self.kwargs)


def idempotent(name: str, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> IdempotentCall[T]:
    return IdempotentCall(name=name, func=func, args=args, kwargs=kwargs)


class RetryExecutor:
    """Run idempotent operations under a retry policy.

    Each call runs in the caller's task, so backoff sleeps never block other
    concurrent operations.
    """

    def __init__(
        self,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ):
        """Initialize retry executor.

        Args:
            sleep: Awaitable sleep used between attempts (inject a fake in tests)
            rng: Random source for jitter
        """
        self._sleep = sleep
        self._rng = rng or random.Random()

    async def execute(
        self,
        operation: IdempotentCall[T],
        policy: RetryPolicy,
        operation_name: str | None = None,
    ) -> T:
        """Attempt ``operation`` up to ``policy.max_attempts`` times.

        Args:
            operation: Idempotent operation to run
            policy: Retry policy (attempts, backoff, retry condition)
            operation_name: Name for log entries (defaults to operation.name)

        Returns:
            The operation's result

        Raises:
            RetryError: On a non-retryable error or when attempts run out
            CircuitOpenError: Passed through unwrapped
        """
        if not isinstance(operation, IdempotentCall):
            raise TypeError("only IdempotentCall operations can be retried")

        name = operation_name or operation.name
        attempts = 0

        retrying = AsyncRetrying(
            stop=stop_after_attempt(policy.max_attempts),
            wait=lambda state: policy.backoff.delay(state.attempt_number, self._rng),
            retry=retry_if_exception(policy.should_retry),
            sleep=self._sleep,
            before_sleep=lambda state: self._log_retry_scheduled(name, policy, state),
            reraise=False,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    try:
                        result = await operation()
                    except Exception as e:
                        logger.warning(
                            "retry_attempt_failed",
                            operation=name,
                            attempt=attempts,
                            max_attempts=policy.max_attempts,
                            error=str(e),
                            error_type=type(e).__name__,
                        )
                        raise
        except TenacityRetryError as e:
            last_error = e.last_attempt.exception()
            logger.error(
                "retry_exhausted",
                operation=name,
                attempts=e.last_attempt.attempt_number,
                error=str(last_error),
            )
            raise RetryError(
                f"Operation '{name}' failed after {e.last_attempt.attempt_number} attempts",
                attempts=e.last_attempt.attempt_number,
                last_error=last_error,
            ) from last_error
        except CircuitOpenError:
            raise
        except Exception as e:
            logger.warning(
                "retry_aborted",
                operation=name,
                attempts=attempts,
                error=str(e),
                reason="non_retryable",
            )
            raise RetryError(
                f"Operation '{name}' failed with non-retryable error",
                attempts=attempts,
                last_error=e,
            ) from e

        if attempts > 1:
            logger.info("retry_succeeded", operation=name, attempt=attempts)
        return result

    def _log_retry_scheduled(self, name: str, policy: RetryPolicy, state: RetryCallState) -> None:
        delay = state.next_action.sleep if state.next_action else 0.0
        logger.info(
            "retry_scheduled",
            operation=name,
            policy=policy.name,
            attempt=state.attempt_number,
            next_attempt=state.attempt_number + 1,
            delay_seconds=round(delay, 3),
        )


async def with_retry(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    policy: RetryPolicy = API_CALL,
    name: str | None = None,
    executor: RetryExecutor | None = None,
    **kwargs: Any,
) -> T:
    """Shortcut: wrap ``func(*args, **kwargs)`` as idempotent and retry it."""
    executor = executor or RetryExecutor()
    operation = idempotent(name or getattr(func, "__name__", "operation"), func, *args, **kwargs)
    return await executor.execute(operation, policy)
