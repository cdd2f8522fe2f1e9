"""Error aggregation for batch enrichment runs."""

from dataclasses import dataclass, field
from typing import Any

from leadsleuth.exceptions import BatchFailedError, describe_error
from leadsleuth.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class BatchItemError:
    """One failed batch item."""

    item: str
    error: BaseException

    def to_dict(self) -> dict[str, str]:
        return {
            "item": self.item,
            "error": describe_error(self.error),
            "error_type": type(self.error).__name__,
        }


@dataclass
class BatchSummary:
    """Per-item breakdown of a batch run."""

    total: int
    successful: int
    failed: int
    success_rate: float
    errors: list[BatchItemError] = field(default_factory=list)
    successes: list[str] = field(default_factory=list)
    results: list[Any] = field(default_factory=list)

    @property
    def percent_successful(self) -> float:
        return round(self.success_rate * 100, 1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "success_rate": self.success_rate,
            "errors": [e.to_dict() for e in self.errors],
            "successes": list(self.successes),
        }


class BatchErrorAggregator:
    """Track per-item success/failure without aborting the batch."""

    def __init__(self):
        self._errors: list[BatchItemError] = []
        self._successes: list[str] = []
        self._results: list[Any] = []

    def add_error(self, item: str, error: BaseException) -> None:
        self._errors.append(BatchItemError(item=item, error=error))
        logger.warning("batch_item_failed", item=item, error=describe_error(error))

    def add_success(self, item: str, result: Any = None) -> None:
        self._successes.append(item)
        if result is not None:
            self._results.append(result)

    def has_errors(self) -> bool:
        return bool(self._errors)

    @property
    def success_rate(self) -> float:
        total = len(self._errors) + len(self._successes)
        if total == 0:
            return 1.0
        return len(self._successes) / total

    def results(self) -> BatchSummary:
        return BatchSummary(
            total=len(self._errors) + len(self._successes),
            successful=len(self._successes),
            failed=len(self._errors),
            success_rate=self.success_rate,
            errors=list(self._errors),
            successes=list(self._successes),
            results=list(self._results),
        )

    def create_summary_error(self) -> BatchFailedError:
        summary = self.results()
        return BatchFailedError(
            f"Batch operation completed with {summary.failed}/{summary.total} failures. "
            f"Success rate: {summary.percent_successful:.1f}%",
            summary=summary,
        )

    def check_threshold(self, min_success_rate: float | None) -> BatchSummary:
        """Return the summary, or raise when the caller set a hard-fail threshold.

        Args:
            min_success_rate: Minimum acceptable success rate (0-1), or None

        Raises:
            BatchFailedError: Success rate below ``min_success_rate``
        """
        if min_success_rate is not None and self.success_rate < min_success_rate:
            raise self.create_summary_error()
        return self.results()
