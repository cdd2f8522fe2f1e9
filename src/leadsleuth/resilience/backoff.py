"""Exponential backoff with bounded jitter."""

import random
from dataclasses import dataclass

JITTER_FRACTION = 0.1


def backoff_delay(
    attempt: int,
    base: float = 1.0,
    maximum: float = 30.0,
    factor: float = 2.0,
    jitter: bool = True,
    rng: random.Random | None = None,
) -> float:
    """Delay in seconds to wait after failed attempt number ``attempt``.

    ``min(base * factor ** (attempt - 1), maximum)`` plus up to 10% jitter,
    never exceeding ``maximum``. Attempts are numbered from 1.

    Args:
        attempt: Number of the attempt that just failed (1-based)
        base: Delay after the first attempt, in seconds
        maximum: Upper bound for any delay, in seconds
        factor: Growth factor between attempts
        jitter: Add ``uniform(0, 0.1 * delay)``
        rng: Random source; pass a seeded ``random.Random`` for determinism

    Returns:
        Delay in seconds
    """
    if attempt < 1:
        raise ValueError(f"attempt numbering starts at 1, got {attempt}")

    delay = min(base * factor ** (attempt - 1), maximum)
    if jitter:
        rng = rng or random
        delay += rng.uniform(0, JITTER_FRACTION * delay)
    return min(delay, maximum)


@dataclass(frozen=True)
class BackoffPolicy:
    """Backoff parameters for one retry preset."""

    base: float = 1.0
    maximum: float = 30.0
    factor: float = 2.0
    jitter: bool = True

    def delay(self, attempt: int, rng: random.Random | None = None) -> float:
        return backoff_delay(
            attempt,
            base=self.base,
            maximum=self.maximum,
            factor=self.factor,
            jitter=self.jitter,
            rng=rng,
        )
