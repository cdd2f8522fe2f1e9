import random

import pytest

from leadsleuth.resilience.backoff import BackoffPolicy, backoff_delay


def test_delay_doubles_without_jitter():
    delays = [backoff_delay(n, base=1.0, maximum=30.0, jitter=False) for n in range(1, 6)]
    assert delays == [1.0, 2.0, 4.0, 8.0, 16.0]


def test_delay_capped_at_maximum():
    assert backoff_delay(10, base=1.0, maximum=30.0, jitter=False) == 30.0


def test_jitter_stays_within_ten_percent():
    rng = random.Random(42)
    for attempt in range(1, 5):
        expected = 2.0 * 2 ** (attempt - 1)
        delay = backoff_delay(attempt, base=2.0, maximum=100.0, rng=rng)
        assert expected <= delay <= expected * 1.1


def test_jitter_never_exceeds_maximum():
    rng = random.Random(7)
    for _ in range(50):
        assert backoff_delay(8, base=1.0, maximum=30.0, rng=rng) <= 30.0


def test_seeded_rng_is_deterministic():
    first = backoff_delay(3, rng=random.Random(1))
    second = backoff_delay(3, rng=random.Random(1))
    assert first == second


def test_attempt_numbering_starts_at_one():
    with pytest.raises(ValueError):
        backoff_delay(0)


def test_policy_delay_uses_its_parameters():
    policy = BackoffPolicy(base=5.0, maximum=15.0, jitter=False)
    assert [policy.delay(n) for n in (1, 2, 3)] == [5.0, 10.0, 15.0]
