"""Unit tests for the in-memory fixed-window rate limit store."""

import threading
from unittest.mock import Mock

import pytest

from quest_api.adapters.rate_limit.base import KeyNamespace, RateLimitDecision, RateLimitKey
from quest_api.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter

IP_KEY = RateLimitKey(KeyNamespace.IP, "203.0.113.7")


def test_five_per_minute_scenario() -> None:
    """Six requests against a ceiling of five: the sixth is rejected."""
    clock = Mock(return_value=1000.0)
    store = InMemoryFixedWindowRateLimiter(clock=clock)

    decisions = [store.check_and_consume(IP_KEY, max_requests=5, window_ms=60_000) for _ in range(6)]

    assert [d.allowed for d in decisions] == [True, True, True, True, True, False]
    assert [d.remaining for d in decisions] == [4, 3, 2, 1, 0, 0]
    assert all(d.limit == 5 for d in decisions)
    assert {d.reset_at for d in decisions} == {1_060_000}


def test_rejection_does_not_consume() -> None:
    clock = Mock(return_value=1000.0)
    store = InMemoryFixedWindowRateLimiter(clock=clock)

    for _ in range(2):
        store.check_and_consume(IP_KEY, max_requests=2, window_ms=60_000)
    for _ in range(3):
        assert store.check_and_consume(IP_KEY, max_requests=2, window_ms=60_000).allowed is False

    record = store.get_record(IP_KEY)
    assert record is not None
    assert record.count == 2


def test_resets_on_new_window() -> None:
    clock = Mock(return_value=1000.0)
    store = InMemoryFixedWindowRateLimiter(clock=clock)

    assert store.check_and_consume(IP_KEY, max_requests=1, window_ms=10_000).allowed is True
    assert store.check_and_consume(IP_KEY, max_requests=1, window_ms=10_000).allowed is False

    clock.return_value = 1009.999
    assert store.check_and_consume(IP_KEY, max_requests=1, window_ms=10_000).allowed is False

    clock.return_value = 1010.0
    decision = store.check_and_consume(IP_KEY, max_requests=1, window_ms=10_000)
    assert decision.allowed is True
    assert decision.remaining == 0
    assert decision.reset_at == 1_020_000


def test_retry_exactly_at_reset_is_admitted() -> None:
    """Sub-millisecond clocks must not push the window end past reset_at."""
    clock = Mock(return_value=1000.0005)
    store = InMemoryFixedWindowRateLimiter(clock=clock)

    first = store.check_and_consume(IP_KEY, max_requests=1, window_ms=60_000)
    assert first.reset_at == 1_060_000

    clock.return_value = first.reset_at / 1000
    second = store.check_and_consume(IP_KEY, max_requests=1, window_ms=60_000)

    assert second.allowed is True
    assert second.reset_at == 1_120_000


def test_reset_at_stays_fixed_within_window() -> None:
    clock = Mock(return_value=1000.0)
    store = InMemoryFixedWindowRateLimiter(clock=clock)

    first = store.check_and_consume(IP_KEY, max_requests=3, window_ms=60_000)
    clock.return_value = 1030.0
    second = store.check_and_consume(IP_KEY, max_requests=3, window_ms=60_000)

    assert first.reset_at == second.reset_at == 1_060_000


def test_isolated_by_key_and_namespace() -> None:
    clock = Mock(return_value=1000.0)
    store = InMemoryFixedWindowRateLimiter(clock=clock)
    user_key = RateLimitKey(KeyNamespace.USER, "203.0.113.7")

    assert store.check_and_consume(IP_KEY, max_requests=1, window_ms=60_000).allowed is True
    assert store.check_and_consume(IP_KEY, max_requests=1, window_ms=60_000).allowed is False

    assert store.check_and_consume(user_key, max_requests=1, window_ms=60_000).allowed is True
    assert store.check_and_consume("ip:198.51.100.1", max_requests=1, window_ms=60_000).allowed is True


def test_key_renders_with_namespace_prefix() -> None:
    assert str(IP_KEY) == "ip:203.0.113.7"
    assert str(RateLimitKey(KeyNamespace.USER, "u-1")) == "user:u-1"


def test_sweep_evicts_expired_records() -> None:
    clock = Mock(return_value=1000.0)
    store = InMemoryFixedWindowRateLimiter(retention_ms=60_000, clock=clock)

    for ip in ("a", "b", "c"):
        store.check_and_consume(f"ip:{ip}", max_requests=5, window_ms=60_000)
    assert len(store) == 3

    clock.return_value = 1061.0
    store.check_and_consume("ip:d", max_requests=5, window_ms=60_000)

    assert len(store) == 1
    assert store.get_record("ip:a") is None


def test_sweep_is_bounded_per_call() -> None:
    clock = Mock(return_value=1000.0)
    store = InMemoryFixedWindowRateLimiter(retention_ms=60_000, sweep_batch_size=2, clock=clock)

    for ip in ("a", "b", "c", "d"):
        store.check_and_consume(f"ip:{ip}", max_requests=5, window_ms=60_000)

    clock.return_value = 1061.0
    store.check_and_consume("ip:e", max_requests=5, window_ms=60_000)
    # Only two of the four stale records are examined on this call
    assert len(store) == 3

    store.check_and_consume("ip:e", max_requests=5, window_ms=60_000)
    assert len(store) == 1


def test_sweep_never_evicts_live_window() -> None:
    """A record older than the retention horizon survives while its window is open."""
    clock = Mock(return_value=1000.0)
    store = InMemoryFixedWindowRateLimiter(retention_ms=1_000, clock=clock)

    store.check_and_consume(IP_KEY, max_requests=2, window_ms=60_000)
    store.check_and_consume(IP_KEY, max_requests=2, window_ms=60_000)

    clock.return_value = 1030.0
    store.check_and_consume("ip:other", max_requests=2, window_ms=60_000)

    assert store.check_and_consume(IP_KEY, max_requests=2, window_ms=60_000).allowed is False


def test_get_record_returns_copy() -> None:
    store = InMemoryFixedWindowRateLimiter(clock=Mock(return_value=1000.0))
    store.check_and_consume(IP_KEY, max_requests=5, window_ms=60_000)

    record = store.get_record(IP_KEY)
    record.count = 99

    assert store.get_record(IP_KEY).count == 1


def test_clear_drops_everything() -> None:
    store = InMemoryFixedWindowRateLimiter(clock=Mock(return_value=1000.0))
    store.check_and_consume(IP_KEY, max_requests=1, window_ms=60_000)

    store.clear()

    assert len(store) == 0
    assert store.check_and_consume(IP_KEY, max_requests=1, window_ms=60_000).allowed is True


def test_concurrent_requests_admit_exactly_the_ceiling() -> None:
    store = InMemoryFixedWindowRateLimiter()
    results: list[bool] = []
    results_lock = threading.Lock()
    barrier = threading.Barrier(20)

    def hit() -> None:
        barrier.wait()
        allowed = store.check_and_consume(IP_KEY, max_requests=10, window_ms=60_000).allowed
        with results_lock:
            results.append(allowed)

    threads = [threading.Thread(target=hit) for _ in range(20)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(True) == 10
    assert results.count(False) == 10


@pytest.mark.parametrize(
    "kwargs",
    [
        {"retention_ms": 0},
        {"sweep_batch_size": 0},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        InMemoryFixedWindowRateLimiter(**kwargs)


@pytest.mark.parametrize(
    "key, max_requests, window_ms",
    [
        ("", 1, 60_000),
        ("ip:k", 0, 60_000),
        ("ip:k", 1, 0),
    ],
)
def test_invalid_consume_args(key: str, max_requests: int, window_ms: int) -> None:
    store = InMemoryFixedWindowRateLimiter()

    with pytest.raises(ValueError):
        store.check_and_consume(key, max_requests=max_requests, window_ms=window_ms)


class TestRateLimitDecision:
    def test_retry_after_rounds_up(self) -> None:
        decision = RateLimitDecision(allowed=False, limit=5, remaining=0, reset_at=1_060_000)

        assert decision.retry_after_seconds(1_000_000) == 60
        assert decision.retry_after_seconds(1_059_001) == 1
        assert decision.retry_after_seconds(1_059_999.5) == 1

    def test_retry_after_never_negative(self) -> None:
        decision = RateLimitDecision(allowed=False, limit=5, remaining=0, reset_at=1_060_000)

        assert decision.retry_after_seconds(1_070_000) == 0

    def test_reset_at_iso(self) -> None:
        decision = RateLimitDecision(allowed=True, limit=5, remaining=4, reset_at=1_700_000_060_123)

        assert decision.reset_at_iso == "2023-11-14T22:14:20.123Z"
