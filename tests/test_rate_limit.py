"""Tests for the fixed-window rate limiter."""

from datetime import timedelta

from gainchef.domain.session import RateLimitRecord
from gainchef.services.rate_limit import RateLimiter
from gainchef.services.state_store import InMemoryStateStore, StorageKeys
from tests.conftest import FakeClock


def test_twenty_first_request_in_window_is_rejected(clock: FakeClock) -> None:
    limiter = RateLimiter(store=InMemoryStateStore(), clock=clock)

    results = [limiter.admit() for _ in range(21)]

    assert results[:20] == [True] * 20
    assert results[20] is False


def test_rejection_does_not_extend_the_window(clock: FakeClock) -> None:
    store = InMemoryStateStore()
    limiter = RateLimiter(store=store, max_requests=1, clock=clock)
    limiter.admit()
    before = RateLimitRecord.model_validate(store.get(StorageKeys.RATE_LIMIT))

    clock.advance(timedelta(minutes=5))
    assert limiter.admit() is False

    after = RateLimitRecord.model_validate(store.get(StorageKeys.RATE_LIMIT))
    assert after == before


def test_window_expiry_resets_the_counter(clock: FakeClock) -> None:
    limiter = RateLimiter(store=InMemoryStateStore(), max_requests=2, clock=clock)
    assert limiter.admit()
    assert limiter.admit()
    assert not limiter.admit()

    clock.advance(timedelta(minutes=10, seconds=1))

    assert limiter.admit()


def test_reset_boundary_is_exclusive(clock: FakeClock) -> None:
    limiter = RateLimiter(store=InMemoryStateStore(), max_requests=1, clock=clock)
    assert limiter.admit()

    clock.advance(timedelta(minutes=10))

    assert not limiter.admit()
