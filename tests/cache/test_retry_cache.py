"""Tests for the TTL rejection cache."""

import pytest

from signalbot.cache.rejections import RetryCache
from signalbot.core.types import RejectionKind


class Clock:
    """Manually advanced clock."""

    def __init__(self, start: float) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock(now):
    return Clock(now)


@pytest.fixture
def cache(clock):
    return RetryCache(maxsize=1000, now_fn=clock)


def test_blocks_until_ttl_elapses(cache, clock):
    cache.set("mint", "Too Young", 600)

    clock.advance(599.999)
    assert cache.get("mint") is not None

    clock.advance(0.001)
    assert cache.get("mint") is None


def test_retry_after_expiry(cache, clock):
    """A 10 minute rejection re-checked 11 minutes later is a miss."""
    cache.set("mint", "Too Young", 10 * 60)
    clock.advance(11 * 60)

    assert cache.get("mint") is None
    assert cache.sweep_expired() == 1
    assert "mint" not in cache


def test_get_does_not_delete(cache, clock):
    cache.set("mint", "TOO_YOUNG", 60)
    clock.advance(61)

    assert cache.get("mint") is None
    assert "mint" in cache
    assert cache.peek("mint").reason == "TOO_YOUNG"


def test_permanent_entry_never_expires(cache, clock):
    cache.set("mint", "TOO_OLD", None)
    clock.advance(10**9)

    assert cache.get("mint").reason == "TOO_OLD"
    assert cache.sweep_expired() == 0


def test_reject_uses_kind_policy(cache, clock, now):
    entry = cache.reject("mint", RejectionKind.WEAK_SCORE)

    assert entry.reason == "WEAK_SCORE"
    assert entry.expires_at == now + 15 * 60
    assert cache.reject("other", RejectionKind.WHALE_TRAP).expires_at is None


def test_sweep_keeps_live_entries(cache, clock):
    cache.reject("young", RejectionKind.TOO_YOUNG)
    cache.reject("cooldown", RejectionKind.COOLDOWN)
    cache.reject("old", RejectionKind.TOO_OLD)

    clock.advance(11 * 60)

    assert cache.sweep_expired() == 1
    assert len(cache) == 2
    assert cache.get("cooldown") is not None
    assert cache.get("old") is not None


def test_evicts_oldest_inserted(clock):
    cache = RetryCache(maxsize=3, now_fn=clock)
    for mint in ("a", "b", "c"):
        cache.set(mint, "TOO_YOUNG", 600)

    cache.set("d", "TOO_YOUNG", 600)

    assert len(cache) == 3
    assert "a" not in cache
    assert "d" in cache


def test_reinsert_refreshes_position(clock):
    cache = RetryCache(maxsize=3, now_fn=clock)
    for mint in ("a", "b", "c"):
        cache.set(mint, "TOO_YOUNG", 600)

    cache.set("a", "WEAK_SCORE", 900)
    cache.set("d", "TOO_YOUNG", 600)

    assert "a" in cache
    assert "b" not in cache
    assert cache.get("a").reason == "WEAK_SCORE"


def test_evict_and_clear(cache):
    cache.set("a", "TOO_OLD", None)
    cache.set("b", "TOO_OLD", None)

    cache.evict("a")
    cache.evict("missing")
    assert len(cache) == 1

    cache.clear()
    assert len(cache) == 0
