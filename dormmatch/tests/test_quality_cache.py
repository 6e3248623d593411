from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from dormmatch.errors import ResolutionCancelled
from dormmatch.resolution.cache import QualityCache
from dormmatch.resolution.config import CacheConfig
from dormmatch.resolution.models import QualitySignal

CONFIG = CacheConfig(positive_ttl=600, negative_ttl=60)


def _signal(resolved_at=1.0, rating=4.0):
    return QualitySignal(rating=rating, review_count=10, resolved_at=resolved_at)


class CountingResolver:
    def __init__(self, result=None, delay=0.0):
        self.calls = 0
        self.result = result
        self.delay = delay
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            self.calls += 1
            call = self.calls
        if self.delay:
            time.sleep(self.delay)
        return self.result(call) if callable(self.result) else self.result


# ── Single-flight ────────────────────────────────────────────────────────


def test_concurrent_misses_resolve_once(clock):
    cache = QualityCache(CONFIG, clock=clock)
    resolver = CountingResolver(result=_signal(), delay=0.2)
    barrier = threading.Barrier(10)

    def _lookup():
        barrier.wait()
        return cache.get_or_resolve("Hobby Hall", resolver)

    with ThreadPoolExecutor(max_workers=10) as pool:
        results = list(pool.map(lambda _: _lookup(), range(10)))

    assert resolver.calls == 1
    assert all(r == results[0] for r in results)
    stats = cache.stats()
    assert stats["misses"] == 1
    assert stats["hits"] + stats["coalesced"] == 9


def test_distinct_entities_resolve_independently(clock):
    cache = QualityCache(CONFIG, clock=clock)
    resolver = CountingResolver(result=_signal())
    cache.get_or_resolve("Hobby Hall", resolver)
    cache.get_or_resolve("Moses Hall", resolver)
    assert resolver.calls == 2


# ── TTL ──────────────────────────────────────────────────────────────────


def test_positive_entry_respects_ttl(clock):
    cache = QualityCache(CONFIG, clock=clock)
    resolver = CountingResolver(result=lambda call: _signal(resolved_at=float(call)))

    first = cache.get_or_resolve("Hobby Hall", resolver)
    clock.advance(599)
    assert cache.get_or_resolve("Hobby Hall", resolver).resolved_at == first.resolved_at

    clock.advance(2)
    assert cache.get_or_resolve("Hobby Hall", resolver).resolved_at != first.resolved_at
    assert resolver.calls == 2


def test_negative_entry_uses_shorter_ttl(clock):
    cache = QualityCache(CONFIG, clock=clock)
    resolver = CountingResolver(result=None)

    assert cache.get_or_resolve("Ghost Hall", resolver) is None
    clock.advance(30)
    assert cache.get_or_resolve("Ghost Hall", resolver) is None
    assert resolver.calls == 1

    clock.advance(31)
    cache.get_or_resolve("Ghost Hall", resolver)
    assert resolver.calls == 2
    assert cache.stats()["negative"] == 1


def test_resolver_exception_is_cached_as_negative(clock):
    cache = QualityCache(CONFIG, clock=clock)

    def _boom():
        raise RuntimeError("directory down")

    assert cache.get_or_resolve("Hobby Hall", _boom) is None
    assert cache.stats()["negative"] == 1


# ── Cancellation ─────────────────────────────────────────────────────────


def test_cancelled_resolution_is_not_cached(clock):
    cache = QualityCache(CONFIG, clock=clock)

    def _cancelled():
        raise ResolutionCancelled("request gone")

    with pytest.raises(ResolutionCancelled):
        cache.get_or_resolve("Hobby Hall", _cancelled)

    assert cache.stats()["size"] == 0
    assert cache.stats()["in_flight"] == 0
    assert cache.get_or_resolve("Hobby Hall", CountingResolver(result=_signal())) is not None


def test_waiter_retries_after_leader_cancelled(clock):
    cache = QualityCache(CONFIG, clock=clock)
    leader_started = threading.Event()
    release_leader = threading.Event()

    def _cancelled():
        leader_started.set()
        release_leader.wait(timeout=5)
        raise ResolutionCancelled("request gone")

    follower_resolver = CountingResolver(result=_signal(rating=4.8))

    with ThreadPoolExecutor(max_workers=2) as pool:
        leader = pool.submit(cache.get_or_resolve, "Hobby Hall", _cancelled)
        assert leader_started.wait(timeout=5)
        follower = pool.submit(cache.get_or_resolve, "Hobby Hall", follower_resolver)
        # Let the follower attach to the in-flight lookup before cancelling.
        time.sleep(0.1)
        release_leader.set()

        with pytest.raises(ResolutionCancelled):
            leader.result(timeout=5)
        assert follower.result(timeout=5).rating == 4.8

    assert follower_resolver.calls == 1


# ── Peek / stats ─────────────────────────────────────────────────────────


def test_peek_never_resolves(clock):
    cache = QualityCache(CONFIG, clock=clock)
    assert cache.peek("Hobby Hall") is None

    cache.get_or_resolve("Hobby Hall", CountingResolver(result=_signal()))
    assert cache.peek("Hobby Hall") is not None

    clock.advance(601)
    assert cache.peek("Hobby Hall") is None


def test_clear_resets_entries_and_counters(clock):
    cache = QualityCache(CONFIG, clock=clock)
    resolver = CountingResolver(result=_signal())
    cache.get_or_resolve("Hobby Hall", resolver)
    cache.get_or_resolve("Hobby Hall", resolver)
    assert cache.stats()["hit_rate"] == 50.0

    cache.clear()
    stats = cache.stats()
    assert stats["size"] == 0
    assert stats["hits"] == 0
    assert stats["hit_rate"] == 0.0
