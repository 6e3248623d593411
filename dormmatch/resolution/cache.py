from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable

from ..errors import ResolutionCancelled
from .config import DEFAULT_CACHE_CONFIG, CacheConfig
from .models import QualitySignal

logger = logging.getLogger(__name__)

# Handed to callers waiting on a resolution whose owning request was cancelled.
_ABANDONED = object()


@dataclass(frozen=True)
class CacheEntry:
    """A resolved signal, or ``None`` for a lookup that found nothing."""

    signal: QualitySignal | None
    stored_at: float

    @property
    def negative(self) -> bool:
        return self.signal is None


class QualityCache:
    """
    TTL cache of quality signals keyed by entity name.

    Misses are resolved single-flight: the first caller runs ``resolve_fn``
    and every concurrent caller for the same entity waits for that result.
    Negative results use the shorter ``negative_ttl``.
    """

    def __init__(
        self,
        config: CacheConfig = DEFAULT_CACHE_CONFIG,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._inflight: dict[str, Future] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._coalesced = 0

    def _is_fresh(self, entry: CacheEntry) -> bool:
        ttl = self._config.negative_ttl if entry.negative else self._config.positive_ttl
        return self._clock() - entry.stored_at <= ttl

    def peek(self, entity_id: str) -> QualitySignal | None:
        """Return a fresh cached signal without triggering resolution."""
        with self._lock:
            entry = self._entries.get(entity_id)
            if entry is not None and self._is_fresh(entry):
                return entry.signal
        return None

    def get_or_resolve(
        self,
        entity_id: str,
        resolve_fn: Callable[[], QualitySignal | None],
    ) -> QualitySignal | None:
        while True:
            with self._lock:
                entry = self._entries.get(entity_id)
                if entry is not None and self._is_fresh(entry):
                    self._hits += 1
                    return entry.signal

                future = self._inflight.get(entity_id)
                leader = future is None
                if leader:
                    self._misses += 1
                    future = Future()
                    self._inflight[entity_id] = future
                else:
                    self._coalesced += 1

            if leader:
                return self._resolve(entity_id, resolve_fn, future)

            outcome = future.result()
            if outcome is not _ABANDONED:
                return outcome
            # The leader's request was cancelled; retry and possibly lead.

    def _resolve(
        self,
        entity_id: str,
        resolve_fn: Callable[[], QualitySignal | None],
        future: Future,
    ) -> QualitySignal | None:
        try:
            signal = resolve_fn()
        except ResolutionCancelled:
            with self._lock:
                self._inflight.pop(entity_id, None)
            future.set_result(_ABANDONED)
            raise
        except Exception:
            logger.warning("Quality resolution for %s failed", entity_id, exc_info=True)
            signal = None

        with self._lock:
            self._entries[entity_id] = CacheEntry(signal=signal, stored_at=self._clock())
            self._inflight.pop(entity_id, None)
        future.set_result(signal)
        return signal

    def stats(self) -> dict[str, Any]:
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._entries),
                "negative": sum(1 for e in self._entries.values() if e.negative),
                "in_flight": len(self._inflight),
                "hits": self._hits,
                "misses": self._misses,
                "coalesced": self._coalesced,
                "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
            }

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            self._coalesced = 0
