from __future__ import annotations

import math
import os
import time
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv
from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class RateLimitConfig:
    max_requests: int = int(os.getenv("SEARCH_RATE_LIMIT", "100"))
    window_seconds: int = int(os.getenv("SEARCH_RATE_WINDOW", "900"))


DEFAULT_RATE_LIMIT_CONFIG = RateLimitConfig()


class RateLimiter:
    """
    Moving-window request limit per client key, kept in ``limits`` memory
    storage. Expired keys are evicted by the storage itself.
    """

    def __init__(self, config: RateLimitConfig = DEFAULT_RATE_LIMIT_CONFIG) -> None:
        self._config = config
        self._item = RateLimitItemPerSecond(config.max_requests, config.window_seconds)
        self._storage = MemoryStorage()
        self._strategy = MovingWindowRateLimiter(self._storage)

    @property
    def item(self) -> RateLimitItemPerSecond:
        return self._item

    def allow(self, key: str) -> bool:
        """Record a request for *key*; ``False`` once the window is full."""
        return self._strategy.hit(self._item, key)

    def remaining(self, key: str) -> int:
        return self._strategy.get_window_stats(self._item, key).remaining

    def retry_after(self, key: str) -> int:
        """Seconds until *key* may send another request."""
        stats = self._strategy.get_window_stats(self._item, key)
        if stats.remaining > 0:
            return 0
        return max(1, math.ceil(stats.reset_time - time.time()))

    def reset(self) -> None:
        self._storage.reset()
