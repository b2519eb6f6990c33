from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_s: int

    def headers(self, window_s: float) -> dict[str, str]:
        """IETF draft-7 ``RateLimit`` / ``RateLimit-Policy`` headers."""
        return {
            "RateLimit-Policy": f"{self.limit};w={math.ceil(window_s)}",
            "RateLimit": f"limit={self.limit}, remaining={self.remaining}, reset={self.reset_s}",
        }


class FixedWindowRateLimiter:
    """Count hits per client key inside fixed windows of ``window_s`` seconds.

    A window opens on a key's first hit and resets once it has elapsed.
    Expired windows are pruned lazily when the table grows past ``max_keys``.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_s: float,
        clock: Callable[[], float] | None = None,
        max_keys: int = 10_000,
    ) -> None:
        if limit <= 0:
            raise ValueError("limit must be positive")
        if window_s <= 0:
            raise ValueError("window_s must be positive")
        self.limit = limit
        self.window_s = window_s
        self._clock = clock or time.monotonic
        self._max_keys = max_keys
        self._windows: dict[str, tuple[float, int]] = {}
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        expired = [k for k, (start, _) in self._windows.items() if now - start >= self.window_s]
        for k in expired:
            del self._windows[k]

    def hit(self, key: str) -> RateLimitDecision:
        now = self._clock()
        with self._lock:
            start, count = self._windows.get(key, (now, 0))
            if now - start >= self.window_s:
                start, count = now, 0
            count += 1
            self._windows[key] = (start, count)
            if len(self._windows) > self._max_keys:
                self._prune(now)
        reset_s = max(0, math.ceil(start + self.window_s - now))
        return RateLimitDecision(
            allowed=count <= self.limit,
            limit=self.limit,
            remaining=max(0, self.limit - count),
            reset_s=reset_s,
        )

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()


__all__ = ["FixedWindowRateLimiter", "RateLimitDecision"]
