"""Capture rate limiting and suggestion cooldowns."""

from __future__ import annotations

import time
from collections import deque
from typing import Callable, Hashable

Clock = Callable[[], float]

RATE_WINDOW_S = 60.0


class SlidingWindowRateLimiter:
    """Allows at most ``max_events`` acquisitions in any trailing ``window`` seconds."""

    def __init__(self, max_events: int, window: float = RATE_WINDOW_S, clock: Clock = time.monotonic) -> None:
        if max_events < 1:
            raise ValueError("max_events must be >= 1")
        self.max_events = max_events
        self.window = window
        self._clock = clock
        self._stamps: deque[float] = deque()

    def _evict(self, now: float) -> None:
        while self._stamps and now - self._stamps[0] >= self.window:
            self._stamps.popleft()

    def try_acquire(self) -> bool:
        """Record one event if under the limit. Returns False when rate limited."""
        now = self._clock()
        self._evict(now)
        if len(self._stamps) >= self.max_events:
            return False
        self._stamps.append(now)
        return True

    @property
    def in_window(self) -> int:
        self._evict(self._clock())
        return len(self._stamps)

    def reset(self) -> None:
        self._stamps.clear()


class Cooldown:
    """Per-key cooldown: a key may fire again once ``duration`` seconds have passed."""

    def __init__(self, duration: float, clock: Clock = time.monotonic) -> None:
        self.duration = duration
        self._clock = clock
        self._last: dict[Hashable, float] = {}

    def ready(self, key: Hashable) -> bool:
        last = self._last.get(key)
        if last is None:
            return True
        return self._clock() - last >= self.duration

    def mark(self, key: Hashable) -> None:
        self._last[key] = self._clock()

    def try_fire(self, key: Hashable) -> bool:
        """Fire ``key`` if its cooldown has elapsed, restarting the timer."""
        if not self.ready(key):
            return False
        self.mark(key)
        return True

    def reset(self) -> None:
        self._last.clear()
