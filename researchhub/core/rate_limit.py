from dataclasses import dataclass
from typing import Callable
import logging
import math
import threading
import time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    retry_after: int = 0


class RateLimiter:
    """
    Sliding-window attempt counter, one window per key (usually the client address).

    State lives in memory only and is lost on restart. Keys whose window has
    emptied are dropped by sweep(), which also runs every `sweep_every` checks.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        window_ms: int = 15 * 60 * 1000,
        clock: Callable[[], float] = time.time,
        sweep_every: int = 1000,
    ):
        self.max_attempts = max_attempts
        self.window_ms = window_ms
        self.clock = clock
        self.sweep_every = sweep_every
        self._attempts: dict[str, list[float]] = {}
        self._checks = 0
        self._lock = threading.Lock()

    def _now_ms(self) -> float:
        return self.clock() * 1000

    def check(self, key: str) -> RateDecision:
        now = self._now_ms()
        window_start = now - self.window_ms

        with self._lock:
            self._checks += 1
            if self.sweep_every and self._checks % self.sweep_every == 0:
                self._sweep_locked(window_start)

            recent = [t for t in self._attempts.get(key, []) if t > window_start]

            if len(recent) >= self.max_attempts:
                self._attempts[key] = recent
                retry_after = math.ceil((recent[0] + self.window_ms - now) / 1000)
                return RateDecision(allowed=False, retry_after=max(retry_after, 1))

            recent.append(now)
            self._attempts[key] = recent
            return RateDecision(allowed=True)

    def reset(self, key: str) -> None:
        with self._lock:
            self._attempts.pop(key, None)

    def sweep(self) -> int:
        """
        Drops keys with no attempts left in the current window. Returns how many were removed.
        """
        with self._lock:
            return self._sweep_locked(self._now_ms() - self.window_ms)

    def _sweep_locked(self, window_start: float) -> int:
        stale = [key for key, stamps in self._attempts.items() if not stamps or stamps[-1] <= window_start]
        for key in stale:
            del self._attempts[key]
        if stale:
            logger.debug("Rate limiter dropped %d stale keys", len(stale))
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._attempts)
