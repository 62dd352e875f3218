import threading
import time
from collections.abc import Callable
from dataclasses import dataclass


@dataclass
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: float


class RateLimiter:
    """Fixed-window request counter keyed by client address.

    Each key gets a window that starts with its first request. Once
    `max_requests` have been counted in the window, further requests are
    refused until the window expires and the count starts over. Expired
    windows are swept at most once per window length, so only addresses seen
    recently are kept in memory.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, tuple[float, int]] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self.window_seconds:
            return
        expired = [key for key, (started, _) in self._windows.items() if now - started >= self.window_seconds]
        for key in expired:
            del self._windows[key]
        self._last_sweep = now

    def hit(self, key: str) -> RateLimitDecision:
        now = self._clock()
        with self._lock:
            self._sweep(now)
            started, count = self._windows.get(key, (now, 0))
            if now - started >= self.window_seconds:
                started, count = now, 0
            retry_after = max(0.0, started + self.window_seconds - now)
            if count >= self.max_requests:
                self._windows[key] = (started, count)
                return RateLimitDecision(allowed=False, remaining=0, retry_after=retry_after)
            count += 1
            self._windows[key] = (started, count)
            return RateLimitDecision(
                allowed=True,
                remaining=self.max_requests - count,
                retry_after=retry_after,
            )

    def reset(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)
