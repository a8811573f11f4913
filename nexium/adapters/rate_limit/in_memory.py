"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- Windows start at a client's first request (not at aligned clock
  boundaries), so a client can spend its whole budget right after a reset.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable

from nexium.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult

logger = logging.getLogger(__name__)


@dataclass
class ClientWindow:
    count: int
    reset_at: float


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter using a fixed time window per key.

    Each key gets ``limit`` requests per ``window_seconds``. The window opens
    on the first request and is reopened by the first request arriving after
    ``reset_at``.

    Memory is bounded two ways: at most ``max_keys`` windows are kept (the
    least recently seen key is evicted first), and every
    ``sweep_interval_seconds`` windows whose ``reset_at`` has passed are
    dropped. Dropping an expired window never changes a decision, since the
    next request from that key would reset it anyway.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        max_keys: int = 10000,
        sweep_interval_seconds: float = 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of requests per window.
            window_seconds: Length of the window in seconds.
            max_keys: Maximum number of windows kept in memory.
            sweep_interval_seconds: Minimum time between expiry sweeps.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If any bound is invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        if max_keys < 1:
            raise ValueError("max_keys must be >= 1")
        if sweep_interval_seconds <= 0:
            raise ValueError("sweep_interval_seconds must be > 0")

        self._limit = limit
        self._window_seconds = window_seconds
        self._max_keys = max_keys
        self._sweep_interval = sweep_interval_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._windows: OrderedDict[str, ClientWindow] = OrderedDict()
        self._next_sweep_at = clock() + sweep_interval_seconds

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def get_window(self, key: str) -> ClientWindow | None:
        """Return a copy of the window tracked for ``key``, if any."""
        with self._lock:
            window = self._windows.get(key)
            if window is None:
                return None
            return ClientWindow(count=window.count, reset_at=window.reset_at)

    def _open_window(self, key: str, now: float) -> ClientWindow:
        window = ClientWindow(count=1, reset_at=now + self._window_seconds)
        self._windows[key] = window
        self._windows.move_to_end(key)
        self._evict_if_over_capacity_locked()
        return window

    def _evict_if_over_capacity_locked(self) -> None:
        while len(self._windows) > self._max_keys:
            # popitem(last=False) removes the least recently seen key
            self._windows.popitem(last=False)

    def _sweep_locked(self, now: float) -> int:
        expired = [key for key, window in self._windows.items() if now > window.reset_at]
        for key in expired:
            del self._windows[key]
        self._next_sweep_at = now + self._sweep_interval
        return len(expired)

    def _build_allowed_result(self, window: ClientWindow) -> RateLimitResult:
        return RateLimitResult(
            allowed=True,
            limit=self._limit,
            remaining=max(0, self._limit - window.count),
            reset_at=int(math.ceil(window.reset_at)),
            retry_after_seconds=None,
        )

    def _build_blocked_result(self, window: ClientWindow, now: float) -> RateLimitResult:
        retry_after = max(0, int(math.ceil(window.reset_at - now)))
        return RateLimitResult(
            allowed=False,
            limit=self._limit,
            remaining=0,
            reset_at=int(math.ceil(window.reset_at)),
            retry_after_seconds=retry_after,
        )

    def sweep(self) -> int:
        """Drop every window whose reset time has passed.

        Returns:
            Number of windows removed.
        """
        with self._lock:
            return self._sweep_locked(self._clock())

    def consume(self, key: str) -> RateLimitResult:
        """Count one request for ``key``.

        The check-reset-increment sequence runs under one lock so concurrent
        requests never lose increments. Rejected requests are not counted.

        Args:
            key: Unique identifier for rate limiting (e.g. client address).

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        with self._lock:
            now = self._clock()
            if now >= self._next_sweep_at:
                removed = self._sweep_locked(now)
                if removed:
                    logger.debug(
                        "rate_limit.swept",
                        extra={"removed": removed, "tracked": len(self._windows)},
                    )

            window = self._windows.get(key)
            if window is None or now > window.reset_at:
                return self._build_allowed_result(self._open_window(key, now))

            self._windows.move_to_end(key)
            if window.count < self._limit:
                window.count += 1
                return self._build_allowed_result(window)

            return self._build_blocked_result(window, now)
