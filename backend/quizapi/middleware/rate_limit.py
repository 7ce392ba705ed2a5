"""
QuizAPI Backend - Rate Limiter
===============================

What:  Per-client fixed-window admission control.
How:   Keeps {count, window_start} per client IP. Handlers that opt in call
       `check(ctx.ip)` before doing any work; the limiter raises
       RateLimitError once the client exceeds its budget for the window.
Who:   Constructed once by the service container; consulted by sensitive
       endpoints such as POST /api/v1/auth/login.
When:  At the top of an opted-in handler, before any other processing.

Algorithm: Fixed Window Counter
    1. Look up the entry for the client
    2. If absent, or now - window_start > window_ms: reset to {count: 1, window_start: now}
    3. Else increment count
    4. If count > max_requests: reject with retry_after =
       max(1, ceil((window_start + window_ms - now) / 1000)) seconds

    Time complexity: O(1) per check
    Space complexity: O(n) where n = clients seen in the last 2 windows

    Boundary behaviour: a burst straddling a window edge can be admitted up
    to 2 × max_requests times (see DESIGN.md).

Concurrency:
    Each key maps to one of `shards` locks, so the read-modify-write of an
    entry is atomic for concurrent requests from the same client while
    different clients rarely contend.

Memory:
    A background task (period = window_ms) evicts entries whose window
    started more than 2 × window_ms ago.
"""

import asyncio
import logging
import math
import threading
import zlib
from dataclasses import dataclass
from typing import Dict, List, Optional

from quizapi.clock import Clock, MonotonicClock
from quizapi.config import Settings
from quizapi.exceptions import RateLimitError
from quizapi.result import Outcome

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_MS = 60_000
DEFAULT_MAX_REQUESTS = 100


@dataclass
class RateLimitEntry:
    count: int
    window_start: float


class RateLimiter:
    """
    In-memory fixed-window rate limiter keyed by client identifier.

    Configuration:
        window_ms:     Window length in milliseconds (default: 60000)
        max_requests:  Admissions per window (default: 100)
        clock:         Millisecond clock, injectable for tests
        shards:        Number of lock stripes
    """

    def __init__(
        self,
        window_ms: int = DEFAULT_WINDOW_MS,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        clock: Optional[Clock] = None,
        shards: int = 64,
    ):
        if window_ms <= 0 or max_requests <= 0:
            raise ValueError("window_ms and max_requests must be positive")
        self.window_ms = window_ms
        self.max_requests = max_requests
        self._clock = clock or MonotonicClock()
        self._store: Dict[str, RateLimitEntry] = {}
        self._locks: List[threading.Lock] = [threading.Lock() for _ in range(max(1, shards))]
        self._sweeper: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, settings: Settings, clock: Optional[Clock] = None) -> "RateLimiter":
        return cls(
            window_ms=settings.rate_limit_window_ms,
            max_requests=settings.rate_limit_max_requests,
            clock=clock,
        )

    def _lock_for(self, key: str) -> threading.Lock:
        # crc32 rather than hash(): stable across processes for the same key
        return self._locks[zlib.crc32(key.encode("utf-8")) % len(self._locks)]

    # ── Admission ─────────────────────────────────────────────────────────

    def evaluate(self, key: str) -> Outcome[int]:
        """
        Count one request for `key`.

        Returns the admitted count for the current window, or a failed
        Outcome carrying a RateLimitError.
        """
        with self._lock_for(key):
            now = self._clock.now_ms()
            entry = self._store.get(key)
            if entry is None or now - entry.window_start > self.window_ms:
                entry = RateLimitEntry(count=1, window_start=now)
                self._store[key] = entry
            else:
                entry.count += 1
            count = entry.count
            window_start = entry.window_start

        if count > self.max_requests:
            # At the exact window edge the remaining time is 0 seconds
            retry_after = max(1, math.ceil((window_start + self.window_ms - now) / 1000))
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %dms window",
                key,
                count,
                self.window_ms,
            )
            return Outcome.failure(RateLimitError(retry_after=retry_after))
        return Outcome.success(count)

    def check(self, key: str) -> int:
        """Admit one request for `key` or raise RateLimitError."""
        return self.evaluate(key).unwrap()

    def peek(self, key: str) -> Optional[RateLimitEntry]:
        """Copy of the current entry for `key` (None if untracked)."""
        with self._lock_for(key):
            entry = self._store.get(key)
            return None if entry is None else RateLimitEntry(entry.count, entry.window_start)

    def __len__(self) -> int:
        return len(self._store)

    # ── Cleanup ───────────────────────────────────────────────────────────

    def sweep(self) -> int:
        """Evict entries whose window started more than 2 × window_ms ago. Returns how many."""
        now = self._clock.now_ms()
        removed = 0
        for key in list(self._store.keys()):
            with self._lock_for(key):
                entry = self._store.get(key)
                if entry is not None and now - entry.window_start > self.window_ms * 2:
                    del self._store[key]
                    removed += 1
        if removed:
            logger.debug("Evicted %d stale rate-limit entries", removed)
        return removed

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.window_ms / 1000)
            try:
                self.sweep()
            except Exception:
                # Best-effort: a failed sweep only delays eviction
                logger.debug("Rate-limit sweep failed", exc_info=True)

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(self._sweep_forever())

    async def stop(self) -> None:
        """Cancel the periodic sweep and wait for it to finish."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
