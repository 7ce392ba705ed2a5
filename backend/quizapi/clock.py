"""Clock abstraction for testable time-dependent logic."""

import time
from typing import Protocol


class Clock(Protocol):
    """Protocol for reading a monotonic time in milliseconds.  Inject a fake in tests."""

    def now_ms(self) -> float: ...


class MonotonicClock:
    """Default clock backed by time.monotonic()."""

    def now_ms(self) -> float:
        return time.monotonic() * 1000
