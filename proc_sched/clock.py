from __future__ import annotations

import time


class MonotonicClock:
    """Millisecond wall clock used by engines and the process controller."""

    def now_ms(self) -> int:
        return time.monotonic_ns() // 1_000_000

    def sleep_ms(self, duration: int) -> None:
        if duration > 0:
            time.sleep(duration / 1000)
