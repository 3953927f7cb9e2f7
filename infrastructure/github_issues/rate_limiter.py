import logging
import time
from threading import Lock
from typing import Any, Callable, Mapping, Optional

logger = logging.getLogger("preview_gate.github")

# Back-off applied when GitHub says we are exhausted but gives no reset time.
FALLBACK_PAUSE_SECONDS = 60.0


def _header(headers: Mapping[str, Any], name: str) -> Optional[str]:
    value = headers.get(name)
    if value is None:
        value = headers.get(name.lower())
    return None if value is None else str(value)


def _as_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class RateLimiter:
    """Thread-safe pacing for GitHub REST calls driven by response headers.

    `update()` reads `Retry-After` and `X-RateLimit-*` and pushes the earliest
    allowed request time forward; `acquire()` blocks until that time.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
        max_step: float = 2.0,
    ) -> None:
        self._lock = Lock()
        self._clock = clock
        self._sleep = sleep
        self._max_step = max_step
        self._next_ts = 0.0
        self.last_remaining: Optional[int] = None
        self.last_reset_epoch: Optional[float] = None

    @property
    def wait_seconds(self) -> float:
        with self._lock:
            return max(0.0, self._next_ts - self._clock())

    def acquire(self) -> None:
        while True:
            wait = self.wait_seconds
            if wait <= 0:
                return
            self._sleep(min(wait, self._max_step))

    def _push(self, ts: float) -> None:
        self._next_ts = max(self._next_ts, ts)

    def update(self, headers: Mapping[str, Any]) -> None:
        retry_after = _as_float(_header(headers, "Retry-After"))
        reset = _as_float(_header(headers, "X-RateLimit-Reset"))
        remaining_raw = _header(headers, "X-RateLimit-Remaining")
        with self._lock:
            now = self._clock()
            if retry_after is not None:
                self._push(now + retry_after)
            if reset is not None:
                self.last_reset_epoch = reset
            if remaining_raw is None:
                return
            try:
                remaining = int(remaining_raw)
            except ValueError:
                return
            self.last_remaining = remaining
            if remaining > 1:
                return
            if reset is not None and reset > now:
                self._push(reset)
            else:
                self._push(now + FALLBACK_PAUSE_SECONDS)
        logger.warning("GitHub rate limit nearly exhausted (remaining=%s); pausing requests", remaining)
