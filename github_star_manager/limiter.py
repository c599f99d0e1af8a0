"""Token bucket limiter for GitHub API requests.

One bucket is owned by each client and shared by every request it makes. It
starts from a local guess (burst capacity and refill rate) and is overwritten
by the server's own accounting after every response via `observe`.
"""

import logging
import threading
import time

logger = logging.getLogger(__name__)

# Ceiling on a single wait, guards against bad reset data from the server
MAX_WAIT = 60.0
MIN_WAIT = 0.001


class TokenBucket:
    """Thread-safe token bucket.

    All reads and writes of the budget happen under one lock; sleeping happens
    outside it so `observe` can land while a caller is waiting.

    Args:
        capacity: Maximum tokens the bucket holds.
        refill_rate: Tokens added per second.
        max_wait: Upper bound on any single sleep inside `acquire`.
        clock: Returns epoch seconds. Injected in tests.
        sleep: Blocks for the given seconds. Injected in tests.
    """

    def __init__(
        self,
        capacity: int,
        refill_rate: float,
        max_wait: float = MAX_WAIT,
        clock=time.time,
        sleep=time.sleep,
    ):
        self._lock = threading.Lock()
        self._clock = clock
        self._sleep = sleep
        self.max_wait = max_wait
        self.capacity = max(0, int(capacity))
        self.refill_rate = float(refill_rate)
        self.remaining = float(max(0, self.capacity))
        self.reset_at: float | None = None
        self.last_refill = clock()

    def __repr__(self):
        return (
            f"TokenBucket(capacity={self.capacity}, remaining={self.remaining:.2f}, "
            f"refill_rate={self.refill_rate:.4f}, reset_at={self.reset_at})"
        )

    def _refill(self, now: float) -> None:
        if self.reset_at is not None and now >= self.reset_at:
            # Server window rolled over: its reset beats our estimate
            self.remaining = float(max(0, self.capacity))
            self.reset_at = None
        elif now > self.last_refill and self.refill_rate > 0:
            accrued = (now - self.last_refill) * self.refill_rate
            self.remaining = min(float(max(0, self.capacity)), self.remaining + accrued)
        self.last_refill = now

    def _wait_for(self, cost: int, now: float) -> float | None:
        """Seconds until `cost` tokens exist, or None if they never will."""
        candidates = []
        if self.refill_rate > 0:
            candidates.append((cost - self.remaining) / self.refill_rate)
        if self.reset_at is not None:
            candidates.append(self.reset_at - now)
        if not candidates:
            return None
        return max(MIN_WAIT, min(min(candidates), self.max_wait))

    def acquire(self, cost: int = 1) -> None:
        """Block until `cost` tokens are available, then debit them.

        A bucket that can never satisfy the request (zero capacity, no refill
        and no known reset, or a cost above capacity) lets the caller through
        without a debit instead of blocking forever.
        """
        if cost < 1:
            raise ValueError(f"cost must be at least 1, got {cost}")

        while True:
            with self._lock:
                now = self._clock()
                self._refill(now)
                if self.capacity <= 0 or cost > self.capacity:
                    logger.warning("Limiter cannot hold %d token(s) (capacity %d), proceeding", cost, self.capacity)
                    return
                if self.remaining >= cost:
                    self.remaining -= cost
                    return
                wait = self._wait_for(cost, now)
                if wait is None:
                    logger.warning("Limiter has no refill source, proceeding")
                    return
            logger.debug("Waiting %.2fs for %d token(s)", wait, cost)
            self._sleep(wait)

    def observe(self, remaining: int, capacity: int, reset_at: float | None = None) -> None:
        """Overwrite local estimates with the server's reported budget.

        With a reset time, the refill rate is reprojected so the bucket fills
        exactly by the next window: capacity / max(1, reset_at - now).
        """
        with self._lock:
            now = self._clock()
            self.capacity = max(0, int(capacity))
            self.remaining = float(min(max(0, remaining), self.capacity))
            if reset_at is not None:
                self.reset_at = float(reset_at)
                self.refill_rate = self.capacity / max(1.0, reset_at - now)
            self.last_refill = now
