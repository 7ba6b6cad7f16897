import asyncio
import time
from typing import Awaitable, Callable, Dict, List, Optional

from media_gateway.config import settings
from media_gateway.utils.logger import logger


class SlidingWindowRateLimiter:
    """Per-caller sliding-window limiter with a periodic sweep of idle callers"""

    def __init__(
        self,
        max_requests: int = 30,
        window_seconds: float = 60,
        sweep_interval_seconds: float = 300,
        sweep_batch_size: int = 500,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self.sweep_batch_size = max(1, sweep_batch_size)
        self._clock = clock
        self._sleep = sleep

        self.caller_requests: Dict[str, List[float]] = {}
        self._lock = asyncio.Lock()
        self._sweep_task: Optional[asyncio.Task] = None

    @property
    def tracked_keys(self) -> int:
        return len(self.caller_requests)

    def _prune(self, stamps: List[float], now: float) -> List[float]:
        cutoff = now - self.window_seconds
        return [t for t in stamps if t > cutoff]

    async def allow(self, caller_key: str) -> bool:
        """Record a request for `caller_key` unless its window is already full."""
        async with self._lock:
            now = self._clock()
            stamps = self._prune(self.caller_requests.get(caller_key, []), now)
            if len(stamps) >= self.max_requests:
                # Denied requests are not recorded
                self.caller_requests[caller_key] = stamps
                return False
            stamps.append(now)
            self.caller_requests[caller_key] = stamps
            return True

    async def sweep(self) -> int:
        """Evict callers with no requests left in the window. Returns the eviction count."""
        keys = list(self.caller_requests.keys())
        evicted = 0
        for start in range(0, len(keys), self.sweep_batch_size):
            async with self._lock:
                now = self._clock()
                for key in keys[start:start + self.sweep_batch_size]:
                    stamps = self.caller_requests.get(key)
                    if stamps is None:
                        continue
                    valid = self._prune(stamps, now)
                    if valid:
                        self.caller_requests[key] = valid
                    else:
                        del self.caller_requests[key]
                        evicted += 1
            # Let requests in between batches
            await asyncio.sleep(0)
        if evicted:
            logger.debug(f"Rate limiter sweep evicted {evicted} idle callers, {self.tracked_keys} tracked")
        return evicted

    async def _sweep_loop(self) -> None:
        while True:
            await self._sleep(self.sweep_interval_seconds)
            try:
                await self.sweep()
            except Exception as e:
                logger.error(f"Rate limiter sweep failed: {str(e)}")

    def start(self) -> None:
        """Start the background sweep on the running loop."""
        if self._sweep_task is not None and not self._sweep_task.done():
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop())
        logger.info(f"Rate limiter sweep started (every {self.sweep_interval_seconds}s)")

    async def stop(self) -> None:
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Rate limiter sweep stopped")

    def reset(self) -> None:
        self.caller_requests = {}


def build_rate_limiter() -> SlidingWindowRateLimiter:
    return SlidingWindowRateLimiter(
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
        sweep_interval_seconds=settings.rate_limit_sweep_interval_seconds,
        sweep_batch_size=settings.rate_limit_sweep_batch_size,
    )
