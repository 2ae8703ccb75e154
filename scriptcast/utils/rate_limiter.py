"""Sliding-window request pacing for one remote-call channel."""

import asyncio
import logging
import math
import time
from collections import deque
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class RateLimiter:
    """
    Throttles call rate to at most ``max_requests`` admissions per ``window``.

    This is advisory pacing, not a concurrency gate: ``admit()`` only delays
    the caller until the trailing window has room, then records the admission.
    One instance per channel; instances never share state.
    """

    def __init__(
        self,
        max_requests: int = 15,
        window: float = 60.0,
        safety_margin: float = 1.0,
        name: str = "default",
        clock: Optional[Clock] = None,
        sleep: Optional[Sleep] = None,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window <= 0:
            raise ValueError("window must be positive")

        self.max_requests = max_requests
        self.window = window
        self.safety_margin = safety_margin
        self.name = name
        self._clock = clock or time.monotonic
        self._sleep = sleep or asyncio.sleep
        self._timestamps: deque[float] = deque()
        self._lock = asyncio.Lock()

    @property
    def in_window(self) -> int:
        """Admissions still inside the trailing window."""
        self._evict(self._clock())
        return len(self._timestamps)

    async def admit(self) -> float:
        """
        Wait until the window has room, then record one admission.

        Returns:
            Seconds spent waiting (0.0 when admitted immediately).
        """
        async with self._lock:
            now = self._clock()
            self._evict(now)
            waited = 0.0

            if len(self._timestamps) >= self.max_requests:
                oldest = self._timestamps[0]
                wait = self.window - (now - oldest) + self.safety_margin
                if wait > 0:
                    logger.info(
                        f"Rate limit reached for {self.name}. "
                        f"Waiting {math.ceil(wait)} seconds..."
                    )
                    await self._sleep(wait)
                    waited = wait
                now = self._clock()
                self._evict(now)

            self._timestamps.append(now)
            return waited

    def reset(self) -> None:
        self._timestamps.clear()

    def _evict(self, now: float) -> None:
        while self._timestamps and now - self._timestamps[0] >= self.window:
            self._timestamps.popleft()
