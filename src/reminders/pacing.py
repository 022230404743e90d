"""FixedDelayPacer — spaces out consecutive sends to respect provider rate limits."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable


class FixedDelayPacer:
    """Guarantees at least *interval* seconds between one send finishing and the next starting.

    Usage::

        pacer.reset()
        for item in items:
            await pacer.wait()
            await send(item)
            pacer.mark()

    The first ``wait()`` after ``reset()`` returns immediately.

    Args:
        interval: Minimum gap in seconds. ``0`` disables pacing.
        clock: Monotonic time source.
        sleep: Awaitable sleep function.
    """

    def __init__(
        self,
        interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if interval < 0:
            msg = f"Pacing interval must be >= 0, got {interval}"
            raise ValueError(msg)
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._last: float | None = None

    def reset(self) -> None:
        self._last = None

    def mark(self) -> None:
        """Record that a send just finished."""
        self._last = self._clock()

    async def wait(self) -> float:
        """Sleep until the next send may start. Returns the seconds slept."""
        if self._last is None or self.interval <= 0:
            return 0.0
        remaining = self._last + self.interval - self._clock()
        if remaining <= 0:
            return 0.0
        await self._sleep(remaining)
        return remaining
