"""Cancellable fixed-interval tick loop."""

from __future__ import annotations

import asyncio

from typing import TYPE_CHECKING, TypeVar


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


T = TypeVar("T")


class Ticker:
    """Runs a tick function every ``interval_ms`` until it yields a result.

    The stop event is checked at tick boundaries only. A tick that is
    already awaiting network I/O runs to completion (or to its own
    timeout) before the loop notices the stop.

    Example:
        ```python
        stop = asyncio.Event()
        ticker = Ticker(500, stop)

        async def tick() -> BlockSnapshot | None:
            snapshot = await probe.current_block()
            return snapshot if snapshot.height >= 1200 else None

        snapshot = await ticker.run(tick)  # None if stop was set
        ```
    """

    def __init__(self, interval_ms: int, stop: asyncio.Event | None = None) -> None:
        if interval_ms <= 0:
            msg = "interval_ms must be positive"
            raise ValueError(msg)
        self.interval = interval_ms / 1000
        self.stop = stop or asyncio.Event()
        self.ticks = 0

    @property
    def stopped(self) -> bool:
        return self.stop.is_set()

    async def wait_for_next_tick(self) -> bool:
        """Sleep one interval; return False if stopped while waiting."""
        if self.stopped:
            return False
        try:
            await asyncio.wait_for(self.stop.wait(), timeout=self.interval)
        except TimeoutError:
            return True
        return False

    async def run(self, tick: Callable[[], Awaitable[T | None]]) -> T | None:
        """Call ``tick`` until it returns a non-None value or the loop stops.

        Returns:
            The first non-None tick result, or None if stopped
        """
        while not self.stopped:
            self.ticks += 1
            result = await tick()
            if result is not None:
                return result
            if not await self.wait_for_next_tick():
                break
        return None


__all__ = ["Ticker"]
