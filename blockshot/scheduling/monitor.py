"""High-frequency balance increase detection."""

from __future__ import annotations

from typing import TYPE_CHECKING

from blockshot.errors import ChainClientError
from blockshot.helpers.constants import DEFAULT_MONITOR_INTERVAL_MS
from blockshot.helpers.logging import get_logger
from blockshot.models import TrackedBalance
from blockshot.scheduling.ticker import Ticker


if TYPE_CHECKING:
    import asyncio
    from collections.abc import Awaitable, Callable, Iterable

    SampleFn = Callable[[list[str]], Awaitable[dict[str, int]]]
    IncreaseFn = Callable[[str, int, int], Awaitable[None]]


logger = get_logger(__name__)


class BalanceChangeMonitor:
    """Fires a callback the first tick a tracked balance strictly increases.

    The first observation of a denom only seeds its baseline. After a fire
    the baseline moves to the new amount, so a further increase is needed
    to fire again. Baselines belong to this instance; ticks never overlap
    because ``on_increase`` is awaited inside the tick.
    """

    def __init__(
        self,
        denoms: Iterable[str],
        sample_fn: SampleFn,
        on_increase: IncreaseFn,
        interval_ms: int = DEFAULT_MONITOR_INTERVAL_MS,
    ) -> None:
        """Initialize the monitor.

        Args:
            denoms: Denoms to track
            sample_fn: Returns current amounts for the requested denoms; may
                omit denoms it could not read
            on_increase: Awaited with (denom, previous, current)
            interval_ms: Delay between ticks

        Raises:
            ValueError: If no denoms are given
        """
        self.tracked = {denom: TrackedBalance(denom=denom) for denom in denoms}
        if not self.tracked:
            msg = "at least one denom must be tracked"
            raise ValueError(msg)
        self.sample_fn = sample_fn
        self.on_increase = on_increase
        self.interval_ms = interval_ms
        self.fired = 0

    async def tick(self) -> int:
        """Sample once and fire for every increased denom.

        Returns:
            Number of triggers fired in this tick
        """
        try:
            amounts = await self.sample_fn(list(self.tracked))
        except ChainClientError as e:
            logger.warning("Balance sample failed, skipping tick: %s", e)
            return 0

        fired = 0
        for denom, balance in self.tracked.items():
            current = amounts.get(denom)
            if current is None:
                continue

            previous = balance.last_observed_amount
            balance.last_observed_amount = current

            if previous is None:
                logger.debug("Baseline for %s: %d", denom, current)
                continue

            if current > previous:
                logger.info(
                    "Balance increase detected: %s %d -> %d (+%d)",
                    denom,
                    previous,
                    current,
                    current - previous,
                )
                fired += 1
                await self.on_increase(denom, previous, current)

        self.fired += fired
        return fired

    async def watch(self, stop: asyncio.Event | None = None) -> None:
        """Tick until ``stop`` is set."""
        ticker = Ticker(self.interval_ms, stop)

        async def tick() -> None:
            await self.tick()

        logger.info(
            "Monitoring %d denom(s) every %dms: %s",
            len(self.tracked),
            self.interval_ms,
            ", ".join(self.tracked),
        )
        await ticker.run(tick)
        logger.info("Balance monitor stopped after %d tick(s)", ticker.ticks)


__all__ = ["BalanceChangeMonitor"]
