"""Average block time estimation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from blockshot.errors import ChainClientError, InsufficientHistoryError
from blockshot.helpers.constants import DEFAULT_SAMPLE_SIZE
from blockshot.helpers.logging import get_logger
from blockshot.models import AverageBlockTime


if TYPE_CHECKING:
    from blockshot.models import BlockSnapshot
    from blockshot.scheduling.probe import EndpointProbe


logger = get_logger(__name__)


def average_between(
    latest: BlockSnapshot, older: BlockSnapshot, sample_size: int
) -> AverageBlockTime:
    """Average seconds per block between two snapshots ``sample_size`` apart.

    Raises:
        InsufficientHistoryError: If the result is not strictly positive
    """
    elapsed = (latest.time - older.time).total_seconds()
    seconds_per_block = elapsed / sample_size
    if seconds_per_block <= 0:
        msg = (
            f"Non-positive block time {seconds_per_block:.3f}s between "
            f"#{older.height} and #{latest.height}"
        )
        raise InsufficientHistoryError(msg)
    return AverageBlockTime(
        seconds_per_block=seconds_per_block,
        sample_size=sample_size,
        from_height=older.height,
        to_height=latest.height,
    )


class BlockTimeEstimator:
    """Samples two heights on one endpoint and averages the block time.

    The result is never cached; call ``estimate`` for every prediction.
    """

    def __init__(self, sample_size: int = DEFAULT_SAMPLE_SIZE) -> None:
        """Initialize the estimator.

        Args:
            sample_size: Blocks between the two sampled heights

        Raises:
            ValueError: If sample_size is not a positive integer
        """
        if isinstance(sample_size, bool) or not isinstance(sample_size, int):
            msg = "sample_size must be an integer"
            raise ValueError(msg)
        if sample_size <= 0:
            msg = "sample_size must be positive"
            raise ValueError(msg)
        self.sample_size = sample_size

    async def estimate(self, probe: EndpointProbe) -> AverageBlockTime:
        """Estimate the average block time seen by ``probe``.

        Raises:
            InsufficientHistoryError: If the chain is too young, a probe call
                fails, or the sampled times do not increase
        """
        try:
            latest = await probe.current_block()
        except ChainClientError as e:
            msg = f"Cannot fetch latest block: {e}"
            raise InsufficientHistoryError(msg) from e

        older_height = latest.height - self.sample_size
        if older_height < 0:
            msg = (
                f"Chain height {latest.height} is below the sample size "
                f"{self.sample_size}"
            )
            raise InsufficientHistoryError(msg)

        try:
            older = await probe.block_at(older_height)
        except ChainClientError as e:
            msg = f"Cannot fetch block {older_height}: {e}"
            raise InsufficientHistoryError(msg) from e

        average = average_between(latest, older, self.sample_size)
        logger.debug(
            "Average block time on %s: %.3fs over blocks #%d-#%d",
            probe.endpoint,
            average.seconds_per_block,
            older.height,
            latest.height,
        )
        return average


__all__ = [
    "BlockTimeEstimator",
    "average_between",
]
