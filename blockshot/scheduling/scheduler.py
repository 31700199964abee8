"""Submission scheduling: wait until the chain reaches a submission block."""

from __future__ import annotations

from typing import TYPE_CHECKING

from blockshot.errors import (
    ChainClientError,
    NoValidTargetError,
    SchedulingCancelledError,
)
from blockshot.helpers.constants import (
    DEFAULT_EARLY_SUBMISSION_BLOCKS,
    DEFAULT_MAX_FAILED_ROUNDS,
    DEFAULT_POLL_INTERVAL_MS,
    PROGRESS_LOG_EVERY_BLOCKS,
)
from blockshot.helpers.logging import get_logger
from blockshot.helpers.parsers import format_time_remaining
from blockshot.scheduling.ticker import Ticker


if TYPE_CHECKING:
    import asyncio

    from blockshot.models import BlockSnapshot
    from blockshot.scheduling.probe import EndpointProbe


logger = get_logger(__name__)


class SubmissionScheduler:
    """Polls endpoints until one reports the submission block.

    The submission block is ``target - early_submission_blocks``. Polling
    latency and broadcast propagation make submitting exactly at the target
    too late more often than submitting a little early is too early.
    """

    def __init__(
        self,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        early_submission_blocks: int = DEFAULT_EARLY_SUBMISSION_BLOCKS,
        max_failed_rounds: int = DEFAULT_MAX_FAILED_ROUNDS,
    ) -> None:
        """Initialize the scheduler.

        Args:
            poll_interval_ms: Delay between polling rounds
            early_submission_blocks: Blocks subtracted from the target
            max_failed_rounds: Consecutive all-endpoint failures before giving up

        Raises:
            ValueError: If any argument is out of range
        """
        if poll_interval_ms <= 0:
            msg = "poll_interval_ms must be positive"
            raise ValueError(msg)
        if early_submission_blocks < 0:
            msg = "early_submission_blocks cannot be negative"
            raise ValueError(msg)
        if max_failed_rounds <= 0:
            msg = "max_failed_rounds must be positive"
            raise ValueError(msg)

        self.poll_interval_ms = poll_interval_ms
        self.early_submission_blocks = early_submission_blocks
        self.max_failed_rounds = max_failed_rounds

    def submission_block(self, target_block: int) -> int:
        """Block at which to submit for ``target_block``."""
        return max(target_block - self.early_submission_blocks, 0)

    async def poll_once(self, probes: list[EndpointProbe]) -> BlockSnapshot | None:
        """Ask each probe in order; return the first answer, None if all fail."""
        for probe in probes:
            try:
                return await probe.current_block()
            except ChainClientError as e:
                logger.debug("Endpoint %s failed, trying next: %s", probe.endpoint, e.reason)
        return None

    async def wait_until(
        self,
        probes: list[EndpointProbe],
        submission_block: int,
        target_block: int | None = None,
        stop: asyncio.Event | None = None,
        average_block_time: float | None = None,
    ) -> BlockSnapshot:
        """Block until some endpoint reports ``submission_block`` or higher.

        Args:
            probes: Endpoints in preference order
            submission_block: Height at which to return
            target_block: Predicted target, for progress logging only
            stop: Cancellation signal, honored at tick boundaries
            average_block_time: Seconds per block, for progress logging only

        Returns:
            Snapshot of the endpoint that reached the submission block

        Raises:
            ValueError: If no probes are given
            NoValidTargetError: After max_failed_rounds consecutive rounds
                in which every endpoint failed
            SchedulingCancelledError: If stop was set before the block arrived
        """
        if not probes:
            msg = "at least one endpoint is required"
            raise ValueError(msg)

        target_block = target_block if target_block is not None else submission_block
        ticker = Ticker(self.poll_interval_ms, stop)
        failed_rounds = 0
        last_logged_height: int | None = None

        logger.info(
            "Waiting for block #%d to submit (target: #%d, %d endpoint(s))",
            submission_block,
            target_block,
            len(probes),
        )

        async def tick() -> BlockSnapshot | None:
            nonlocal failed_rounds, last_logged_height

            snapshot = await self.poll_once(probes)
            if snapshot is None:
                failed_rounds += 1
                logger.warning(
                    "All %d endpoint(s) failed (round %d/%d)",
                    len(probes),
                    failed_rounds,
                    self.max_failed_rounds,
                )
                if failed_rounds >= self.max_failed_rounds:
                    msg = (
                        f"All endpoints failed for {failed_rounds} consecutive "
                        f"rounds while waiting for block #{submission_block}"
                    )
                    raise NoValidTargetError(msg)
                return None

            failed_rounds = 0
            if snapshot.height >= submission_block:
                return snapshot

            if (
                snapshot.height % PROGRESS_LOG_EVERY_BLOCKS == 0
                and snapshot.height != last_logged_height
            ):
                last_logged_height = snapshot.height
                remaining = submission_block - snapshot.height
                eta = (
                    format_time_remaining(remaining * average_block_time)
                    if average_block_time
                    else "unknown"
                )
                logger.info(
                    "Current: #%d, submission: #%d, remaining: %d block(s) (~%s)",
                    snapshot.height,
                    submission_block,
                    remaining,
                    eta,
                )
            return None

        snapshot = await ticker.run(tick)
        if snapshot is None:
            msg = f"Stopped while waiting for block #{submission_block}"
            raise SchedulingCancelledError(msg)

        logger.info(
            "Submission block reached on %s: #%d >= #%d (target: #%d)",
            snapshot.endpoint,
            snapshot.height,
            submission_block,
            target_block,
        )
        return snapshot


__all__ = ["SubmissionScheduler"]
