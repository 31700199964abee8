"""Target block prediction from a future instant."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
import math

from typing import TYPE_CHECKING

from blockshot.errors import EventAlreadyPassedError
from blockshot.helpers.logging import get_logger
from blockshot.helpers.parsers import format_time_remaining
from blockshot.models import PredictedTarget
from blockshot.scheduling.estimator import BlockTimeEstimator


if TYPE_CHECKING:
    from blockshot.models import AverageBlockTime, BlockSnapshot
    from blockshot.scheduling.probe import EndpointProbe


logger = get_logger(__name__)


def compute_target_block(
    current_height: int, average_block_time: float, seconds_until: float
) -> int:
    """Height expected ``seconds_until`` seconds after ``current_height``.

    Example:
        >>> compute_target_block(1000, 6.0, 600)
        1100
    """
    if average_block_time <= 0:
        msg = "average_block_time must be positive"
        raise ValueError(msg)
    if seconds_until <= 0:
        return current_height
    return current_height + math.floor(seconds_until / average_block_time)


def build_prediction(
    current: BlockSnapshot,
    average: AverageBlockTime,
    seconds_until: float,
    now: datetime,
) -> PredictedTarget:
    """Assemble a prediction from already-fetched inputs."""
    target_block = compute_target_block(
        current.height, average.seconds_per_block, seconds_until
    )
    return PredictedTarget(
        target_block=target_block,
        current_block=current.height,
        average_block_time=average.seconds_per_block,
        time_until_seconds=seconds_until,
        target_time=now + timedelta(seconds=seconds_until),
        predicted_at=now,
    )


class TargetBlockPredictor:
    """Converts a delay or an event time into a target block height."""

    def __init__(self, estimator: BlockTimeEstimator | None = None) -> None:
        self.estimator = estimator or BlockTimeEstimator()

    async def _predict(
        self, probe: EndpointProbe, seconds_until: float, now: datetime
    ) -> PredictedTarget:
        current = await probe.current_block()
        average = await self.estimator.estimate(probe)
        prediction = build_prediction(current, average, seconds_until, now)
        logger.info(
            "Prediction computed on %s: current=#%d target=#%d "
            "avg_block_time=%.2fs time_until=%s margin=±%d blocks",
            probe.endpoint,
            prediction.current_block,
            prediction.target_block,
            prediction.average_block_time,
            format_time_remaining(prediction.time_until_seconds),
            prediction.margin_of_error_blocks,
        )
        return prediction

    async def predict_after_delay(
        self,
        probe: EndpointProbe,
        delay_seconds: float,
        now: datetime | None = None,
    ) -> PredictedTarget:
        """Predict the block produced ``delay_seconds`` from now.

        Raises:
            ValueError: If delay_seconds is negative
            EndpointUnreachableError: If the current block cannot be read
            InsufficientHistoryError: If the block time cannot be estimated
        """
        if delay_seconds < 0:
            msg = "delay_seconds cannot be negative"
            raise ValueError(msg)
        return await self._predict(probe, delay_seconds, now or datetime.now(UTC))

    async def predict_for_event(
        self,
        probe: EndpointProbe,
        completion_time: datetime,
        now: datetime | None = None,
    ) -> PredictedTarget:
        """Predict the block produced at ``completion_time``.

        Raises:
            EventAlreadyPassedError: If completion_time is not in the future;
                callers should execute immediately instead
            EndpointUnreachableError: If the current block cannot be read
            InsufficientHistoryError: If the block time cannot be estimated
        """
        now = now or datetime.now(UTC)
        seconds_until = (completion_time - now).total_seconds()
        if seconds_until <= 0:
            raise EventAlreadyPassedError(seconds_until)
        return await self._predict(probe, seconds_until, now)


__all__ = [
    "TargetBlockPredictor",
    "build_prediction",
    "compute_target_block",
]
