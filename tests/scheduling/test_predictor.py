"""Tests for target block prediction."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from blockshot.errors import EventAlreadyPassedError
from blockshot.models import PredictedTarget
from blockshot.scheduling.estimator import BlockTimeEstimator
from blockshot.scheduling.predictor import TargetBlockPredictor, compute_target_block


NOW = datetime(2024, 6, 1, 12, tzinfo=UTC)


class TestComputeTargetBlock:
    """Tests for compute_target_block."""

    def test_ten_minutes_at_six_seconds(self) -> None:
        """Test the canonical example."""
        assert compute_target_block(1000, 6.0, 600) == 1100

    def test_rounds_down(self) -> None:
        """Test that partial blocks are not counted."""
        assert compute_target_block(1000, 6.0, 599) == 1099

    @pytest.mark.parametrize("seconds", [0, -30])
    def test_non_positive_delay_is_current(self, seconds: float) -> None:
        """Test that no delay targets the current block."""
        assert compute_target_block(1000, 6.0, seconds) == 1000

    def test_non_positive_average_raises(self) -> None:
        """Test that a zero block time is rejected."""
        with pytest.raises(ValueError):
            compute_target_block(1000, 0.0, 600)

    def test_monotonic_in_delay(self) -> None:
        """Test that a later instant never predicts an earlier block."""
        targets = [compute_target_block(5000, 2.7, s) for s in range(0, 3600, 37)]

        assert targets == sorted(targets)


class TestTargetBlockPredictor:
    """Tests for TargetBlockPredictor."""

    @pytest.mark.asyncio
    async def test_predict_after_delay(self, make_probe) -> None:
        """Test predicting ten minutes ahead on a 6s chain."""
        probe = make_probe(heights=[1000], block_time=6.0)
        predictor = TargetBlockPredictor(BlockTimeEstimator(sample_size=10))

        prediction = await predictor.predict_after_delay(probe, 600, now=NOW)

        assert prediction.target_block == 1100
        assert prediction.current_block == 1000
        assert prediction.average_block_time == pytest.approx(6.0)
        assert prediction.target_time == NOW + timedelta(minutes=10)
        assert prediction.margin_of_error_blocks == 6

    @pytest.mark.asyncio
    async def test_negative_delay_raises(self, make_probe) -> None:
        """Test that a negative delay is rejected."""
        with pytest.raises(ValueError):
            await TargetBlockPredictor().predict_after_delay(make_probe(), -1)

    @pytest.mark.asyncio
    async def test_predict_for_event(self, make_probe) -> None:
        """Test predicting an absolute completion time."""
        probe = make_probe(heights=[2000], block_time=5.0)
        predictor = TargetBlockPredictor(BlockTimeEstimator(sample_size=10))

        prediction = await predictor.predict_for_event(
            probe, NOW + timedelta(hours=1), now=NOW
        )

        assert prediction.target_block == 2720
        assert prediction.time_until_seconds == 3600

    @pytest.mark.asyncio
    async def test_past_event_raises_before_network(self) -> None:
        """Test that a past event short-circuits without probing."""
        probe = AsyncMock()

        with pytest.raises(EventAlreadyPassedError, match="120s ago") as exc_info:
            await TargetBlockPredictor().predict_for_event(
                probe, NOW - timedelta(minutes=2), now=NOW
            )

        assert exc_info.value.seconds_until == -120
        probe.current_block.assert_not_awaited()


class TestPredictedTarget:
    """Tests for drift detection on a prediction."""

    def make_prediction(self) -> PredictedTarget:
        return PredictedTarget(
            target_block=1100,
            current_block=1000,
            average_block_time=6.0,
            time_until_seconds=600,
            target_time=NOW + timedelta(minutes=10),
            predicted_at=NOW,
        )

    def test_seconds_remaining(self) -> None:
        """Test the countdown to the target instant."""
        prediction = self.make_prediction()

        assert prediction.seconds_remaining(NOW + timedelta(minutes=4)) == 360

    def test_expected_height(self) -> None:
        """Test the height the chain should have reached."""
        prediction = self.make_prediction()

        assert prediction.expected_height(NOW + timedelta(minutes=5)) == 1050

    def test_is_stale(self) -> None:
        """Test that drift beyond the margin marks the prediction stale."""
        prediction = self.make_prediction()
        later = NOW + timedelta(minutes=5)

        assert not prediction.is_stale(1054, later)
        assert prediction.is_stale(1040, later)
