"""Tests for submission scheduling."""

import pytest

import asyncio

from blockshot.errors import NoValidTargetError, SchedulingCancelledError
from blockshot.scheduling.scheduler import SubmissionScheduler


class TestSubmissionBlock:
    """Tests for submission_block and argument validation."""

    def test_subtracts_early_blocks(self) -> None:
        """Test that submission happens early by the configured margin."""
        assert SubmissionScheduler(early_submission_blocks=2).submission_block(1100) == 1098

    def test_never_negative(self) -> None:
        """Test that very early targets clamp at zero."""
        assert SubmissionScheduler(early_submission_blocks=5).submission_block(3) == 0

    def test_zero_early_blocks(self) -> None:
        """Test submitting exactly at the target."""
        assert SubmissionScheduler(early_submission_blocks=0).submission_block(42) == 42

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"poll_interval_ms": 0},
            {"early_submission_blocks": -1},
            {"max_failed_rounds": 0},
        ],
    )
    def test_invalid_arguments(self, kwargs: dict[str, int]) -> None:
        """Test that out-of-range arguments are rejected."""
        with pytest.raises(ValueError):
            SubmissionScheduler(**kwargs)


class TestWaitUntil:
    """Tests for wait_until."""

    @pytest.mark.asyncio
    @pytest.mark.timeout(5)
    async def test_returns_when_block_reached(self, make_probe) -> None:
        """Test waiting through several polls."""
        probe = make_probe(heights=[995, 996, 997, 998, 999])
        scheduler = SubmissionScheduler(poll_interval_ms=1)

        snapshot = await scheduler.wait_until([probe], 998, target_block=1000)

        assert snapshot.height == 998
        assert probe.current_calls == 4

    @pytest.mark.asyncio
    @pytest.mark.timeout(5)
    async def test_already_past_returns_immediately(self, make_probe) -> None:
        """Test that a chain beyond the submission block returns at once."""
        probe = make_probe(heights=[1200])

        snapshot = await SubmissionScheduler(poll_interval_ms=1).wait_until([probe], 998)

        assert snapshot.height == 1200
        assert probe.current_calls == 1

    @pytest.mark.asyncio
    @pytest.mark.timeout(5)
    async def test_unreachable_endpoints_are_skipped(
        self, make_probe, unreachable_error
    ) -> None:
        """Test that failing endpoints fall through to healthy ones."""
        down_a = make_probe("http://a", heights=[unreachable_error("http://a")])
        down_b = make_probe("http://b", heights=[unreachable_error("http://b")])
        healthy = make_probe("http://c", heights=[997, 998])
        scheduler = SubmissionScheduler(poll_interval_ms=1)

        snapshot = await scheduler.wait_until([down_a, down_b, healthy], 998)

        assert snapshot.endpoint == "http://c"
        assert snapshot.height == 998

    @pytest.mark.asyncio
    @pytest.mark.timeout(5)
    async def test_all_unreachable_raises(self, make_probe, unreachable_error) -> None:
        """Test giving up after consecutive all-failed rounds."""
        probes = [
            make_probe("http://a", heights=[unreachable_error("http://a")]),
            make_probe("http://b", heights=[unreachable_error("http://b")]),
        ]
        scheduler = SubmissionScheduler(poll_interval_ms=1, max_failed_rounds=3)

        with pytest.raises(NoValidTargetError, match="3 consecutive rounds"):
            await scheduler.wait_until(probes, 998)

        assert probes[0].current_calls == 3

    @pytest.mark.asyncio
    @pytest.mark.timeout(5)
    async def test_failed_rounds_reset_on_success(
        self, make_probe, unreachable_error
    ) -> None:
        """Test that only consecutive failures count toward giving up."""
        down = unreachable_error()
        probe = make_probe(heights=[down, down, 990, down, down, 999])
        scheduler = SubmissionScheduler(poll_interval_ms=1, max_failed_rounds=3)

        snapshot = await scheduler.wait_until([probe], 998)

        assert snapshot.height == 999

    @pytest.mark.asyncio
    @pytest.mark.timeout(5)
    async def test_stop_cancels(self, make_probe) -> None:
        """Test that a stop signal ends the wait with an error."""
        stop = asyncio.Event()
        probe = make_probe(heights=[10])
        scheduler = SubmissionScheduler(poll_interval_ms=1)

        async def stop_soon() -> None:
            await asyncio.sleep(0.05)
            stop.set()

        stopper = asyncio.create_task(stop_soon())
        with pytest.raises(SchedulingCancelledError):
            await scheduler.wait_until([probe], 998, stop=stop)
        await stopper

    @pytest.mark.asyncio
    async def test_no_probes_raises(self) -> None:
        """Test that at least one endpoint is required."""
        with pytest.raises(ValueError):
            await SubmissionScheduler().wait_until([], 10)
