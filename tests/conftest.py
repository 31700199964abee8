"""Pytest configuration and shared fixtures."""

from datetime import UTC, datetime, timedelta
import asyncio

from typing import TYPE_CHECKING

import pytest

from blockshot.errors import (
    BlockNotFoundError,
    EndpointUnreachableError,
    TransactionRejectedError,
)
from blockshot.helpers.config import Settings
from blockshot.models import BlockSnapshot, PreparedTransaction


if TYPE_CHECKING:
    from collections.abc import Callable


GENESIS = datetime(2024, 1, 1, tzinfo=UTC)


class FakeProbe:
    """Scripted stand-in for ``EndpointProbe``.

    ``heights`` is consumed one entry per ``current_block`` call; the last
    entry repeats once the script runs out. An exception entry is raised
    instead of answering. Block times are ``GENESIS + height * block_time``.
    """

    def __init__(
        self,
        endpoint: str = "http://node-a",
        heights: list[int | Exception] | None = None,
        block_time: float = 6.0,
        submit_delay: float = 0.0,
        submit_error: Exception | None = None,
        tx_hash: str = "ABCDEF",
    ) -> None:
        self.endpoint = endpoint
        self.heights = list(heights or [1000])
        self.block_time = block_time
        self.submit_delay = submit_delay
        self.submit_error = submit_error
        self.tx_hash = tx_hash
        self.current_calls = 0
        self.submitted: list[PreparedTransaction] = []

    def snapshot(self, height: int) -> BlockSnapshot:
        return BlockSnapshot(
            endpoint=self.endpoint,
            height=height,
            time=GENESIS + timedelta(seconds=height * self.block_time),
        )

    async def current_block(self) -> BlockSnapshot:
        index = min(self.current_calls, len(self.heights) - 1)
        self.current_calls += 1
        entry = self.heights[index]
        if isinstance(entry, Exception):
            raise entry
        return self.snapshot(entry)

    async def block_at(self, height: int) -> BlockSnapshot:
        if height < 0:
            raise BlockNotFoundError(self.endpoint, f"invalid height {height}")
        return self.snapshot(height)

    async def submit(self, tx: PreparedTransaction) -> str:
        await asyncio.sleep(self.submit_delay)
        if self.submit_error is not None:
            raise self.submit_error
        self.submitted.append(tx)
        return self.tx_hash


def unreachable(endpoint: str = "http://node-down") -> EndpointUnreachableError:
    return EndpointUnreachableError(endpoint, "connection refused")


def rejected(endpoint: str = "http://node-a") -> TransactionRejectedError:
    return TransactionRejectedError(endpoint, "code 13 (sdk): insufficient fee")


@pytest.fixture
def make_probe() -> Callable[..., FakeProbe]:
    """Factory for scripted endpoint probes."""
    return FakeProbe


@pytest.fixture
def unreachable_error() -> Callable[..., EndpointUnreachableError]:
    return unreachable


@pytest.fixture
def rejected_error() -> Callable[..., TransactionRejectedError]:
    return rejected


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with millisecond intervals so loops finish quickly."""
    return Settings(
        poll_interval_ms=1,
        early_submission_blocks=2,
        block_sample_size=10,
        request_timeout=1.0,
        max_failed_rounds=3,
        monitor_interval_ms=1,
        legacy_interval_ms=1,
    )


@pytest.fixture
def signed_tx() -> PreparedTransaction:
    return PreparedTransaction(payload=b"\x0a\x01signed", description="pre-signed")
