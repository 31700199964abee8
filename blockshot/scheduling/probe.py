"""Endpoint health probes.

A probe wraps one endpoint and turns every transport failure into a
``ChainClientError``. Raw httpx, JSON-RPC and validation errors never
escape into the scheduling logic. Probes do not retry.
"""

from __future__ import annotations

import asyncio

from typing import TYPE_CHECKING, TypeVar

import httpx
from pydantic import ValidationError

from blockshot.errors import (
    BlockNotFoundError,
    ChainClientError,
    EndpointUnreachableError,
)
from blockshot.helpers.constants import DEFAULT_TIMEOUT
from blockshot.helpers.logging import get_logger
from blockshot.helpers.rpc import RPCResponseError


if TYPE_CHECKING:
    from collections.abc import Awaitable

    from blockshot.chains import BalanceSource, ChainTransport
    from blockshot.models import BlockSnapshot, PreparedTransaction


logger = get_logger(__name__)

T = TypeVar("T")


class GuardedEndpoint:
    """Applies a hard time bound and error conversion to endpoint calls."""

    def __init__(
        self,
        endpoint: str,
        http_client: httpx.AsyncClient,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        if timeout <= 0:
            msg = "timeout must be positive"
            raise ValueError(msg)
        self.endpoint = endpoint
        self.http_client = http_client
        self.timeout = timeout

    async def guard(self, call: Awaitable[T], action: str) -> T:
        try:
            async with asyncio.timeout(self.timeout):
                return await call
        except ChainClientError:
            raise
        except TimeoutError as e:
            reason = f"{action} timed out after {self.timeout:.1f}s"
            raise EndpointUnreachableError(self.endpoint, reason) from e
        except httpx.HTTPStatusError as e:
            reason = f"{action} HTTP {e.response.status_code}"
            raise EndpointUnreachableError(self.endpoint, reason) from e
        except httpx.HTTPError as e:
            reason = f"{action} failed: {e!r}"
            raise EndpointUnreachableError(self.endpoint, reason) from e
        except (RPCResponseError, ValidationError, ValueError, KeyError, TypeError) as e:
            reason = f"{action} returned an unusable response: {e}"
            raise EndpointUnreachableError(self.endpoint, reason) from e


class EndpointProbe(GuardedEndpoint):
    """Block height queries and transaction submission on one endpoint."""

    def __init__(
        self,
        transport: ChainTransport,
        http_client: httpx.AsyncClient,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(transport.endpoint, http_client, timeout)
        self.transport = transport

    async def current_block(self) -> BlockSnapshot:
        """Latest block known to the endpoint.

        Raises:
            EndpointUnreachableError: If the endpoint fails or times out
        """
        return await self.guard(
            self.transport.current_block(self.http_client), "current block"
        )

    async def block_at(self, height: int) -> BlockSnapshot:
        """Block at ``height``.

        Raises:
            EndpointUnreachableError: If the endpoint fails or times out
            BlockNotFoundError: If the endpoint does not have the height
        """
        if height < 0:
            raise BlockNotFoundError(self.endpoint, f"invalid height {height}")
        snapshot = await self.guard(
            self.transport.block_at(self.http_client, height), f"block {height}"
        )
        if snapshot is None:
            raise BlockNotFoundError(self.endpoint, f"block {height} not found")
        return snapshot

    async def submit(self, tx: PreparedTransaction) -> str:
        """Submit a prepared transaction and return its hash.

        Raises:
            EndpointUnreachableError: If the endpoint fails or times out
            TransactionRejectedError: If the endpoint refuses the transaction
        """
        return await self.guard(
            self.transport.submit(self.http_client, tx.payload), "broadcast"
        )


class BalanceProbe(GuardedEndpoint):
    """Balance queries on one endpoint."""

    def __init__(
        self,
        source: BalanceSource,
        http_client: httpx.AsyncClient,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(source.endpoint, http_client, timeout)
        self.source = source

    async def balance(self, address: str, denom: str) -> int:
        """Current balance of ``denom`` held by ``address``.

        Raises:
            EndpointUnreachableError: If the endpoint fails or times out
        """
        return await self.guard(
            self.source.get_balance(self.http_client, address, denom),
            f"balance {denom}",
        )


async def first_balance(
    probes: list[BalanceProbe], address: str, denom: str
) -> int:
    """Balance from the first probe that answers, trying each in order.

    Raises:
        EndpointUnreachableError: If every probe fails
    """
    last_error: ChainClientError | None = None
    for probe in probes:
        try:
            return await probe.balance(address, denom)
        except ChainClientError as e:
            logger.debug("Balance query failed on %s: %s", probe.endpoint, e.reason)
            last_error = e
    if last_error is None:
        msg = "no balance endpoints configured"
        raise EndpointUnreachableError("-", msg)
    raise EndpointUnreachableError(
        last_error.endpoint, f"all balance endpoints failed: {last_error.reason}"
    )


__all__ = [
    "BalanceProbe",
    "EndpointProbe",
    "GuardedEndpoint",
    "first_balance",
]
