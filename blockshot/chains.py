"""Chain transports: block queries and transaction submission per chain kind.

Transports speak the wire protocol of one endpoint and return normalized
models. They do not catch transport errors; ``EndpointProbe`` converts
those into ``ChainClientError`` subclasses.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from blockshot.errors import TransactionRejectedError
from blockshot.helpers.parsers import parse_hex_int, parse_hex_timestamp, parse_rfc3339
from blockshot.helpers.rpc import CometRPCClient, EvmRPCClient, RPCResponseError
from blockshot.models import BlockSnapshot


if TYPE_CHECKING:
    import httpx


class ChainTransport(Protocol):
    """Block and broadcast access to one endpoint."""

    @property
    def endpoint(self) -> str: ...

    async def current_block(self, client: httpx.AsyncClient) -> BlockSnapshot: ...

    async def block_at(
        self, client: httpx.AsyncClient, height: int
    ) -> BlockSnapshot | None: ...

    async def submit(self, client: httpx.AsyncClient, payload: bytes) -> str: ...


class BalanceSource(Protocol):
    """Balance queries against one endpoint."""

    @property
    def endpoint(self) -> str: ...

    async def get_balance(
        self, client: httpx.AsyncClient, address: str, denom: str
    ) -> int: ...


class CosmosTransport:
    """CometBFT RPC transport for Cosmos SDK chains."""

    def __init__(self, rpc_url: str, timeout: float = 10.0) -> None:
        self.rpc = CometRPCClient(rpc_url, timeout=timeout)

    @property
    def endpoint(self) -> str:
        return self.rpc.rpc_url

    async def current_block(self, client: httpx.AsyncClient) -> BlockSnapshot:
        status = await self.rpc.status(client)
        return BlockSnapshot(
            endpoint=self.endpoint,
            height=status.sync_info.latest_block_height,
            time=parse_rfc3339(status.sync_info.latest_block_time),
        )

    async def block_at(
        self, client: httpx.AsyncClient, height: int
    ) -> BlockSnapshot | None:
        try:
            header = await self.rpc.block_header(client, height)
        except RPCResponseError as e:
            if e.is_missing_block:
                return None
            raise
        return BlockSnapshot(
            endpoint=self.endpoint,
            height=header.height,
            time=parse_rfc3339(header.time),
        )

    async def submit(self, client: httpx.AsyncClient, payload: bytes) -> str:
        result = await self.rpc.broadcast_tx_sync(client, payload)
        if result.code != 0:
            reason = f"code {result.code} ({result.codespace}): {result.log}"
            raise TransactionRejectedError(self.endpoint, reason)
        return result.hash


class EvmTransport:
    """Ethereum JSON-RPC transport; also a native balance source."""

    def __init__(self, rpc_url: str, timeout: float = 10.0) -> None:
        self.rpc = EvmRPCClient(rpc_url, timeout=timeout)

    @property
    def endpoint(self) -> str:
        return self.rpc.rpc_url

    async def current_block(self, client: httpx.AsyncClient) -> BlockSnapshot:
        block = await self.rpc.get_block(client, "latest")
        if block is None:
            msg = "latest block missing from response"
            raise ValueError(msg)
        return BlockSnapshot(
            endpoint=self.endpoint,
            height=parse_hex_int(block.number),
            time=parse_hex_timestamp(block.timestamp),
        )

    async def block_at(
        self, client: httpx.AsyncClient, height: int
    ) -> BlockSnapshot | None:
        block = await self.rpc.get_block(client, height)
        if block is None:
            return None
        return BlockSnapshot(
            endpoint=self.endpoint,
            height=parse_hex_int(block.number),
            time=parse_hex_timestamp(block.timestamp),
        )

    async def submit(self, client: httpx.AsyncClient, payload: bytes) -> str:
        try:
            return await self.rpc.send_raw_transaction(client, payload)
        except RPCResponseError as e:
            raise TransactionRejectedError(self.endpoint, e.detail) from e

    async def get_balance(
        self, client: httpx.AsyncClient, address: str, denom: str
    ) -> int:
        # EVM chains expose a single native denom; ``denom`` is a label only
        return await self.rpc.get_balance(client, address)


TRANSPORTS: dict[str, type[CosmosTransport] | type[EvmTransport]] = {
    "cosmos": CosmosTransport,
    "evm": EvmTransport,
}


def make_transport(kind: str, rpc_url: str, timeout: float = 10.0) -> ChainTransport:
    """Transport for a chain kind.

    Raises:
        ValueError: If the kind is unknown
    """
    try:
        transport_class = TRANSPORTS[kind]
    except KeyError:
        msg = f"Unknown chain kind: {kind}"
        raise ValueError(msg) from None
    return transport_class(rpc_url, timeout=timeout)


__all__ = [
    "TRANSPORTS",
    "BalanceSource",
    "ChainTransport",
    "CosmosTransport",
    "EvmTransport",
    "make_transport",
]
