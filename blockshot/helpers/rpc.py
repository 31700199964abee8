"""JSON-RPC client utilities for Ethereum and CometBFT endpoints."""

from __future__ import annotations

import base64

from typing import TYPE_CHECKING, Any

from blockshot.helpers.parsers import parse_hex_int
from blockshot.helpers.rpc_models import (
    CometBlockRequest,
    CometBroadcastResult,
    CometBroadcastTxSyncRequest,
    CometHeader,
    CometStatus,
    CometStatusRequest,
    EthGetBlockByNumberRequest,
    EthSendRawTransactionRequest,
    EvmBlock,
    JsonRpcRequest,
)


if TYPE_CHECKING:
    import httpx


_MISSING_BLOCK_MARKERS = (
    "is not available",
    "must be less than or equal to",
    "could not find",
    "not found",
)


class RPCResponseError(ValueError):
    """JSON-RPC response carried an error object."""

    def __init__(self, error: Any) -> None:
        self.error = error
        if isinstance(error, dict):
            self.code = error.get("code")
            self.detail = " ".join(
                str(error.get(key, "")) for key in ("message", "data")
            ).strip()
        else:
            self.code = None
            self.detail = str(error)
        super().__init__(f"RPC error: {error}")

    @property
    def is_missing_block(self) -> bool:
        """Whether the error says the requested height does not exist."""
        detail = self.detail.lower()
        return any(marker in detail for marker in _MISSING_BLOCK_MARKERS)


class RPCClient:
    """JSON-RPC 2.0 client bound to a single endpoint URL."""

    def __init__(self, rpc_url: str, timeout: float = 10.0) -> None:
        """Initialize RPC client.

        Args:
            rpc_url: JSON-RPC endpoint URL
            timeout: Default timeout for requests in seconds

        Raises:
            ValueError: If rpc_url is empty or None
        """
        if not rpc_url:
            msg = "RPC URL cannot be empty"
            raise ValueError(msg)

        self.rpc_url = rpc_url
        self.timeout = timeout

    async def send(
        self,
        client: httpx.AsyncClient,
        request: JsonRpcRequest,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Send a prepared request model and return its result.

        Raises:
            httpx.HTTPError: If the HTTP request fails
            RPCResponseError: If the RPC response contains an error
        """
        response = await client.post(
            self.rpc_url,
            json=request.model_dump(),
            timeout=timeout or self.timeout,
        )
        response.raise_for_status()
        result = response.json()

        if "error" in result and result["error"] is not None:
            raise RPCResponseError(result["error"])

        return result.get("result")

    async def call(
        self,
        client: httpx.AsyncClient,
        method: str,
        params: list[Any] | dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Make a single JSON-RPC call.

        Args:
            client: HTTP client instance
            method: RPC method name (e.g., "eth_blockNumber")
            params: Positional list or named mapping of parameters
            timeout: Optional timeout override

        Returns:
            RPC result value

        Raises:
            httpx.HTTPError: If the HTTP request fails
            RPCResponseError: If the RPC response contains an error
        """
        request = JsonRpcRequest(method=method, params=params or [])
        return await self.send(client, request, timeout=timeout)


class EvmRPCClient(RPCClient):
    """Ethereum JSON-RPC client."""

    async def get_block(
        self,
        client: httpx.AsyncClient,
        block_number: int | str = "latest",
    ) -> EvmBlock | None:
        """Get a block header by number, or None if the node lacks it.

        Args:
            client: HTTP client instance
            block_number: Block number (int) or a tag such as "latest"
        """
        block_param = (
            hex(block_number) if isinstance(block_number, int) else block_number
        )
        result = await self.send(
            client, EthGetBlockByNumberRequest(params=[block_param, False])
        )
        if result is None:
            return None
        return EvmBlock.model_validate(result)

    async def get_balance(
        self,
        client: httpx.AsyncClient,
        address: str,
        block_number: int | str = "latest",
    ) -> int:
        """Get native balance for an address at a specific block.

        Args:
            client: HTTP client instance
            address: Account address
            block_number: Block number (int) or "latest"

        Returns:
            Balance in the chain's smallest unit
        """
        block_param = (
            hex(block_number) if isinstance(block_number, int) else block_number
        )
        result = await self.call(client, "eth_getBalance", [address, block_param])
        return parse_hex_int(result) if result else 0

    async def send_raw_transaction(
        self, client: httpx.AsyncClient, raw_tx: bytes
    ) -> str:
        """Submit a signed transaction and return its hash."""
        return await self.send(
            client, EthSendRawTransactionRequest(params=["0x" + raw_tx.hex()])
        )


class CometRPCClient(RPCClient):
    """CometBFT (Tendermint) JSON-RPC client."""

    async def status(self, client: httpx.AsyncClient) -> CometStatus:
        """Get node status, including the latest block height and time."""
        result = await self.send(client, CometStatusRequest())
        return CometStatus.model_validate(result)

    async def block_header(
        self, client: httpx.AsyncClient, height: int | None = None
    ) -> CometHeader:
        """Get the header of the block at ``height`` (latest when None).

        Raises:
            RPCResponseError: If the node does not have the height
        """
        params = {"height": str(height)} if height is not None else {}
        result = await self.send(client, CometBlockRequest(params=params))
        return CometHeader.model_validate(result["block"]["header"])

    async def broadcast_tx_sync(
        self, client: httpx.AsyncClient, tx_bytes: bytes
    ) -> CometBroadcastResult:
        """Broadcast signed transaction bytes and wait for CheckTx."""
        request = CometBroadcastTxSyncRequest(
            params={"tx": base64.b64encode(tx_bytes).decode()}
        )
        result = await self.send(client, request)
        return CometBroadcastResult.model_validate(result)


__all__ = [
    "CometRPCClient",
    "EvmRPCClient",
    "RPCClient",
    "RPCResponseError",
]
