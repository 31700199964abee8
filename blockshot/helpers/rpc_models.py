"""Pydantic models for JSON-RPC requests and responses."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class JsonRpcRequest(BaseModel):
    """JSON-RPC 2.0 request model."""

    jsonrpc: str = Field(default="2.0", description="JSON-RPC version")
    method: str = Field(..., description="Method name to call")
    params: list[Any] | dict[str, Any] = Field(
        default_factory=list, description="Positional or named parameters"
    )
    id: int | str = Field(default=1, description="Request ID")


# Ethereum


class EthGetBlockByNumberRequest(JsonRpcRequest):
    """JSON-RPC request for eth_getBlockByNumber."""

    method: str = Field(default="eth_getBlockByNumber", frozen=True)


class EthSendRawTransactionRequest(JsonRpcRequest):
    """JSON-RPC request for eth_sendRawTransaction."""

    method: str = Field(default="eth_sendRawTransaction", frozen=True)


class EvmBlock(BaseModel):
    """Subset of an eth_getBlockByNumber result."""

    number: str = Field(..., description="Block number as hex string")
    timestamp: str = Field(..., description="Block timestamp as hex string")
    hash: str | None = Field(default=None, description="Block hash")

    model_config = ConfigDict(extra="ignore")


# CometBFT


class CometStatusRequest(JsonRpcRequest):
    """JSON-RPC request for the CometBFT status route."""

    method: str = Field(default="status", frozen=True)
    params: dict[str, Any] = Field(default_factory=dict, frozen=True)


class CometBlockRequest(JsonRpcRequest):
    """JSON-RPC request for the CometBFT block route."""

    method: str = Field(default="block", frozen=True)
    params: dict[str, Any] = Field(default_factory=dict)


class CometBroadcastTxSyncRequest(JsonRpcRequest):
    """JSON-RPC request for broadcast_tx_sync (tx is base64)."""

    method: str = Field(default="broadcast_tx_sync", frozen=True)
    params: dict[str, Any] = Field(default_factory=dict)


class CometSyncInfo(BaseModel):
    """sync_info section of a status response."""

    latest_block_height: int
    latest_block_time: str
    catching_up: bool = False

    model_config = ConfigDict(extra="ignore")


class CometStatus(BaseModel):
    """Result of the status route."""

    sync_info: CometSyncInfo

    model_config = ConfigDict(extra="ignore")


class CometHeader(BaseModel):
    """Block header fields used for timing."""

    height: int
    time: str

    model_config = ConfigDict(extra="ignore")


class CometBroadcastResult(BaseModel):
    """Result of broadcast_tx_sync; a non-zero code means CheckTx rejected it."""

    code: int = 0
    hash: str
    log: str = ""
    codespace: str = ""

    model_config = ConfigDict(extra="ignore")


__all__ = [
    "CometBlockRequest",
    "CometBroadcastResult",
    "CometBroadcastTxSyncRequest",
    "CometHeader",
    "CometStatus",
    "CometStatusRequest",
    "CometSyncInfo",
    "EthGetBlockByNumberRequest",
    "EthSendRawTransactionRequest",
    "EvmBlock",
    "JsonRpcRequest",
]
