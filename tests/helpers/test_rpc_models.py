"""Tests for JSON-RPC and REST pydantic models."""

import pytest
from pydantic import ValidationError

from blockshot.helpers.rest_models import GrantsResponse, UnbondingDelegationsResponse
from blockshot.helpers.rpc_models import (
    CometBlockRequest,
    CometBroadcastResult,
    CometStatusRequest,
    EthGetBlockByNumberRequest,
    EvmBlock,
    JsonRpcRequest,
)


class TestRequestModels:
    """Tests for request serialization."""

    def test_default_request_shape(self) -> None:
        """Test JSON-RPC envelope defaults."""
        request = JsonRpcRequest(method="eth_chainId")

        assert request.model_dump() == {
            "jsonrpc": "2.0",
            "method": "eth_chainId",
            "params": [],
            "id": 1,
        }

    def test_eth_get_block_params(self) -> None:
        """Test positional params pass through."""
        request = EthGetBlockByNumberRequest(params=["latest", False])

        assert request.model_dump()["params"] == ["latest", False]

    def test_comet_requests_use_named_params(self) -> None:
        """Test CometBFT routes serialize params as a mapping."""
        assert CometStatusRequest().model_dump()["params"] == {}
        assert CometBlockRequest(params={"height": "7"}).model_dump()["params"] == {
            "height": "7"
        }


class TestResponseModels:
    """Tests for response parsing."""

    def test_evm_block_ignores_extra_fields(self) -> None:
        """Test that unused block fields are dropped."""
        block = EvmBlock.model_validate({
            "number": "0x1",
            "timestamp": "0x2",
            "transactions": [],
            "miner": "0x0",
        })

        assert block.number == "0x1"
        assert block.hash is None

    def test_evm_block_requires_timestamp(self) -> None:
        """Test that a block without a timestamp is rejected."""
        with pytest.raises(ValidationError):
            EvmBlock.model_validate({"number": "0x1"})

    def test_broadcast_result_defaults(self) -> None:
        """Test that only the hash is mandatory."""
        result = CometBroadcastResult.model_validate({"hash": "AA"})

        assert result.code == 0
        assert result.log == ""

    def test_grants_response_reads_type_alias(self) -> None:
        """Test that @type maps onto type_url."""
        response = GrantsResponse.model_validate({
            "grants": [
                {
                    "authorization": {
                        "@type": "/cosmos.bank.v1beta1.SendAuthorization",
                        "spend_limit": [{"denom": "uatom", "amount": "100"}],
                        "allow_list": [],
                    },
                    "expiration": None,
                }
            ],
            "pagination": None,
        })

        authorization = response.grants[0].authorization
        assert authorization.type_url == "/cosmos.bank.v1beta1.SendAuthorization"
        assert authorization.spend_limit[0].amount == "100"

    def test_unbonding_response_pagination(self) -> None:
        """Test parsing an unbonding page."""
        response = UnbondingDelegationsResponse.model_validate({
            "unbonding_responses": [
                {
                    "delegator_address": "cosmos1del",
                    "validator_address": "cosmosvaloper1val",
                    "entries": [
                        {
                            "creation_height": "100",
                            "completion_time": "2024-05-01T12:00:00Z",
                            "initial_balance": "10",
                            "balance": "10",
                            "unbonding_id": "3",
                        }
                    ],
                }
            ],
            "pagination": {"next_key": "AAE=", "total": "2"},
        })

        assert response.pagination is not None
        assert response.pagination.next_key == "AAE="
        assert response.unbonding_responses[0].entries[0].balance == "10"
