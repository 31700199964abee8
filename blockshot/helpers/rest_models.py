"""Pydantic models for Cosmos SDK REST (LCD) responses."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RestCoin(BaseModel):
    """Coin as encoded by the REST gateway (amount is a decimal string)."""

    denom: str
    amount: str


class BalanceResponse(BaseModel):
    """Response of /cosmos/bank/v1beta1/balances/{address}/by_denom."""

    balance: RestCoin | None = None


class RestUnbondingEntry(BaseModel):
    """One unbonding entry; completion_time is left raw for the parsers."""

    creation_height: str | None = None
    completion_time: Any = None
    initial_balance: str | None = None
    balance: str = "0"

    model_config = ConfigDict(extra="ignore")


class RestUnbondingDelegation(BaseModel):
    """Unbonding delegations of one delegator towards one validator."""

    delegator_address: str
    validator_address: str
    entries: list[RestUnbondingEntry] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class Pagination(BaseModel):
    """Cosmos SDK page response."""

    next_key: str | None = None
    total: str | None = None


class UnbondingDelegationsResponse(BaseModel):
    """Response of /cosmos/staking/v1beta1/delegators/{address}/unbonding_delegations."""

    unbonding_responses: list[RestUnbondingDelegation] = Field(default_factory=list)
    pagination: Pagination | None = None


class RestAuthorization(BaseModel):
    """Authorization payload; only send authorizations carry a spend limit."""

    type_url: str = Field(..., alias="@type")
    spend_limit: list[RestCoin] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class RestGrant(BaseModel):
    """One authz grant between a granter and a grantee."""

    authorization: RestAuthorization
    expiration: Any = None


class GrantsResponse(BaseModel):
    """Response of /cosmos/authz/v1beta1/grants."""

    grants: list[RestGrant] = Field(default_factory=list)
    pagination: Pagination | None = None


__all__ = [
    "BalanceResponse",
    "GrantsResponse",
    "Pagination",
    "RestAuthorization",
    "RestCoin",
    "RestGrant",
    "RestUnbondingDelegation",
    "RestUnbondingEntry",
    "UnbondingDelegationsResponse",
]
