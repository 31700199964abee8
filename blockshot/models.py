"""Pydantic models for the block timing and broadcast pipeline."""

from __future__ import annotations

from datetime import UTC, datetime
import math

from pydantic import BaseModel, ConfigDict, Field, computed_field


class BlockSnapshot(BaseModel):
    """Height and block time reported by one endpoint."""

    endpoint: str = Field(..., description="Endpoint that reported the block")
    height: int = Field(..., ge=0, description="Block height")
    time: datetime = Field(..., description="Block time (UTC)")

    model_config = ConfigDict(frozen=True)


class AverageBlockTime(BaseModel):
    """Average seconds per block between two snapshots."""

    seconds_per_block: float = Field(..., gt=0)
    sample_size: int = Field(..., gt=0)
    from_height: int = Field(..., ge=0)
    to_height: int = Field(..., ge=0)

    model_config = ConfigDict(frozen=True)


class PredictedTarget(BaseModel):
    """Target block predicted for a future instant."""

    target_block: int = Field(..., ge=0)
    current_block: int = Field(..., ge=0)
    average_block_time: float = Field(..., gt=0)
    time_until_seconds: float
    target_time: datetime
    predicted_at: datetime

    model_config = ConfigDict(frozen=True)

    @computed_field
    @property
    def margin_of_error_blocks(self) -> int:
        """Blocks of slack quoted alongside a prediction."""
        return math.ceil(self.average_block_time)

    def seconds_remaining(self, now: datetime | None = None) -> float:
        """Seconds until the target instant, measured from ``now``."""
        now = now or datetime.now(UTC)
        return (self.target_time - now).total_seconds()

    def expected_height(self, now: datetime | None = None) -> int:
        """Height the chain should have reached at ``now`` if the average held."""
        now = now or datetime.now(UTC)
        elapsed = max((now - self.predicted_at).total_seconds(), 0.0)
        return self.current_block + math.floor(elapsed / self.average_block_time)

    def is_stale(self, observed_height: int, now: datetime | None = None) -> bool:
        """Whether observed progress has drifted past the margin of error."""
        drift = abs(observed_height - self.expected_height(now))
        return drift > self.margin_of_error_blocks


class UnbondingEntry(BaseModel):
    """One pending unbonding, normalized from the chain's wire format."""

    validator: str
    balance: str = Field(..., description="Amount as a decimal string")
    completion_time: datetime
    creation_height: int | None = None

    model_config = ConfigDict(frozen=True)


class TrackedBalance(BaseModel):
    """Last observed amount of one denom; None until first observation."""

    denom: str
    last_observed_amount: int | None = Field(default=None, ge=0)


class Coin(BaseModel):
    """Amount of a single denom."""

    denom: str
    amount: int = Field(..., ge=0)

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"


class AuthorizationGrant(BaseModel):
    """Authz grant with its spend limits and optional expiration."""

    authorization_type: str
    spend_limit: list[Coin] = Field(default_factory=list)
    expiration: datetime | None = None

    def is_active(self, now: datetime | None = None) -> bool:
        """Grants without an expiration never expire."""
        if self.expiration is None:
            return True
        return self.expiration > (now or datetime.now(UTC))


class PreparedTransaction(BaseModel):
    """Signed transaction bytes ready to broadcast; opaque to the core."""

    payload: bytes = Field(..., min_length=1)
    priority_fee: float = Field(default=1.0, gt=0)
    description: str = ""

    model_config = ConfigDict(frozen=True)


class BroadcastResult(BaseModel):
    """Outcome of submitting a transaction to one endpoint."""

    endpoint: str
    success: bool
    tx_hash: str | None = None
    error: str | None = None
    latency_ms: int = Field(..., ge=0)


class BroadcastRound(BaseModel):
    """All results of one broadcast round plus the fastest success."""

    results: list[BroadcastResult] = Field(default_factory=list)
    primary: BroadcastResult | None = None

    @property
    def successful(self) -> list[BroadcastResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> list[BroadcastResult]:
        return [r for r in self.results if not r.success]

    @property
    def all_failed(self) -> bool:
        return self.primary is None


__all__ = [
    "AuthorizationGrant",
    "AverageBlockTime",
    "BlockSnapshot",
    "BroadcastResult",
    "BroadcastRound",
    "Coin",
    "PredictedTarget",
    "PreparedTransaction",
    "TrackedBalance",
    "UnbondingEntry",
]
