"""Work items: what to execute on which chain, and where they are stored.

Each chain kind has its own variant carrying exactly the fields its
execution path needs. Items are validated once, when they are loaded from
the store or from a JSON file.
"""

from __future__ import annotations

from datetime import UTC, datetime
import json
from pathlib import Path

from typing import TYPE_CHECKING, Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from sqlalchemy import JSON, BigInteger, Boolean, DateTime, String, select, update
from sqlalchemy.orm import Mapped, mapped_column

from blockshot.errors import ConfigurationError, WorkItemError
from blockshot.helpers.db import Base
from blockshot.helpers.logging import get_logger


if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


logger = get_logger(__name__)


class _WorkItemBase(BaseModel):
    id: int | str | None = Field(default=None, description="Store identifier")
    chain_name: str = Field(..., min_length=1)
    rpc_urls: list[str] = Field(..., min_length=1, description="Endpoints, preferred first")
    signed_tx_path: str | None = Field(
        default=None, description="File holding the pre-signed transaction"
    )

    model_config = ConfigDict(frozen=True, extra="forbid")


class CosmosWorkItem(_WorkItemBase):
    """Cosmos SDK chain reached through CometBFT RPC and a REST gateway."""

    kind: Literal["cosmos"] = "cosmos"
    rest_urls: list[str] = Field(default_factory=list)
    granter: str = Field(..., description="Account whose funds are watched")
    grantee: str = Field(..., description="Account holding the authz grant")
    denom: str = Field(..., description="Fee denom")
    tracked_denoms: list[str] = Field(
        default_factory=list,
        description="Denoms to watch; defaults to the grant's spend limits",
    )
    delegator: str | None = Field(
        default=None, description="Delegator for unbonding mode; defaults to granter"
    )

    @property
    def watched_address(self) -> str:
        return self.granter

    @property
    def delegator_address(self) -> str:
        return self.delegator or self.granter


class EvmWorkItem(_WorkItemBase):
    """EVM chain reached through Ethereum JSON-RPC."""

    kind: Literal["evm"] = "evm"
    chain_id: int = Field(..., gt=0)
    address: str = Field(..., description="Account whose native balance is watched")
    native_denom: str = Field(default="wei")

    @property
    def watched_address(self) -> str:
        return self.address


WorkItem = Annotated[CosmosWorkItem | EvmWorkItem, Field(discriminator="kind")]

_WORK_ITEM_ADAPTER: TypeAdapter[CosmosWorkItem | EvmWorkItem] = TypeAdapter(WorkItem)
_WORK_ITEMS_ADAPTER: TypeAdapter[list[CosmosWorkItem | EvmWorkItem]] = TypeAdapter(
    list[WorkItem]
)


def parse_work_item(data: dict[str, Any]) -> CosmosWorkItem | EvmWorkItem:
    """Validate one raw work item.

    Raises:
        WorkItemError: If the data does not match any variant
    """
    try:
        return _WORK_ITEM_ADAPTER.validate_python(data)
    except ValidationError as e:
        msg = f"Invalid work item {data.get('id')!r}: {e}"
        raise WorkItemError(msg) from e


def load_work_items_file(path: str | Path) -> list[CosmosWorkItem | EvmWorkItem]:
    """Load and validate a JSON array of work items.

    Raises:
        ConfigurationError: If the file is missing, not JSON, or invalid
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
        return _WORK_ITEMS_ADAPTER.validate_python(json.loads(raw))
    except OSError as e:
        msg = f"Cannot read work items from {path}: {e}"
        raise ConfigurationError(msg) from e
    except (json.JSONDecodeError, ValidationError) as e:
        msg = f"Invalid work items in {path}: {e}"
        raise ConfigurationError(msg) from e


# Store


class WorkItemDB(Base):
    """Pending or executed work item."""

    __tablename__ = "work_items"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    chain_name: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    payload: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, doc="Variant-specific fields"
    )
    executed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    executed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def to_work_item(self) -> CosmosWorkItem | EvmWorkItem:
        """Validate this row into its variant.

        Raises:
            WorkItemError: If the stored payload is invalid
        """
        return parse_work_item({
            **self.payload,
            "id": self.id,
            "kind": self.kind,
            "chain_name": self.chain_name,
        })


class WorkItemStore:
    """Reads pending work items and records completion."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def fetch_pending(self) -> list[CosmosWorkItem | EvmWorkItem]:
        """Every unexecuted, valid work item; invalid rows are logged and skipped."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(WorkItemDB)
                .where(WorkItemDB.executed.is_(False))
                .order_by(WorkItemDB.id)
            )
            rows = result.scalars().all()

        items: list[CosmosWorkItem | EvmWorkItem] = []
        for row in rows:
            try:
                items.append(row.to_work_item())
            except WorkItemError as e:
                logger.warning("Skipping work item %s: %s", row.id, e)

        logger.info("Found %d pending work item(s)", len(items))
        return items

    async def mark_complete(self, item_id: int | str) -> None:
        """Mark a work item executed."""
        async with self.session_factory() as session:
            try:
                await session.execute(
                    update(WorkItemDB)
                    .where(WorkItemDB.id == int(item_id))
                    .values(executed=True, executed_at=datetime.now(UTC))
                )
                await session.commit()
            except Exception:
                await session.rollback()
                raise
        logger.info("Marked work item %s as executed", item_id)


__all__ = [
    "CosmosWorkItem",
    "EvmWorkItem",
    "WorkItem",
    "WorkItemDB",
    "WorkItemStore",
    "load_work_items_file",
    "parse_work_item",
]
