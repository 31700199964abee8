"""Run modes: predict, wait, broadcast, and record outcomes per work item.

Processing flow per work item:
1. Compute a target (fixed delay or next unbonding completion), or watch
   balances for an increase
2. Prepare the signed transaction through the preparer collaborator
3. Wait for the submission block across all endpoints
4. Broadcast to every endpoint concurrently and report the round
5. Mark the work item complete when a store is attached
"""

from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack
from enum import StrEnum
import signal

from typing import TYPE_CHECKING, TypeVar

from blockshot.chains import make_transport
from blockshot.errors import (
    BlockshotError,
    ChainClientError,
    ConfigurationError,
    EndpointUnreachableError,
    EventAlreadyPassedError,
    InsufficientHistoryError,
    SchedulingCancelledError,
)
from blockshot.helpers.http import create_http_client, retry_with_backoff
from blockshot.helpers.logging import get_logger
from blockshot.helpers.parsers import format_time_remaining, parse_amount
from blockshot.helpers.rest import CosmosRestClient, active_spend_limits
from blockshot.models import Coin
from blockshot.report import print_round
from blockshot.scheduling.broadcaster import MultiEndpointBroadcaster
from blockshot.scheduling.estimator import BlockTimeEstimator
from blockshot.scheduling.monitor import BalanceChangeMonitor
from blockshot.scheduling.predictor import TargetBlockPredictor
from blockshot.scheduling.probe import (
    BalanceProbe,
    EndpointProbe,
    GuardedEndpoint,
    first_balance,
)
from blockshot.scheduling.scheduler import SubmissionScheduler
from blockshot.scheduling.ticker import Ticker
from blockshot.scheduling.unbonding import entries_from_delegations, next_completion
from blockshot.work_items import CosmosWorkItem


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

    import httpx
    from rich.console import Console

    from blockshot.helpers.config import Settings
    from blockshot.models import BroadcastRound, PredictedTarget, PreparedTransaction
    from blockshot.transactions import TransactionPreparer
    from blockshot.work_items import EvmWorkItem, WorkItemStore

    AnyWorkItem = CosmosWorkItem | EvmWorkItem


logger = get_logger(__name__)

T = TypeVar("T")


class RunMode(StrEnum):
    """Execution mode selected by the operator."""

    TIMED = "timed"
    UNBONDING = "unbonding"
    MONITOR = "monitor"
    MONITOR_LEGACY = "monitor-legacy"


def item_label(item: AnyWorkItem) -> str:
    """Human-readable key for a work item."""
    return f"{item.chain_name}#{item.id}" if item.id is not None else item.chain_name


def validate_items(mode: RunMode, items: list[AnyWorkItem]) -> None:
    """Fail fast on configuration that no run could recover from.

    Raises:
        ConfigurationError: If the items cannot run in ``mode``
    """
    if not items:
        msg = "No work items configured"
        raise ConfigurationError(msg)

    for item in items:
        label = item_label(item)
        if not item.rpc_urls:
            msg = f"{label}: no RPC endpoints configured"
            raise ConfigurationError(msg)
        if mode == RunMode.UNBONDING and not isinstance(item, CosmosWorkItem):
            msg = f"{label}: unbonding mode needs a cosmos work item"
            raise ConfigurationError(msg)
        # every mode except timed reads balances or delegations over REST
        needs_rest = mode != RunMode.TIMED
        if needs_rest and isinstance(item, CosmosWorkItem) and not item.rest_urls:
            msg = f"{label}: {mode} mode needs rest_urls"
            raise ConfigurationError(msg)


class ChainSession:
    """Endpoints and connection pool for one work item.

    The HTTP client is shared by every probe of the session and closed when
    the session exits.
    """

    def __init__(
        self,
        item: AnyWorkItem,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.item = item
        self.settings = settings
        self._owns_client = http_client is None
        self.http_client = http_client or create_http_client(
            timeout=settings.request_timeout
        )
        timeout = settings.request_timeout

        transports = [make_transport(item.kind, url, timeout) for url in item.rpc_urls]
        self.probes = [EndpointProbe(t, self.http_client, timeout) for t in transports]

        self.rest_clients: list[CosmosRestClient] = []
        if isinstance(item, CosmosWorkItem):
            self.rest_clients = [CosmosRestClient(u, timeout) for u in item.rest_urls]
            balance_sources = self.rest_clients
        else:
            balance_sources = transports
        self.balance_probes = [
            BalanceProbe(source, self.http_client, timeout)
            for source in balance_sources
        ]

    async def __aenter__(self) -> ChainSession:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Release the connection pool if this session created it."""
        if self._owns_client:
            await self.http_client.aclose()

    async def query_rest(
        self, call: Callable[[CosmosRestClient], Awaitable[T]], action: str
    ) -> T:
        """Run a REST query on the first gateway that answers.

        Raises:
            EndpointUnreachableError: If every gateway fails
        """
        last_error: ChainClientError | None = None
        for rest in self.rest_clients:
            guarded = GuardedEndpoint(
                rest.endpoint, self.http_client, self.settings.request_timeout
            )
            try:
                return await guarded.guard(call(rest), action)
            except ChainClientError as e:
                logger.debug("%s failed on %s: %s", action, rest.endpoint, e.reason)
                last_error = e
        reason = last_error.reason if last_error else "no REST endpoints configured"
        raise EndpointUnreachableError(self.item.chain_name, f"{action}: {reason}")

    async def sample_balances(self, denoms: list[str]) -> dict[str, int]:
        """Current amounts per denom, queried concurrently.

        Denoms that no endpoint could read are left out.

        Raises:
            EndpointUnreachableError: If no denom could be read
        """
        address = self.item.watched_address
        results = await asyncio.gather(
            *(first_balance(self.balance_probes, address, d) for d in denoms),
            return_exceptions=True,
        )

        amounts: dict[str, int] = {}
        for denom, result in zip(denoms, results, strict=True):
            if isinstance(result, ChainClientError):
                logger.debug("Balance of %s unavailable: %s", denom, result.reason)
            elif isinstance(result, BaseException):
                raise result
            else:
                amounts[denom] = result

        if denoms and not amounts:
            raise EndpointUnreachableError(
                self.item.chain_name, "no balance could be read"
            )
        return amounts


class Orchestrator:
    """Drives work items through the selected run mode."""

    def __init__(
        self,
        settings: Settings,
        preparer: TransactionPreparer,
        store: WorkItemStore | None = None,
        stop: asyncio.Event | None = None,
        console: Console | None = None,
    ) -> None:
        self.settings = settings
        self.preparer = preparer
        self.store = store
        self.stop = stop or asyncio.Event()
        self.console = console

        self.predictor = TargetBlockPredictor(
            BlockTimeEstimator(settings.block_sample_size)
        )
        self.scheduler = SubmissionScheduler(
            poll_interval_ms=settings.poll_interval_ms,
            early_submission_blocks=settings.early_submission_blocks,
            max_failed_rounds=settings.max_failed_rounds,
        )
        self.broadcaster = MultiEndpointBroadcaster()

    def shutdown(self) -> None:
        """Stop every polling loop at its next tick boundary."""
        if not self.stop.is_set():
            logger.info("Shutdown signal received, stopping...")
        self.stop.set()

    def install_signal_handlers(self) -> None:
        """Route SIGINT and SIGTERM to ``shutdown``."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self.shutdown)

    def open_session(self, item: AnyWorkItem) -> ChainSession:
        return ChainSession(item, self.settings)

    async def _sleep(self, seconds: float) -> bool:
        """Sleep unless stopped; False if the stop signal arrived."""
        if seconds <= 0:
            return not self.stop.is_set()
        try:
            await asyncio.wait_for(self.stop.wait(), timeout=seconds)
        except TimeoutError:
            return True
        return False

    async def run(
        self,
        mode: RunMode,
        items: list[AnyWorkItem],
        delay_seconds: float = 600.0,
    ) -> dict[str, bool]:
        """Run ``mode`` over ``items``.

        Timed and unbonding items run one after another; monitor mode
        watches every chain concurrently.

        Returns:
            Success flag per work item label

        Raises:
            ConfigurationError: If the items cannot run in ``mode`` or their
                transactions cannot be prepared
        """
        validate_items(mode, items)
        for item in items:
            await self.preparer.validate(item)
        logger.info(
            "Starting %s mode for %d chain(s): %s",
            mode,
            len(items),
            ", ".join(item.chain_name for item in items),
        )

        if mode == RunMode.MONITOR:
            outcomes = await asyncio.gather(
                *(self.monitor_balances(item) for item in items)
            )
            return dict(zip((item_label(i) for i in items), outcomes, strict=True))

        if mode == RunMode.MONITOR_LEGACY:
            return await self.monitor_legacy(items)

        results: dict[str, bool] = {}
        for item in items:
            if self.stop.is_set():
                break
            if mode == RunMode.TIMED:
                results[item_label(item)] = await self.execute_after_delay(
                    item, delay_seconds
                )
            else:
                results[item_label(item)] = await self.execute_on_unbonding(item)
        return results

    async def predict(
        self,
        session: ChainSession,
        *,
        delay_seconds: float | None = None,
        target_time: datetime | None = None,
    ) -> PredictedTarget:
        """Predict on the session's endpoints, retrying with a fresh sample.

        Each attempt uses the next endpoint in order.

        Raises:
            InsufficientHistoryError: If every attempt failed to estimate
            EndpointUnreachableError: If every attempt failed to read a block
            EventAlreadyPassedError: If ``target_time`` is not in the future
        """
        attempt = 0

        @retry_with_backoff(
            max_retries=max(len(session.probes), 2),
            base_delay=self.settings.poll_interval_ms / 1000,
            retry_on=(InsufficientHistoryError, EndpointUnreachableError),
        )
        async def predict_once() -> PredictedTarget:
            nonlocal attempt
            probe = session.probes[attempt % len(session.probes)]
            attempt += 1
            if target_time is not None:
                return await self.predictor.predict_for_event(probe, target_time)
            return await self.predictor.predict_after_delay(probe, delay_seconds or 0)

        return await predict_once()

    async def wait_for_target(
        self,
        session: ChainSession,
        prediction: PredictedTarget,
    ) -> None:
        """Wait for the submission block of ``prediction``.

        Long waits are re-predicted against the same target instant before
        the final polling phase, since block times drift.

        Raises:
            NoValidTargetError: If every endpoint keeps failing
            SchedulingCancelledError: If stopped while waiting
        """
        target_time = prediction.target_time
        while prediction.seconds_remaining() > self.settings.repredict_after_seconds:
            pause = prediction.seconds_remaining() / 2
            logger.info(
                "%s: target #%d in %s, re-predicting in %s",
                session.item.chain_name,
                prediction.target_block,
                format_time_remaining(prediction.seconds_remaining()),
                format_time_remaining(pause),
            )
            if not await self._sleep(pause):
                msg = "Stopped before the submission window"
                raise SchedulingCancelledError(msg)

            refreshed = await self.predict(session, target_time=target_time)
            if prediction.is_stale(refreshed.current_block):
                logger.warning(
                    "%s: chain drifted from prediction (expected #%d, observed #%d); "
                    "target #%d -> #%d",
                    session.item.chain_name,
                    prediction.expected_height(),
                    refreshed.current_block,
                    prediction.target_block,
                    refreshed.target_block,
                )
            prediction = refreshed

        await self.scheduler.wait_until(
            session.probes,
            self.scheduler.submission_block(prediction.target_block),
            prediction.target_block,
            self.stop,
            prediction.average_block_time,
        )

    async def broadcast(
        self,
        session: ChainSession,
        tx: PreparedTransaction,
        *,
        mark_complete: bool = True,
    ) -> BroadcastRound:
        """Broadcast ``tx``, print the round, and record success in the store."""
        item = session.item
        broadcast = await self.broadcaster.broadcast_all(session.probes, tx)
        print_round(
            f"{item.chain_name}: {tx.description or 'broadcast'}",
            broadcast,
            self.console,
        )

        if broadcast.primary is not None:
            logger.info(
                "%s: transaction %s landed via %s in %dms",
                item_label(item),
                broadcast.primary.tx_hash,
                broadcast.primary.endpoint,
                broadcast.primary.latency_ms,
            )
            if mark_complete and self.store is not None and item.id is not None:
                try:
                    await self.store.mark_complete(item.id)
                except Exception:
                    logger.exception("Failed to mark %s complete", item_label(item))
        else:
            logger.error(
                "%s: broadcast failed on all %d endpoint(s)",
                item_label(item),
                len(broadcast.results),
            )
        return broadcast

    async def report_inclusion_delay(
        self, session: ChainSession, detected_height: int
    ) -> None:
        """Log how many blocks passed between detection and broadcast."""
        after = await self.scheduler.poll_once(session.probes)
        if after is None:
            return
        blocks = after.height - detected_height
        if blocks <= 0:
            logger.info(
                "%s: same-block execution at #%d",
                item_label(session.item),
                detected_height,
            )
        else:
            logger.info(
                "%s: executed %d block(s) after detection (#%d -> #%d)",
                item_label(session.item),
                blocks,
                detected_height,
                after.height,
            )

    async def tracked_limits(self, session: ChainSession) -> dict[str, int | None]:
        """Denoms to watch mapped to their spend limit (None means uncapped)."""
        item = session.item
        if not isinstance(item, CosmosWorkItem):
            return {item.native_denom: None}

        grants = await session.query_rest(
            lambda rest: rest.get_grants(session.http_client, item.granter, item.grantee),
            "authz grants",
        )
        limits = {coin.denom: coin.amount for coin in active_spend_limits(grants)}
        if not limits:
            return {}
        if item.tracked_denoms:
            return {denom: limits.get(denom) for denom in item.tracked_denoms}
        return dict(limits)

    async def execute_after_delay(self, item: AnyWorkItem, delay_seconds: float) -> bool:
        """Broadcast the item's transaction at the block ``delay_seconds`` away."""
        label = item_label(item)
        logger.info(
            "%s: timed execution in %s", label, format_time_remaining(delay_seconds)
        )
        try:
            async with self.open_session(item) as session:
                prediction = await self.predict(session, delay_seconds=delay_seconds)
                tx = await self.preparer.prepare(item, [], 1.0)
                await self.wait_for_target(session, prediction)
                broadcast = await self.broadcast(session, tx)
                return not broadcast.all_failed
        except BlockshotError as e:
            logger.error("%s: timed execution failed: %s", label, e)
            return False

    async def execute_on_unbonding(self, item: AnyWorkItem) -> bool:
        """Broadcast the item's transaction when its next unbonding completes."""
        label = item_label(item)
        if not isinstance(item, CosmosWorkItem):
            logger.error("%s: unbonding mode needs a cosmos work item", label)
            return False

        try:
            async with self.open_session(item) as session:
                delegations = await session.query_rest(
                    lambda rest: rest.get_unbonding_delegations(
                        session.http_client, item.delegator_address
                    ),
                    "unbonding delegations",
                )
                entry = next_completion(entries_from_delegations(delegations))
                if entry is None:
                    logger.info(
                        "%s: no unbonding delegations for %s",
                        label,
                        item.delegator_address,
                    )
                    return False

                logger.info(
                    "%s: next unbonding of %s%s from %s completes at %s",
                    label,
                    entry.balance,
                    item.denom,
                    entry.validator,
                    entry.completion_time.isoformat(),
                )
                amounts = [Coin(denom=item.denom, amount=parse_amount(entry.balance))]
                tx = await self.preparer.prepare(
                    item, amounts, self.settings.unbonding_fee_multiplier
                )

                try:
                    prediction = await self.predict(
                        session, target_time=entry.completion_time
                    )
                except EventAlreadyPassedError:
                    logger.warning("%s: unbonding already completed, executing now", label)
                else:
                    await self.wait_for_target(session, prediction)

                broadcast = await self.broadcast(session, tx)
                return not broadcast.all_failed
        except BlockshotError as e:
            logger.error("%s: unbonding execution failed: %s", label, e)
            return False

    async def monitor_balances(self, item: AnyWorkItem) -> bool:
        """Watch balances at high frequency and broadcast on every increase.

        Runs until stopped. Returns True if any broadcast succeeded.
        """
        label = item_label(item)
        succeeded = False
        try:
            async with self.open_session(item) as session:
                limits = await self.tracked_limits(session)
                if not limits:
                    logger.error("%s: no active send authorization to watch", label)
                    return False

                async def on_increase(denom: str, previous: int, current: int) -> None:
                    nonlocal succeeded
                    limit = limits.get(denom)
                    amount = current if limit is None else min(current, limit)
                    if amount <= 0:
                        return
                    detected, tx = await asyncio.gather(
                        self.scheduler.poll_once(session.probes),
                        self.preparer.prepare(
                            item,
                            [Coin(denom=denom, amount=amount)],
                            self.settings.monitor_fee_multiplier,
                        ),
                    )
                    broadcast = await self.broadcast(session, tx, mark_complete=False)
                    succeeded = succeeded or not broadcast.all_failed
                    if detected is not None and not broadcast.all_failed:
                        await self.report_inclusion_delay(session, detected.height)

                monitor = BalanceChangeMonitor(
                    list(limits),
                    session.sample_balances,
                    on_increase,
                    interval_ms=self.settings.monitor_interval_ms,
                )
                await monitor.watch(self.stop)
        except BlockshotError as e:
            logger.error("%s: balance monitoring failed: %s", label, e)
        return succeeded

    async def monitor_legacy(self, items: list[AnyWorkItem]) -> dict[str, bool]:
        """Poll every chain at a low rate and sweep any transferable balance.

        Runs until stopped. Each cycle visits the chains one after another;
        a failure on one chain is logged and the cycle moves on.
        """
        results = {item_label(item): False for item in items}

        async with AsyncExitStack() as stack:
            sessions = [
                await stack.enter_async_context(self.open_session(item))
                for item in items
            ]

            async def cycle() -> None:
                for session in sessions:
                    if self.stop.is_set():
                        return
                    label = item_label(session.item)
                    try:
                        if await self.sweep_once(session):
                            results[label] = True
                    except BlockshotError as e:
                        logger.warning("%s: check failed: %s", label, e)

            await Ticker(self.settings.legacy_interval_ms, self.stop).run(cycle)

        return results

    async def sweep_once(self, session: ChainSession) -> bool:
        """Broadcast if any tracked balance is positive; True on success."""
        limits = await self.tracked_limits(session)
        if not limits:
            logger.debug("%s: no active send authorization", session.item.chain_name)
            return False

        amounts = await session.sample_balances(list(limits))
        coins = []
        for denom, balance in amounts.items():
            limit = limits.get(denom)
            amount = balance if limit is None else min(balance, limit)
            if amount > 0:
                coins.append(Coin(denom=denom, amount=amount))

        if not coins:
            logger.debug("%s: no funds available", session.item.chain_name)
            return False

        logger.info(
            "%s: transferable funds found: %s",
            session.item.chain_name,
            ", ".join(str(c) for c in coins),
        )
        tx = await self.preparer.prepare(session.item, coins, 1.0)
        broadcast = await self.broadcast(session, tx, mark_complete=False)
        return not broadcast.all_failed


__all__ = [
    "ChainSession",
    "Orchestrator",
    "RunMode",
    "item_label",
    "validate_items",
]
