"""Concurrent broadcast of one prepared transaction to every endpoint."""

from __future__ import annotations

import asyncio
import time

from typing import TYPE_CHECKING

from blockshot.errors import ChainClientError
from blockshot.helpers.logging import get_logger
from blockshot.models import BroadcastResult, BroadcastRound


if TYPE_CHECKING:
    from blockshot.models import PreparedTransaction
    from blockshot.scheduling.probe import EndpointProbe


logger = get_logger(__name__)


def select_primary(results: list[BroadcastResult]) -> BroadcastResult | None:
    """Fastest successful result; ties go to the earliest in ``results``."""
    primary: BroadcastResult | None = None
    for result in results:
        if result.success and (primary is None or result.latency_ms < primary.latency_ms):
            primary = result
    return primary


class MultiEndpointBroadcaster:
    """Races a prepared transaction across all endpoints.

    Re-broadcasting the same signed transaction is safe because the ledger
    rejects duplicate application. Failed endpoints are not retried.
    """

    async def _attempt(
        self, probe: EndpointProbe, tx: PreparedTransaction
    ) -> BroadcastResult:
        started = time.perf_counter()
        try:
            tx_hash = await probe.submit(tx)
        except ChainClientError as e:
            latency_ms = round((time.perf_counter() - started) * 1000)
            logger.warning(
                "Broadcast failed on %s after %dms: %s",
                probe.endpoint,
                latency_ms,
                e.reason,
            )
            return BroadcastResult(
                endpoint=probe.endpoint,
                success=False,
                error=e.reason,
                latency_ms=latency_ms,
            )

        latency_ms = round((time.perf_counter() - started) * 1000)
        logger.info(
            "Broadcast succeeded on %s in %dms: %s",
            probe.endpoint,
            latency_ms,
            tx_hash,
        )
        return BroadcastResult(
            endpoint=probe.endpoint,
            success=True,
            tx_hash=tx_hash,
            latency_ms=latency_ms,
        )

    async def broadcast_all(
        self, probes: list[EndpointProbe], tx: PreparedTransaction
    ) -> BroadcastRound:
        """Submit ``tx`` to every probe concurrently and wait for all to settle.

        Returns:
            Every per-endpoint result, in probe order, plus the fastest success
        """
        if not probes:
            msg = "at least one endpoint is required"
            raise ValueError(msg)

        logger.info(
            "Broadcasting to %d endpoint(s) (priority fee x%.1f)",
            len(probes),
            tx.priority_fee,
        )
        results = list(
            await asyncio.gather(*(self._attempt(probe, tx) for probe in probes))
        )
        primary = select_primary(results)

        if primary is None:
            logger.error("Broadcast failed on all %d endpoint(s)", len(results))
        else:
            logger.info(
                "Primary result: %s via %s in %dms (%d/%d succeeded)",
                primary.tx_hash,
                primary.endpoint,
                primary.latency_ms,
                sum(r.success for r in results),
                len(results),
            )
        return BroadcastRound(results=results, primary=primary)


__all__ = [
    "MultiEndpointBroadcaster",
    "select_primary",
]
