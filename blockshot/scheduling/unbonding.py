"""Unbonding completion tracking."""

from __future__ import annotations

from typing import TYPE_CHECKING

from blockshot.helpers.logging import get_logger
from blockshot.helpers.parsers import parse_amount, parse_timestamp
from blockshot.models import UnbondingEntry


if TYPE_CHECKING:
    from collections.abc import Iterable

    from blockshot.helpers.rest_models import RestUnbondingDelegation


logger = get_logger(__name__)


def entries_from_delegations(
    delegations: Iterable[RestUnbondingDelegation],
) -> list[UnbondingEntry]:
    """Flatten REST unbonding delegations into normalized entries.

    Entries whose completion time, balance or creation height cannot be
    parsed are skipped with a warning. Balances are normalized to plain
    integer strings.
    """
    entries: list[UnbondingEntry] = []
    for delegation in delegations:
        for raw in delegation.entries:
            try:
                completion_time = parse_timestamp(raw.completion_time)
                balance = parse_amount(raw.balance)
                creation_height = (
                    int(raw.creation_height) if raw.creation_height else None
                )
            except ValueError as e:
                logger.warning(
                    "Skipping unbonding entry from %s: %s",
                    delegation.validator_address,
                    e,
                )
                continue
            entries.append(
                UnbondingEntry(
                    validator=delegation.validator_address,
                    balance=str(balance),
                    completion_time=completion_time,
                    creation_height=creation_height,
                )
            )
    return entries


def next_completion(entries: Iterable[UnbondingEntry]) -> UnbondingEntry | None:
    """Entry with the earliest completion time, or None when there are none.

    Ties keep the first entry encountered.
    """
    earliest: UnbondingEntry | None = None
    for entry in entries:
        if earliest is None or entry.completion_time < earliest.completion_time:
            earliest = entry
    return earliest


__all__ = [
    "entries_from_delegations",
    "next_completion",
]
